"""
Authoring-time reference checks for flow documents.

At fill time the engine shrugs off dangling references (an unknown field is just
empty, an unknown jump target is ignored). The builder runs these checks before
publishing so the author sees what would be silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Set

from flowlogic.engine.conditions import check_condition
from flowlogic.engine.loops import split_loop_id
from flowlogic.schemas.flow import Flow, FlowLike, FlowNode, coerce_model

IssueKind = Literal[
    "duplicate_step_id",
    "duplicate_field_id",
    "unknown_field",
    "unknown_step",
    "unknown_operator",
    "invalid_loop_source",
    "invalid_loop_range",
]
Severity = Literal["error", "warning"]


@dataclass(frozen=True)
class FlowIssue:
    kind: IssueKind
    node_id: str
    message: str
    ref: Optional[str] = None
    severity: Severity = "error"

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {
            "kind": self.kind,
            "nodeId": self.node_id,
            "message": self.message,
            "ref": self.ref,
            "severity": self.severity,
        }


def _base(ref: str) -> str:
    return split_loop_id(ref)[0]


class _Linter:
    def __init__(self, flow: Flow) -> None:
        self.flow = flow
        self.issues: List[FlowIssue] = []
        self.node_ids: Set[str] = {n.id for n in flow.nodes}
        self.step_ids: Set[str] = {n.id for n in flow.step_nodes()}
        self.field_owner: Dict[str, str] = {}
        self.step_index: Dict[str, int] = {n.id: i for i, n in enumerate(flow.step_nodes())}

    def add(self, kind: IssueKind, node: FlowNode, message: str, ref: Optional[str] = None, severity: Severity = "error") -> None:
        self.issues.append(FlowIssue(kind=kind, node_id=node.id, message=message, ref=ref, severity=severity))

    def known_field(self, ref: str) -> bool:
        return ref in self.field_owner or _base(ref) in self.field_owner

    def known_step(self, ref: str) -> bool:
        return ref in self.step_ids or _base(ref) in self.step_ids

    def check_ids(self) -> None:
        seen_nodes: Set[str] = set()
        for node in self.flow.nodes:
            if node.id in seen_nodes:
                self.add("duplicate_step_id", node, f"Step id {node.id!r} is used more than once", ref=node.id)
            seen_nodes.add(node.id)
            for q in node.data.questions:
                if q.id in self.field_owner:
                    self.add("duplicate_field_id", node, f"Field id {q.id!r} is used more than once", ref=q.id)
                    continue
                self.field_owner[q.id] = node.id

    def check_logic(self, node: FlowNode) -> None:
        for rule in node.data.logic:
            for cond in rule.conditions:
                check = check_condition(cond, {}, known_fields=self.field_owner.keys())
                if check.kind == "unknown_operator":
                    self.add("unknown_operator", node, f"Unsupported operator {cond.operator!r}", ref=cond.operator)
                elif check.kind == "unknown_field" and not self.known_field(cond.field_id):
                    self.add("unknown_field", node, f"Condition references unknown field {cond.field_id!r}", ref=cond.field_id)

            actions = rule.actions
            for label, ref in (
                ("jumpToStep", actions.jump_to_step),
                ("showStep", actions.show_step),
                ("hideStep", actions.hide_step),
            ):
                if ref and not self.known_step(ref):
                    self.add("unknown_step", node, f"{label} targets unknown step {ref!r}", ref=ref)
            for label, refs in (
                ("showFields", actions.show_fields),
                ("hideFields", actions.hide_fields),
                ("requireFields", actions.require_fields),
            ):
                for ref in refs:
                    if not self.known_field(ref):
                        self.add("unknown_field", node, f"{label} targets unknown field {ref!r}", ref=ref)

        for conn in node.connections:
            if conn.target_node_id not in self.node_ids:
                self.add("unknown_step", node, f"Connection targets unknown node {conn.target_node_id!r}", ref=conn.target_node_id)

    def check_loop(self, node: FlowNode) -> None:
        loop = node.data.loop
        if loop is None or not loop.enabled:
            return
        if loop.min_count is not None and loop.min_count < 0:
            self.add("invalid_loop_range", node, f"minCount must not be negative (got {loop.min_count})")
        if loop.min_count is not None and loop.max_count is not None and loop.max_count < loop.min_count:
            self.add("invalid_loop_range", node, f"maxCount {loop.max_count} is below minCount {loop.min_count}")

        source = loop.source_field_id
        if not source:
            self.add("invalid_loop_source", node, "Loop is enabled but has no source field")
            return
        owner = self.field_owner.get(source)
        if owner is None:
            self.add("invalid_loop_source", node, f"Loop source {source!r} is not a field of this flow", ref=source)
            return
        if owner not in self.step_index or self.step_index[owner] >= self.step_index.get(node.id, -1):
            self.add(
                "invalid_loop_source",
                node,
                f"Loop source {source!r} must be answered in an earlier step",
                ref=source,
            )
            return
        found = self.flow.find_question(source)
        if found is not None and found[1].type != "number":
            self.add(
                "invalid_loop_source",
                node,
                f"Loop source {source!r} is a {found[1].type!r} field, expected number",
                ref=source,
                severity="warning",
            )

    def run(self) -> List[FlowIssue]:
        self.check_ids()
        for node in self.flow.nodes:
            self.check_logic(node)
            if node.is_step:
                self.check_loop(node)
        return self.issues


def lint_flow(flow: FlowLike) -> List[FlowIssue]:
    return _Linter(coerce_model(Flow, flow)).run()


def has_errors(issues: List[FlowIssue]) -> bool:
    return any(i.severity == "error" for i in issues)


__all__ = ["FlowIssue", "has_errors", "lint_flow"]
