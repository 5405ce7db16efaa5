"""
Draft vs published comparison for the builder's "unpublished changes" view.

Steps and fields are compared by position, matching how the editor orders them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from flowlogic.schemas.flow import Flow, FlowLike, coerce_model

DiffType = Literal["added", "modified", "removed"]
DiffSection = Literal["title", "description", "steps", "fields", "logic", "settings", "theme"]

_FIELD_ATTRS = ("label", "type", "required", "placeholder", "validation", "options")
_LOOP_ATTRS = ("sourceFieldId", "minCount", "maxCount", "labelTemplate")


@dataclass(frozen=True)
class Difference:
    type: DiffType
    section: DiffSection
    path: str
    description: str
    old_value: Any = None
    new_value: Any = None


@dataclass
class DiffResult:
    differences: List[Difference] = field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        return bool(self.differences)


def _norm_text(v: Any) -> str:
    return "" if v is None else str(v)


def _doc(flow: FlowLike) -> Dict[str, Any]:
    return coerce_model(Flow, flow).model_dump(mode="json", by_alias=True)


class _Differ:
    def __init__(self) -> None:
        self.out: List[Difference] = []

    def add(self, type_: DiffType, section: DiffSection, path: str, description: str, old: Any = None, new: Any = None) -> None:
        self.out.append(Difference(type=type_, section=section, path=path, description=description, old_value=old, new_value=new))

    def compare_field(self, path: str, step_label: str, draft_q: Dict[str, Any], pub_q: Dict[str, Any]) -> None:
        for attr in _FIELD_ATTRS:
            old, new = pub_q.get(attr), draft_q.get(attr)
            if attr == "placeholder":
                old, new = _norm_text(old), _norm_text(new)
            if old != new:
                self.add(
                    "modified",
                    "fields",
                    f"{path}.{attr}",
                    f"Changed {attr} of field {draft_q.get('label')!r} in step {step_label!r}",
                    old,
                    new,
                )

    def compare_loop(self, path: str, step_label: str, draft_loop: Optional[dict], pub_loop: Optional[dict]) -> None:
        if draft_loop == pub_loop:
            return
        draft_on = bool((draft_loop or {}).get("enabled"))
        pub_on = bool((pub_loop or {}).get("enabled"))
        if draft_on != pub_on:
            verb = "Enabled" if draft_on else "Disabled"
            self.add("modified", "logic", f"{path}.enabled", f"{verb} loop in step {step_label!r}", pub_on, draft_on)
            return
        if not draft_on:
            return
        for attr in _LOOP_ATTRS:
            old, new = (pub_loop or {}).get(attr), (draft_loop or {}).get(attr)
            if old != new:
                self.add("modified", "logic", f"{path}.{attr}", f"Changed loop {attr} in step {step_label!r}", old, new)

    def compare_step(self, index: int, draft_node: Dict[str, Any], pub_node: Dict[str, Any]) -> None:
        path = f"nodes[{index}]"
        d_data = draft_node.get("data") or {}
        p_data = pub_node.get("data") or {}
        label = d_data.get("label") or "Untitled"

        if d_data.get("label") != p_data.get("label"):
            self.add(
                "modified",
                "steps",
                f"{path}.data.label",
                f"Renamed step {p_data.get('label')!r} to {d_data.get('label')!r}",
                p_data.get("label"),
                d_data.get("label"),
            )

        d_qs = d_data.get("questions") or []
        p_qs = p_data.get("questions") or []
        if len(d_qs) != len(p_qs):
            self.add(
                "modified",
                "steps",
                f"{path}.data.questions.length",
                f"Field count in step {label!r} changed from {len(p_qs)} to {len(d_qs)}",
                len(p_qs),
                len(d_qs),
            )
        for qi, d_q in enumerate(d_qs):
            q_path = f"{path}.data.questions[{qi}]"
            if qi >= len(p_qs):
                self.add("added", "fields", q_path, f"Added field {d_q.get('label')!r} to step {label!r}", None, d_q)
                continue
            self.compare_field(q_path, label, d_q, p_qs[qi])
        for qi in range(len(d_qs), len(p_qs)):
            self.add(
                "removed",
                "fields",
                f"{path}.data.questions[{qi}]",
                f"Removed field {p_qs[qi].get('label')!r} from step {label!r}",
                p_qs[qi],
                None,
            )

        if (d_data.get("logic") or []) != (p_data.get("logic") or []):
            self.add("modified", "logic", f"{path}.data.logic", f"Changed logic rules in step {label!r}", p_data.get("logic"), d_data.get("logic"))

        self.compare_loop(f"{path}.data.loop", label, d_data.get("loop"), p_data.get("loop"))

        if (draft_node.get("connections") or []) != (pub_node.get("connections") or []):
            self.add(
                "modified",
                "logic",
                f"{path}.connections",
                f"Changed connections from step {label!r}",
                pub_node.get("connections"),
                draft_node.get("connections"),
            )


def compare_flow_versions(draft: FlowLike, published: Optional[FlowLike]) -> DiffResult:
    if published is None:
        return DiffResult(
            [
                Difference(
                    type="added",
                    section="title",
                    path="entire_flow",
                    description="Flow has never been published",
                    new_value=_doc(draft),
                )
            ]
        )

    d = _doc(draft)
    p = _doc(published)
    differ = _Differ()

    if _norm_text(d.get("description")) != _norm_text(p.get("description")):
        differ.add("modified", "description", "description", "Changed description", p.get("description"), d.get("description"))

    d_nodes = d.get("nodes") or []
    p_nodes = p.get("nodes") or []
    if len(d_nodes) != len(p_nodes):
        differ.add(
            "modified",
            "steps",
            "nodes.length",
            f"Step count changed from {len(p_nodes)} to {len(d_nodes)}",
            len(p_nodes),
            len(d_nodes),
        )
    for i, d_node in enumerate(d_nodes):
        if i >= len(p_nodes):
            label = (d_node.get("data") or {}).get("label") or "Untitled"
            differ.add("added", "steps", f"nodes[{i}]", f"Added step {label!r}", None, d_node)
            continue
        differ.compare_step(i, d_node, p_nodes[i])
    for i in range(len(d_nodes), len(p_nodes)):
        label = (p_nodes[i].get("data") or {}).get("label") or "Untitled"
        differ.add("removed", "steps", f"nodes[{i}]", f"Removed step {label!r}", p_nodes[i], None)

    d_theme = (d.get("theme") or {}).get("id") or "default"
    p_theme = (p.get("theme") or {}).get("id") or "default"
    if d_theme != p_theme:
        differ.add("modified", "theme", "theme.id", f"Changed theme from {p_theme!r} to {d_theme!r}", p_theme, d_theme)

    d_settings = d.get("settings") or {}
    p_settings = p.get("settings") or {}
    for key in sorted(set(d_settings) | set(p_settings)):
        if d_settings.get(key) != p_settings.get(key):
            differ.add(
                "modified",
                "settings",
                f"settings.{key}",
                f"Changed setting {key} from {p_settings.get(key)!r} to {d_settings.get(key)!r}",
                p_settings.get(key),
                d_settings.get(key),
            )

    return DiffResult(differ.out)


def diff_summary(result: DiffResult) -> str:
    if not result.has_differences:
        return "No changes"
    parts = []
    for kind in ("added", "modified", "removed"):
        n = sum(1 for d in result.differences if d.type == kind)
        if n:
            parts.append(f"{n} {kind}")
    return ", ".join(parts)


__all__ = ["DiffResult", "Difference", "compare_flow_versions", "diff_summary"]
