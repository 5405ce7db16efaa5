from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Optional, Set

from flowlogic.config import EngineSettings
from flowlogic.engine.conditions import evaluate_conditions
from flowlogic.engine.loops import has_active_loop, split_loop_id
from flowlogic.schemas.flow import Flow, FlowLike, LogicRule, coerce_model


@dataclass(frozen=True)
class FieldLogic:
    show: bool = True
    required: bool = False


def _step_targets(flow: Flow, step_id: str) -> Set[str]:
    # A looped instance is also addressed by its source id; a step that merely
    # has a `_loop_N`-shaped id of its own is not.
    base, index = split_loop_id(step_id)
    if index is None or flow.find_node(step_id) is not None:
        return {step_id}
    source = flow.find_node(base)
    if source is not None and has_active_loop(source):
        return {step_id, base}
    return {step_id}


def _field_targets(flow: Flow, field_id: str) -> Set[str]:
    base, index = split_loop_id(field_id)
    if index is None or flow.find_question(field_id) is not None:
        return {field_id}
    found = flow.find_question(base)
    if found is not None and has_active_loop(found[0]):
        return {field_id, base}
    return {field_id}


def iter_matching_rules(
    flow: Flow,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> Iterator[LogicRule]:
    """Rules whose conditions currently hold, in node order then declared order."""
    for node in flow.nodes:
        for rule in node.data.logic:
            if evaluate_conditions(rule.conditions, values, settings=settings):
                yield rule


def evaluate_step_visibility(
    step_id: str,
    flow: FlowLike,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> bool:
    """Visible unless a matching rule hides it; the last matching rule that targets the step wins."""
    f = coerce_model(Flow, flow)
    targets = _step_targets(f, step_id)
    visible = True
    for rule in iter_matching_rules(f, values, settings=settings):
        actions = rule.actions
        if actions.hide_step in targets:
            visible = False
        if actions.show_step in targets:
            visible = True
    return visible


def evaluate_field_logic(
    field_id: str,
    flow: FlowLike,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> FieldLogic:
    f = coerce_model(Flow, flow)
    targets = _field_targets(f, field_id)
    show = True
    required = False
    for rule in iter_matching_rules(f, values, settings=settings):
        actions = rule.actions
        if targets.intersection(actions.hide_fields):
            show = False
        if targets.intersection(actions.show_fields):
            show = True
        if targets.intersection(actions.require_fields):
            required = True
    return FieldLogic(show=show, required=required)


__all__ = ["FieldLogic", "evaluate_field_logic", "evaluate_step_visibility", "iter_matching_rules"]
