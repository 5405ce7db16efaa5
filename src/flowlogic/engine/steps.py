from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from flowlogic.config import EngineSettings
from flowlogic.engine.loops import generate_looped_steps, has_active_loop, split_loop_id
from flowlogic.engine.visibility import evaluate_step_visibility
from flowlogic.schemas.flow import Flow, FlowLike, FlowNode, coerce_model


@dataclass(frozen=True)
class FormStep:
    id: str
    node: FlowNode
    source_id: str
    loop_index: Optional[int] = None
    is_visible: bool = True

    @property
    def label(self) -> str:
        return self.node.data.label

    def matches(self, step_id: str) -> bool:
        return step_id in (self.id, self.source_id)


def build_form_steps(
    flow: FlowLike,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> List[FormStep]:
    """
    Expand every `flow_step` node (loops included) and tag each instance with its
    current visibility. The first expanded step is always visible.
    """
    f = coerce_model(Flow, flow)
    steps: List[FormStep] = []
    for node in f.step_nodes():
        looped = has_active_loop(node)
        for instance in generate_looped_steps(node, values, settings=settings):
            _, index = split_loop_id(instance.id) if looped else (instance.id, None)
            visible = len(steps) == 0 or evaluate_step_visibility(instance.id, f, values, settings=settings)
            steps.append(
                FormStep(id=instance.id, node=instance, source_id=node.id, loop_index=index, is_visible=visible)
            )
    return steps


def get_visible_steps(
    flow: FlowLike,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> List[FormStep]:
    return [s for s in build_form_steps(flow, values, settings=settings) if s.is_visible]


__all__ = ["FormStep", "build_form_steps", "get_visible_steps"]
