from __future__ import annotations

import math
import re
from typing import Any, List, Mapping, Optional, Tuple

from flowlogic.config import EngineSettings, resolve_settings
from flowlogic.schemas.flow import FlowNode, LoopConfig, NodeLike, coerce_model

LOOP_SUFFIX = "_loop_"
_LOOP_ID_RE = re.compile(r"^(?P<base>.+)_loop_(?P<index>\d+)$")


def loop_instance_id(base_id: str, index: int) -> str:
    return f"{base_id}{LOOP_SUFFIX}{index}"


def split_loop_id(instance_id: str) -> Tuple[str, Optional[int]]:
    """
    `"guest_loop_2"` -> `("guest", 2)`; ids without a loop suffix come back unchanged
    with index None.
    """
    m = _LOOP_ID_RE.match(str(instance_id or ""))
    if not m:
        return str(instance_id or ""), None
    return m.group("base"), int(m.group("index"))


def _to_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        t = value.strip()
        if not t:
            return 0
        try:
            n = float(t)
        except ValueError:
            return 0
        return int(n) if math.isfinite(n) else 0
    return 0


def loop_bounds(loop: LoopConfig, *, settings: Optional[EngineSettings] = None) -> Tuple[int, int]:
    cfg = resolve_settings(settings)
    lo = loop.min_count if loop.min_count is not None else cfg.loop_min_default
    hi = loop.max_count if loop.max_count is not None else cfg.loop_max_default
    lo = max(0, lo)
    return lo, max(lo, hi)


def has_active_loop(node: FlowNode) -> bool:
    loop = node.data.loop
    return loop is not None and loop.enabled and bool(loop.source_field_id)


def resolve_loop_count(
    loop: Optional[LoopConfig],
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> int:
    """clamp(int(values[sourceFieldId]), minCount, maxCount); unreadable values count as 0."""
    if loop is None or not loop.enabled or not loop.source_field_id:
        return 1
    lo, hi = loop_bounds(loop, settings=settings)
    raw = _to_int((values or {}).get(loop.source_field_id))
    return min(max(raw, lo), hi)


def render_loop_label(node: FlowNode, index: int, count: int) -> str:
    """Every `{index}` in the template becomes the 1-based index, not only the first one."""
    loop = node.data.loop
    template = loop.label_template if loop is not None else None
    if template:
        return template.replace("{index}", str(index + 1))
    return f"{node.data.label} ({index + 1}/{count})"


def generate_looped_steps(
    step_node: NodeLike,
    values: Mapping[str, Any],
    *,
    settings: Optional[EngineSettings] = None,
) -> List[FlowNode]:
    """
    Expand a looped step into one copy per iteration.

    Copies get ids `{id}_loop_{i}` and so do their questions, so every iteration
    answers into its own key of the values map. A step without an active loop is
    returned as-is in a one-element list.
    """
    node = coerce_model(FlowNode, step_node)
    if not has_active_loop(node):
        return [node]
    loop = node.data.loop

    count = resolve_loop_count(loop, values, settings=settings)
    out: List[FlowNode] = []
    for i in range(count):
        data = node.data.model_copy(
            deep=True,
            update={"label": render_loop_label(node, i, count)},
        )
        data.questions = [
            q.model_copy(update={"id": loop_instance_id(q.id, i)}) for q in data.questions
        ]
        out.append(node.model_copy(deep=True, update={"id": loop_instance_id(node.id, i), "data": data}))
    return out


__all__ = [
    "LOOP_SUFFIX",
    "generate_looped_steps",
    "has_active_loop",
    "loop_bounds",
    "loop_instance_id",
    "render_loop_label",
    "resolve_loop_count",
    "split_loop_id",
]
