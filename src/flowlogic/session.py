"""
Render session: one respondent filling one flow.

Holds the values map and the navigation history; every read re-derives steps,
loops and visibility from the current values through `flowlogic.engine`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from flowlogic.config import EngineSettings, resolve_settings
from flowlogic.engine.conditions import evaluate_conditions
from flowlogic.engine.loops import split_loop_id
from flowlogic.engine.steps import FormStep, build_form_steps
from flowlogic.engine.visibility import evaluate_field_logic
from flowlogic.errors import FormSessionError
from flowlogic.logs import get_logger, log_event
from flowlogic.schemas.flow import Flow, FlowLike, Question, coerce_model
from flowlogic.validation import validate_step

logger = get_logger("session")

NavigationAction = Literal["stay", "advance", "jump", "submit"]


@dataclass(frozen=True)
class FieldState:
    question: Question
    show: bool
    required: bool


@dataclass(frozen=True)
class NavigationResult:
    action: NavigationAction
    step_id: Optional[str]
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def moved(self) -> bool:
        return self.action in ("advance", "jump")


class ResponseEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="nodeId")
    question_id: str = Field(alias="questionId")
    value: Any = None
    type: str = "text"


class FormSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flow_id: str = Field(alias="flowId")
    responses: List[ResponseEntry] = Field(default_factory=list)
    submitted_at: datetime = Field(alias="submittedAt")


class FormSession:
    def __init__(
        self,
        flow: FlowLike,
        values: Optional[Mapping[str, Any]] = None,
        *,
        settings: Optional[EngineSettings] = None,
    ) -> None:
        self.flow: Flow = coerce_model(Flow, flow)
        self.settings: EngineSettings = resolve_settings(settings)
        self._values: Dict[str, Any] = dict(values or {})
        self._history: List[str] = []
        self._submitted = False
        visible = self.visible_steps
        if visible:
            self._history.append(visible[0].id)

    # -- values -------------------------------------------------------------

    @property
    def values(self) -> Dict[str, Any]:
        return dict(self._values)

    def set_value(self, field_id: str, value: Any) -> None:
        self._ensure_open()
        self._values[field_id] = value

    def update(self, values: Mapping[str, Any]) -> None:
        self._ensure_open()
        self._values.update(values or {})

    # -- derived state ------------------------------------------------------

    @property
    def steps(self) -> List[FormStep]:
        return build_form_steps(self.flow, self._values, settings=self.settings)

    @property
    def visible_steps(self) -> List[FormStep]:
        return [s for s in self.steps if s.is_visible]

    @property
    def history(self) -> Tuple[str, ...]:
        return tuple(self._history)

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def can_go_back(self) -> bool:
        return not self._submitted and len(self._history) > 1

    @property
    def current_step(self) -> Optional[FormStep]:
        return self._resolve_current(self.steps)

    def _resolve_current(self, steps: List[FormStep]) -> Optional[FormStep]:
        visible = [s for s in steps if s.is_visible]
        if not visible:
            return None
        if not self._history:
            return visible[0]
        current_id = self._history[-1]
        for i, step in enumerate(steps):
            if step.id != current_id:
                continue
            if step.is_visible:
                return step
            # Hidden by a later answer: move on to the next step still shown.
            for later in steps[i + 1 :]:
                if later.is_visible:
                    return later
            return visible[-1]
        # The instance vanished (loop count went down): stay within the same loop when possible.
        base, _ = split_loop_id(current_id)
        same_loop = [s for s in visible if s.source_id == base]
        if same_loop:
            return same_loop[-1]
        return visible[0]

    def progress(self) -> Tuple[int, int]:
        steps = self.steps
        visible = [s for s in steps if s.is_visible]
        current = self._resolve_current(steps)
        if current is None:
            return 0, 0
        return visible.index(current) + 1, len(visible)

    def field_states(self, step: Optional[FormStep] = None) -> List[FieldState]:
        target = step if step is not None else self.current_step
        if target is None:
            return []
        states: List[FieldState] = []
        for question in target.node.data.questions:
            logic = evaluate_field_logic(question.id, self.flow, self._values, settings=self.settings)
            states.append(FieldState(question=question, show=logic.show, required=question.required or logic.required))
        return states

    def validate_current_step(self) -> Dict[str, str]:
        states = [s for s in self.field_states() if s.show]
        return validate_step(((s.question, s.required) for s in states), self._values)

    # -- navigation ---------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._submitted:
            raise FormSessionError("Form has already been submitted")

    def _jump_target(self, current: FormStep, steps: List[FormStep]) -> Optional[FormStep]:
        for rule in current.node.data.logic:
            target_id = rule.actions.jump_to_step
            if not target_id:
                continue
            if not evaluate_conditions(rule.conditions, self._values, settings=self.settings):
                continue
            target = next((s for s in steps if s.matches(target_id)), None)
            if target is not None and target.is_visible:
                return target
            log_event(
                logger,
                "jump_target_unavailable",
                level=logging.WARNING,
                settings=self.settings,
                step_id=current.id,
                target=target_id,
                reason="hidden" if target is not None else "missing",
            )
        return None

    def next(self) -> NavigationResult:
        self._ensure_open()
        steps = self.steps
        current = self._resolve_current(steps)
        if current is None:
            raise FormSessionError("Flow has no visible steps")

        errors = self.validate_current_step()
        if errors:
            return NavigationResult(action="stay", step_id=current.id, errors=errors)

        if not self._history or self._history[-1] != current.id:
            if self._history:
                self._history[-1] = current.id
            else:
                self._history.append(current.id)

        target = self._jump_target(current, steps)
        if target is not None:
            self._history.append(target.id)
            log_event(logger, "jump", settings=self.settings, source=current.id, target=target.id)
            return NavigationResult(action="jump", step_id=target.id)

        visible = [s for s in steps if s.is_visible]
        idx = visible.index(current)
        if idx < len(visible) - 1:
            nxt = visible[idx + 1]
            self._history.append(nxt.id)
            return NavigationResult(action="advance", step_id=nxt.id)

        self._submitted = True
        log_event(logger, "submit", settings=self.settings, flow_id=self.flow.id, last_step=current.id)
        return NavigationResult(action="submit", step_id=current.id)

    def previous(self) -> Optional[FormStep]:
        self._ensure_open()
        if len(self._history) <= 1:
            return None
        self._history.pop()
        return self.current_step

    # -- submission ---------------------------------------------------------

    def submission(self, now: Optional[datetime] = None) -> FormSubmission:
        if not self._submitted:
            raise FormSessionError("Form has not been submitted yet")
        responses: List[ResponseEntry] = []
        for step in self.visible_steps:
            for state in self.field_states(step):
                value = self._values.get(state.question.id)
                if not state.show or value is None:
                    continue
                responses.append(
                    ResponseEntry(
                        node_id=step.source_id,
                        question_id=state.question.id,
                        value=value,
                        type=state.question.type,
                    )
                )
        return FormSubmission(
            flow_id=self.flow.id,
            responses=responses,
            submitted_at=now or datetime.now(timezone.utc),
        )


__all__ = ["FieldState", "FormSession", "FormSubmission", "NavigationResult", "ResponseEntry"]
