"""
Flow logic engine for multi-step forms.

This package holds the shared evaluation core (conditions, step/field logic, loops),
the render session that drives Next / Previous / Submit, and authoring helpers
(lint, draft vs published diff, versioning).

- Engine: `src/flowlogic/engine/`
- Flow document models: `src/flowlogic/schemas/`
- CLI: `flowlogic lint|preview|diff`
"""

from .config import EngineSettings, get_settings, reset_settings  # noqa: F401
from .engine import (  # noqa: F401
    FieldLogic,
    FormStep,
    build_form_steps,
    evaluate_condition,
    evaluate_conditions,
    evaluate_field_logic,
    evaluate_step_visibility,
    generate_looped_steps,
    get_visible_steps,
)
from .errors import (  # noqa: F401
    FlowArchivedError,
    FlowLoadError,
    FlowLogicError,
    FlowNotPublishedError,
    FormSessionError,
)
from .schemas import Flow, FlowNode, LogicCondition, LogicRule, LoopConfig, Question  # noqa: F401
from .session import FormSession, FormSubmission, NavigationResult  # noqa: F401

__version__ = "0.1.0"
