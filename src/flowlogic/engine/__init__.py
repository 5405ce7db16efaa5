"""
Flow logic engine: pure functions over a flow definition and a values map.

Used by both the form renderer and the builder preview so the two never drift.
"""

from .conditions import (  # noqa: F401
    SUPPORTED_OPERATORS,
    ConditionCheck,
    check_condition,
    evaluate_condition,
    evaluate_conditions,
)
from .loops import (  # noqa: F401
    generate_looped_steps,
    loop_instance_id,
    resolve_loop_count,
    split_loop_id,
)
from .steps import FormStep, build_form_steps, get_visible_steps  # noqa: F401
from .visibility import FieldLogic, evaluate_field_logic, evaluate_step_visibility  # noqa: F401
