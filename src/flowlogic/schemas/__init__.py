"""
Schema package for flow documents.
"""

from .flow import (  # noqa: F401
    FLOW_STEP,
    QUESTION_TYPES,
    ChoiceOption,
    Connection,
    Flow,
    FlowNode,
    FlowSettings,
    LogicActions,
    LogicCondition,
    LogicRule,
    LoopConfig,
    NodeData,
    Position,
    Question,
    ValidationRule,
    coerce_model,
)
