from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterator, List, Literal, Optional, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FLOW_STEP = "flow_step"

QUESTION_TYPES = (
    "text",
    "email",
    "number",
    "phone",
    "single_choice",
    "multiple_choice",
    "date",
    "file",
    "textarea",
)

# Builder-era component names still found in stored flows.
_LEGACY_QUESTION_TYPES = {
    "text_input": "text",
    "email_input": "email",
    "number_input": "number",
    "phone_input": "phone",
    "date_picker": "date",
    "file_upload": "file",
}

VALIDATION_RULE_TYPES = ("required", "min_length", "max_length", "email", "url", "regex", "min", "max")

FlowStatus = Literal["draft", "published", "archived"]

M = TypeVar("M", bound=BaseModel)


def coerce_model(model_cls: Type[M], obj: Any) -> M:
    """Accept either an instance or its JSON-shaped dict."""
    if isinstance(obj, model_cls):
        return obj
    return model_cls.model_validate(obj or {})


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


def _as_id_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        return [v] if v.strip() else []
    if isinstance(v, (list, tuple, set)):
        return [str(x) for x in v if x is not None and str(x).strip()]
    return [str(v)]


class _FlowModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _null_to_default(cls, data: Any) -> Any:
        # Stored documents write null for unset keys; those fall back to the field default.
        if not isinstance(data, dict):
            return data
        defaulted = set()
        blank_ids = set()
        for name, info in cls.model_fields.items():
            keys = {name, info.alias} if info.alias else {name}
            if not info.is_required():
                defaulted |= keys
            elif info.annotation is str:
                blank_ids |= keys
        out = {}
        for k, v in data.items():
            if v is None and k in defaulted:
                continue
            out[k] = "" if v is None and k in blank_ids else v
        return out


class ChoiceOption(_FlowModel):
    value: str = ""
    label: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_plain(cls, data: Any) -> Any:
        if isinstance(data, str):
            return {"value": data, "label": data}
        if isinstance(data, dict) and not data.get("label") and data.get("value") is not None:
            data = dict(data)
            data["label"] = str(data["value"])
        return data


class ValidationRule(_FlowModel):
    type: str
    value: Any = None
    message: str = ""


class Question(_FlowModel):
    id: str
    type: str = "text"
    label: str = ""
    description: Optional[str] = None
    required: bool = False
    placeholder: Optional[str] = None
    validation: List[ValidationRule] = Field(default_factory=list)
    options: List[ChoiceOption] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, v: Any) -> str:
        t = str(v or "").strip().lower()
        if not t:
            return "text"
        return _LEGACY_QUESTION_TYPES.get(t, t)

    @field_validator("validation", mode="before")
    @classmethod
    def _normalize_validation(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, dict):
            # Older step editor stored `{min, max, pattern}` instead of a rule list.
            rules: List[Dict[str, Any]] = []
            if v.get("min") is not None:
                rules.append({"type": "min", "value": v["min"]})
            if v.get("max") is not None:
                rules.append({"type": "max", "value": v["max"]})
            if v.get("pattern"):
                rules.append({"type": "regex", "value": v["pattern"]})
            return rules
        return v

    @field_validator("options", "settings", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any, info: Any) -> Any:
        if v is None:
            return {} if info.field_name == "settings" else []
        return v


class LogicCondition(_FlowModel):
    id: str = ""
    field_id: str = Field(default="", alias="fieldId")
    operator: str = "equals"
    value: Any = None
    logic_operator: Optional[str] = Field(default=None, alias="logicOperator")

    @model_validator(mode="before")
    @classmethod
    def _accept_connection_shape(cls, data: Any) -> Any:
        # Connection conditions use `field` instead of `fieldId`.
        if (
            isinstance(data, dict)
            and data.get("fieldId") is None
            and data.get("field_id") is None
            and data.get("field") is not None
        ):
            data = dict(data)
            data["fieldId"] = data.pop("field")
        return data

    @field_validator("field_id", mode="before")
    @classmethod
    def _field_id_str(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("logic_operator", mode="before")
    @classmethod
    def _upper_logic_operator(cls, v: Any) -> Optional[str]:
        v = _blank_to_none(v)
        return str(v).strip().upper() if v is not None else None


class LogicActions(_FlowModel):
    jump_to_step: Optional[str] = Field(default=None, alias="jumpToStep")
    show_step: Optional[str] = Field(default=None, alias="showStep")
    hide_step: Optional[str] = Field(default=None, alias="hideStep")
    show_fields: List[str] = Field(default_factory=list, alias="showFields")
    hide_fields: List[str] = Field(default_factory=list, alias="hideFields")
    require_fields: List[str] = Field(default_factory=list, alias="requireFields")

    @model_validator(mode="before")
    @classmethod
    def _merge_singular_targets(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for singular, plural in (
            ("showField", "showFields"),
            ("hideField", "hideFields"),
            ("requireField", "requireFields"),
        ):
            if singular in data:
                merged = _as_id_list(data.get(plural)) + _as_id_list(data.pop(singular))
                data[plural] = list(dict.fromkeys(merged))
        return data

    @field_validator("jump_to_step", "show_step", "hide_step", mode="before")
    @classmethod
    def _blank_target(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("show_fields", "hide_fields", "require_fields", mode="before")
    @classmethod
    def _id_list(cls, v: Any) -> List[str]:
        return _as_id_list(v)


class LogicRule(_FlowModel):
    id: str = ""
    step_id: Optional[str] = Field(default=None, alias="stepId")
    conditions: List[LogicCondition] = Field(default_factory=list)
    actions: LogicActions = Field(default_factory=LogicActions)

    @field_validator("conditions", mode="before")
    @classmethod
    def _conditions_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("actions", mode="before")
    @classmethod
    def _actions_obj(cls, v: Any) -> Any:
        return {} if v is None else v


class LoopConfig(_FlowModel):
    """
    Repeat a step N times, N read from an earlier numeric answer.

    `min_count` / `max_count` stay `None` when the document omits them; the engine
    substitutes the configured defaults.
    """

    enabled: bool = False
    source_field_id: Optional[str] = Field(default=None, alias="sourceFieldId")
    min_count: Optional[int] = Field(default=None, alias="minCount")
    max_count: Optional[int] = Field(default=None, alias="maxCount")
    label_template: Optional[str] = Field(default=None, alias="labelTemplate")

    @field_validator("source_field_id", "label_template", mode="before")
    @classmethod
    def _blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("min_count", "max_count", mode="before")
    @classmethod
    def _blank_count(cls, v: Any) -> Any:
        return _blank_to_none(v)


class Position(_FlowModel):
    x: float = 0.0
    y: float = 0.0


class Connection(_FlowModel):
    target_node_id: str = Field(alias="targetNodeId")
    condition: Optional[LogicCondition] = None


class NodeData(_FlowModel):
    label: str = ""
    description: Optional[str] = None
    questions: List[Question] = Field(default_factory=list)
    logic: List[LogicRule] = Field(default_factory=list)
    loop: Optional[LoopConfig] = None
    settings: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("questions", "logic", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("settings", mode="before")
    @classmethod
    def _none_dict(cls, v: Any) -> Any:
        return {} if v is None else v


class FlowNode(_FlowModel):
    id: str
    type: str = FLOW_STEP
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)
    connections: List[Connection] = Field(default_factory=list)

    @field_validator("position", "data", mode="before")
    @classmethod
    def _none_obj(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("connections", mode="before")
    @classmethod
    def _none_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def is_step(self) -> bool:
        return self.type == FLOW_STEP

    @property
    def label(self) -> str:
        return self.data.label

    @property
    def questions(self) -> List[Question]:
        return self.data.questions


class FlowSettings(_FlowModel):
    allow_multiple_submissions: bool = Field(default=False, alias="allowMultipleSubmissions")
    show_progress_bar: bool = Field(default=True, alias="showProgressBar")
    require_auth: bool = Field(default=False, alias="requireAuth")
    collect_analytics: bool = Field(default=False, alias="collectAnalytics")
    redirect_url: Optional[str] = Field(default=None, alias="redirectUrl")
    webhook_url: Optional[str] = Field(default=None, alias="webhookUrl")


class Flow(_FlowModel):
    id: str = ""
    title: str = ""
    description: Optional[str] = None
    nodes: List[FlowNode] = Field(default_factory=list)
    settings: FlowSettings = Field(default_factory=FlowSettings)
    theme: Dict[str, Any] = Field(default_factory=dict)
    status: FlowStatus = "draft"
    version: int = 0
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")

    @field_validator("nodes", mode="before")
    @classmethod
    def _none_nodes(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("settings", "theme", mode="before")
    @classmethod
    def _none_obj(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("status", mode="before")
    @classmethod
    def _status_lower(cls, v: Any) -> Any:
        return str(v or "draft").strip().lower()

    @field_validator("version", mode="before")
    @classmethod
    def _version_int(cls, v: Any) -> Any:
        return 0 if v in (None, "") else v

    def step_nodes(self) -> List[FlowNode]:
        return [n for n in self.nodes if n.is_step]

    def find_node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def iter_questions(self) -> Iterator[Tuple[FlowNode, Question]]:
        for node in self.nodes:
            for question in node.data.questions:
                yield node, question

    def find_question(self, question_id: str) -> Optional[Tuple[FlowNode, Question]]:
        for node, question in self.iter_questions():
            if question.id == question_id:
                return node, question
        return None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


FlowLike = Union[Flow, Dict[str, Any]]
NodeLike = Union[FlowNode, Dict[str, Any]]
ConditionLike = Union[LogicCondition, Dict[str, Any]]


__all__ = [
    "FLOW_STEP",
    "QUESTION_TYPES",
    "VALIDATION_RULE_TYPES",
    "ChoiceOption",
    "ConditionLike",
    "Connection",
    "Flow",
    "FlowLike",
    "FlowNode",
    "FlowSettings",
    "FlowStatus",
    "LogicActions",
    "LogicCondition",
    "LogicRule",
    "LoopConfig",
    "NodeData",
    "NodeLike",
    "Position",
    "Question",
    "ValidationRule",
    "coerce_model",
]
