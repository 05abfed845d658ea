"""Pydantic models for the administrative write path.

Drafts and patches arrive as plain mappings (camelCase or snake_case keys) and
are validated here before any domain object is built. Every failure surfaces as
a DefinitionError so callers only deal with one error type.
"""

from typing import Annotated, Any, Dict, List, Mapping, Optional, Tuple, Type, TypeVar, Union

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.rules import CategoryField, ValidationRule, ValidationType
from catalog_rules.domain.rules.entities import (
    DESCRIPTION_MAX_LENGTH,
    ERROR_MESSAGE_MAX_LENGTH,
    NAME_MAX_LENGTH,
    NAME_MIN_LENGTH,
)
from catalog_rules.domain.value_objects import TenantId, Value
from catalog_rules.domain.workflows import (
    Action,
    ActionType,
    Condition,
    ConditionOperator,
    CreateTaskAction,
    SendNotificationAction,
    TriggerApiAction,
    TriggerEvent,
    UnknownAction,
    UpdateFieldAction,
    Workflow,
)
from catalog_rules.domain.workflows.value_objects import HTTP_METHODS

M = TypeVar("M", bound=BaseModel)


def _strip(v: Any) -> Any:
    return v.strip() if isinstance(v, str) else v


# Identifiers are trimmed; configured values are kept byte-exact.
Identifier = Annotated[str, BeforeValidator(_strip)]
FieldName = Annotated[CategoryField, BeforeValidator(_strip)]
RuleType = Annotated[ValidationType, BeforeValidator(_strip)]

RawValue = Union[StrictStr, StrictBool, StrictInt, StrictFloat, List[StrictStr]]


class _Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        allow_inf_nan=False,
    )


def _format_errors(exc: ValidationError) -> List[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}" if location else error["msg"])
    return problems


def _validated(model: Type[M], data: Union[M, Mapping[str, Any]], label: str) -> M:
    """Validate a mapping against a schema, raising DefinitionError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DefinitionError(f"Invalid {label}", _format_errors(exc)) from exc


def _reject_nulls(changes: Mapping[str, Any], required: Tuple[str, ...]) -> None:
    nulls = [name for name in required if name in changes and changes[name] is None]
    if nulls:
        raise DefinitionError("Invalid update", [f"{name} cannot be null" for name in nulls])


def _to_value(raw: Any) -> Value:
    try:
        return Value.of(raw)
    except ValueError as exc:
        raise DefinitionError(str(exc)) from exc


# Validation rules


class ValidationRuleDraft(_Schema):
    """Definition of a new validation rule."""

    name: Identifier = Field(min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    field: FieldName
    validation_type: RuleType
    validation_value: Optional[RawValue] = None
    error_message: Identifier = Field(min_length=1, max_length=ERROR_MESSAGE_MAX_LENGTH)
    is_active: StrictBool = True
    priority: StrictInt = Field(0, ge=0)

    def to_rule(self, tenant_id: TenantId) -> ValidationRule:
        return ValidationRule.create(
            tenant_id=tenant_id,
            name=self.name,
            field=self.field,
            validation_type=self.validation_type,
            error_message=self.error_message,
            validation_value=(
                _to_value(self.validation_value) if self.validation_value is not None else None
            ),
            description=self.description,
            is_active=self.is_active,
            priority=self.priority,
        )


class ValidationRulePatch(_Schema):
    """Partial update of a validation rule; only keys that were sent are applied."""

    name: Optional[Identifier] = Field(None, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    field: Optional[FieldName] = None
    validation_type: Optional[RuleType] = None
    validation_value: Optional[RawValue] = None
    error_message: Optional[Identifier] = Field(None, min_length=1, max_length=ERROR_MESSAGE_MAX_LENGTH)
    is_active: Optional[StrictBool] = None
    priority: Optional[StrictInt] = Field(None, ge=0)

    def changes(self) -> Dict[str, Any]:
        """Changes to apply, keyed by ValidationRule attribute."""
        changes = {name: getattr(self, name) for name in self.model_fields_set}
        _reject_nulls(
            changes,
            ("name", "field", "validation_type", "error_message", "is_active", "priority"),
        )
        if "validation_value" in changes and changes["validation_value"] is not None:
            changes["validation_value"] = _to_value(changes["validation_value"])
        return changes


# Workflows


class ConditionSchema(_Schema):
    field: Identifier = Field(min_length=1)
    operator: Identifier = Field(min_length=1)
    value: RawValue

    def to_condition(self, strict: bool = False) -> Condition:
        if strict and ConditionOperator.parse(self.operator) is None:
            raise DefinitionError(f"Unknown condition operator: {self.operator}")
        return Condition(field=self.field, operator=self.operator, value=_to_value(self.value))


class SendNotificationConfig(_Schema):
    recipients: List[str] = Field(min_length=1)
    subject: str = Field(min_length=1)
    message: Optional[str] = None
    channel: str = "email"

    def to_action(self) -> SendNotificationAction:
        return SendNotificationAction(
            recipients=tuple(self.recipients),
            subject=self.subject,
            message=self.message,
            channel=self.channel,
        )


class UpdateFieldConfig(_Schema):
    field: Identifier = Field(min_length=1)
    value: RawValue

    def to_action(self) -> UpdateFieldAction:
        return UpdateFieldAction(field=self.field, value=_to_value(self.value))


class CreateTaskConfig(_Schema):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    assignee: Optional[str] = None
    due_in_days: Optional[StrictInt] = Field(None, ge=0)

    def to_action(self) -> CreateTaskAction:
        return CreateTaskAction(
            title=self.title,
            description=self.description,
            assignee=self.assignee,
            due_in_days=self.due_in_days,
        )


class TriggerApiConfig(_Schema):
    url: str = Field(pattern=r"^https?://\S+$")
    method: str = "POST"
    headers: Dict[str, str] = Field(default_factory=dict)
    include_payload: StrictBool = True
    timeout_seconds: Optional[float] = Field(None, gt=0)

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        method = v.strip().upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"method must be one of {', '.join(HTTP_METHODS)}")
        return method

    def to_action(self) -> TriggerApiAction:
        return TriggerApiAction(
            url=self.url,
            method=self.method,
            headers=dict(self.headers),
            include_payload=self.include_payload,
            timeout_seconds=self.timeout_seconds,
        )


ACTION_CONFIGS: Dict[ActionType, Type[_Schema]] = {
    ActionType.SEND_NOTIFICATION: SendNotificationConfig,
    ActionType.UPDATE_FIELD: UpdateFieldConfig,
    ActionType.CREATE_TASK: CreateTaskConfig,
    ActionType.TRIGGER_API: TriggerApiConfig,
}


class ActionSchema(_Schema):
    type: str = Field(min_length=1)
    config: Dict[str, Any] = Field(default_factory=dict)

    def to_action(self, strict: bool = False) -> Action:
        try:
            action_type = ActionType(self.type)
        except ValueError:
            if strict:
                raise DefinitionError(f"Unknown action type: {self.type}")
            return UnknownAction(type_name=self.type, config=dict(self.config))

        config = _validated(ACTION_CONFIGS[action_type], self.config, f"{self.type} config")
        return config.to_action()


class WorkflowDraft(_Schema):
    """Definition of a new workflow."""

    name: Identifier = Field(min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    trigger_events: List[TriggerEvent] = Field(min_length=1)
    conditions: List[ConditionSchema] = Field(default_factory=list)
    actions: List[ActionSchema] = Field(default_factory=list)
    is_active: StrictBool = True

    def to_workflow(self, tenant_id: TenantId, user_id: Optional[str], strict: bool = False) -> Workflow:
        return Workflow.create(
            tenant_id=tenant_id,
            name=self.name,
            trigger_events=tuple(self.trigger_events),
            conditions=tuple(c.to_condition(strict) for c in self.conditions),
            actions=tuple(a.to_action(strict) for a in self.actions),
            description=self.description,
            is_active=self.is_active,
            created_by=user_id,
        )


class WorkflowPatch(_Schema):
    """Partial update of a workflow."""

    name: Optional[Identifier] = Field(None, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    trigger_events: Optional[List[TriggerEvent]] = Field(None, min_length=1)
    conditions: Optional[List[ConditionSchema]] = None
    actions: Optional[List[ActionSchema]] = None
    is_active: Optional[StrictBool] = None

    def changes(self, strict: bool = False) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for name in self.model_fields_set:
            value = getattr(self, name)
            if name == "trigger_events" and value is not None:
                value = tuple(value)
            elif name == "conditions":
                value = tuple(c.to_condition(strict) for c in value or ())
            elif name == "actions":
                value = tuple(a.to_action(strict) for a in value or ())
            changes[name] = value
        _reject_nulls(changes, ("name", "trigger_events", "is_active"))
        return changes


def parse_rule_draft(data: Union[ValidationRuleDraft, Mapping[str, Any]]) -> ValidationRuleDraft:
    return _validated(ValidationRuleDraft, data, "validation rule")


def parse_rule_patch(data: Union[ValidationRulePatch, Mapping[str, Any]]) -> ValidationRulePatch:
    return _validated(ValidationRulePatch, data, "validation rule update")


def parse_workflow_draft(data: Union[WorkflowDraft, Mapping[str, Any]]) -> WorkflowDraft:
    return _validated(WorkflowDraft, data, "workflow")


def parse_workflow_patch(data: Union[WorkflowPatch, Mapping[str, Any]]) -> WorkflowPatch:
    return _validated(WorkflowPatch, data, "workflow update")


def parse_conditions(raw: Optional[List[Any]], strict: bool = False) -> Tuple[Condition, ...]:
    """Parse raw condition mappings into Condition objects."""
    conditions = []
    for item in raw or ():
        if isinstance(item, Condition):
            conditions.append(item)
            continue
        schema = _validated(ConditionSchema, item, "condition")
        conditions.append(schema.to_condition(strict))
    return tuple(conditions)


def parse_action(raw: Union[Action, Mapping[str, Any]], strict: bool = False) -> Action:
    """Parse one raw action mapping into its tagged variant."""
    if isinstance(
        raw,
        (SendNotificationAction, UpdateFieldAction, CreateTaskAction, TriggerApiAction, UnknownAction),
    ):
        return raw
    return _validated(ActionSchema, raw, "action").to_action(strict)
