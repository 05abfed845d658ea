"""Value objects for the workflow context.

Actions are modelled as one frozen dataclass per action type, each carrying
only the settings its handler needs.
"""

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.value_objects import Value, ValueKind


class TriggerEvent(Enum):
    """Lifecycle transitions of a category that workflows subscribe to."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    ARCHIVE = "archive"
    UNARCHIVE = "unarchive"


class ConditionOperator(Enum):
    """Comparison applied between a payload field and a configured value."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    IN = "in"

    @classmethod
    def parse(cls, name: str) -> Optional["ConditionOperator"]:
        """Return the operator for a name, or None when unknown."""
        try:
            return cls(name)
        except ValueError:
            return None


# Value kind each operator compares against; None accepts any kind
OPERATOR_VALUE_KINDS: Dict[ConditionOperator, Optional[ValueKind]] = {
    ConditionOperator.EQUALS: None,
    ConditionOperator.NOT_EQUALS: None,
    ConditionOperator.CONTAINS: ValueKind.STRING,
    ConditionOperator.GREATER_THAN: ValueKind.NUMBER,
    ConditionOperator.LESS_THAN: ValueKind.NUMBER,
    ConditionOperator.IN: ValueKind.STRING_ARRAY,
}


@dataclass(frozen=True)
class Condition:
    """A single predicate over the event payload.

    ``operator`` is a ConditionOperator for known operators; unknown operator
    names are kept as plain strings so lenient evaluation can report them.
    """

    field: str
    operator: Union[ConditionOperator, str]
    value: Value

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field.strip():
            raise DefinitionError("Condition field is required")
        object.__setattr__(self, "field", self.field.strip())

        if isinstance(self.operator, str):
            known = ConditionOperator.parse(self.operator)
            if known is not None:
                object.__setattr__(self, "operator", known)

        if self.is_known_operator:
            expected = OPERATOR_VALUE_KINDS[self.operator]
            if expected is not None and self.value.kind != expected:
                raise DefinitionError(
                    f"Operator {self.operator.value} requires a {expected.value} value"
                )

    @property
    def is_known_operator(self) -> bool:
        return isinstance(self.operator, ConditionOperator)

    @property
    def operator_name(self) -> str:
        if isinstance(self.operator, ConditionOperator):
            return self.operator.value
        return self.operator

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "operator": self.operator_name,
            "value": self.value.to_primitive(),
        }


class ActionType(Enum):
    """Types of workflow actions."""

    SEND_NOTIFICATION = "sendNotification"
    UPDATE_FIELD = "updateField"
    CREATE_TASK = "createTask"
    TRIGGER_API = "triggerAPI"


HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


@dataclass(frozen=True)
class SendNotificationAction:
    """Notify recipients about the category event."""

    action_type: ClassVar[ActionType] = ActionType.SEND_NOTIFICATION

    recipients: Tuple[str, ...]
    subject: str
    message: Optional[str] = None
    channel: str = "email"

    def __post_init__(self) -> None:
        if not self.recipients:
            raise DefinitionError("sendNotification requires at least one recipient")
        if not self.subject:
            raise DefinitionError("sendNotification requires a subject")

    @property
    def type_name(self) -> str:
        return self.action_type.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "config": {
                "recipients": list(self.recipients),
                "subject": self.subject,
                "message": self.message,
                "channel": self.channel,
            },
        }


@dataclass(frozen=True)
class UpdateFieldAction:
    """Set a field on the category (or a related entity) to a fixed value."""

    action_type: ClassVar[ActionType] = ActionType.UPDATE_FIELD

    field: str
    value: Value

    def __post_init__(self) -> None:
        if not self.field:
            raise DefinitionError("updateField requires a field")

    @property
    def type_name(self) -> str:
        return self.action_type.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "config": {"field": self.field, "value": self.value.to_primitive()},
        }


@dataclass(frozen=True)
class CreateTaskAction:
    """Open a task for a user or team."""

    action_type: ClassVar[ActionType] = ActionType.CREATE_TASK

    title: str
    description: Optional[str] = None
    assignee: Optional[str] = None
    due_in_days: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.title:
            raise DefinitionError("createTask requires a title")
        if self.due_in_days is not None and self.due_in_days < 0:
            raise DefinitionError("createTask due_in_days must be non-negative")

    @property
    def type_name(self) -> str:
        return self.action_type.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "config": {
                "title": self.title,
                "description": self.description,
                "assignee": self.assignee,
                "dueInDays": self.due_in_days,
            },
        }


@dataclass(frozen=True)
class TriggerApiAction:
    """Call an external HTTP endpoint."""

    action_type: ClassVar[ActionType] = ActionType.TRIGGER_API

    url: str
    method: str = "POST"
    headers: Mapping[str, str] = dataclass_field(default_factory=dict)
    include_payload: bool = True
    timeout_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise DefinitionError("triggerAPI url must be an http(s) URL")
        method = self.method.upper()
        if method not in HTTP_METHODS:
            raise DefinitionError(f"triggerAPI method must be one of {', '.join(HTTP_METHODS)}")
        object.__setattr__(self, "method", method)
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise DefinitionError("triggerAPI timeout must be positive")

    @property
    def type_name(self) -> str:
        return self.action_type.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_name,
            "config": {
                "url": self.url,
                "method": self.method,
                "headers": dict(self.headers),
                "includePayload": self.include_payload,
                "timeoutSeconds": self.timeout_seconds,
            },
        }


@dataclass(frozen=True)
class UnknownAction:
    """An action type this engine does not know, kept as-is in lenient mode."""

    type_name: str
    config: Mapping[str, Any] = dataclass_field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type_name, "config": dict(self.config)}


Action = Union[
    SendNotificationAction,
    UpdateFieldAction,
    CreateTaskAction,
    TriggerApiAction,
    UnknownAction,
]
