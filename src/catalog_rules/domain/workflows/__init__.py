"""Workflow domain module."""

from .entities import Workflow
from .operators import MISSING, compare, resolve_path
from .value_objects import (
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
)

__all__ = [
    "Workflow",
    "Action",
    "ActionType",
    "Condition",
    "ConditionOperator",
    "CreateTaskAction",
    "SendNotificationAction",
    "TriggerApiAction",
    "TriggerEvent",
    "UnknownAction",
    "UpdateFieldAction",
    "MISSING",
    "compare",
    "resolve_path",
]
