"""Engines and administrative services."""

from .conditions import ConditionEvaluator
from .dispatch import ActionDispatcher, ActionOutcome, OutcomeStatus
from .triggers import TriggerReport, WorkflowRun, WorkflowTriggerEngine
from .validation import ValidationEngine, ValidationResult
from .workflows import WorkflowService

__all__ = [
    "ConditionEvaluator",
    "ActionDispatcher",
    "ActionOutcome",
    "OutcomeStatus",
    "TriggerReport",
    "WorkflowRun",
    "WorkflowTriggerEngine",
    "ValidationEngine",
    "ValidationResult",
    "WorkflowService",
]
