"""Action dispatch: routes each workflow action to its collaborator."""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from catalog_rules.application.ports import ApiCaller, FieldUpdater, NotificationSender, TaskCreator
from catalog_rules.domain.value_objects import TenantId
from catalog_rules.domain.workflows import (
    Action,
    CreateTaskAction,
    SendNotificationAction,
    TriggerApiAction,
    UnknownAction,
    UpdateFieldAction,
)
from catalog_rules.shared.logging import get_logger
from catalog_rules.shared.logging.context import get_correlation_id


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one action invocation."""

    action_type: str
    status: OutcomeStatus
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.action_type, "status": self.status.value, "error": self.error}


class ActionDispatcher:
    """
    Invokes the collaborator behind each action type.

    Every invocation is isolated: a failing action is logged and recorded, and
    the remaining actions still run.
    """

    def __init__(
        self,
        notification_sender: NotificationSender,
        field_updater: FieldUpdater,
        task_creator: TaskCreator,
        api_caller: ApiCaller,
    ) -> None:
        """
        Initialize dispatcher with collaborators.

        Args:
            notification_sender: Handles sendNotification actions
            field_updater: Handles updateField actions
            task_creator: Handles createTask actions
            api_caller: Handles triggerAPI actions
        """
        self._handlers: Dict[type, Callable[[TenantId, Any, Mapping[str, Any]], None]] = {
            SendNotificationAction: notification_sender.send,
            UpdateFieldAction: field_updater.update_field,
            CreateTaskAction: task_creator.create_task,
            TriggerApiAction: api_caller.call,
        }
        self._logger = get_logger("application.dispatch")

    def dispatch(
        self,
        tenant_id: Union[TenantId, str],
        action: Action,
        payload: Mapping[str, Any],
        workflow_id: Optional[str] = None,
    ) -> ActionOutcome:
        tenant = TenantId.of(tenant_id)
        correlation_id = get_correlation_id()
        handler = self._handlers.get(type(action))

        if isinstance(action, UnknownAction) or handler is None:
            self._logger.warning(
                "workflow_action_skipped",
                tenant_id=tenant.value,
                workflow_id=workflow_id,
                action_type=action.type_name,
                reason="unknown_action_type",
                correlation_id=correlation_id,
            )
            return ActionOutcome(action.type_name, OutcomeStatus.SKIPPED)

        start_time = time.time()
        try:
            handler(tenant, action, payload)
        except Exception as e:
            self._logger.error(
                "workflow_action_failed",
                tenant_id=tenant.value,
                workflow_id=workflow_id,
                action_type=action.type_name,
                duration_ms=(time.time() - start_time) * 1000,
                error=str(e),
                error_type=e.__class__.__name__,
                correlation_id=correlation_id,
            )
            return ActionOutcome(action.type_name, OutcomeStatus.FAILED, error=str(e))

        self._logger.info(
            "workflow_action_dispatched",
            tenant_id=tenant.value,
            workflow_id=workflow_id,
            action_type=action.type_name,
            duration_ms=(time.time() - start_time) * 1000,
            correlation_id=correlation_id,
        )
        return ActionOutcome(action.type_name, OutcomeStatus.SUCCEEDED)

    def dispatch_all(
        self,
        tenant_id: Union[TenantId, str],
        actions: Sequence[Action],
        payload: Mapping[str, Any],
        workflow_id: Optional[str] = None,
    ) -> List[ActionOutcome]:
        """Dispatch actions strictly in list order."""
        return [self.dispatch(tenant_id, action, payload, workflow_id) for action in actions]
