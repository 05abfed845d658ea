"""Collaborators that carry out workflow actions.

The notification, field update and task implementations record the action as
a structured log entry; hosts with real delivery channels plug in their own
implementations of the same ports. HttpApiCaller performs real HTTP calls.
"""

import json
from typing import Any, Mapping, Optional

import httpx

from catalog_rules.application.ports import ApiCaller, FieldUpdater, NotificationSender, TaskCreator
from catalog_rules.domain.value_objects import TenantId
from catalog_rules.domain.workflows import (
    CreateTaskAction,
    SendNotificationAction,
    TriggerApiAction,
    UpdateFieldAction,
)
from catalog_rules.infrastructure.logging.utilities import LoggingPort, log_port_operation
from catalog_rules.shared.logging import inject_correlation_id, mask_sensitive_data
from catalog_rules.shared.logging.context import get_correlation_id

DEFAULT_TIMEOUT_SECONDS = 10.0


class LoggingNotificationSender(NotificationSender, LoggingPort):
    """Records notifications in the log stream."""

    def __init__(self) -> None:
        super().__init__(logger_name="infrastructure.actions.notifications")

    def get_component_name(self) -> str:
        return "NotificationSender"

    @log_port_operation("notification_send")
    def send(
        self, tenant_id: TenantId, action: SendNotificationAction, payload: Mapping[str, Any]
    ) -> None:
        self._logger.info(
            "notification_queued",
            tenant_id=tenant_id.value,
            channel=action.channel,
            recipients=list(action.recipients),
            subject=action.subject,
            entity_id=payload.get("id"),
            correlation_id=get_correlation_id(),
        )


class LoggingFieldUpdater(FieldUpdater, LoggingPort):
    """Records requested field updates in the log stream."""

    def __init__(self) -> None:
        super().__init__(logger_name="infrastructure.actions.field_updates")

    def get_component_name(self) -> str:
        return "FieldUpdater"

    @log_port_operation("field_update")
    def update_field(
        self, tenant_id: TenantId, action: UpdateFieldAction, payload: Mapping[str, Any]
    ) -> None:
        self._logger.info(
            "field_update_requested",
            tenant_id=tenant_id.value,
            entity_id=payload.get("id"),
            field=action.field,
            value_kind=action.value.kind.value,
            correlation_id=get_correlation_id(),
        )


class LoggingTaskCreator(TaskCreator, LoggingPort):
    """Records task creation requests in the log stream."""

    def __init__(self) -> None:
        super().__init__(logger_name="infrastructure.actions.tasks")

    def get_component_name(self) -> str:
        return "TaskCreator"

    @log_port_operation("task_create")
    def create_task(
        self, tenant_id: TenantId, action: CreateTaskAction, payload: Mapping[str, Any]
    ) -> None:
        self._logger.info(
            "task_create_requested",
            tenant_id=tenant_id.value,
            entity_id=payload.get("id"),
            title=action.title,
            assignee=action.assignee,
            due_in_days=action.due_in_days,
            correlation_id=get_correlation_id(),
        )


class HttpApiCaller(ApiCaller, LoggingPort):
    """
    Sends triggerAPI actions with httpx.

    The event payload is sent as the JSON body when the action asks for it
    (never on GET). Correlation headers are added to every request and any
    non-2xx response raises httpx.HTTPStatusError.
    """

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize API caller.

        Args:
            client: HTTP client to use; one is created when omitted
            timeout_seconds: Timeout for actions that do not set their own
        """
        super().__init__(logger_name="infrastructure.actions.api")
        self._owns_client = client is None
        self._client = client or httpx.Client(headers={"Accept": "application/json"})
        self._timeout_seconds = timeout_seconds

    def get_component_name(self) -> str:
        return "ApiCaller"

    @log_port_operation("api_call")
    def call(
        self, tenant_id: TenantId, action: TriggerApiAction, payload: Mapping[str, Any]
    ) -> None:
        headers = inject_correlation_id(dict(action.headers))
        headers.setdefault("X-Tenant-Id", tenant_id.value)

        content = None
        if action.include_payload and action.method != "GET":
            content = json.dumps(dict(payload), default=str)
            headers.setdefault("Content-Type", "application/json")

        response = self._client.request(
            action.method,
            action.url,
            headers=headers,
            content=content,
            timeout=action.timeout_seconds or self._timeout_seconds,
        )

        self._logger.info(
            "api_call_response",
            method=action.method,
            url=mask_sensitive_data("url", action.url),
            status_code=response.status_code,
            correlation_id=get_correlation_id(),
        )
        response.raise_for_status()

    def close(self) -> None:
        """Close the HTTP client if this caller created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
