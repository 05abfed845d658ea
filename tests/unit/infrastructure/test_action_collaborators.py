"""Test the collaborators that carry out workflow actions."""

import json
from datetime import date

import httpx
import pytest
from structlog.testing import capture_logs

from catalog_rules.domain.value_objects import TenantId, Value
from catalog_rules.domain.workflows import (
    CreateTaskAction,
    SendNotificationAction,
    TriggerApiAction,
    UpdateFieldAction,
)
from catalog_rules.infrastructure.actions import (
    HttpApiCaller,
    LoggingFieldUpdater,
    LoggingNotificationSender,
    LoggingTaskCreator,
)
from catalog_rules.shared.logging import with_request_context


class RecordingTransport:
    """Collects requests and answers with a fixed status."""

    def __init__(self, status_code: int = 200):
        self.requests = []
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def caller(transport):
    client = httpx.Client(transport=httpx.MockTransport(transport))
    with HttpApiCaller(client=client, timeout_seconds=3) as api_caller:
        yield api_caller
    client.close()


class TestHttpApiCaller:
    def test_posts_payload_as_json(self, caller, transport, tenant):
        action = TriggerApiAction(url="https://hooks.example.com/stock", headers={"X-Key": "abc"})

        caller.call(tenant, action, {"id": "cat_1", "stock": 3})

        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://hooks.example.com/stock"
        assert json.loads(request.content) == {"id": "cat_1", "stock": 3}
        assert request.headers["X-Key"] == "abc"
        assert request.headers["X-Tenant-Id"] == "tenant_123"
        assert request.headers["Content-Type"] == "application/json"

    def test_get_sends_no_body(self, caller, transport, tenant):
        caller.call(tenant, TriggerApiAction(url="https://hooks.example.com/ping", method="GET"), {"id": "x"})
        assert transport.requests[0].content == b""

    def test_payload_can_be_omitted(self, caller, transport, tenant):
        action = TriggerApiAction(url="https://hooks.example.com/ping", include_payload=False)
        caller.call(tenant, action, {"id": "x"})
        assert transport.requests[0].content == b""

    def test_non_json_values_are_stringified(self, caller, transport, tenant):
        caller.call(tenant, TriggerApiAction(url="https://hooks.example.com/x"), {"day": date(2024, 1, 2)})
        assert json.loads(transport.requests[0].content) == {"day": "2024-01-02"}

    def test_error_status_raises(self, tenant):
        client = httpx.Client(transport=httpx.MockTransport(RecordingTransport(status_code=502)))
        caller = HttpApiCaller(client=client)

        with pytest.raises(httpx.HTTPStatusError):
            caller.call(tenant, TriggerApiAction(url="https://hooks.example.com/x"), {})
        client.close()

    def test_forwards_correlation_id(self, caller, transport, tenant):
        @with_request_context(correlation_id="corr_abc")
        def call():
            caller.call(tenant, TriggerApiAction(url="https://hooks.example.com/x"), {})

        call()

        assert transport.requests[0].headers["X-Correlation-Id"] == "corr_abc"

    def test_does_not_close_injected_client(self, transport):
        client = httpx.Client(transport=httpx.MockTransport(transport))
        HttpApiCaller(client=client).close()
        assert not client.is_closed
        client.close()


class TestLoggingCollaborators:
    def test_notification_is_logged(self, tenant):
        with capture_logs() as logs:
            sender = LoggingNotificationSender()
            sender.send(
                tenant,
                SendNotificationAction(recipients=("inventory@x.com",), subject="Low stock"),
                {"id": "cat_1"},
            )

        events = [entry["event"] for entry in logs]
        assert "notification_queued" in events
        assert "notification_send_completed" in events

    def test_field_update_is_logged(self, tenant):
        with capture_logs() as logs:
            LoggingFieldUpdater().update_field(
                tenant, UpdateFieldAction(field="isPublic", value=Value.of(False)), {"id": "cat_1"}
            )

        entry = next(e for e in logs if e["event"] == "field_update_requested")
        assert entry["field"] == "isPublic"
        assert entry["value_kind"] == "bool"

    def test_task_is_logged(self):
        with capture_logs() as logs:
            LoggingTaskCreator().create_task(
                TenantId("tenant_123"), CreateTaskAction(title="Restock", due_in_days=2), {}
            )

        entry = next(e for e in logs if e["event"] == "task_create_requested")
        assert entry["title"] == "Restock"
        assert entry["due_in_days"] == 2
