"""Tests for log sanitizing and context helpers."""

import pytest
import structlog

from catalog_rules.shared.logging import (
    inject_correlation_id,
    mask_sensitive_data,
    sanitize_for_log,
    tenant_scope,
    with_request_context,
)
from catalog_rules.shared.logging.context import get_correlation_id, get_tenant_id
from catalog_rules.shared.logging.sanitizers import MaskingProcessor


class TestSanitizeForLog:
    @pytest.mark.parametrize("key", ["password", "api_key", "Authorization", "X-API-KEY", "auth_token"])
    def test_redacts_secrets(self, key):
        assert sanitize_for_log({key: "hunter2"}) == {key: "***REDACTED***"}

    def test_masks_nested_headers(self):
        event = {"config": {"headers": {"Authorization": "Bearer abc", "Accept": "json"}}}

        sanitized = sanitize_for_log(event)

        assert sanitized["config"]["headers"] == {"Authorization": "***REDACTED***", "Accept": "json"}
        assert event["config"]["headers"]["Authorization"] == "Bearer abc"

    def test_masks_recipients(self):
        sanitized = sanitize_for_log({"recipients": ["inventory@x.com", "ab@x.com"]})
        assert sanitized["recipients"] == ["i***@x.com", "***@x.com"]

    def test_partially_masks_tenant(self):
        assert sanitize_for_log({"tenant_id": "tenant_123"}) == {"tenant_id": "ten***123"}
        assert sanitize_for_log({"tenant_id": None}) == {"tenant_id": None}

    def test_leaves_plain_values(self):
        event = {"event": "workflow_triggered", "workflows_matched": 2, "tags": ["a"]}
        assert sanitize_for_log(event) == event

    def test_processor(self):
        processor = MaskingProcessor()
        assert processor(None, "info", {"secret": "s"}) == {"secret": "***REDACTED***"}


class TestMaskSensitiveData:
    def test_url_keeps_host_only(self):
        masked = mask_sensitive_data("url", "https://hooks.example.com/path?token=abc")
        assert masked == "https://hooks.example.com/***"

    def test_user_id(self):
        assert mask_sensitive_data("user_id", "user_123456789") == "user_***6789"

    def test_unknown_type(self):
        assert mask_sensitive_data("card", "4111") == "***MASKED***"

    def test_empty(self):
        assert mask_sensitive_data("email", "") == "***"


class TestLoggingContext:
    def test_tenant_scope_binds_and_restores(self):
        assert get_tenant_id() is None

        with tenant_scope("tenant_123"):
            assert get_tenant_id() == "tenant_123"
            assert structlog.contextvars.get_contextvars()["tenant_id"] == "tenant_123"

        assert get_tenant_id() is None
        assert "tenant_id" not in structlog.contextvars.get_contextvars()

    def test_nested_tenant_scope_restores_outer_tenant(self):
        with tenant_scope("tenant_a"):
            with tenant_scope("tenant_b"):
                assert structlog.contextvars.get_contextvars()["tenant_id"] == "tenant_b"

            assert get_tenant_id() == "tenant_a"
            assert structlog.contextvars.get_contextvars()["tenant_id"] == "tenant_a"

        assert "tenant_id" not in structlog.contextvars.get_contextvars()

    def test_request_context_keeps_enclosing_tenant(self):
        @with_request_context(correlation_id="corr_2", tenant_id="tenant_b")
        def handler():
            return structlog.contextvars.get_contextvars()["tenant_id"]

        with tenant_scope("tenant_a"):
            assert handler() == "tenant_b"
            assert structlog.contextvars.get_contextvars()["tenant_id"] == "tenant_a"
            assert "correlation_id" not in structlog.contextvars.get_contextvars()

    def test_request_context(self):
        @with_request_context(correlation_id="corr_1", tenant_id="tenant_123")
        def handler():
            return get_correlation_id(), inject_correlation_id({})

        correlation_id, headers = handler()

        assert correlation_id == "corr_1"
        assert headers["X-Correlation-Id"] == "corr_1"
        assert headers["X-Tenant-Id"] == "tenant_123"
        assert get_correlation_id() is None

    def test_no_context_adds_no_headers(self):
        assert inject_correlation_id({"Accept": "json"}) == {"Accept": "json"}
