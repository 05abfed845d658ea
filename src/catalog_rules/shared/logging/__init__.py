"""
Structured logging for the catalog rules engine.

This module provides structured logging capabilities with:
- Sensitive data masking (tokens, credentials, tenant identifiers)
- Multi-tenant context tracking
- Audit trail for rule and workflow administration
- Correlation ID management
"""

from .factory import configure_logging, get_logger
from .sanitizers import mask_sensitive_data, sanitize_for_log
from .context import (
    with_request_context,
    tenant_scope,
    get_correlation_id,
    inject_correlation_id,
)
from .audit import AuditLogger, AuditEventType

__all__ = [
    "configure_logging",
    "get_logger",
    "mask_sensitive_data",
    "sanitize_for_log",
    "with_request_context",
    "tenant_scope",
    "get_correlation_id",
    "inject_correlation_id",
    "AuditLogger",
    "AuditEventType",
]
