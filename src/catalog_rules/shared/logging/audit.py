"""
Audit logging for administrative changes to rules and workflows.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import structlog
from structlog.stdlib import BoundLogger

from .context import get_correlation_id, get_request_id


class AuditEventType(Enum):
    """Types of audit events."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditLogger:
    """
    Logger for the administrative audit trail.
    """

    def __init__(self, component: str):
        """
        Initialize audit logger.

        Args:
            component: Component name
        """
        self.logger: BoundLogger = structlog.get_logger(f"audit.{component}")
        self.component = component

    def log_audit_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        tenant_id: str,
        actor_id: Optional[str] = None,
        before: Optional[dict[str, Any]] = None,
        after: Optional[dict[str, Any]] = None,
        **context: Any,
    ) -> None:
        """
        Log an audit event with full context.

        Args:
            event_type: Type of audit event
            entity_type: Type of entity affected ("validation_rule", "workflow")
            entity_id: ID of entity affected
            tenant_id: Tenant owning the entity
            actor_id: ID of actor performing action
            before: State before change
            after: State after change
            **context: Additional context
        """
        event_data = {
            "event_type": event_type.value,
            "component": self.component,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "tenant_id": tenant_id,
            "actor_id": actor_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": get_request_id(),
            "correlation_id": get_correlation_id(),
            **context,
        }

        if before is not None:
            event_data["before"] = before
        if after is not None:
            event_data["after"] = after

        # Audit events are always INFO level
        self.logger.info(f"audit_{entity_type}_{event_type.value}", **event_data)
