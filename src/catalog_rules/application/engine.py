"""Entry point handed to the category CRUD service."""

from typing import Any, Mapping, Optional, Union

from catalog_rules.domain.value_objects import TenantId
from catalog_rules.domain.workflows import TriggerEvent
from catalog_rules.shared.logging import get_logger, tenant_scope
from catalog_rules.shared.logging.context import get_correlation_id
from .services import (
    TriggerReport,
    ValidationEngine,
    ValidationResult,
    WorkflowService,
    WorkflowTriggerEngine,
)


class CatalogRuleEngine:
    """
    Facade over the validation and workflow subsystems.

    ``validate_candidate`` is the pre-write gate; ``trigger_event`` runs after
    the write has been persisted and never raises.
    """

    def __init__(
        self,
        validation: ValidationEngine,
        workflows: WorkflowService,
        triggers: WorkflowTriggerEngine,
    ) -> None:
        self.validation = validation
        self.workflows = workflows
        self.triggers = triggers
        self._logger = get_logger("application.engine")

    def validate_candidate(
        self,
        tenant_id: Union[TenantId, str],
        field_map: Mapping[str, Any],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        tenant = TenantId.of(tenant_id)
        with tenant_scope(tenant.value):
            return self.validation.evaluate(tenant, field_map, exclude_id)

    def trigger_event(
        self,
        tenant_id: Union[TenantId, str],
        event: Union[TriggerEvent, str],
        field_map: Optional[Mapping[str, Any]],
    ) -> TriggerReport:
        event_name = event.value if isinstance(event, TriggerEvent) else str(event)
        try:
            with tenant_scope(str(tenant_id)):
                return self.triggers.trigger(tenant_id, event, field_map)
        except Exception as e:
            self._logger.error(
                "workflow_trigger_failed",
                event=event_name,
                error=str(e),
                error_type=e.__class__.__name__,
                correlation_id=get_correlation_id(),
            )
            return TriggerReport(str(tenant_id), event_name, error=str(e))
