"""Workflow administration service."""

from typing import Any, Mapping, Optional, Sequence, Union

from catalog_rules.application.errors import ConflictError, NotFoundError
from catalog_rules.application.ports import Page, WorkflowQuery, WorkflowRepository
from catalog_rules.application.schemas import (
    WorkflowDraft,
    WorkflowPatch,
    parse_conditions,
    parse_workflow_draft,
    parse_workflow_patch,
)
from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.value_objects import TenantId
from catalog_rules.domain.workflows import Workflow
from catalog_rules.shared.logging import AuditEventType, AuditLogger, get_logger
from catalog_rules.shared.logging.context import get_correlation_id
from .conditions import ConditionEvaluator

RESOURCE = "workflow"


class WorkflowService:
    """Creates, revises and retires tenant workflows."""

    def __init__(
        self,
        workflow_repository: WorkflowRepository,
        condition_evaluator: ConditionEvaluator,
    ) -> None:
        self._workflows = workflow_repository
        self._evaluator = condition_evaluator
        self._logger = get_logger("application.workflows")
        self._audit = AuditLogger("workflows")

    @property
    def strict(self) -> bool:
        return self._evaluator.strict

    def define_workflow(
        self,
        tenant_id: Union[TenantId, str],
        user_id: Optional[str],
        draft: Union[WorkflowDraft, Mapping[str, Any]],
    ) -> Workflow:
        """
        Create a workflow.

        Args:
            tenant_id: Owning tenant
            user_id: Author, recorded as created_by and updated_by
            draft: Workflow definition

        Returns:
            The persisted workflow

        Raises:
            DefinitionError: If the definition is malformed
            ConflictError: If an active workflow of the tenant has the same name
        """
        tenant = TenantId.of(tenant_id)
        try:
            workflow = parse_workflow_draft(draft).to_workflow(tenant, user_id, self.strict)
        except DefinitionError as e:
            self._logger.warning(
                "workflow_definition_rejected",
                tenant_id=tenant.value,
                errors=e.errors,
                correlation_id=get_correlation_id(),
            )
            raise

        if workflow.is_active and self._workflows.find_active_by_name(tenant, workflow.name):
            raise ConflictError(RESOURCE, workflow.name)

        saved = self._workflows.add(workflow)

        self._logger.info(
            "workflow_defined",
            tenant_id=tenant.value,
            workflow_id=saved.id,
            trigger_events=[event.value for event in saved.trigger_events],
            condition_count=len(saved.conditions),
            action_count=len(saved.actions),
            correlation_id=get_correlation_id(),
        )
        self._audit.log_audit_event(
            AuditEventType.CREATE,
            RESOURCE,
            saved.id,
            tenant.value,
            actor_id=user_id,
            after=saved.to_dict(),
        )
        return saved

    def get_workflow(self, tenant_id: Union[TenantId, str], workflow_id: str) -> Workflow:
        workflow = self._workflows.get(TenantId.of(tenant_id), workflow_id)
        if workflow is None:
            raise NotFoundError(RESOURCE, workflow_id)
        return workflow

    def list_workflows(
        self, tenant_id: Union[TenantId, str], query: Optional[WorkflowQuery] = None
    ) -> Page[Workflow]:
        return self._workflows.query(TenantId.of(tenant_id), query or WorkflowQuery())

    def update_workflow(
        self,
        tenant_id: Union[TenantId, str],
        workflow_id: str,
        user_id: Optional[str],
        patch: Union[WorkflowPatch, Mapping[str, Any]],
    ) -> Workflow:
        """Apply a partial update and re-validate the whole workflow."""
        tenant = TenantId.of(tenant_id)
        existing = self.get_workflow(tenant, workflow_id)

        changes = parse_workflow_patch(patch).changes(self.strict)
        if not changes:
            return existing

        revised = existing.revise(updated_by=user_id, **changes)
        if revised.is_active:
            holder = self._workflows.find_active_by_name(tenant, revised.name)
            if holder is not None and holder.id != revised.id:
                raise ConflictError(RESOURCE, revised.name)

        saved = self._workflows.update(revised)

        self._logger.info(
            "workflow_updated",
            tenant_id=tenant.value,
            workflow_id=saved.id,
            changed_fields=sorted(changes),
            correlation_id=get_correlation_id(),
        )
        self._audit.log_audit_event(
            AuditEventType.UPDATE,
            RESOURCE,
            saved.id,
            tenant.value,
            actor_id=user_id,
            before=existing.to_dict(),
            after=saved.to_dict(),
        )
        return saved

    def delete_workflow(
        self, tenant_id: Union[TenantId, str], workflow_id: str, user_id: Optional[str] = None
    ) -> Workflow:
        """Soft delete."""
        tenant = TenantId.of(tenant_id)
        existing = self.get_workflow(tenant, workflow_id)
        if not existing.is_active:
            return existing

        saved = self._workflows.update(existing.deactivate(updated_by=user_id))

        self._logger.info(
            "workflow_deleted",
            tenant_id=tenant.value,
            workflow_id=saved.id,
            correlation_id=get_correlation_id(),
        )
        self._audit.log_audit_event(
            AuditEventType.DELETE, RESOURCE, saved.id, tenant.value, actor_id=user_id
        )
        return saved

    def test_conditions(
        self,
        conditions: Optional[Sequence[Any]],
        test_data: Optional[Mapping[str, Any]],
    ) -> bool:
        """Evaluate conditions against sample data without storing anything."""
        parsed = parse_conditions(list(conditions or []), self.strict)
        result = self._evaluator.evaluate(parsed, test_data)
        self._logger.debug(
            "workflow_conditions_tested",
            condition_count=len(parsed),
            result=result,
            correlation_id=get_correlation_id(),
        )
        return result
