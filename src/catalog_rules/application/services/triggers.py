"""Workflow trigger engine: runs the workflows subscribed to a lifecycle event."""

import contextvars
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from catalog_rules.application.ports import WorkflowRepository
from catalog_rules.domain.value_objects import TenantId
from catalog_rules.domain.workflows import TriggerEvent, Workflow
from catalog_rules.shared.logging import get_logger
from catalog_rules.shared.logging.context import get_correlation_id
from .conditions import ConditionEvaluator
from .dispatch import ActionDispatcher, ActionOutcome, OutcomeStatus


@dataclass(frozen=True)
class WorkflowRun:
    """What happened to one workflow during a trigger."""

    workflow_id: str
    workflow_name: str
    matched: bool
    outcomes: Tuple[ActionOutcome, ...] = ()
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None or any(
            outcome.status == OutcomeStatus.FAILED for outcome in self.outcomes
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workflowId": self.workflow_id,
            "workflowName": self.workflow_name,
            "matched": self.matched,
            "actions": [outcome.to_dict() for outcome in self.outcomes],
            "error": self.error,
        }


@dataclass(frozen=True)
class TriggerReport:
    """Per-workflow results of one trigger, in load order."""

    tenant_id: str
    event: str
    runs: Tuple[WorkflowRun, ...] = ()
    error: Optional[str] = None

    @property
    def matched(self) -> List[WorkflowRun]:
        return [run for run in self.runs if run.matched]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tenantId": self.tenant_id,
            "event": self.event,
            "runs": [run.to_dict() for run in self.runs],
            "error": self.error,
        }


class WorkflowTriggerEngine:
    """
    Single-pass event handler.

    For each active workflow subscribed to the event, evaluates its conditions
    and dispatches its actions in order. Failures are logged and recorded in the
    report; nothing is raised to the caller.
    """

    def __init__(
        self,
        workflow_repository: WorkflowRepository,
        condition_evaluator: ConditionEvaluator,
        dispatcher: ActionDispatcher,
        max_workers: int = 1,
    ) -> None:
        """
        Initialize engine with dependencies.

        Args:
            workflow_repository: Source of workflows
            condition_evaluator: Evaluates workflow conditions
            dispatcher: Runs workflow actions
            max_workers: Workflows run on a thread pool of this size when above 1
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._workflows = workflow_repository
        self._evaluator = condition_evaluator
        self._dispatcher = dispatcher
        self._max_workers = max_workers
        self._logger = get_logger("application.triggers")

    def trigger(
        self,
        tenant_id: Union[TenantId, str],
        event: Union[TriggerEvent, str],
        payload: Optional[Mapping[str, Any]],
    ) -> TriggerReport:
        correlation_id = get_correlation_id()
        start_time = time.time()
        event_name = event.value if isinstance(event, TriggerEvent) else str(event)

        try:
            trigger_event = TriggerEvent(event_name)
        except ValueError:
            self._logger.warning(
                "unknown_trigger_event",
                event=event_name,
                correlation_id=correlation_id,
            )
            return TriggerReport(str(tenant_id), event_name, error="Unknown trigger event")

        try:
            tenant = TenantId.of(tenant_id)
            workflows = self._workflows.find_active_for_event(tenant, trigger_event)
        except Exception as e:
            self._logger.error(
                "workflow_load_failed",
                event=event_name,
                error=str(e),
                error_type=e.__class__.__name__,
                correlation_id=correlation_id,
            )
            return TriggerReport(str(tenant_id), event_name, error=str(e))

        snapshot = dict(payload or {})
        runs = self._run_all(tenant, trigger_event, workflows, snapshot)

        self._logger.info(
            "workflow_triggered",
            tenant_id=tenant.value,
            event=event_name,
            workflows_loaded=len(workflows),
            workflows_matched=sum(1 for run in runs if run.matched),
            workflows_failed=sum(1 for run in runs if run.failed),
            duration_ms=(time.time() - start_time) * 1000,
            correlation_id=correlation_id,
        )
        return TriggerReport(tenant.value, event_name, tuple(runs))

    def _run_all(
        self,
        tenant: TenantId,
        event: TriggerEvent,
        workflows: List[Workflow],
        payload: Mapping[str, Any],
    ) -> List[WorkflowRun]:
        if self._max_workers == 1 or len(workflows) < 2:
            return [self._run(tenant, event, workflow, payload) for workflow in workflows]

        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(workflows))) as pool:
            # Each worker gets its own copy of the logging context
            futures = [
                pool.submit(
                    contextvars.copy_context().run, self._run, tenant, event, workflow, payload
                )
                for workflow in workflows
            ]
            return [future.result() for future in futures]

    def _run(
        self,
        tenant: TenantId,
        event: TriggerEvent,
        workflow: Workflow,
        payload: Mapping[str, Any],
    ) -> WorkflowRun:
        try:
            if not self._evaluator.evaluate(workflow.conditions, payload):
                self._logger.debug(
                    "workflow_conditions_not_met",
                    tenant_id=tenant.value,
                    workflow_id=workflow.id,
                    event=event.value,
                )
                return WorkflowRun(workflow.id, workflow.name, matched=False)

            outcomes = self._dispatcher.dispatch_all(
                tenant, workflow.actions, payload, workflow_id=workflow.id
            )
            return WorkflowRun(workflow.id, workflow.name, matched=True, outcomes=tuple(outcomes))
        except Exception as e:
            self._logger.error(
                "workflow_execution_failed",
                tenant_id=tenant.value,
                workflow_id=workflow.id,
                event=event.value,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            return WorkflowRun(workflow.id, workflow.name, matched=False, error=str(e))
