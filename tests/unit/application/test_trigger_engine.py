"""Test WorkflowTriggerEngine."""

import threading

import pytest

from catalog_rules.application.services import ActionDispatcher, OutcomeStatus, WorkflowTriggerEngine
from catalog_rules.domain.workflows import SendNotificationAction, TriggerEvent
from tests.fakes import (
    BrokenWorkflowRepository,
    RecordingApiCaller,
    RecordingFieldUpdater,
    RecordingTaskCreator,
)


def notify(recipient: str) -> dict:
    return {"type": "sendNotification", "config": {"recipients": [recipient], "subject": "Heads up"}}


class TestTrigger:
    def test_low_stock_alert_fires(
        self, workflow_service, trigger_engine, tenant_id, notifications, low_stock_workflow
    ):
        """Should notify inventory once when stock drops below the threshold."""
        workflow = workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

        report = trigger_engine.trigger(tenant_id, "update", {"id": "cat_1", "stock": 3})

        assert report.error is None
        assert [run.workflow_id for run in report.matched] == [workflow.id]
        assert len(notifications.sent) == 1
        _, action, payload = notifications.sent[0]
        assert action == SendNotificationAction(recipients=("inventory@x.com",), subject="Low stock")
        assert payload == {"id": "cat_1", "stock": 3}

    def test_low_stock_alert_does_not_fire_above_threshold(
        self, workflow_service, trigger_engine, tenant_id, notifications, low_stock_workflow
    ):
        workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

        report = trigger_engine.trigger(tenant_id, TriggerEvent.UPDATE, {"stock": 10})

        assert report.matched == []
        assert report.runs[0].matched is False
        assert notifications.sent == []

    def test_only_subscribed_workflows_run(
        self, workflow_service, trigger_engine, tenant_id, notifications, low_stock_workflow
    ):
        workflow_service.define_workflow(tenant_id, None, low_stock_workflow)

        report = trigger_engine.trigger(tenant_id, "create", {"stock": 1})

        assert report.runs == ()
        assert notifications.sent == []

    def test_inactive_and_foreign_workflows_do_not_run(
        self, workflow_service, trigger_engine, tenant_id, other_tenant_id, notifications, low_stock_workflow
    ):
        workflow_service.define_workflow(other_tenant_id, None, low_stock_workflow)
        dormant = workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        workflow_service.delete_workflow(tenant_id, dormant.id)

        trigger_engine.trigger(tenant_id, "update", {"stock": 1})

        assert notifications.sent == []

    def test_failing_action_does_not_block_the_next(
        self, workflow_service, trigger_engine, tenant_id, notifications, task_creator
    ):
        notifications.fail_with = RuntimeError("smtp down")
        workflow_service.define_workflow(
            tenant_id,
            None,
            {
                "name": "Archive follow-up",
                "triggerEvents": ["archive"],
                "actions": [notify("ops@x.com"), {"type": "createTask", "config": {"title": "Review"}}],
            },
        )

        report = trigger_engine.trigger(tenant_id, "archive", {"id": "cat_1"})

        run = report.runs[0]
        assert run.failed
        assert [o.status for o in run.outcomes] == [OutcomeStatus.FAILED, OutcomeStatus.SUCCEEDED]
        assert len(task_creator.tasks) == 1

    def test_failing_workflow_does_not_block_others(
        self, workflow_service, trigger_engine, tenant_id, notifications, task_creator
    ):
        notifications.fail_with = RuntimeError("smtp down")
        for name, action in [
            ("First", notify("a@x.com")),
            ("Second", {"type": "createTask", "config": {"title": "Review"}}),
        ]:
            workflow_service.define_workflow(
                tenant_id, None, {"name": name, "triggerEvents": ["delete"], "actions": [action]}
            )

        report = trigger_engine.trigger(tenant_id, "delete", {})

        assert [run.workflow_name for run in report.runs] == ["First", "Second"]
        assert report.runs[0].failed and not report.runs[1].failed
        assert len(task_creator.tasks) == 1

    def test_unknown_action_is_skipped(self, workflow_service, trigger_engine, tenant_id):
        workflow_service.define_workflow(
            tenant_id,
            None,
            {"name": "Sms", "triggerEvents": ["create"], "actions": [{"type": "sendSms"}]},
        )

        report = trigger_engine.trigger(tenant_id, "create", {})

        assert report.runs[0].outcomes[0].status == OutcomeStatus.SKIPPED
        assert not report.runs[0].failed

    def test_unknown_event_reports_error(self, trigger_engine, tenant_id):
        report = trigger_engine.trigger(tenant_id, "publish", {})
        assert report.error == "Unknown trigger event"
        assert report.runs == ()

    def test_load_failure_is_reported_not_raised(self, evaluator, dispatcher, tenant_id):
        """Should swallow repository failures into the report."""
        engine = WorkflowTriggerEngine(BrokenWorkflowRepository(), evaluator, dispatcher)

        report = engine.trigger(tenant_id, "update", {"stock": 1})

        assert report.error == "store unavailable"
        assert report.to_dict()["runs"] == []

    def test_invalid_tenant_is_reported_not_raised(self, trigger_engine):
        report = trigger_engine.trigger("   ", "update", {})
        assert report.error is not None

    def test_payload_is_snapshotted(self, workflow_service, trigger_engine, tenant_id, notifications):
        workflow_service.define_workflow(
            tenant_id, None, {"name": "Snap", "triggerEvents": ["update"], "actions": [notify("a@x.com")]}
        )
        payload = {"stock": 1}

        trigger_engine.trigger(tenant_id, "update", payload)
        payload["stock"] = 99

        assert notifications.sent[0][2] == {"stock": 1}

    def test_rejects_non_positive_workers(self, workflow_repository, evaluator, dispatcher):
        with pytest.raises(ValueError):
            WorkflowTriggerEngine(workflow_repository, evaluator, dispatcher, max_workers=0)


class TestParallelTrigger:
    def test_thread_pool_keeps_load_order(
        self, workflow_service, workflow_repository, evaluator, dispatcher, tenant_id, notifications
    ):
        names = [f"Workflow {index}" for index in range(6)]
        for name in names:
            workflow_service.define_workflow(
                tenant_id, None, {"name": name, "triggerEvents": ["update"], "actions": [notify("a@x.com")]}
            )
        engine = WorkflowTriggerEngine(workflow_repository, evaluator, dispatcher, max_workers=4)

        report = engine.trigger(tenant_id, "update", {"stock": 1})

        assert [run.workflow_name for run in report.runs] == names
        assert all(run.matched for run in report.runs)
        assert len(notifications.sent) == 6

    def test_workflows_run_concurrently(self, workflow_service, workflow_repository, evaluator, tenant_id):
        barrier = threading.Barrier(2, timeout=5)

        class BarrierSender:
            def send(self, tenant_id, action, payload):
                barrier.wait()

        dispatcher = ActionDispatcher(
            notification_sender=BarrierSender(),
            field_updater=RecordingFieldUpdater(),
            task_creator=RecordingTaskCreator(),
            api_caller=RecordingApiCaller(),
        )
        for name in ("Left", "Right"):
            workflow_service.define_workflow(
                tenant_id, None, {"name": name, "triggerEvents": ["update"], "actions": [notify("a@x.com")]}
            )
        engine = WorkflowTriggerEngine(workflow_repository, evaluator, dispatcher, max_workers=2)

        report = engine.trigger(tenant_id, "update", {})

        assert all(run.outcomes[0].succeeded for run in report.runs)
