"""Test WorkflowService administration."""

import pytest

from catalog_rules.application.errors import ConflictError, NotFoundError
from catalog_rules.application.ports import WorkflowQuery
from catalog_rules.application.services import WorkflowService
from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.workflows import (
    ConditionOperator,
    SendNotificationAction,
    TriggerEvent,
    UnknownAction,
)


@pytest.fixture
def strict_service(workflow_repository, strict_evaluator) -> WorkflowService:
    return WorkflowService(workflow_repository, strict_evaluator)


class TestDefineWorkflow:
    def test_define_workflow_success(self, workflow_service, tenant_id, low_stock_workflow):
        workflow = workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

        assert workflow.name == "Low Stock Alert"
        assert workflow.trigger_events == (TriggerEvent.UPDATE,)
        assert workflow.conditions[0].operator is ConditionOperator.LESS_THAN
        assert workflow.actions == (
            SendNotificationAction(recipients=("inventory@x.com",), subject="Low stock"),
        )
        assert workflow.created_by == "user_1"
        assert workflow.updated_by == "user_1"
        assert workflow_service.get_workflow(tenant_id, workflow.id) == workflow

    def test_requires_trigger_events(self, workflow_service, tenant_id, low_stock_workflow):
        low_stock_workflow["triggerEvents"] = []
        with pytest.raises(DefinitionError):
            workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

    def test_rejects_unknown_trigger_event(self, workflow_service, tenant_id, low_stock_workflow):
        low_stock_workflow["triggerEvents"] = ["publish"]
        with pytest.raises(DefinitionError):
            workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

    def test_rejects_mistyped_condition_value(self, workflow_service, tenant_id, low_stock_workflow):
        low_stock_workflow["conditions"][0]["value"] = "5"
        with pytest.raises(DefinitionError):
            workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

    def test_rejects_invalid_action_config(self, workflow_service, tenant_id, low_stock_workflow):
        low_stock_workflow["actions"][0]["config"] = {"subject": "No recipients"}
        with pytest.raises(DefinitionError):
            workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

    def test_lenient_mode_keeps_unknown_operator_and_action(
        self, workflow_service, tenant_id, low_stock_workflow
    ):
        low_stock_workflow["conditions"][0]["operator"] = "between"
        low_stock_workflow["actions"].append({"type": "sendSms", "config": {"to": "+1"}})

        workflow = workflow_service.define_workflow(tenant_id, None, low_stock_workflow)

        assert workflow.conditions[0].operator == "between"
        assert workflow.actions[1] == UnknownAction(type_name="sendSms", config={"to": "+1"})

    def test_strict_mode_rejects_unknown_operator(self, strict_service, tenant_id, low_stock_workflow):
        low_stock_workflow["conditions"][0]["operator"] = "between"
        with pytest.raises(DefinitionError):
            strict_service.define_workflow(tenant_id, None, low_stock_workflow)

    def test_strict_mode_rejects_unknown_action(self, strict_service, tenant_id, low_stock_workflow):
        low_stock_workflow["actions"] = [{"type": "sendSms", "config": {}}]
        with pytest.raises(DefinitionError):
            strict_service.define_workflow(tenant_id, None, low_stock_workflow)

    def test_duplicate_name_conflicts(self, workflow_service, tenant_id, low_stock_workflow):
        workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        with pytest.raises(ConflictError):
            workflow_service.define_workflow(tenant_id, None, low_stock_workflow)

    def test_inactive_duplicate_is_allowed(self, workflow_service, tenant_id, low_stock_workflow):
        workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        inactive = workflow_service.define_workflow(
            tenant_id, None, dict(low_stock_workflow, isActive=False)
        )
        assert inactive.is_active is False


class TestWorkflowAdministration:
    def test_list_excludes_inactive_by_default(self, workflow_service, tenant_id, low_stock_workflow):
        active = workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        workflow_service.define_workflow(
            tenant_id, None, dict(low_stock_workflow, name="Dormant", isActive=False)
        )

        assert [w.id for w in workflow_service.list_workflows(tenant_id).items] == [active.id]
        assert workflow_service.list_workflows(tenant_id, WorkflowQuery(include_inactive=True)).total == 2

    def test_list_search(self, workflow_service, tenant_id, low_stock_workflow):
        workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        workflow_service.define_workflow(tenant_id, None, dict(low_stock_workflow, name="Price watch"))

        page = workflow_service.list_workflows(tenant_id, WorkflowQuery(search="STOCK"))

        assert [w.name for w in page.items] == ["Low Stock Alert"]

    def test_update_workflow(self, workflow_service, tenant_id, low_stock_workflow):
        workflow = workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

        updated = workflow_service.update_workflow(
            tenant_id,
            workflow.id,
            "user_2",
            {"triggerEvents": ["create", "update"], "conditions": []},
        )

        assert updated.trigger_events == (TriggerEvent.CREATE, TriggerEvent.UPDATE)
        assert updated.conditions == ()
        assert updated.created_by == "user_1"
        assert updated.updated_by == "user_2"

    def test_update_rejects_null_name(self, workflow_service, tenant_id, low_stock_workflow):
        workflow = workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        with pytest.raises(DefinitionError):
            workflow_service.update_workflow(tenant_id, workflow.id, None, {"name": None})

    def test_update_into_name_conflict(self, workflow_service, tenant_id, low_stock_workflow):
        workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        other = workflow_service.define_workflow(tenant_id, None, dict(low_stock_workflow, name="Other"))
        with pytest.raises(ConflictError):
            workflow_service.update_workflow(tenant_id, other.id, None, {"name": "Low Stock Alert"})

    def test_update_missing_workflow(self, workflow_service, tenant_id):
        with pytest.raises(NotFoundError):
            workflow_service.update_workflow(tenant_id, "nope", None, {"name": "Renamed"})

    def test_delete_is_soft(self, workflow_service, tenant_id, low_stock_workflow):
        workflow = workflow_service.define_workflow(tenant_id, "user_1", low_stock_workflow)

        deleted = workflow_service.delete_workflow(tenant_id, workflow.id, "user_3")

        assert deleted.is_active is False
        assert deleted.updated_by == "user_3"
        assert workflow_service.get_workflow(tenant_id, workflow.id).is_active is False

    def test_workflows_are_tenant_scoped(
        self, workflow_service, tenant_id, other_tenant_id, low_stock_workflow
    ):
        workflow = workflow_service.define_workflow(tenant_id, None, low_stock_workflow)
        with pytest.raises(NotFoundError):
            workflow_service.get_workflow(other_tenant_id, workflow.id)


class TestConditionDryRun:
    def test_conditions_against_sample_data(self, workflow_service):
        conditions = [{"field": "stock", "operator": "lessThan", "value": 5}]

        assert workflow_service.test_conditions(conditions, {"stock": 3}) is True
        assert workflow_service.test_conditions(conditions, {"stock": 30}) is False

    def test_empty_conditions(self, workflow_service):
        assert workflow_service.test_conditions([], {}) is True

    def test_rejects_malformed_condition(self, workflow_service):
        with pytest.raises(DefinitionError):
            workflow_service.test_conditions([{"field": "stock"}], {})

    def test_does_not_persist(self, workflow_service, tenant_id):
        workflow_service.test_conditions([{"field": "a", "operator": "equals", "value": 1}], {"a": 1})
        assert workflow_service.list_workflows(tenant_id, WorkflowQuery(include_inactive=True)).total == 0

    @pytest.mark.parametrize(
        "condition, data",
        [
            ({"field": "name", "operator": "contains", "value": " "}, {"name": "Shoes"}),
            ({"field": "code", "operator": "equals", "value": " A1"}, {"code": "A1"}),
        ],
    )
    def test_condition_values_keep_surrounding_whitespace(self, workflow_service, condition, data):
        """Should compare against the configured value exactly as written."""
        assert workflow_service.test_conditions([condition], data) is False

    def test_whitespace_value_matches_itself(self, workflow_service):
        condition = {"field": "name", "operator": "contains", "value": " "}
        assert workflow_service.test_conditions([condition], {"name": "Running Shoes"}) is True
