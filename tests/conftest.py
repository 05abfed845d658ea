"""Test configuration and shared fixtures."""

import pytest

from catalog_rules.application.engine import CatalogRuleEngine
from catalog_rules.application.services import (
    ActionDispatcher,
    ConditionEvaluator,
    ValidationEngine,
    WorkflowService,
    WorkflowTriggerEngine,
)
from catalog_rules.domain.value_objects import TenantId
from catalog_rules.infrastructure.repositories import (
    InMemoryCategoryLookup,
    InMemoryValidationRuleRepository,
    InMemoryWorkflowRepository,
)
from tests.fakes import (
    RecordingApiCaller,
    RecordingFieldUpdater,
    RecordingNotificationSender,
    RecordingTaskCreator,
)


@pytest.fixture
def tenant_id() -> str:
    """Valid tenant ID for tests."""
    return "tenant_123"


@pytest.fixture
def other_tenant_id() -> str:
    """A second tenant, for isolation checks."""
    return "tenant_456"


@pytest.fixture
def tenant(tenant_id) -> TenantId:
    return TenantId(tenant_id)


@pytest.fixture
def rule_repository() -> InMemoryValidationRuleRepository:
    return InMemoryValidationRuleRepository()


@pytest.fixture
def workflow_repository() -> InMemoryWorkflowRepository:
    return InMemoryWorkflowRepository()


@pytest.fixture
def category_lookup() -> InMemoryCategoryLookup:
    return InMemoryCategoryLookup()


@pytest.fixture
def validation_engine(rule_repository, category_lookup) -> ValidationEngine:
    return ValidationEngine(rule_repository, category_lookup)


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


@pytest.fixture
def strict_evaluator() -> ConditionEvaluator:
    return ConditionEvaluator(strict=True)


@pytest.fixture
def notifications() -> RecordingNotificationSender:
    return RecordingNotificationSender()


@pytest.fixture
def field_updater() -> RecordingFieldUpdater:
    return RecordingFieldUpdater()


@pytest.fixture
def task_creator() -> RecordingTaskCreator:
    return RecordingTaskCreator()


@pytest.fixture
def api_caller() -> RecordingApiCaller:
    return RecordingApiCaller()


@pytest.fixture
def dispatcher(notifications, field_updater, task_creator, api_caller) -> ActionDispatcher:
    return ActionDispatcher(
        notification_sender=notifications,
        field_updater=field_updater,
        task_creator=task_creator,
        api_caller=api_caller,
    )


@pytest.fixture
def workflow_service(workflow_repository, evaluator) -> WorkflowService:
    return WorkflowService(workflow_repository, evaluator)


@pytest.fixture
def trigger_engine(workflow_repository, evaluator, dispatcher) -> WorkflowTriggerEngine:
    return WorkflowTriggerEngine(workflow_repository, evaluator, dispatcher)


@pytest.fixture
def engine(validation_engine, workflow_service, trigger_engine) -> CatalogRuleEngine:
    return CatalogRuleEngine(
        validation=validation_engine,
        workflows=workflow_service,
        triggers=trigger_engine,
    )


@pytest.fixture
def low_stock_workflow() -> dict:
    """Workflow that alerts inventory when stock drops below 5."""
    return {
        "name": "Low Stock Alert",
        "triggerEvents": ["update"],
        "conditions": [{"field": "stock", "operator": "lessThan", "value": 5}],
        "actions": [
            {
                "type": "sendNotification",
                "config": {"recipients": ["inventory@x.com"], "subject": "Low stock"},
            }
        ],
    }
