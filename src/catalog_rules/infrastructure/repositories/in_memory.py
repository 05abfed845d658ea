"""In-memory repository implementations for tests and development.

Name uniqueness among a tenant's active records is checked and applied under
a lock, so concurrent writers cannot both claim the same name.
"""

import threading
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar

from catalog_rules.application.errors import ConflictError, NotFoundError
from catalog_rules.application.ports import (
    CategoryLookup,
    Page,
    RuleQuery,
    ValidationRuleRepository,
    WorkflowQuery,
    WorkflowRepository,
)
from catalog_rules.domain.rules import CategoryField, ValidationRule
from catalog_rules.domain.value_objects import TenantId, Value
from catalog_rules.domain.workflows import TriggerEvent, Workflow
from catalog_rules.domain.workflows.operators import values_equal
from catalog_rules.infrastructure.logging.utilities import LoggingPort, log_repository_query
from catalog_rules.shared.logging.context import get_correlation_id

R = TypeVar("R", ValidationRule, Workflow)

RULE_SORT_KEYS: Dict[str, Callable[[ValidationRule], Any]] = {
    "name": lambda rule: rule.name,
    "field": lambda rule: rule.field.value,
    "validation_type": lambda rule: rule.validation_type.value,
    "priority": lambda rule: rule.priority,
    "created_at": lambda rule: rule.created_at,
    "updated_at": lambda rule: rule.updated_at,
}

WORKFLOW_SORT_KEYS: Dict[str, Callable[[Workflow], Any]] = {
    "name": lambda workflow: workflow.name,
    "created_at": lambda workflow: workflow.created_at,
    "updated_at": lambda workflow: workflow.updated_at,
}


def _paginate(records: List[R], page: int, limit: int) -> Page[R]:
    offset = (page - 1) * limit
    return Page(items=records[offset:offset + limit], total=len(records), page=page, limit=limit)


class _NamedRecordStore(Generic[R]):
    """Records keyed by id, insertion ordered, with active-name uniqueness."""

    def __init__(self, resource: str) -> None:
        self._resource = resource
        self._records: Dict[str, R] = {}
        self._lock = threading.Lock()

    def _name_taken(self, record: R) -> bool:
        return any(
            other.id != record.id
            and other.is_active
            and other.tenant_id == record.tenant_id
            and other.name == record.name
            for other in self._records.values()
        )

    def insert(self, record: R) -> R:
        with self._lock:
            if record.is_active and self._name_taken(record):
                raise ConflictError(self._resource, record.name)
            self._records[record.id] = record
        return record

    def replace(self, record: R) -> R:
        with self._lock:
            current = self._records.get(record.id)
            if current is None or current.tenant_id != record.tenant_id:
                raise NotFoundError(self._resource, record.id)
            if record.is_active and self._name_taken(record):
                raise ConflictError(self._resource, record.name)
            self._records[record.id] = record
        return record

    def snapshot(self, tenant_id: TenantId) -> List[R]:
        with self._lock:
            return [record for record in self._records.values() if record.tenant_id == tenant_id]

    def get(self, tenant_id: TenantId, record_id: str) -> Optional[R]:
        record = self._records.get(record_id)
        if record is None or record.tenant_id != tenant_id:
            return None
        return record

    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[R]:
        for record in self.snapshot(tenant_id):
            if record.is_active and record.name == name:
                return record
        return None


class InMemoryValidationRuleRepository(ValidationRuleRepository, LoggingPort):
    """In-memory implementation of ValidationRuleRepository."""

    def __init__(self) -> None:
        super().__init__(logger_name="infrastructure.validation_rule_repository")
        self._store: _NamedRecordStore[ValidationRule] = _NamedRecordStore("validation_rule")
        self._logger.info(
            "validation_rule_repository_initialized",
            implementation="in_memory",
            correlation_id=get_correlation_id(),
        )

    def get_component_name(self) -> str:
        return "ValidationRuleRepository"

    @log_repository_query(query_type="insert", table_name="validation_rules")
    def add(self, rule: ValidationRule) -> ValidationRule:
        return self._store.insert(rule)

    @log_repository_query(query_type="update", table_name="validation_rules")
    def update(self, rule: ValidationRule) -> ValidationRule:
        return self._store.replace(rule)

    @log_repository_query(query_type="select", table_name="validation_rules")
    def get(self, tenant_id: TenantId, rule_id: str) -> Optional[ValidationRule]:
        return self._store.get(tenant_id, rule_id)

    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[ValidationRule]:
        return self._store.find_active_by_name(tenant_id, name)

    @log_repository_query(query_type="select", table_name="validation_rules")
    def find_active(
        self, tenant_id: TenantId, field: Optional[CategoryField] = None
    ) -> List[ValidationRule]:
        rules = [
            rule
            for rule in self._store.snapshot(tenant_id)
            if rule.is_active and (field is None or rule.field == field)
        ]
        # Stable sort: equal priorities keep insertion (creation) order
        return sorted(rules, key=lambda rule: rule.priority)

    @log_repository_query(query_type="select", table_name="validation_rules")
    def query(self, tenant_id: TenantId, query: RuleQuery) -> Page[ValidationRule]:
        rules = [
            rule
            for rule in self._store.snapshot(tenant_id)
            if (query.is_active is None or rule.is_active == query.is_active)
            and (query.field is None or rule.field == query.field)
            and (query.validation_type is None or rule.validation_type == query.validation_type)
        ]
        rules.sort(key=RULE_SORT_KEYS[query.sort_by], reverse=query.sort_order == "desc")
        return _paginate(rules, query.page, query.limit)


class InMemoryWorkflowRepository(WorkflowRepository, LoggingPort):
    """In-memory implementation of WorkflowRepository."""

    def __init__(self) -> None:
        super().__init__(logger_name="infrastructure.workflow_repository")
        self._store: _NamedRecordStore[Workflow] = _NamedRecordStore("workflow")
        self._logger.info(
            "workflow_repository_initialized",
            implementation="in_memory",
            correlation_id=get_correlation_id(),
        )

    def get_component_name(self) -> str:
        return "WorkflowRepository"

    @log_repository_query(query_type="insert", table_name="workflows")
    def add(self, workflow: Workflow) -> Workflow:
        return self._store.insert(workflow)

    @log_repository_query(query_type="update", table_name="workflows")
    def update(self, workflow: Workflow) -> Workflow:
        return self._store.replace(workflow)

    @log_repository_query(query_type="select", table_name="workflows")
    def get(self, tenant_id: TenantId, workflow_id: str) -> Optional[Workflow]:
        return self._store.get(tenant_id, workflow_id)

    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[Workflow]:
        return self._store.find_active_by_name(tenant_id, name)

    @log_repository_query(query_type="select", table_name="workflows")
    def find_active_for_event(self, tenant_id: TenantId, event: TriggerEvent) -> List[Workflow]:
        return [
            workflow
            for workflow in self._store.snapshot(tenant_id)
            if workflow.is_active and workflow.subscribes_to(event)
        ]

    @log_repository_query(query_type="select", table_name="workflows")
    def query(self, tenant_id: TenantId, query: WorkflowQuery) -> Page[Workflow]:
        needle = query.search.lower() if query.search else None
        workflows = [
            workflow
            for workflow in self._store.snapshot(tenant_id)
            if (query.include_inactive or workflow.is_active)
            and (needle is None or needle in workflow.name.lower())
        ]
        workflows.sort(key=WORKFLOW_SORT_KEYS[query.sort_by], reverse=query.sort_order == "desc")
        return _paginate(workflows, query.page, query.limit)


class InMemoryCategoryLookup(CategoryLookup):
    """Category field maps held in memory, keyed by tenant and category id."""

    def __init__(self) -> None:
        self._categories: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def put(self, tenant_id: TenantId, category_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            self._categories[(tenant_id.value, category_id)] = dict(fields)

    def remove(self, tenant_id: TenantId, category_id: str) -> None:
        with self._lock:
            self._categories.pop((tenant_id.value, category_id), None)

    def exists_with_value(
        self,
        tenant_id: TenantId,
        field: CategoryField,
        value: Any,
        exclude_id: Optional[str] = None,
    ) -> bool:
        expected = Value.of(value)
        with self._lock:
            items = list(self._categories.items())
        return any(
            tenant == tenant_id.value
            and category_id != exclude_id
            and values_equal(fields.get(field.value), expected)
            for (tenant, category_id), fields in items
        )
