"""Application ports (interfaces) for the catalog rules engine.

This module defines the contracts between the engines and the systems around
them: record storage, the category store used by uniqueness checks, and the
collaborators that carry out workflow actions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from math import ceil
from typing import Any, Generic, List, Mapping, Optional, TypeVar

from catalog_rules.domain.rules import CategoryField, ValidationRule, ValidationType
from catalog_rules.domain.value_objects import TenantId
from catalog_rules.domain.workflows import (
    CreateTaskAction,
    SendNotificationAction,
    TriggerApiAction,
    TriggerEvent,
    UpdateFieldAction,
    Workflow,
)

T = TypeVar("T")

SORT_ORDERS = ("asc", "desc")
RULE_SORT_FIELDS = ("name", "field", "validation_type", "priority", "created_at", "updated_at")
WORKFLOW_SORT_FIELDS = ("name", "created_at", "updated_at")
MAX_PAGE_SIZE = 100


def _check_paging(page: int, limit: int, sort_by: str, sort_order: str, allowed: tuple) -> None:
    if page < 1:
        raise ValueError("page must be at least 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    if sort_by not in allowed:
        raise ValueError(f"sort_by must be one of {', '.join(allowed)}")
    if sort_order not in SORT_ORDERS:
        raise ValueError("sort_order must be asc or desc")


@dataclass(frozen=True)
class RuleQuery:
    """Listing parameters for validation rules.

    ``is_active`` None lists active and inactive rules alike.
    """

    page: int = 1
    limit: int = 10
    sort_by: str = "created_at"
    sort_order: str = "desc"
    field: Optional[CategoryField] = None
    validation_type: Optional[ValidationType] = None
    is_active: Optional[bool] = True

    def __post_init__(self) -> None:
        _check_paging(self.page, self.limit, self.sort_by, self.sort_order, RULE_SORT_FIELDS)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class WorkflowQuery:
    """Listing parameters for workflows; ``search`` matches names case-insensitively."""

    page: int = 1
    limit: int = 50
    sort_by: str = "created_at"
    sort_order: str = "desc"
    include_inactive: bool = False
    search: Optional[str] = None

    def __post_init__(self) -> None:
        _check_paging(self.page, self.limit, self.sort_by, self.sort_order, WORKFLOW_SORT_FIELDS)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing."""

    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0


class ValidationRuleRepository(ABC):
    """Port for validation rule persistence."""

    @abstractmethod
    def add(self, rule: ValidationRule) -> ValidationRule:
        """
        Store a new rule.

        Implementations enforce name uniqueness among the tenant's active
        rules atomically with the insert.

        Args:
            rule: Rule to store

        Returns:
            Stored rule

        Raises:
            ConflictError: If an active rule of the tenant has the same name
        """
        pass

    @abstractmethod
    def update(self, rule: ValidationRule) -> ValidationRule:
        """
        Replace a stored rule with a revised version.

        Raises:
            ConflictError: If the revision would duplicate an active name
            NotFoundError: If the rule does not exist
        """
        pass

    @abstractmethod
    def get(self, tenant_id: TenantId, rule_id: str) -> Optional[ValidationRule]:
        """
        Find a rule by id within a tenant.

        Args:
            tenant_id: Tenant identifier
            rule_id: Rule identifier

        Returns:
            Rule if found, None otherwise
        """
        pass

    @abstractmethod
    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[ValidationRule]:
        pass

    @abstractmethod
    def find_active(
        self, tenant_id: TenantId, field: Optional[CategoryField] = None
    ) -> List[ValidationRule]:
        """
        Load active rules, ordered by priority ascending then creation time.

        Args:
            tenant_id: Tenant identifier
            field: Restrict to rules on this field

        Returns:
            Ordered list of rules
        """
        pass

    @abstractmethod
    def query(self, tenant_id: TenantId, query: RuleQuery) -> Page[ValidationRule]:
        pass


class WorkflowRepository(ABC):
    """Port for workflow persistence."""

    @abstractmethod
    def add(self, workflow: Workflow) -> Workflow:
        """
        Store a new workflow.

        Raises:
            ConflictError: If an active workflow of the tenant has the same name
        """
        pass

    @abstractmethod
    def update(self, workflow: Workflow) -> Workflow:
        pass

    @abstractmethod
    def get(self, tenant_id: TenantId, workflow_id: str) -> Optional[Workflow]:
        pass

    @abstractmethod
    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[Workflow]:
        pass

    @abstractmethod
    def find_active_for_event(self, tenant_id: TenantId, event: TriggerEvent) -> List[Workflow]:
        """
        Load active workflows subscribed to an event, in creation order.

        Args:
            tenant_id: Tenant identifier
            event: Lifecycle event that fired

        Returns:
            Workflows to run, in load order
        """
        pass

    @abstractmethod
    def query(self, tenant_id: TenantId, query: WorkflowQuery) -> Page[Workflow]:
        pass


class CategoryLookup(ABC):
    """Port onto the category store, used by uniqueness rules."""

    @abstractmethod
    def exists_with_value(
        self,
        tenant_id: TenantId,
        field: CategoryField,
        value: Any,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """
        Check whether another category of the tenant already has this value.

        Args:
            tenant_id: Tenant identifier
            field: Category field to compare
            value: Candidate value
            exclude_id: Category to ignore (the one being updated)

        Returns:
            True if a sibling category has the same value
        """
        pass


class NotificationSender(ABC):
    """Port for delivering notifications."""

    @abstractmethod
    def send(
        self, tenant_id: TenantId, action: SendNotificationAction, payload: Mapping[str, Any]
    ) -> None:
        pass


class FieldUpdater(ABC):
    """Port for writing a field value back to an entity."""

    @abstractmethod
    def update_field(
        self, tenant_id: TenantId, action: UpdateFieldAction, payload: Mapping[str, Any]
    ) -> None:
        pass


class TaskCreator(ABC):
    """Port for opening tasks."""

    @abstractmethod
    def create_task(
        self, tenant_id: TenantId, action: CreateTaskAction, payload: Mapping[str, Any]
    ) -> None:
        pass


class ApiCaller(ABC):
    """Port for outbound API calls."""

    @abstractmethod
    def call(
        self, tenant_id: TenantId, action: TriggerApiAction, payload: Mapping[str, Any]
    ) -> None:
        """
        Send the request described by the action.

        Raises:
            Exception: Any transport or HTTP status failure; the dispatcher
                records it as a failed action.
        """
        pass
