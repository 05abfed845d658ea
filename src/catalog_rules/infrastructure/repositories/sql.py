"""SQLAlchemy implementations of the repository ports.

Name uniqueness among a tenant's active records is enforced by a partial
unique index on (tenant_id, name) WHERE is_active; IntegrityError from that
index surfaces as ConflictError.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Table,
    func,
    select,
    text,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from catalog_rules.application.errors import ConflictError, NotFoundError
from catalog_rules.application.ports import (
    CategoryLookup,
    Page,
    RuleQuery,
    ValidationRuleRepository,
    WorkflowQuery,
    WorkflowRepository,
)
from catalog_rules.application.schemas import parse_action, parse_conditions
from catalog_rules.domain.rules import CategoryField, ValidationRule, ValidationType
from catalog_rules.domain.value_objects import TenantId, Value
from catalog_rules.domain.workflows import TriggerEvent, Workflow
from catalog_rules.infrastructure.logging.utilities import LoggingPort, log_repository_query
from catalog_rules.shared.logging.context import get_correlation_id


class Base(DeclarativeBase):
    pass


class ValidationRuleModel(Base):
    __tablename__ = "validation_rules"

    # Insertion order; breaks ties between records created in the same instant
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    field: Mapped[str] = mapped_column(String(32), nullable=False)
    validation_type: Mapped[str] = mapped_column(String(32), nullable=False)
    validation_value: Mapped[Any] = mapped_column(JSON, nullable=True)
    error_message: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_validation_rules_tenant_active_name",
            "tenant_id",
            "name",
            unique=True,
            sqlite_where=text("is_active"),
            postgresql_where=text("is_active"),
        ),
        {"sqlite_autoincrement": True},
    )


class WorkflowModel(Base):
    __tablename__ = "workflows"

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    trigger_events: Mapped[List[str]] = mapped_column(JSON, nullable=False)
    conditions: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)
    actions: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index(
            "uq_workflows_tenant_active_name",
            "tenant_id",
            "name",
            unique=True,
            sqlite_where=text("is_active"),
            postgresql_where=text("is_active"),
        ),
        {"sqlite_autoincrement": True},
    )


def create_schema(engine) -> None:
    """Create the rule engine tables."""
    Base.metadata.create_all(engine)


def _aware(moment: datetime) -> datetime:
    # SQLite drops the offset; stored values are always UTC
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def _by_id(session: Session, model: Any, record_id: str) -> Any:
    return session.scalars(select(model).where(model.id == record_id)).first()


def _rule_values(rule: ValidationRule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "tenant_id": rule.tenant_id.value,
        "name": rule.name,
        "description": rule.description,
        "field": rule.field.value,
        "validation_type": rule.validation_type.value,
        "validation_value": (
            rule.validation_value.to_primitive() if rule.validation_value is not None else None
        ),
        "error_message": rule.error_message,
        "is_active": rule.is_active,
        "priority": rule.priority,
        "created_at": rule.created_at,
        "updated_at": rule.updated_at,
    }


def _rule_from_model(model: ValidationRuleModel) -> ValidationRule:
    return ValidationRule(
        id=model.id,
        tenant_id=TenantId(model.tenant_id),
        name=model.name,
        description=model.description,
        field=CategoryField(model.field),
        validation_type=ValidationType(model.validation_type),
        validation_value=(
            Value.of(model.validation_value) if model.validation_value is not None else None
        ),
        error_message=model.error_message,
        is_active=model.is_active,
        priority=model.priority,
        created_at=_aware(model.created_at),
        updated_at=_aware(model.updated_at),
    )


def _workflow_values(workflow: Workflow) -> Dict[str, Any]:
    return {
        "id": workflow.id,
        "tenant_id": workflow.tenant_id.value,
        "name": workflow.name,
        "description": workflow.description,
        "trigger_events": [event.value for event in workflow.trigger_events],
        "conditions": [condition.to_dict() for condition in workflow.conditions],
        "actions": [action.to_dict() for action in workflow.actions],
        "is_active": workflow.is_active,
        "created_by": workflow.created_by,
        "updated_by": workflow.updated_by,
        "created_at": workflow.created_at,
        "updated_at": workflow.updated_at,
    }


def _workflow_from_model(model: WorkflowModel) -> Workflow:
    # Stored definitions were validated on write; reload leniently
    return Workflow(
        id=model.id,
        tenant_id=TenantId(model.tenant_id),
        name=model.name,
        description=model.description,
        trigger_events=tuple(TriggerEvent(event) for event in model.trigger_events),
        conditions=parse_conditions(model.conditions),
        actions=tuple(parse_action(action) for action in model.actions),
        is_active=model.is_active,
        created_by=model.created_by,
        updated_by=model.updated_by,
        created_at=_aware(model.created_at),
        updated_at=_aware(model.updated_at),
    )


RULE_SORT_COLUMNS = {
    "name": ValidationRuleModel.name,
    "field": ValidationRuleModel.field,
    "validation_type": ValidationRuleModel.validation_type,
    "priority": ValidationRuleModel.priority,
    "created_at": ValidationRuleModel.created_at,
    "updated_at": ValidationRuleModel.updated_at,
}

WORKFLOW_SORT_COLUMNS = {
    "name": WorkflowModel.name,
    "created_at": WorkflowModel.created_at,
    "updated_at": WorkflowModel.updated_at,
}


class SqlAlchemyValidationRuleRepository(ValidationRuleRepository, LoggingPort):
    """ValidationRuleRepository backed by a relational database."""

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize repository.

        Args:
            session_factory: Factory for SQLAlchemy sessions
        """
        super().__init__(logger_name="infrastructure.validation_rule_repository")
        self._sessions = session_factory

    def get_component_name(self) -> str:
        return "ValidationRuleRepository"

    @log_repository_query(query_type="insert", table_name="validation_rules")
    def add(self, rule: ValidationRule) -> ValidationRule:
        try:
            with self._sessions.begin() as session:
                session.add(ValidationRuleModel(**_rule_values(rule)))
        except IntegrityError as e:
            self._log_conflict(rule, e)
            raise ConflictError("validation_rule", rule.name) from e
        return rule

    @log_repository_query(query_type="update", table_name="validation_rules")
    def update(self, rule: ValidationRule) -> ValidationRule:
        try:
            with self._sessions.begin() as session:
                model = _by_id(session, ValidationRuleModel, rule.id)
                if model is None or model.tenant_id != rule.tenant_id.value:
                    raise NotFoundError("validation_rule", rule.id)
                for column, value in _rule_values(rule).items():
                    setattr(model, column, value)
        except IntegrityError as e:
            self._log_conflict(rule, e)
            raise ConflictError("validation_rule", rule.name) from e
        return rule

    def _log_conflict(self, rule: ValidationRule, error: IntegrityError) -> None:
        self._logger.warning(
            "validation_rule_name_conflict",
            tenant_id=rule.tenant_id.value,
            rule_id=rule.id,
            error_type=error.__class__.__name__,
            correlation_id=get_correlation_id(),
        )

    @log_repository_query(query_type="select", table_name="validation_rules")
    def get(self, tenant_id: TenantId, rule_id: str) -> Optional[ValidationRule]:
        with self._sessions() as session:
            model = _by_id(session, ValidationRuleModel, rule_id)
            if model is None or model.tenant_id != tenant_id.value:
                return None
            return _rule_from_model(model)

    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[ValidationRule]:
        statement = select(ValidationRuleModel).where(
            ValidationRuleModel.tenant_id == tenant_id.value,
            ValidationRuleModel.name == name,
            ValidationRuleModel.is_active.is_(True),
        )
        with self._sessions() as session:
            model = session.scalars(statement).first()
            return _rule_from_model(model) if model is not None else None

    @log_repository_query(query_type="select", table_name="validation_rules")
    def find_active(
        self, tenant_id: TenantId, field: Optional[CategoryField] = None
    ) -> List[ValidationRule]:
        statement = select(ValidationRuleModel).where(
            ValidationRuleModel.tenant_id == tenant_id.value,
            ValidationRuleModel.is_active.is_(True),
        )
        if field is not None:
            statement = statement.where(ValidationRuleModel.field == field.value)
        statement = statement.order_by(
            ValidationRuleModel.priority.asc(),
            ValidationRuleModel.seq.asc(),
        )
        with self._sessions() as session:
            return [_rule_from_model(model) for model in session.scalars(statement)]

    @log_repository_query(query_type="select", table_name="validation_rules")
    def query(self, tenant_id: TenantId, query: RuleQuery) -> Page[ValidationRule]:
        conditions = [ValidationRuleModel.tenant_id == tenant_id.value]
        if query.is_active is not None:
            conditions.append(ValidationRuleModel.is_active.is_(query.is_active))
        if query.field is not None:
            conditions.append(ValidationRuleModel.field == query.field.value)
        if query.validation_type is not None:
            conditions.append(ValidationRuleModel.validation_type == query.validation_type.value)

        column = RULE_SORT_COLUMNS[query.sort_by]
        order = column.desc() if query.sort_order == "desc" else column.asc()
        statement = (
            select(ValidationRuleModel)
            .where(*conditions)
            .order_by(order, ValidationRuleModel.seq.asc())
            .offset(query.offset)
            .limit(query.limit)
        )
        count = select(func.count()).select_from(ValidationRuleModel).where(*conditions)

        with self._sessions() as session:
            total = session.scalar(count) or 0
            items = [_rule_from_model(model) for model in session.scalars(statement)]
        return Page(items=items, total=total, page=query.page, limit=query.limit)


class SqlAlchemyWorkflowRepository(WorkflowRepository, LoggingPort):
    """WorkflowRepository backed by a relational database."""

    def __init__(self, session_factory: sessionmaker):
        super().__init__(logger_name="infrastructure.workflow_repository")
        self._sessions = session_factory

    def get_component_name(self) -> str:
        return "WorkflowRepository"

    @log_repository_query(query_type="insert", table_name="workflows")
    def add(self, workflow: Workflow) -> Workflow:
        try:
            with self._sessions.begin() as session:
                session.add(WorkflowModel(**_workflow_values(workflow)))
        except IntegrityError as e:
            self._log_conflict(workflow, e)
            raise ConflictError("workflow", workflow.name) from e
        return workflow

    @log_repository_query(query_type="update", table_name="workflows")
    def update(self, workflow: Workflow) -> Workflow:
        try:
            with self._sessions.begin() as session:
                model = _by_id(session, WorkflowModel, workflow.id)
                if model is None or model.tenant_id != workflow.tenant_id.value:
                    raise NotFoundError("workflow", workflow.id)
                for column, value in _workflow_values(workflow).items():
                    setattr(model, column, value)
        except IntegrityError as e:
            self._log_conflict(workflow, e)
            raise ConflictError("workflow", workflow.name) from e
        return workflow

    def _log_conflict(self, workflow: Workflow, error: IntegrityError) -> None:
        self._logger.warning(
            "workflow_name_conflict",
            tenant_id=workflow.tenant_id.value,
            workflow_id=workflow.id,
            error_type=error.__class__.__name__,
            correlation_id=get_correlation_id(),
        )

    @log_repository_query(query_type="select", table_name="workflows")
    def get(self, tenant_id: TenantId, workflow_id: str) -> Optional[Workflow]:
        with self._sessions() as session:
            model = _by_id(session, WorkflowModel, workflow_id)
            if model is None or model.tenant_id != tenant_id.value:
                return None
            return _workflow_from_model(model)

    def find_active_by_name(self, tenant_id: TenantId, name: str) -> Optional[Workflow]:
        statement = select(WorkflowModel).where(
            WorkflowModel.tenant_id == tenant_id.value,
            WorkflowModel.name == name,
            WorkflowModel.is_active.is_(True),
        )
        with self._sessions() as session:
            model = session.scalars(statement).first()
            return _workflow_from_model(model) if model is not None else None

    @log_repository_query(query_type="select", table_name="workflows")
    def find_active_for_event(self, tenant_id: TenantId, event: TriggerEvent) -> List[Workflow]:
        statement = (
            select(WorkflowModel)
            .where(
                WorkflowModel.tenant_id == tenant_id.value,
                WorkflowModel.is_active.is_(True),
            )
            .order_by(WorkflowModel.seq.asc())
        )
        with self._sessions() as session:
            models = list(session.scalars(statement))
        # Trigger events live in a JSON column; filter after load
        return [
            _workflow_from_model(model)
            for model in models
            if event.value in model.trigger_events
        ]

    @log_repository_query(query_type="select", table_name="workflows")
    def query(self, tenant_id: TenantId, query: WorkflowQuery) -> Page[Workflow]:
        conditions = [WorkflowModel.tenant_id == tenant_id.value]
        if not query.include_inactive:
            conditions.append(WorkflowModel.is_active.is_(True))
        if query.search:
            pattern = re.sub(r"([\\%_])", r"\\\1", query.search)
            conditions.append(WorkflowModel.name.ilike(f"%{pattern}%", escape="\\"))

        column = WORKFLOW_SORT_COLUMNS[query.sort_by]
        order = column.desc() if query.sort_order == "desc" else column.asc()
        statement = (
            select(WorkflowModel)
            .where(*conditions)
            .order_by(order, WorkflowModel.seq.asc())
            .offset(query.offset)
            .limit(query.limit)
        )
        count = select(func.count()).select_from(WorkflowModel).where(*conditions)

        with self._sessions() as session:
            total = session.scalar(count) or 0
            items = [_workflow_from_model(model) for model in session.scalars(statement)]
        return Page(items=items, total=total, page=query.page, limit=query.limit)


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class SqlAlchemyCategoryLookup(CategoryLookup):
    """
    CategoryLookup over the host application's category table.

    The table needs ``id`` and ``tenant_id`` columns; category fields map to
    snake_case columns unless ``column_names`` says otherwise.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        table: Table,
        column_names: Optional[Mapping[str, str]] = None,
    ):
        self._sessions = session_factory
        self._table = table
        self._column_names = dict(column_names or {})

    def exists_with_value(
        self,
        tenant_id: TenantId,
        field: CategoryField,
        value: Any,
        exclude_id: Optional[str] = None,
    ) -> bool:
        column_name = self._column_names.get(field.value, _snake_case(field.value))
        columns = self._table.c
        statement = select(columns.id).where(
            columns.tenant_id == tenant_id.value,
            columns[column_name] == value,
        )
        if exclude_id is not None:
            statement = statement.where(columns.id != exclude_id)

        with self._sessions() as session:
            return session.execute(statement.limit(1)).first() is not None
