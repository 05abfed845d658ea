"""
Composition root: wires configuration, repositories and collaborators into a
CatalogRuleEngine.
"""

from typing import Mapping, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from catalog_rules.application.config import EngineConfig, load_config
from catalog_rules.application.engine import CatalogRuleEngine
from catalog_rules.application.ports import (
    ApiCaller,
    CategoryLookup,
    FieldUpdater,
    NotificationSender,
    TaskCreator,
    ValidationRuleRepository,
    WorkflowRepository,
)
from catalog_rules.application.services import (
    ActionDispatcher,
    ConditionEvaluator,
    ValidationEngine,
    WorkflowService,
    WorkflowTriggerEngine,
)
from catalog_rules.infrastructure.actions import (
    HttpApiCaller,
    LoggingFieldUpdater,
    LoggingNotificationSender,
    LoggingTaskCreator,
)
from catalog_rules.infrastructure.repositories import (
    InMemoryCategoryLookup,
    InMemoryValidationRuleRepository,
    InMemoryWorkflowRepository,
    SqlAlchemyValidationRuleRepository,
    SqlAlchemyWorkflowRepository,
    create_schema,
)
from catalog_rules.shared.logging import configure_logging, get_logger


def build_repositories(config: EngineConfig):
    """
    Pick repository implementations for the configuration.

    Returns:
        Tuple of (rule repository, workflow repository)
    """
    if config.DATABASE_URL is None:
        return InMemoryValidationRuleRepository(), InMemoryWorkflowRepository()

    engine = create_engine(config.DATABASE_URL)
    create_schema(engine)
    sessions = sessionmaker(bind=engine, expire_on_commit=False)
    return SqlAlchemyValidationRuleRepository(sessions), SqlAlchemyWorkflowRepository(sessions)


def build_engine(
    config: Optional[EngineConfig] = None,
    *,
    settings: Optional[Mapping[str, str]] = None,
    rule_repository: Optional[ValidationRuleRepository] = None,
    workflow_repository: Optional[WorkflowRepository] = None,
    category_lookup: Optional[CategoryLookup] = None,
    notification_sender: Optional[NotificationSender] = None,
    field_updater: Optional[FieldUpdater] = None,
    task_creator: Optional[TaskCreator] = None,
    api_caller: Optional[ApiCaller] = None,
    setup_logging: bool = True,
) -> CatalogRuleEngine:
    """
    Build a fully wired engine.

    Any collaborator passed in replaces the default implementation.

    Args:
        config: Engine configuration; loaded from settings (or the
            environment) when omitted
        settings: Settings mapping used when config is omitted
        setup_logging: Configure structlog from the configuration

    Returns:
        CatalogRuleEngine ready to hand to the category service
    """
    config = config or load_config(settings)

    if setup_logging:
        configure_logging(
            environment=config.ENVIRONMENT.value,
            log_level=config.LOG_LEVEL,
            json_logs=config.json_logs,
        )
    logger = get_logger("infrastructure.bootstrap")

    if rule_repository is None or workflow_repository is None:
        default_rules, default_workflows = build_repositories(config)
        rule_repository = rule_repository or default_rules
        workflow_repository = workflow_repository or default_workflows

    if category_lookup is None:
        # Uniqueness checks then only see categories registered in memory
        logger.warning("category_lookup_defaulted", implementation="in_memory")
        category_lookup = InMemoryCategoryLookup()

    evaluator = ConditionEvaluator(strict=config.RULES_STRICT_MODE)
    dispatcher = ActionDispatcher(
        notification_sender=notification_sender or LoggingNotificationSender(),
        field_updater=field_updater or LoggingFieldUpdater(),
        task_creator=task_creator or LoggingTaskCreator(),
        api_caller=api_caller or HttpApiCaller(timeout_seconds=config.TRIGGER_API_TIMEOUT_SECONDS),
    )

    engine = CatalogRuleEngine(
        validation=ValidationEngine(rule_repository, category_lookup),
        workflows=WorkflowService(workflow_repository, evaluator),
        triggers=WorkflowTriggerEngine(
            workflow_repository,
            evaluator,
            dispatcher,
            max_workers=config.WORKFLOW_MAX_WORKERS,
        ),
    )

    logger.info(
        "catalog_rule_engine_ready",
        environment=config.ENVIRONMENT.value,
        strict_mode=config.RULES_STRICT_MODE,
        max_workers=config.WORKFLOW_MAX_WORKERS,
        persistence="sqlalchemy" if config.DATABASE_URL else "in_memory",
    )
    return engine
