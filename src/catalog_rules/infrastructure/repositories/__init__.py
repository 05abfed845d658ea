"""Repository implementations."""

from .in_memory import (
    InMemoryCategoryLookup,
    InMemoryValidationRuleRepository,
    InMemoryWorkflowRepository,
)
from .sql import (
    SqlAlchemyCategoryLookup,
    SqlAlchemyValidationRuleRepository,
    SqlAlchemyWorkflowRepository,
    create_schema,
)

__all__ = [
    "InMemoryCategoryLookup",
    "InMemoryValidationRuleRepository",
    "InMemoryWorkflowRepository",
    "SqlAlchemyCategoryLookup",
    "SqlAlchemyValidationRuleRepository",
    "SqlAlchemyWorkflowRepository",
    "create_schema",
]
