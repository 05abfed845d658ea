"""Logging helpers shared by repository and collaborator implementations.

This module defines logging decorators for consistent, timed logging across
all port implementations.
"""

import functools
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, TypeVar

from catalog_rules.shared.logging import get_logger
from catalog_rules.shared.logging.context import get_correlation_id

T = TypeVar("T")

SLOW_QUERY_THRESHOLD_MS = 100


class LoggingPort(ABC):
    """Base for port implementations with built-in logging."""

    def __init__(self, logger_name: Optional[str] = None):
        """Initialize port with logger."""
        self._logger = get_logger(logger_name or self.__class__.__name__)

    @abstractmethod
    def get_component_name(self) -> str:
        """Get component name for logging context."""
        pass


def _tenant_from_args(args: tuple, kwargs: dict) -> Optional[str]:
    """Find the tenant of a call: a TenantId argument or a record's tenant_id."""
    candidate: Any = kwargs.get("tenant_id")
    if candidate is None and args:
        candidate = args[0]
    if candidate is None:
        return None
    if hasattr(candidate, "tenant_id"):
        candidate = candidate.tenant_id
    return getattr(candidate, "value", candidate if isinstance(candidate, str) else None)


def log_repository_query(
    query_type: str, table_name: Optional[str] = None
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for repository operations.

    Args:
        query_type: Type of query (select, insert, update)
        table_name: Name of the table or collection being queried

    Returns:
        Decorated function with query logging
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            logger = getattr(self, "_logger", None) or get_logger(
                f"repository.{self.__class__.__name__}"
            )
            start_time = time.time()
            correlation_id = get_correlation_id()
            tenant_id = _tenant_from_args(args, kwargs)
            table = table_name or "unknown"

            logger.debug(
                "repository_query_starting",
                query_type=query_type,
                table=table,
                tenant_id=tenant_id,
                function=func.__name__,
                correlation_id=correlation_id,
            )

            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                logger.error(
                    "repository_query_failed",
                    query_type=query_type,
                    table=table,
                    tenant_id=tenant_id,
                    function=func.__name__,
                    duration_ms=(time.time() - start_time) * 1000,
                    error=str(e),
                    error_type=e.__class__.__name__,
                    correlation_id=correlation_id,
                )
                raise

            duration_ms = (time.time() - start_time) * 1000
            if result is None:
                rows = 0
            elif hasattr(result, "__len__"):
                rows = len(result)
            elif hasattr(result, "items"):
                rows = len(result.items)
            else:
                rows = 1

            logger.debug(
                "repository_query_completed",
                query_type=query_type,
                table=table,
                tenant_id=tenant_id,
                function=func.__name__,
                duration_ms=duration_ms,
                rows=rows,
                correlation_id=correlation_id,
            )
            if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                logger.warning(
                    "slow_repository_query",
                    query_type=query_type,
                    table=table,
                    tenant_id=tenant_id,
                    duration_ms=duration_ms,
                    threshold_ms=SLOW_QUERY_THRESHOLD_MS,
                    correlation_id=correlation_id,
                )
            return result

        return wrapper

    return decorator


def log_port_operation(operation_name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator for collaborator operations (notifications, tasks, API calls).

    Failures are logged and re-raised; the dispatcher decides what to do.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs) -> T:
            logger = getattr(self, "_logger", None) or get_logger(self.__class__.__name__)
            correlation_id = get_correlation_id()
            start_time = time.time()

            try:
                result = func(self, *args, **kwargs)
            except Exception as e:
                logger.error(
                    f"{operation_name}_failed",
                    component=self.__class__.__name__,
                    tenant_id=_tenant_from_args(args, kwargs),
                    duration_ms=(time.time() - start_time) * 1000,
                    error=str(e),
                    error_type=e.__class__.__name__,
                    correlation_id=correlation_id,
                )
                raise

            logger.info(
                f"{operation_name}_completed",
                component=self.__class__.__name__,
                tenant_id=_tenant_from_args(args, kwargs),
                duration_ms=(time.time() - start_time) * 1000,
                correlation_id=correlation_id,
            )
            return result

        return wrapper

    return decorator
