"""
Context management for structured logging.
"""

import functools
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

import structlog

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
_tenant_id: ContextVar[Optional[str]] = ContextVar("tenant_id", default=None)

T = TypeVar("T")


def with_request_context(
    request_id: Optional[str] = None,
    correlation_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to add request context to all logs within a function.

    Args:
        request_id: Unique request identifier
        correlation_id: Correlation ID for distributed tracing
        tenant_id: Tenant identifier for multi-tenant context

    Returns:
        Decorated function with logging context
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            req_id = request_id or generate_request_id()
            corr_id = correlation_id or req_id

            request_token = _request_id.set(req_id)
            correlation_token = _correlation_id.set(corr_id)
            tenant_token = _tenant_id.set(tenant_id) if tenant_id else None

            bindings = {"request_id": req_id, "correlation_id": corr_id}
            if tenant_id:
                bindings["tenant_id"] = tenant_id

            try:
                with structlog.contextvars.bound_contextvars(**bindings):
                    return func(*args, **kwargs)
            finally:
                _request_id.reset(request_token)
                _correlation_id.reset(correlation_token)
                if tenant_token is not None:
                    _tenant_id.reset(tenant_token)

        return wrapper
    return decorator


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:12]}"


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return _request_id.get()


def get_tenant_id() -> Optional[str]:
    """Get the current tenant ID from context."""
    return _tenant_id.get()


def inject_correlation_id(headers: Dict[str, str]) -> Dict[str, str]:
    """
    Inject correlation ID into outbound HTTP headers for distributed tracing.

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        Headers with correlation ID added
    """
    corr_id = get_correlation_id()
    if corr_id:
        headers["X-Correlation-Id"] = corr_id
        headers["X-Request-Id"] = get_request_id() or corr_id

    tenant_id = get_tenant_id()
    if tenant_id:
        headers["X-Tenant-Id"] = tenant_id

    return headers


@contextmanager
def tenant_scope(tenant_id: str) -> Iterator[None]:
    """Bind a tenant id to the logging context for the duration of a block."""
    token = _tenant_id.set(tenant_id)
    try:
        with structlog.contextvars.bound_contextvars(tenant_id=tenant_id):
            yield
    finally:
        _tenant_id.reset(token)
