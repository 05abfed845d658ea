"""
Data sanitizers for logging.

Workflow action configs carry outbound API headers and notification
recipients; event payloads are tenant data. Both end up in log events, so the
masking processor runs before rendering.
"""

import re
from typing import Any

from structlog.types import EventDict, WrappedLogger

# Key fragments that mark a value as a secret
SENSITIVE_PATTERNS = [
    r"password",
    r"passwd",
    r"secret",
    r"token",
    r"api_key",
    r"apikey",
    r"x-api-key",
    r"authorization",
    r"cookie",
    r"credential",
    r"private",
]

_SENSITIVE_RE = re.compile("|".join(SENSITIVE_PATTERNS))

# Fields that should be partially masked
PARTIAL_MASK_FIELDS = {
    "tenant_id": lambda v: _mask_tenant_id(v),
    "email": lambda v: _mask_email(v),
    "recipient": lambda v: _mask_email(v),
    "assignee": lambda v: _mask_id(v, "user"),
    "actor_id": lambda v: _mask_id(v, "user"),
}


class MaskingProcessor:
    """
    Structlog processor that masks sensitive data in log events.
    """

    def __call__(
        self,
        logger: WrappedLogger,
        name: str,
        event_dict: EventDict,
    ) -> EventDict:
        """Process log event and mask sensitive data."""
        return sanitize_for_log(event_dict)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Sanitize a dictionary for logging.

    Args:
        data: Dictionary to sanitize

    Returns:
        Sanitized copy with masked sensitive data
    """
    sanitized = {}

    for key, value in data.items():
        key_text = str(key)
        if _is_sensitive_field(key_text):
            sanitized[key] = "***REDACTED***"
        elif key_text in PARTIAL_MASK_FIELDS:
            if value is not None:
                sanitized[key] = PARTIAL_MASK_FIELDS[key_text](str(value))
            else:
                sanitized[key] = None
        elif key_text == "recipients" and isinstance(value, (list, tuple)):
            sanitized[key] = [_mask_email(str(item)) for item in value]
        elif isinstance(value, dict):
            sanitized[key] = sanitize_for_log(value)
        elif isinstance(value, (list, tuple)):
            sanitized[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def mask_sensitive_data(data_type: str, value: str) -> str:
    """
    Mask sensitive data according to its type.

    Args:
        data_type: Type of data to mask
        value: Value to mask

    Returns:
        Masked value
    """
    if not value:
        return "***"

    maskers = {
        "tenant_id": _mask_tenant_id,
        "email": _mask_email,
        "user_id": lambda v: _mask_id(v, "user"),
        "url": _mask_url,
    }

    masker = maskers.get(data_type, lambda v: "***MASKED***")
    return masker(value)


def _is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data."""
    return bool(_SENSITIVE_RE.search(field_name.lower()))


def _mask_tenant_id(value: str) -> str:
    """Mask tenant ID keeping prefix and suffix."""
    if len(value) <= 6:
        return "***"
    return f"{value[:3]}***{value[-3:]}"


def _mask_email(value: str) -> str:
    """Mask email keeping domain."""
    if "@" in value:
        local, domain = value.rsplit("@", 1)
        if len(local) > 2:
            return f"{local[0]}***@{domain}"
        return f"***@{domain}"
    return value


def _mask_url(value: str) -> str:
    """Keep scheme and host, drop path and query."""
    match = re.match(r"^(https?://[^/?#]+)", value)
    if match:
        return f"{match.group(1)}/***"
    return "***"


def _mask_id(value: str, prefix: str) -> str:
    """Mask IDs keeping prefix and last 4 chars."""
    if len(value) > 8:
        return f"{prefix}_***{value[-4:]}"
    return f"{prefix}_***"
