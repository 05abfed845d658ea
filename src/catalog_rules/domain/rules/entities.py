"""Entities for the validation rules context."""

from dataclasses import dataclass, replace
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Pattern
from uuid import uuid4
import re

from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.value_objects import TenantId, Value, ValueKind
from .value_objects import CategoryField, ValidationType

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
ERROR_MESSAGE_MAX_LENGTH = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ValidationRule:
    """
    A tenant-defined constraint on one category field.

    The definition invariant (validation_value matching validation_type) is
    checked every time an instance is built, so a rule that exists is always
    evaluable. Pattern rules keep their compiled expression.
    """

    id: str
    tenant_id: TenantId
    name: str
    field: CategoryField
    validation_type: ValidationType
    error_message: str
    validation_value: Optional[Value] = None
    description: Optional[str] = None
    is_active: bool = True
    priority: int = 0
    created_at: datetime = dataclass_field(default_factory=_utcnow)
    updated_at: datetime = dataclass_field(default_factory=_utcnow)
    _compiled_pattern: Optional[Pattern[str]] = dataclass_field(
        default=None, init=False, compare=False, repr=False
    )

    def __post_init__(self) -> None:
        problems = []

        name = (self.name or "").strip()
        if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
            problems.append(
                f"name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            )
        else:
            object.__setattr__(self, "name", name)

        message = (self.error_message or "").strip()
        if not message or len(message) > ERROR_MESSAGE_MAX_LENGTH:
            problems.append(
                f"error message must be between 1 and {ERROR_MESSAGE_MAX_LENGTH} characters"
            )
        else:
            object.__setattr__(self, "error_message", message)

        if self.description is not None and len(self.description) > DESCRIPTION_MAX_LENGTH:
            problems.append(f"description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")

        if isinstance(self.priority, bool) or not isinstance(self.priority, int) or self.priority < 0:
            problems.append("priority must be a non-negative integer")

        if not self.created_at.tzinfo or not self.updated_at.tzinfo:
            problems.append("timestamps must be timezone-aware")

        if problems:
            raise DefinitionError("Invalid validation rule", problems)

        self._validate_definition()

    def _validate_definition(self) -> None:
        """Check that validation_value fits validation_type."""
        value = self.validation_value

        if self.validation_type.is_length:
            if value is None or value.kind != ValueKind.NUMBER or value.raw < 0:
                raise DefinitionError(
                    f"Validation value for {self.validation_type.value} must be a non-negative number"
                )
        elif self.validation_type == ValidationType.PATTERN:
            if value is None or value.kind != ValueKind.STRING:
                raise DefinitionError("Validation value for pattern must be a string")
            try:
                compiled = re.compile(value.raw)
            except re.error:
                raise DefinitionError(
                    "Validation value for pattern must be a valid regular expression"
                )
            object.__setattr__(self, "_compiled_pattern", compiled)
        # required, unique and custom take any value or none

    @classmethod
    def create(
        cls,
        tenant_id: TenantId,
        name: str,
        field: CategoryField,
        validation_type: ValidationType,
        error_message: str,
        validation_value: Optional[Value] = None,
        description: Optional[str] = None,
        is_active: bool = True,
        priority: int = 0,
    ) -> "ValidationRule":
        """Factory method for a new rule with a generated id."""
        now = _utcnow()
        return cls(
            id=uuid4().hex,
            tenant_id=tenant_id,
            name=name,
            field=field,
            validation_type=validation_type,
            error_message=error_message,
            validation_value=validation_value,
            description=description,
            is_active=is_active,
            priority=priority,
            created_at=now,
            updated_at=now,
        )

    def revise(self, **changes: Any) -> "ValidationRule":
        """Return a copy with changes applied; the whole definition is re-validated."""
        return replace(self, updated_at=_utcnow(), **changes)

    def deactivate(self) -> "ValidationRule":
        """Soft delete."""
        return self.revise(is_active=False)

    @property
    def pattern(self) -> Optional[Pattern[str]]:
        return self._compiled_pattern

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "tenantId": self.tenant_id.value,
            "name": self.name,
            "description": self.description,
            "field": self.field.value,
            "validationType": self.validation_type.value,
            "validationValue": (
                self.validation_value.to_primitive() if self.validation_value is not None else None
            ),
            "errorMessage": self.error_message,
            "isActive": self.is_active,
            "priority": self.priority,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def __str__(self) -> str:
        return f"ValidationRule({self.name}, type={self.validation_type.value}, field={self.field.value})"
