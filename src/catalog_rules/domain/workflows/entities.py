"""Entities for the workflow context."""

from dataclasses import dataclass, replace
from dataclasses import field as dataclass_field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.value_objects import TenantId
from .value_objects import Action, Condition, TriggerEvent

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Workflow:
    """
    A tenant automation: when one of its trigger events fires and all of its
    conditions hold, its actions run in order.
    """

    id: str
    tenant_id: TenantId
    name: str
    trigger_events: Tuple[TriggerEvent, ...]
    conditions: Tuple[Condition, ...] = ()
    actions: Tuple[Action, ...] = ()
    description: Optional[str] = None
    is_active: bool = True
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = dataclass_field(default_factory=_utcnow)
    updated_at: datetime = dataclass_field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        problems = []

        name = (self.name or "").strip()
        if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
            problems.append(
                f"name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters"
            )
        else:
            object.__setattr__(self, "name", name)

        if self.description is not None and len(self.description) > DESCRIPTION_MAX_LENGTH:
            problems.append(f"description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")

        # de-duplicate, keeping first occurrence order
        events = tuple(dict.fromkeys(self.trigger_events or ()))
        if not events:
            problems.append("at least one trigger event is required")
        object.__setattr__(self, "trigger_events", events)
        object.__setattr__(self, "conditions", tuple(self.conditions or ()))
        object.__setattr__(self, "actions", tuple(self.actions or ()))

        if problems:
            raise DefinitionError("Invalid workflow", problems)

    @classmethod
    def create(
        cls,
        tenant_id: TenantId,
        name: str,
        trigger_events: Tuple[TriggerEvent, ...],
        conditions: Tuple[Condition, ...] = (),
        actions: Tuple[Action, ...] = (),
        description: Optional[str] = None,
        is_active: bool = True,
        created_by: Optional[str] = None,
    ) -> "Workflow":
        now = _utcnow()
        return cls(
            id=uuid4().hex,
            tenant_id=tenant_id,
            name=name,
            trigger_events=trigger_events,
            conditions=conditions,
            actions=actions,
            description=description,
            is_active=is_active,
            created_by=created_by,
            updated_by=created_by,
            created_at=now,
            updated_at=now,
        )

    def subscribes_to(self, event: TriggerEvent) -> bool:
        return event in self.trigger_events

    def revise(self, updated_by: Optional[str] = None, **changes: Any) -> "Workflow":
        """Return a re-validated copy with changes applied."""
        return replace(
            self,
            updated_at=_utcnow(),
            updated_by=updated_by if updated_by is not None else self.updated_by,
            **changes,
        )

    def deactivate(self, updated_by: Optional[str] = None) -> "Workflow":
        return self.revise(updated_by=updated_by, is_active=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenantId": self.tenant_id.value,
            "name": self.name,
            "description": self.description,
            "triggerEvents": [event.value for event in self.trigger_events],
            "conditions": [condition.to_dict() for condition in self.conditions],
            "actions": [action.to_dict() for action in self.actions],
            "isActive": self.is_active,
            "createdBy": self.created_by,
            "updatedBy": self.updated_by,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

    def __str__(self) -> str:
        events = ",".join(event.value for event in self.trigger_events)
        return f"Workflow({self.name}, events={events})"
