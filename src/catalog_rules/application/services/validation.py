"""Validation engine: rule administration and candidate evaluation."""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from catalog_rules.application.errors import ConflictError, NotFoundError
from catalog_rules.application.ports import (
    CategoryLookup,
    Page,
    RuleQuery,
    ValidationRuleRepository,
)
from catalog_rules.application.schemas import (
    ValidationRuleDraft,
    ValidationRulePatch,
    parse_rule_draft,
    parse_rule_patch,
)
from catalog_rules.domain.errors import DefinitionError
from catalog_rules.domain.rules import CategoryField, ValidationRule, ValidationType
from catalog_rules.domain.value_objects import TenantId, is_number
from catalog_rules.shared.logging import AuditEventType, AuditLogger, get_logger
from catalog_rules.shared.logging.context import get_correlation_id

RESOURCE = "validation_rule"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of evaluating a candidate; errors are in rule priority order."""

    is_valid: bool
    errors: Tuple[str, ...] = ()

    @classmethod
    def from_errors(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=tuple(errors))

    def to_dict(self) -> Dict[str, Any]:
        return {"isValid": self.is_valid, "errors": list(self.errors)}


class ValidationEngine:
    """
    Checks candidate category records against the tenant's active rules and
    administers those rules.
    """

    def __init__(
        self,
        rule_repository: ValidationRuleRepository,
        category_lookup: CategoryLookup,
    ) -> None:
        """
        Initialize engine with dependencies.

        Args:
            rule_repository: Repository for rule persistence
            category_lookup: Category store used by unique rules
        """
        self._rules = rule_repository
        self._categories = category_lookup
        self._logger = get_logger("application.validation")
        self._audit = AuditLogger("validation_rules")

    def define_rule(
        self,
        tenant_id: Union[TenantId, str],
        draft: Union[ValidationRuleDraft, Mapping[str, Any]],
    ) -> ValidationRule:
        """
        Create a validation rule.

        Args:
            tenant_id: Owning tenant
            draft: Rule definition (schema instance or raw mapping)

        Returns:
            The persisted rule

        Raises:
            DefinitionError: If the definition is malformed or inconsistent
            ConflictError: If an active rule of the tenant has the same name
        """
        tenant = TenantId.of(tenant_id)
        correlation_id = get_correlation_id()

        try:
            rule = parse_rule_draft(draft).to_rule(tenant)
        except DefinitionError as e:
            self._logger.warning(
                "validation_rule_definition_rejected",
                tenant_id=tenant.value,
                errors=e.errors,
                correlation_id=correlation_id,
            )
            raise

        if rule.is_active and self._rules.find_active_by_name(tenant, rule.name) is not None:
            raise ConflictError(RESOURCE, rule.name)

        saved = self._rules.add(rule)

        self._logger.info(
            "validation_rule_defined",
            tenant_id=tenant.value,
            rule_id=saved.id,
            field=saved.field.value,
            validation_type=saved.validation_type.value,
            priority=saved.priority,
            correlation_id=correlation_id,
        )
        self._audit.log_audit_event(
            AuditEventType.CREATE, RESOURCE, saved.id, tenant.value, after=saved.to_dict()
        )
        return saved

    def evaluate(
        self,
        tenant_id: Union[TenantId, str],
        candidate: Mapping[str, Any],
        exclude_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Run every active rule of the tenant against a candidate record.

        All rules run; errors accumulate in priority order.

        Args:
            tenant_id: Owning tenant
            candidate: Field map of the category about to be written
            exclude_id: Id of the category being updated, ignored by unique rules

        Returns:
            ValidationResult with the collected error messages
        """
        tenant = TenantId.of(tenant_id)
        start_time = time.time()

        rules = self._rules.find_active(tenant)
        errors = []
        for rule in rules:
            error = self._check(tenant, rule, candidate, exclude_id)
            if error is not None:
                errors.append(error)

        result = ValidationResult.from_errors(errors)
        self._logger.info(
            "candidate_validated",
            tenant_id=tenant.value,
            rules_evaluated=len(rules),
            error_count=len(errors),
            is_valid=result.is_valid,
            duration_ms=(time.time() - start_time) * 1000,
            correlation_id=get_correlation_id(),
        )
        return result

    def _check(
        self,
        tenant: TenantId,
        rule: ValidationRule,
        candidate: Mapping[str, Any],
        exclude_id: Optional[str],
    ) -> Optional[str]:
        """Return the rule's error message if the candidate violates it."""
        value = candidate.get(rule.field.value)
        kind = rule.validation_type

        if value is None:
            # Only required rules care about absent fields
            return rule.error_message if kind == ValidationType.REQUIRED else None

        if kind == ValidationType.REQUIRED:
            failed = value == ""
        elif kind == ValidationType.MIN_LENGTH:
            failed = isinstance(value, str) and len(value) < rule.validation_value.raw
        elif kind == ValidationType.MAX_LENGTH:
            failed = isinstance(value, str) and len(value) > rule.validation_value.raw
        elif kind == ValidationType.PATTERN:
            failed = isinstance(value, str) and rule.pattern.search(value) is None
        elif kind == ValidationType.UNIQUE:
            failed = (isinstance(value, str) or is_number(value)) and self._categories.exists_with_value(
                tenant, rule.field, value, exclude_id
            )
        else:
            failed = False

        return rule.error_message if failed else None

    def rules_for_field(
        self, tenant_id: Union[TenantId, str], field: Union[CategoryField, str]
    ) -> List[ValidationRule]:
        """Active rules targeting one field, priority ascending."""
        try:
            category_field = CategoryField(field)
        except ValueError:
            raise DefinitionError(f"Unknown category field: {field}")
        return self._rules.find_active(TenantId.of(tenant_id), category_field)

    def get_rule(self, tenant_id: Union[TenantId, str], rule_id: str) -> ValidationRule:
        rule = self._rules.get(TenantId.of(tenant_id), rule_id)
        if rule is None:
            raise NotFoundError(RESOURCE, rule_id)
        return rule

    def list_rules(
        self, tenant_id: Union[TenantId, str], query: Optional[RuleQuery] = None
    ) -> Page[ValidationRule]:
        return self._rules.query(TenantId.of(tenant_id), query or RuleQuery())

    def update_rule(
        self,
        tenant_id: Union[TenantId, str],
        rule_id: str,
        patch: Union[ValidationRulePatch, Mapping[str, Any]],
    ) -> ValidationRule:
        """
        Apply a partial update; the revised rule is re-validated as a whole.

        Raises:
            NotFoundError: If the rule does not exist
            DefinitionError: If the revised rule is inconsistent
            ConflictError: If the revised name collides with another active rule
        """
        tenant = TenantId.of(tenant_id)
        existing = self.get_rule(tenant, rule_id)

        changes = parse_rule_patch(patch).changes()
        if not changes:
            return existing

        revised = existing.revise(**changes)
        if revised.is_active:
            holder = self._rules.find_active_by_name(tenant, revised.name)
            if holder is not None and holder.id != revised.id:
                raise ConflictError(RESOURCE, revised.name)

        saved = self._rules.update(revised)

        self._logger.info(
            "validation_rule_updated",
            tenant_id=tenant.value,
            rule_id=saved.id,
            changed_fields=sorted(changes),
            correlation_id=get_correlation_id(),
        )
        self._audit.log_audit_event(
            AuditEventType.UPDATE,
            RESOURCE,
            saved.id,
            tenant.value,
            before=existing.to_dict(),
            after=saved.to_dict(),
        )
        return saved

    def delete_rule(self, tenant_id: Union[TenantId, str], rule_id: str) -> ValidationRule:
        """Soft delete: the rule is deactivated and stops taking part in evaluation."""
        tenant = TenantId.of(tenant_id)
        existing = self.get_rule(tenant, rule_id)
        if not existing.is_active:
            return existing

        saved = self._rules.update(existing.deactivate())

        self._logger.info(
            "validation_rule_deleted",
            tenant_id=tenant.value,
            rule_id=saved.id,
            correlation_id=get_correlation_id(),
        )
        self._audit.log_audit_event(AuditEventType.DELETE, RESOURCE, saved.id, tenant.value)
        return saved
