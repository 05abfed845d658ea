"""Condition evaluation for workflows."""

from typing import Any, Mapping, Optional, Sequence

from catalog_rules.domain.workflows import Condition, compare, resolve_path
from catalog_rules.shared.logging import get_logger
from catalog_rules.shared.logging.context import get_correlation_id


class ConditionEvaluator:
    """
    AND-reduces a workflow's conditions over an event payload.

    An empty condition list is vacuously true. Unknown operators pass with a
    warning unless the evaluator runs in strict mode, where they fail closed.
    """

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict
        self._logger = get_logger("application.conditions")

    @property
    def strict(self) -> bool:
        return self._strict

    def evaluate(
        self,
        conditions: Optional[Sequence[Condition]],
        payload: Optional[Mapping[str, Any]],
    ) -> bool:
        if not conditions:
            return True

        payload = payload or {}
        for index, condition in enumerate(conditions):
            if not self._holds(condition, payload):
                self._logger.debug(
                    "workflow_condition_not_met",
                    condition_index=index,
                    field=condition.field,
                    operator=condition.operator_name,
                    correlation_id=get_correlation_id(),
                )
                return False
        return True

    def _holds(self, condition: Condition, payload: Mapping[str, Any]) -> bool:
        if not condition.is_known_operator:
            self._logger.warning(
                "unknown_condition_operator",
                operator=condition.operator_name,
                field=condition.field,
                strict_mode=self._strict,
                correlation_id=get_correlation_id(),
            )
            return not self._strict

        actual = resolve_path(payload, condition.field)
        return compare(condition.operator, actual, condition.value)
