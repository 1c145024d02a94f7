"""
Business rule evaluation.
"""

import json
from collections import OrderedDict
from typing import Any, List, Mapping, Optional

from shared.logging import get_logger
from shared.errors import ValidationError
from .models import (
    BusinessRule, RuleCondition, RuleConditionOperator, parse_business_rule
)

_MISSING = object()


class BusinessRuleEvaluator:
    """Evaluates business rules against call-time params and associated data.

    A ``None`` rule always passes. A rule that cannot be parsed, or whose
    comparison raises, denies. Parsed rules are kept for the
    ``cache_size`` most recently used distinct rules.
    """

    def __init__(self, cache_size: int = 1024):
        self.logger = get_logger("authz.rules")
        self.cache_size = cache_size
        self.rule_cache: "OrderedDict[str, List[RuleCondition]]" = OrderedDict()

    def evaluate(self, rule: Optional[BusinessRule], params: Optional[Mapping[str, Any]], data: Any) -> bool:
        """Evaluate ``rule`` with ``params`` and the item or assignment ``data``."""
        if rule is None:
            return True

        try:
            conditions = self._conditions(rule)
        except ValidationError as e:
            self.logger.warning("Invalid business rule", error=e.message, details=e.details)
            return False

        params = params or {}
        for condition in conditions:
            if not self._evaluate_condition(condition, params, data):
                return False
        return True

    def _conditions(self, rule: BusinessRule) -> List[RuleCondition]:
        try:
            key = json.dumps(rule, sort_keys=True, default=str)
        except (TypeError, ValueError):
            return parse_business_rule(rule)

        conditions = self.rule_cache.get(key)
        if conditions is not None:
            self.rule_cache.move_to_end(key)
            return conditions

        conditions = parse_business_rule(rule)
        self.rule_cache[key] = conditions
        if len(self.rule_cache) > self.cache_size:
            self.rule_cache.popitem(last=False)
        return conditions

    def _evaluate_condition(self, condition: RuleCondition, params: Mapping[str, Any], data: Any) -> bool:
        """Evaluate a single condition."""
        field_value = self._get_field_value(condition.field, params, data)

        if condition.operator == RuleConditionOperator.EXISTS:
            expected = True if condition.value is None else bool(condition.value)
            return (field_value is not _MISSING and field_value is not None) == expected

        if field_value is _MISSING or field_value is None:
            return False

        if condition.value_from is not None:
            expected = self._get_field_value(condition.value_from, params, data)
            if expected is _MISSING:
                return False
        else:
            expected = condition.value

        try:
            if condition.operator == RuleConditionOperator.EQUALS:
                return field_value == expected

            elif condition.operator == RuleConditionOperator.NOT_EQUALS:
                return field_value != expected

            elif condition.operator == RuleConditionOperator.IN:
                return field_value in expected

            elif condition.operator == RuleConditionOperator.NOT_IN:
                return field_value not in expected

            elif condition.operator == RuleConditionOperator.GREATER_THAN:
                return field_value > expected

            elif condition.operator == RuleConditionOperator.LESS_THAN:
                return field_value < expected

            elif condition.operator == RuleConditionOperator.CONTAINS:
                if isinstance(field_value, (list, tuple, set, frozenset, dict)):
                    return expected in field_value
                return str(expected) in str(field_value)

            elif condition.operator == RuleConditionOperator.STARTS_WITH:
                return str(field_value).startswith(str(expected))

            elif condition.operator == RuleConditionOperator.ENDS_WITH:
                return str(field_value).endswith(str(expected))

        except TypeError as e:
            self.logger.warning(
                "Error evaluating condition",
                field=condition.field,
                operator=condition.operator.value,
                error=str(e)
            )
            return False

        self.logger.warning("Unknown condition operator", operator=condition.operator)
        return False

    def _get_field_value(self, field: str, params: Mapping[str, Any], data: Any) -> Any:
        """Resolve ``params.a.b``, ``data.a.b`` or a bare path (params first, then data)."""
        parts = field.split(".")

        if parts[0] == "params":
            return self._walk(params, parts[1:])
        if parts[0] == "data":
            return self._walk(data, parts[1:])

        value = self._walk(params, parts)
        if value is _MISSING:
            value = self._walk(data, parts)
        return value

    @staticmethod
    def _walk(value: Any, parts: List[str]) -> Any:
        for part in parts:
            if isinstance(value, Mapping) and part in value:
                value = value[part]
            else:
                return _MISSING
        return value
