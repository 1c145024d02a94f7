"""
Business rule data models.
"""

from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass
from enum import Enum

from shared.errors import ValidationError


class RuleConditionOperator(str, Enum):
    """Rule condition operators."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    EXISTS = "exists"


@dataclass(frozen=True)
class RuleCondition:
    """A single predicate of a business rule.

    The left side is always ``field``. The right side is either the literal
    ``value`` or, when ``value_from`` is set, the value of another field.
    """
    field: str
    operator: RuleConditionOperator
    value: Any = None
    value_from: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RuleCondition":
        if not isinstance(data, dict) or "field" not in data or "operator" not in data:
            raise ValidationError(
                "Business rule conditions need a field and an operator",
                {"condition": data}
            )
        try:
            operator = RuleConditionOperator(data["operator"])
        except ValueError as e:
            raise ValidationError(
                f"Unknown condition operator '{data['operator']}'",
                {"condition": data}
            ) from e

        return cls(
            field=str(data["field"]),
            operator=operator,
            value=data.get("value"),
            value_from=data.get("value_from"),
            description=data.get("description"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"field": self.field, "operator": self.operator.value}
        if self.value_from is not None:
            data["value_from"] = self.value_from
        else:
            data["value"] = self.value
        if self.description:
            data["description"] = self.description
        return data


# Stored form of a business rule: a list of condition mappings that must all
# hold. A single mapping is accepted as shorthand for a one-element list.
BusinessRule = Union[List[Dict[str, Any]], Dict[str, Any]]


def parse_business_rule(rule: Optional[BusinessRule]) -> List[RuleCondition]:
    """Parse the stored form of a business rule into conditions."""
    if rule is None:
        return []
    if isinstance(rule, dict):
        rule = [rule]
    if not isinstance(rule, list):
        raise ValidationError(
            "Business rules must be a condition or a list of conditions",
            {"rule": repr(rule)}
        )
    return [RuleCondition.from_dict(condition) for condition in rule]
