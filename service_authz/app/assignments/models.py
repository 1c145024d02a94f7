"""
Assignment data models.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..rules.models import BusinessRule

UserId = Union[str, int]


def normalize_user_id(user_id: UserId) -> str:
    """Stores and cache keys address users by the string form of their id."""
    return str(user_id)


@dataclass(frozen=True)
class Assignment:
    """Binds one user to one authorization item."""
    item_name: str
    user_id: str
    business_rule: Optional[BusinessRule] = None
    data: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_name": self.item_name,
            "user_id": self.user_id,
            "business_rule": self.business_rule,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        return cls(
            item_name=data["item_name"],
            user_id=normalize_user_id(data["user_id"]),
            business_rule=data.get("business_rule"),
            data=data.get("data"),
        )
