"""
In-process assignment store for local development and tests.
"""

from typing import Any, Dict, List, Optional, Tuple

from shared.logging import get_logger
from shared.errors import DuplicateAssignmentError
from ..assignments.models import Assignment
from .codec import encode_data, decode_data, encode_rule, decode_rule


class MemoryAssignmentStore:
    """Assignment rows kept in a dictionary, encoded as they would be in SQL."""

    def __init__(self):
        self.logger = get_logger("authz.persistence.memory")
        self.rows: Dict[Tuple[str, str], Tuple[Optional[str], str]] = {}

    async def start(self):
        self.logger.info("Memory assignment store started")

    async def stop(self):
        pass

    async def insert(self, item_name: str, user_id: str, business_rule: Any, data: Any) -> None:
        key = (item_name, user_id)
        if key in self.rows:
            raise DuplicateAssignmentError(item_name, user_id)
        self.rows[key] = (encode_rule(business_rule), encode_data(data))

    async def delete(self, item_name: str, user_id: str) -> int:
        return 1 if self.rows.pop((item_name, user_id), None) is not None else 0

    async def delete_all(self) -> int:
        count = len(self.rows)
        self.rows.clear()
        return count

    async def select_one(self, item_name: str, user_id: str) -> Optional[Assignment]:
        row = self.rows.get((item_name, user_id))
        if row is None:
            return None
        return self._row_to_assignment(item_name, user_id, row)

    async def select_all_for_user(self, user_id: str) -> List[Assignment]:
        return [
            self._row_to_assignment(item_name, row_user, row)
            for (item_name, row_user), row in self.rows.items()
            if row_user == user_id
        ]

    async def select_user_ids(self) -> List[str]:
        return sorted({user_id for _, user_id in self.rows})

    async def update(self, item_name: str, user_id: str, business_rule: Any, data: Any) -> int:
        key = (item_name, user_id)
        if key not in self.rows:
            return 0
        self.rows[key] = (encode_rule(business_rule), encode_data(data))
        return 1

    async def health_check(self) -> bool:
        return True

    @staticmethod
    def _row_to_assignment(item_name: str, user_id: str, row: Tuple[Optional[str], str]) -> Assignment:
        bizrule, data = row
        return Assignment(
            item_name=item_name,
            user_id=user_id,
            business_rule=decode_rule(bizrule),
            data=decode_data(data),
        )
