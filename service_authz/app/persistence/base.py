"""
Assignment persistence surface consumed by the authorization core.
"""

from typing import Any, List, Optional, Protocol

from ..assignments.models import Assignment


class AssignmentStore(Protocol):
    """Keyed storage of (item_name, user_id) assignments.

    ``insert`` raises ``DuplicateAssignmentError`` when the pair exists.
    Mutations return the number of rows they touched.
    """

    async def insert(self, item_name: str, user_id: str, business_rule: Any, data: Any) -> None:
        ...

    async def delete(self, item_name: str, user_id: str) -> int:
        ...

    async def delete_all(self) -> int:
        ...

    async def select_one(self, item_name: str, user_id: str) -> Optional[Assignment]:
        ...

    async def select_all_for_user(self, user_id: str) -> List[Assignment]:
        ...

    async def select_user_ids(self) -> List[str]:
        ...

    async def update(self, item_name: str, user_id: str, business_rule: Any, data: Any) -> int:
        ...
