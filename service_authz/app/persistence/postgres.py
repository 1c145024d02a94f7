"""
PostgreSQL persistence layer for authorization assignments.
"""

import re
from typing import Any, List, Optional

import asyncpg
from shared.logging import get_logger
from shared.errors import DuplicateAssignmentError, ExternalServiceError, ValidationError
from ..assignments.models import Assignment
from .codec import encode_data, decode_data, encode_rule, decode_rule

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _affected_rows(status: str) -> int:
    """Row count from an asyncpg command status such as ``DELETE 3``."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class PostgreSQLAssignmentStore:
    """PostgreSQL persistence layer for assignments.

    Errors other than unique-key violations propagate unchanged; the caller
    owns retry policy.
    """

    def __init__(self, dsn: str, table: str = "auth_assignment"):
        if not _IDENTIFIER.match(table):
            raise ValidationError("Invalid assignment table name", {"table": table})
        self.dsn = dsn
        self.table = table
        self.logger = get_logger("authz.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL assignment store started", table=self.table)

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL assignment store", error=str(e))
            raise ExternalServiceError("postgres", str(e)) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL assignment store stopped")

    async def _create_tables(self):
        """Create the assignment table."""
        async with self.pool.acquire() as conn:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self.table} (
                    itemname VARCHAR(64) NOT NULL,
                    userid VARCHAR(64) NOT NULL,
                    bizrule TEXT,
                    data TEXT,
                    PRIMARY KEY (itemname, userid)
                );
            """)
            await conn.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_{self.table}_userid ON {self.table}(userid);
            """)

    async def insert(self, item_name: str, user_id: str, business_rule: Any, data: Any) -> None:
        """Insert an assignment row."""
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(f"""
                    INSERT INTO {self.table} (itemname, userid, bizrule, data)
                    VALUES ($1, $2, $3, $4)
                """, item_name, user_id, encode_rule(business_rule), encode_data(data))
        except asyncpg.UniqueViolationError as e:
            raise DuplicateAssignmentError(item_name, user_id) from e

        self.logger.info("Assignment inserted", item_name=item_name, user_id=user_id)

    async def delete(self, item_name: str, user_id: str) -> int:
        """Delete one assignment row."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(f"""
                DELETE FROM {self.table} WHERE itemname = $1 AND userid = $2
            """, item_name, user_id)

        count = _affected_rows(result)
        if count:
            self.logger.info("Assignment deleted", item_name=item_name, user_id=user_id)
        return count

    async def delete_all(self) -> int:
        """Delete every assignment row."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(f"DELETE FROM {self.table}")

        count = _affected_rows(result)
        self.logger.warning("All assignments deleted", count=count)
        return count

    async def select_one(self, item_name: str, user_id: str) -> Optional[Assignment]:
        """Load one assignment."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"""
                SELECT itemname, userid, bizrule, data FROM {self.table}
                WHERE itemname = $1 AND userid = $2
            """, item_name, user_id)

        if not row:
            return None
        return self._row_to_assignment(row)

    async def select_all_for_user(self, user_id: str) -> List[Assignment]:
        """Load all assignments of a user."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"""
                SELECT itemname, userid, bizrule, data FROM {self.table}
                WHERE userid = $1
            """, user_id)

        return [self._row_to_assignment(row) for row in rows]

    async def select_user_ids(self) -> List[str]:
        """Distinct users holding at least one assignment."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(f"SELECT DISTINCT userid FROM {self.table}")

        return [row['userid'] for row in rows]

    async def update(self, item_name: str, user_id: str, business_rule: Any, data: Any) -> int:
        """Update the business rule and data of an assignment."""
        async with self.pool.acquire() as conn:
            result = await conn.execute(f"""
                UPDATE {self.table} SET bizrule = $3, data = $4
                WHERE itemname = $1 AND userid = $2
            """, item_name, user_id, encode_rule(business_rule), encode_data(data))

        return _affected_rows(result)

    def _row_to_assignment(self, row) -> Assignment:
        """Convert database row to Assignment object."""
        return Assignment(
            item_name=row['itemname'],
            user_id=row['userid'],
            business_rule=decode_rule(row['bizrule']),
            data=decode_data(row['data'])
        )

    async def health_check(self) -> bool:
        """Check database health."""
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception:
            return False
