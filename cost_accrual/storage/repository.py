"""
Repository pattern for data access.

Reads and writes fixed-cost records scoped by user and owner.
"""

from typing import Any, Dict, List, Optional, Tuple

from cost_accrual.core.normalize import record_from_row
from cost_accrual.observability.logger import get_logger

from .db import DEFAULT_DB_PATH, get_connection
from .models import CostRecord, OwnerKey

logger = get_logger(__name__)

_COLUMNS = (
    "id, user_id, name, amount, frequency, is_fixed, description, "
    "is_active, entity_type, entity_id, created_at, updated_at"
)

_PERSONAL_CONDITION = (
    "(entity_type IS NULL OR entity_type = '' OR entity_type = 'USER' "
    "OR entity_id IS NULL OR entity_id = '')"
)


def _record_to_params(record: CostRecord) -> Tuple[Any, ...]:
    owner = record.owner
    return (
        record.name,
        str(record.amount),
        record.frequency.value,
        1 if record.is_recurring else 0,
        record.description,
        1 if record.active else 0,
        owner.entity_type.value if owner.entity_type else None,
        owner.entity_id,
        record.created_at.isoformat(),
        (record.updated_at or record.created_at).isoformat(),
    )


def _owner_condition(owner: OwnerKey) -> Tuple[str, List[Any]]:
    if owner.is_personal:
        return _PERSONAL_CONDITION, []
    return "entity_type = ? AND entity_id = ?", [owner.entity_type.value, owner.entity_id]


class CostRepository:
    """Repository for fixed-cost records.

    Opens one connection per operation, so an instance carries no
    connection state and can be shared between callers.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def initialize_schema(self) -> None:
        """Create the fixed_cost table and its owner index if missing."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS fixed_cost (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    amount TEXT NOT NULL,
                    frequency TEXT NOT NULL DEFAULT 'DAILY',
                    is_fixed INTEGER NOT NULL DEFAULT 1,
                    description TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    entity_type TEXT,
                    entity_id TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_fixed_cost_owner
                ON fixed_cost (user_id, entity_type, entity_id)
            """)
            conn.commit()
        finally:
            conn.close()

    def insert(self, record: CostRecord) -> None:
        """Insert a single cost record."""
        self.insert_many([record])

    def insert_many(self, records: List[CostRecord]) -> None:
        """Insert records atomically; nothing is written if one fails.

        Args:
            records: Cost records to store
        """
        if not records:
            return

        conn = get_connection(self.db_path)
        try:
            conn.execute("BEGIN TRANSACTION")
            for record in records:
                conn.execute(
                    f"INSERT INTO fixed_cost ({_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (record.id, record.user_id) + _record_to_params(record),
                )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_row(self, cost_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Fetch the raw stored row of a user's cost record.

        Returns:
            Column mapping, or None if the id does not belong to the user
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                f"SELECT {_COLUMNS} FROM fixed_cost WHERE id = ? AND user_id = ?",
                (cost_id, user_id),
            )
            row = cursor.fetchone()
            return dict(row) if row else None
        finally:
            conn.close()

    def get(self, cost_id: str, user_id: str) -> Optional[CostRecord]:
        """Fetch a user's cost record, normalized."""
        row = self.get_row(cost_id, user_id)
        return record_from_row(row) if row else None

    def list_rows(
        self,
        user_id: str,
        owner: Optional[OwnerKey] = None,
        active_only: bool = False,
    ) -> List[Dict[str, Any]]:
        """Fetch a user's raw rows for an owner, newest first.

        Args:
            user_id: Identity of the user who created the records
            owner: Owner scope; personal when None
            active_only: Only return rows flagged active

        Returns:
            List of column mappings ordered by created_at descending
        """
        owner = owner or OwnerKey.personal()
        condition, params = _owner_condition(owner)

        query = f"SELECT {_COLUMNS} FROM fixed_cost WHERE user_id = ? AND {condition}"
        params = [user_id] + params
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY created_at DESC, id"

        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def list_for_owner(
        self,
        user_id: str,
        owner: Optional[OwnerKey] = None,
        active_only: bool = False,
    ) -> List[CostRecord]:
        """Fetch a user's cost records for an owner, normalized, newest first.

        Rows that cannot be read as a record are skipped and logged at
        warning level.
        """
        records = []
        for row in self.list_rows(user_id, owner, active_only=active_only):
            try:
                records.append(record_from_row(row))
            except ValueError as e:
                logger.warning("fixed_cost.row_skipped", cost_id=row.get("id"), error=str(e))
        return records

    def update(self, record: CostRecord) -> bool:
        """Overwrite the mutable columns of an existing record.

        Returns:
            True if a row owned by record.user_id was updated
        """
        params = _record_to_params(record)
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                """
                UPDATE fixed_cost SET
                    name = ?, amount = ?, frequency = ?, is_fixed = ?,
                    description = ?, is_active = ?, entity_type = ?,
                    entity_id = ?, created_at = ?, updated_at = ?
                WHERE id = ? AND user_id = ?
                """,
                params + (record.id, record.user_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def delete(self, cost_id: str, user_id: str) -> bool:
        """Delete a user's cost record.

        Returns:
            True if a row was removed
        """
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM fixed_cost WHERE id = ? AND user_id = ?",
                (cost_id, user_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()
