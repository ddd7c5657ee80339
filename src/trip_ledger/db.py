"""SQLite database operations for Trip Ledger."""

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from .models import RecordedSettlement


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Recorded settlement plans table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS recorded_settlements (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                trip_id TEXT NOT NULL,
                plan_hash TEXT NOT NULL UNIQUE,
                settlement_count INTEGER NOT NULL,
                total_amount TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def get_last_recorded_trip(self) -> str | None:
        """Get the trip id of the most recently recorded plan."""
        return self.get_config("last_recorded_trip")

    def set_last_recorded_trip(self, trip_id: str):
        """Set the trip id of the most recently recorded plan."""
        self.set_config("last_recorded_trip", trip_id)

    # ========================================================================
    # Recorded settlements operations
    # ========================================================================

    def save_recorded_settlement(self, settlement: RecordedSettlement) -> int:
        """Save a recorded settlement plan."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO recorded_settlements (
                trip_id, plan_hash, settlement_count, total_amount, created_at
            ) VALUES (?, ?, ?, ?, ?)
            """,
            (
                settlement.trip_id,
                settlement.plan_hash,
                settlement.settlement_count,
                str(settlement.total_amount),
                settlement.created_at.isoformat(),
            ),
        )
        self.conn.commit()
        row_id = cursor.lastrowid
        if row_id is None:
            raise RuntimeError("Failed to insert settlement record")
        return row_id

    def get_recorded_settlement_by_hash(
        self, plan_hash: str
    ) -> RecordedSettlement | None:
        """Get a recorded settlement plan by hash."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, trip_id, plan_hash, settlement_count, total_amount,
                   created_at
            FROM recorded_settlements
            WHERE plan_hash = ?
            """,
            (plan_hash,),
        )
        row = cursor.fetchone()
        if not row:
            return None

        return self._row_to_recorded_settlement(row)

    def get_recorded_settlements(
        self, trip_id: str | None = None
    ) -> list[RecordedSettlement]:
        """Get recorded settlement plans, newest first."""
        cursor = self.conn.cursor()
        query = """
            SELECT id, trip_id, plan_hash, settlement_count, total_amount,
                   created_at
            FROM recorded_settlements
        """
        params: tuple[str, ...] = ()
        if trip_id is not None:
            query += " WHERE trip_id = ?"
            params = (trip_id,)
        query += " ORDER BY created_at DESC, id DESC"

        cursor.execute(query, params)
        return [self._row_to_recorded_settlement(row) for row in cursor.fetchall()]

    @staticmethod
    def _row_to_recorded_settlement(row: sqlite3.Row) -> RecordedSettlement:
        return RecordedSettlement(
            id=row["id"],
            trip_id=row["trip_id"],
            plan_hash=row["plan_hash"],
            settlement_count=row["settlement_count"],
            total_amount=Decimal(row["total_amount"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
