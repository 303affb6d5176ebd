"""SQLite store for persisted ledger state."""
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Optional

from .kv_store import KeyValueStore, StorageError
from .schema import SCHEMA_SQL


class SQLiteStore(KeyValueStore):
    """SQLite-backed key-value slots plus a log of archive imports."""

    def __init__(self, db_path: Path):
        """Initialize the store with database path."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # Enable WAL mode for better concurrency
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        """Initialize database schema."""
        cursor = self.conn.cursor()
        cursor.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    # === Key-value slots ===

    def get(self, key: str) -> Optional[str]:
        """Get the value stored under a key."""
        try:
            cursor = self.conn.execute(
                "SELECT value FROM ledger_state WHERE key = ?", (key,)
            )
            row = cursor.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value stored under a key."""
        try:
            self.conn.execute(
                """INSERT INTO ledger_state (key, value) VALUES (?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = CURRENT_TIMESTAMP""",
                (key, value)
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        """Delete a key if present."""
        try:
            self.conn.execute("DELETE FROM ledger_state WHERE key = ?", (key,))
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e

    # === Import history ===

    def add_import(
        self,
        source: Optional[str],
        transactions: int,
        budgets: int,
        payment_reminders: int
    ) -> int:
        """Record a successful archive import and return its ID."""
        cursor = self.conn.execute(
            """INSERT INTO imports (source, transactions, budgets, payment_reminders)
               VALUES (?, ?, ?, ?)""",
            (source, transactions, budgets, payment_reminders)
        )
        self.conn.commit()
        return cursor.lastrowid

    def get_imports(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Get recent imports, newest first."""
        cursor = self.conn.execute(
            "SELECT * FROM imports ORDER BY id DESC LIMIT ?", (limit,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def reset_all_data(self) -> Dict[str, int]:
        """Clear all persisted state and import history.

        Returns counts of deleted rows.
        """
        counts = {
            "slots": self.conn.execute("SELECT COUNT(*) FROM ledger_state").fetchone()[0],
            "imports": self.conn.execute("SELECT COUNT(*) FROM imports").fetchone()[0],
        }

        self.conn.execute("DELETE FROM ledger_state")
        self.conn.execute("DELETE FROM imports")
        self.conn.commit()

        return counts
