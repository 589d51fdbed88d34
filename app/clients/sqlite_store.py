"""SQLite-backed document store keyed by ``(pk, sk)``."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Optional


class SQLiteStore:
    """Simple key-value store using a normalized table keyed by (pk, sk).

    Records are JSON documents. Counter updates run as single conditional
    ``UPDATE`` statements so concurrent requests cannot overrun a quota.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False, timeout=10)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    data TEXT NOT NULL,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def put_item(self, item: Dict[str, Any]) -> None:
        pk, sk = _require_keys(item)
        data_json = json.dumps(item)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_records (pk, sk, data)
                VALUES (?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET data = excluded.data
                """,
                (pk, sk, data_json),
            )

    def put_item_if_absent(self, item: Dict[str, Any]) -> Dict[str, Any]:
        """Insert ``item`` unless a record exists; return the stored record."""
        pk, sk = _require_keys(item)
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO kv_records (pk, sk, data) VALUES (?, ?, ?)",
                (pk, sk, json.dumps(item)),
            )
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?", (pk, sk)
            ).fetchone()
        return json.loads(row["data"])

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])

    def update_fields(
        self, *, partition_key: str, sort_key: str, values: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Set top-level fields on an existing record; ``None`` if it is missing."""
        if not values:
            return self.get_item(partition_key=partition_key, sort_key=sort_key)
        assignments = ", ".join("?, json(?)" for _ in values)
        params: list[Any] = []
        for field, value in values.items():
            params.extend([f"$.{field}", json.dumps(value)])
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE kv_records SET data = json_set(data, {assignments}) "
                "WHERE pk = ? AND sk = ?",
                (*params, partition_key, sort_key),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        return json.loads(row["data"])

    def increment_below_limit(
        self,
        *,
        partition_key: str,
        sort_key: str,
        counter: str,
        limit: int,
        unless_flag: str,
    ) -> tuple[bool, Optional[Dict[str, Any]]]:
        """Atomically add one to ``counter`` while it is below ``limit``.

        The increment is skipped when ``unless_flag`` is true on the record.
        Returns whether the increment happened and the record as committed.
        """
        with self._connect() as conn:
            cursor = conn.execute(
                f"""
                UPDATE kv_records
                SET data = json_set(
                    data,
                    '$.{counter}',
                    COALESCE(json_extract(data, '$.{counter}'), 0) + 1
                )
                WHERE pk = ? AND sk = ?
                  AND COALESCE(json_extract(data, '$.{unless_flag}'), 0) = 0
                  AND COALESCE(json_extract(data, '$.{counter}'), 0) < ?
                """,
                (partition_key, sort_key, limit),
            )
            incremented = cursor.rowcount == 1
            row = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        return incremented, (json.loads(row["data"]) if row else None)

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT data FROM kv_records WHERE pk = ? AND sk LIKE ? ORDER BY sk",
                (partition_key, f"{sort_key_prefix}%"),
            ).fetchall()
        return [json.loads(row["data"]) for row in rows]

    def find_item(
        self, *, sort_key: str, field: str, value: Any
    ) -> Optional[Dict[str, Any]]:
        """Return the first record under ``sort_key`` whose ``field`` equals ``value``."""
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT data FROM kv_records WHERE sk = ? "
                f"AND json_extract(data, '$.{field}') = ? LIMIT 1",
                (sort_key, value),
            ).fetchone()
        if not row:
            return None
        return json.loads(row["data"])


def _require_keys(item: Dict[str, Any]) -> tuple[str, str]:
    pk = item.get("pk")
    sk = item.get("sk")
    if not pk or not sk:
        raise ValueError("Item must include 'pk' and 'sk' keys")
    return pk, sk


__all__ = ["SQLiteStore"]
