from __future__ import annotations

from pathlib import Path
import sqlite3
import threading
from typing import Any


class SQLitePersistence:
    def __init__(self, db_path: str, max_checks_per_monitor: int = 1000) -> None:
        self._db_path = self._resolve_db_path(db_path)
        self._max_checks = max_checks_per_monitor
        self._lock = threading.Lock()

        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        with self._lock:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
            self._init_schema()

    @staticmethod
    def _resolve_db_path(raw_path: str) -> Path:
        p = Path(raw_path).expanduser()
        if p.is_absolute():
            return p
        return Path.cwd() / p

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS monitors (
                id TEXT PRIMARY KEY,
                name TEXT,
                url TEXT NOT NULL,
                interval_s INTEGER NOT NULL DEFAULT 300,
                created_at TEXT NOT NULL,
                last_checked_at TEXT
            )
            """
        )
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS checks (
                row_id INTEGER PRIMARY KEY AUTOINCREMENT,
                monitor_id TEXT NOT NULL REFERENCES monitors(id),
                status TEXT NOT NULL,
                status_code INTEGER,
                response_time_ms INTEGER,
                error TEXT,
                checked_at TEXT NOT NULL
            )
            """
        )
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_checks_monitor ON checks(monitor_id, row_id)"
        )
        self._conn.commit()

    @staticmethod
    def _monitor_row(r: sqlite3.Row) -> dict[str, Any]:
        return {
            "id": r["id"],
            "name": r["name"],
            "url": r["url"],
            "interval_s": r["interval_s"],
            "created_at": r["created_at"],
            "last_checked_at": r["last_checked_at"],
        }

    @staticmethod
    def _check_row(r: sqlite3.Row) -> dict[str, Any]:
        return {
            "id": r["row_id"],
            "monitor_id": r["monitor_id"],
            "status": r["status"],
            "status_code": r["status_code"],
            "response_time_ms": r["response_time_ms"],
            "error_message": r["error"],
            "checked_at": r["checked_at"],
        }

    def upsert_monitor(self, monitor: dict[str, Any]) -> None:
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO monitors (id, name, url, interval_s, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name,
                    url=excluded.url,
                    interval_s=excluded.interval_s
                """,
                (
                    monitor["id"],
                    monitor.get("name"),
                    monitor["url"],
                    monitor.get("interval_s", 300),
                    monitor["created_at"],
                ),
            )
            self._conn.commit()

    def touch_monitor(self, monitor_id: str, ts: str) -> int:
        with self._lock:
            cur = self._conn.execute(
                "UPDATE monitors SET last_checked_at = ? WHERE id = ?",
                (ts, monitor_id),
            )
            self._conn.commit()
            return cur.rowcount

    def load_monitors(self) -> list[dict[str, Any]]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT id, name, url, interval_s, created_at, last_checked_at
                FROM monitors
                ORDER BY created_at, id
                """
            ).fetchall()
        return [self._monitor_row(r) for r in rows]

    def get_monitor(self, monitor_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._conn.execute(
                """
                SELECT id, name, url, interval_s, created_at, last_checked_at
                FROM monitors
                WHERE id = ?
                """,
                (monitor_id,),
            ).fetchone()
        return self._monitor_row(row) if row is not None else None

    def insert_check(self, check: dict[str, Any]) -> int:
        with self._lock:
            cur = self._conn.execute(
                """
                INSERT INTO checks (
                    monitor_id, status, status_code, response_time_ms, error, checked_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    check["monitor_id"],
                    check["status"],
                    check.get("status_code"),
                    check.get("response_time_ms"),
                    check.get("error_message"),
                    check["checked_at"],
                ),
            )
            row_id = cur.lastrowid
            self._trim_checks_locked(check["monitor_id"])
            self._conn.commit()
            return row_id

    def _trim_checks_locked(self, monitor_id: str) -> None:
        self._conn.execute(
            """
            DELETE FROM checks
            WHERE monitor_id = ? AND row_id NOT IN (
                SELECT row_id FROM checks
                WHERE monitor_id = ?
                ORDER BY row_id DESC LIMIT ?
            )
            """,
            (monitor_id, monitor_id, self._max_checks),
        )

    def get_check(self, row_id: int) -> dict[str, Any] | None:
        with self._lock:
            row = self._conn.execute(
                """
                SELECT row_id, monitor_id, status, status_code, response_time_ms,
                       error, checked_at
                FROM checks
                WHERE row_id = ?
                """,
                (row_id,),
            ).fetchone()
        return self._check_row(row) if row is not None else None

    def load_checks(self, monitor_id: str, limit: int) -> list[dict[str, Any]]:
        """Newest first."""
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT row_id, monitor_id, status, status_code, response_time_ms,
                       error, checked_at
                FROM checks
                WHERE monitor_id = ?
                ORDER BY row_id DESC
                LIMIT ?
                """,
                (monitor_id, limit),
            ).fetchall()
        return [self._check_row(r) for r in rows]

    def load_latest_checks(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            rows = self._conn.execute(
                """
                SELECT c.row_id, c.monitor_id, c.status, c.status_code,
                       c.response_time_ms, c.error, c.checked_at
                FROM checks c
                JOIN (
                    SELECT monitor_id, MAX(row_id) AS row_id
                    FROM checks
                    GROUP BY monitor_id
                ) latest ON latest.row_id = c.row_id
                """
            ).fetchall()
        return {r["monitor_id"]: self._check_row(r) for r in rows}

    def close(self) -> None:
        with self._lock:
            self._conn.close()
