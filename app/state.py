from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from app.checks.results import CheckOutcome, CheckStatus
from app.models import Monitor
from app.persistence import SQLitePersistence


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class CheckRecord:
    id: int
    monitor_id: str
    status: str
    checked_at: str
    status_code: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_outcome(self) -> CheckOutcome:
        return CheckOutcome(
            status=CheckStatus(self.status),
            response_time_ms=self.response_time_ms,
            status_code=self.status_code,
            error_message=self.error_message,
        )


class MonitorStore:
    """
    Storage collaborator for the batch runner. Safe to share between worker
    threads; SQLitePersistence serializes every statement.
    """

    def __init__(self, db_path: str, max_checks_per_monitor: int = 1000) -> None:
        self._persistence = SQLitePersistence(
            db_path, max_checks_per_monitor=max_checks_per_monitor
        )

    def ensure_monitor(self, monitor: Monitor) -> None:
        self._persistence.upsert_monitor(
            {
                "id": monitor.id,
                "name": monitor.display_name,
                "url": monitor.url,
                "interval_s": monitor.interval_s or 300,
                "created_at": now_iso(),
            }
        )

    def sync_monitors(self, monitors: Iterable[Monitor]) -> None:
        for m in monitors:
            self.ensure_monitor(m)

    @staticmethod
    def _to_monitor(r: dict[str, Any]) -> Monitor:
        return Monitor(
            id=r["id"],
            name=r["name"],
            url=r["url"],
            interval_s=r["interval_s"],
            last_checked_at=r["last_checked_at"],
        )

    def monitors(self) -> list[Monitor]:
        return [self._to_monitor(r) for r in self._persistence.load_monitors()]

    def get_monitor(self, monitor_id: str) -> Monitor | None:
        r = self._persistence.get_monitor(monitor_id)
        return self._to_monitor(r) if r is not None else None

    def create_check(
        self,
        monitor_id: str,
        outcome: CheckOutcome,
        checked_at: str | None = None,
    ) -> CheckRecord:
        if self._persistence.get_monitor(monitor_id) is None:
            raise KeyError(f"Unknown monitor: {monitor_id}")

        data = outcome.to_dict()
        data["monitor_id"] = monitor_id
        data["checked_at"] = checked_at or now_iso()
        row_id = self._persistence.insert_check(data)
        return CheckRecord(
            id=row_id,
            monitor_id=monitor_id,
            status=data["status"],
            checked_at=data["checked_at"],
            status_code=data["status_code"],
            response_time_ms=data["response_time_ms"],
            error_message=data["error_message"],
        )

    def touch_monitor(self, monitor_id: str, ts: str) -> None:
        if self._persistence.touch_monitor(monitor_id, ts) == 0:
            raise KeyError(f"Unknown monitor: {monitor_id}")

    def get_check(self, check_id: int) -> CheckRecord | None:
        r = self._persistence.get_check(check_id)
        return CheckRecord(**r) if r is not None else None

    def recent_checks(self, monitor_id: str, limit: int = 50) -> list[CheckRecord]:
        return [CheckRecord(**r) for r in self._persistence.load_checks(monitor_id, limit)]

    def latest_checks(self) -> dict[str, CheckRecord]:
        return {
            monitor_id: CheckRecord(**r)
            for monitor_id, r in self._persistence.load_latest_checks().items()
        }

    def close(self) -> None:
        self._persistence.close()
