from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

from app.checks.http_check import probe
from app.checks.results import CheckOutcome
from app.config import settings
from app.models import Monitor
from app.state import CheckRecord, now_iso

logger = logging.getLogger(__name__)

ProbeFn = Callable[..., CheckOutcome]


class CheckStorage(Protocol):
    def create_check(self, monitor_id: str, outcome: CheckOutcome) -> CheckRecord: ...

    def touch_monitor(self, monitor_id: str, ts: str) -> None: ...


@dataclass
class BatchResult:
    monitor_id: str
    succeeded: bool
    outcome: CheckOutcome | None = None
    check_id: int | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "monitor_id": self.monitor_id,
            "succeeded": self.succeeded,
            "outcome": self.outcome.to_dict() if self.outcome else None,
            "check_id": self.check_id,
            "error_message": self.error_message,
        }


@dataclass
class BatchSummary:
    results: list[BatchResult] = field(default_factory=list)
    message: str = "No monitors to check"

    @property
    def succeeded_count(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)


class BatchRunner:
    def __init__(
        self,
        store: CheckStorage,
        probe_fn: ProbeFn = probe,
        timeout_s: float | None = None,
        connect_timeout_s: float | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._store = store
        self._probe = probe_fn
        self._timeout_s = settings.CHECK_TIMEOUT_S if timeout_s is None else timeout_s
        self._connect_timeout_s = (
            settings.CHECK_CONNECT_TIMEOUT_S
            if connect_timeout_s is None
            else connect_timeout_s
        )
        self._max_workers = max(1, max_workers or settings.CHECK_CONCURRENCY)

    def check_one(self, monitor: Monitor) -> BatchResult:
        try:
            outcome = self._probe(
                monitor.url,
                timeout_s=self._timeout_s,
                connect_timeout_s=self._connect_timeout_s,
            )
            record = self._store.create_check(monitor.id, outcome)
            self._store.touch_monitor(monitor.id, now_iso())
        except Exception as e:
            # One monitor's failure must not reach the rest of the batch.
            logger.exception("Error checking monitor %s", monitor.id)
            return BatchResult(
                monitor_id=monitor.id,
                succeeded=False,
                error_message=str(e) or e.__class__.__name__,
            )

        return BatchResult(
            monitor_id=monitor.id,
            succeeded=True,
            outcome=outcome,
            check_id=record.id,
        )

    def check_all(self, monitors: Sequence[Monitor]) -> BatchSummary:
        if not monitors:
            return BatchSummary()

        workers = min(self._max_workers, len(monitors))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="status-check") as pool:
            results = list(pool.map(self.check_one, monitors))

        summary = BatchSummary(
            results=results, message=f"Checked {len(monitors)} monitors"
        )
        logger.info(
            "Batch check finished: %d monitors, %d succeeded, %d failed",
            len(monitors),
            summary.succeeded_count,
            summary.failed_count,
        )
        return summary
