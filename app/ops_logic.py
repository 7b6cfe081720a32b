from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

from app.checks.results import CheckStatus
from app.state import CheckRecord

UNKNOWN = "UNKNOWN"


def round_half_up(value: float, ndigits: int = 0) -> float:
    """round() with halves going up, so 2.5 ms reads as 3 ms rather than 2."""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def display_status(latest: CheckRecord | None) -> str:
    # UNKNOWN is a display default for monitors that were never checked.
    if latest is None:
        return UNKNOWN
    return latest.status


def uptime_percent(checks: Sequence[CheckRecord], window: int = 24) -> float | None:
    """
    Share of UP results among the newest `window` checks (checks are expected
    newest first).
    """
    recent = list(checks[: max(window, 1)])
    if not recent:
        return None
    up = sum(1 for c in recent if c.status == CheckStatus.UP.value)
    return round_half_up(up * 100.0 / len(recent), 1)


def average_response_time(checks: Iterable[CheckRecord], window: int = 24) -> int | None:
    """Mean of the newest `window` checks that carry a response time."""
    times = [c.response_time_ms for c in checks if c.response_time_ms is not None]
    times = times[: max(window, 1)]
    if not times:
        return None
    return int(round_half_up(sum(times) / len(times)))


def summarize_statuses(
    monitor_ids: Iterable[str],
    latest_by_monitor: Mapping[str, CheckRecord],
) -> dict[str, int]:
    counts = {s.value: 0 for s in CheckStatus}
    counts[UNKNOWN] = 0
    total = 0
    for monitor_id in monitor_ids:
        total += 1
        counts[display_status(latest_by_monitor.get(monitor_id))] += 1

    return {
        "total": total,
        "up": counts[CheckStatus.UP.value],
        "warning": counts[CheckStatus.WARNING.value],
        "down": counts[CheckStatus.DOWN.value],
        "unknown": counts[UNKNOWN],
    }
