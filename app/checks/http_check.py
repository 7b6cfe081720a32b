from __future__ import annotations

import re
import time
from typing import Callable

import requests

from app.checks.classify import classify_error, classify_response, error_message
from app.checks.results import CheckOutcome, CheckStatus
from app.config import settings

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def candidate_urls(url: str) -> list[str]:
    """
    Absolute URLs are probed as given. A bare host is tried over HTTPS first
    and then over plain HTTP.
    """
    normalized = url.strip()
    if _SCHEME_RE.match(normalized):
        return [normalized]
    return [f"https://{normalized}", f"http://{normalized}"]


def _elapsed_ms(clock: Callable[[], float], start: float) -> int:
    return int((clock() - start) * 1000)


def probe(
    url: str,
    timeout_s: float = settings.CHECK_TIMEOUT_S,
    connect_timeout_s: float | None = None,
    clock: Callable[[], float] = time.perf_counter,
) -> CheckOutcome:
    urls = candidate_urls(url)
    connect_timeout = timeout_s if connect_timeout_s is None else connect_timeout_s
    headers = {"User-Agent": settings.user_agent}

    start = clock()
    last_error: Exception | None = None
    for attempt, attempt_url in enumerate(urls):
        try:
            r = requests.get(
                attempt_url, headers=headers, timeout=(connect_timeout, timeout_s)
            )
        except Exception as e:
            last_error = e
            continue

        response_time_ms = _elapsed_ms(clock, start)
        r.close()
        status = classify_response(
            r.status_code, response_time_ms, settings.SLOW_RESPONSE_MS
        )
        if attempt > 0:
            # Only reachable over plain HTTP.
            status = CheckStatus.WARNING
        return CheckOutcome(
            status=status,
            response_time_ms=response_time_ms,
            status_code=r.status_code,
        )

    assert last_error is not None
    return CheckOutcome(
        status=classify_error(last_error),
        response_time_ms=_elapsed_ms(clock, start),
        error_message=error_message(last_error),
    )
