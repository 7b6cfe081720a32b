import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query

from app.api_schemas import (
    CheckAllResponse,
    CheckOneResponse,
    ConfigResponse,
    HealthResponse,
    MonitorDetailResponse,
    MonitorResponse,
    StatusSummaryResponse,
)
from app.config import settings
from app.models import Monitor
from app.ops_logic import (
    average_response_time,
    display_status,
    summarize_statuses,
    uptime_percent,
)
from app.registry import apply_defaults, load_registry
from app.runner import BatchRunner
from app.state import CheckRecord, MonitorStore

logger = logging.getLogger(__name__)
store = MonitorStore(db_path=settings.STATUS_DB_PATH)
runner = BatchRunner(store)


def sync_registry() -> int:
    try:
        monitors = apply_defaults(load_registry())
    except FileNotFoundError as exc:
        logger.warning("Monitor registry not loaded: %s", exc)
        return 0
    store.sync_monitors(monitors)
    return len(monitors)


@asynccontextmanager
async def lifespan(_: FastAPI):
    count = sync_registry()
    logger.info("Status checker ready with %d registered monitors", count)
    yield


app = FastAPI(
    title="Status Checker",
    version="1.0.0",
    description=(
        "Website status checker that loads monitors from monitors.yml, "
        "probes them over HTTP and classifies each check as UP, WARNING or DOWN."
    ),
    lifespan=lifespan,
)


def _get_monitor_or_404(monitor_id: str) -> Monitor:
    monitor = store.get_monitor(monitor_id)
    if monitor is None:
        raise HTTPException(status_code=404, detail="Monitor not found")
    return monitor


def _monitor_payload(monitor: Monitor, latest: CheckRecord | None) -> dict:
    return {
        "id": monitor.id,
        "name": monitor.name,
        "url": monitor.url,
        "interval_s": monitor.interval_s,
        "last_checked_at": monitor.last_checked_at,
        "status": display_status(latest),
        "response_time_ms": latest.response_time_ms if latest else None,
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["system"],
    summary="Health Check",
    description="Liveness endpoint used by probes and orchestration.",
)
def health():
    return {"status": "ok"}


@app.get(
    "/config",
    response_model=ConfigResponse,
    tags=["system"],
    summary="Current Effective Config",
    description="Returns non-secret runtime config values.",
)
def config():
    return {
        "product": settings.STATUS_CHECKER_PRODUCT,
        "check_timeout_s": settings.CHECK_TIMEOUT_S,
        "check_concurrency": settings.CHECK_CONCURRENCY,
        "slow_response_ms": settings.SLOW_RESPONSE_MS,
        "uptime_window": settings.UPTIME_WINDOW,
    }


@app.get(
    "/api/monitors",
    response_model=list[MonitorResponse],
    tags=["monitors"],
    summary="Monitors",
    description="Registered monitors with their latest display status.",
)
def list_monitors():
    latest = store.latest_checks()
    return [_monitor_payload(m, latest.get(m.id)) for m in store.monitors()]


@app.get(
    "/api/monitors/{monitor_id}",
    response_model=MonitorDetailResponse,
    tags=["monitors"],
    summary="Monitor Detail",
    description="Monitor with recent checks (newest first), uptime and average response time.",
)
def monitor_detail(
    monitor_id: str,
    limit: int = Query(default=50, ge=1, le=500, description="Max number of checks to return"),
):
    monitor = _get_monitor_or_404(monitor_id)
    window = settings.UPTIME_WINDOW
    # Metrics always cover the full window, whatever page size was requested.
    # Checks without a response time still count toward the window, so fetch
    # enough history for the average to find `window` timed checks.
    history = store.recent_checks(monitor_id, limit=max(limit, window * 2))
    checks = history[:limit]
    payload = _monitor_payload(monitor, checks[0] if checks else None)
    payload.update(
        {
            "uptime_percent": uptime_percent(history, window=window),
            "average_response_time_ms": average_response_time(history, window=window),
            "checks": [c.to_dict() for c in checks],
        }
    )
    return payload


@app.post(
    "/api/monitors/check-all",
    response_model=CheckAllResponse,
    tags=["checks"],
    summary="Check All Monitors",
    description="Probes every registered monitor concurrently and records the results.",
)
def check_all():
    summary = runner.check_all(store.monitors())
    for r in summary.results:
        if not r.succeeded:
            logger.error("Check pipeline failed for %s: %s", r.monitor_id, r.error_message)
    return {
        "message": summary.message,
        "success": summary.succeeded_count,
        "errors": summary.failed_count,
        "results": [r.to_dict() for r in summary.results],
    }


@app.post(
    "/api/monitors/{monitor_id}/check",
    response_model=CheckOneResponse,
    tags=["checks"],
    summary="Check Monitor Now",
    description="Probes one monitor immediately and records the result.",
)
def check_one(monitor_id: str):
    monitor = _get_monitor_or_404(monitor_id)
    result = runner.check_one(monitor)
    if not result.succeeded:
        raise HTTPException(status_code=500, detail=result.error_message)

    record = store.get_check(result.check_id)
    if record is None:
        raise HTTPException(status_code=500, detail="Check record was not stored")
    return {"monitor_id": monitor.id, "check": record.to_dict()}


@app.get(
    "/api/status/summary",
    response_model=StatusSummaryResponse,
    tags=["status"],
    summary="Status Summary",
    description="Counts of monitors by latest status, UNKNOWN for monitors never checked.",
)
def status_summary():
    monitors = store.monitors()
    return summarize_statuses([m.id for m in monitors], store.latest_checks())
