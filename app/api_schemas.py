from __future__ import annotations

from typing import Literal
from pydantic import BaseModel, Field

CheckStatusName = Literal["UP", "WARNING", "DOWN"]
DisplayStatusName = Literal["UP", "WARNING", "DOWN", "UNKNOWN"]


class HealthResponse(BaseModel):
    status: str = Field(description="Health status")


class ConfigResponse(BaseModel):
    product: str
    check_timeout_s: float = Field(gt=0)
    check_concurrency: int = Field(ge=1)
    slow_response_ms: int = Field(ge=0)
    uptime_window: int = Field(ge=1)


class CheckOutcomeResponse(BaseModel):
    status: CheckStatusName
    status_code: int | None = None
    response_time_ms: int | None = None
    error_message: str | None = None


class CheckRecordResponse(CheckOutcomeResponse):
    id: int
    monitor_id: str
    checked_at: str


class MonitorResponse(BaseModel):
    id: str
    name: str | None = None
    url: str
    interval_s: int | None = None
    last_checked_at: str | None = None
    status: DisplayStatusName = Field(
        description="Latest check status, UNKNOWN when the monitor was never checked"
    )
    response_time_ms: int | None = None


class MonitorDetailResponse(MonitorResponse):
    uptime_percent: float | None = Field(
        default=None, description="Share of UP results in the recent uptime window"
    )
    average_response_time_ms: int | None = None
    checks: list[CheckRecordResponse] = Field(default_factory=list)


class CheckOneResponse(BaseModel):
    monitor_id: str
    check: CheckRecordResponse


class BatchResultResponse(BaseModel):
    monitor_id: str
    succeeded: bool
    outcome: CheckOutcomeResponse | None = None
    check_id: int | None = None
    error_message: str | None = None


class CheckAllResponse(BaseModel):
    message: str
    success: int = Field(ge=0, description="Monitors whose check pipeline completed")
    errors: int = Field(ge=0, description="Monitors whose check pipeline failed")
    results: list[BatchResultResponse] = Field(default_factory=list)


class StatusSummaryResponse(BaseModel):
    total: int
    up: int
    warning: int
    down: int
    unknown: int
