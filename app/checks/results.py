from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any


class CheckStatus(str, Enum):
    UP = "UP"
    WARNING = "WARNING"
    DOWN = "DOWN"


@dataclass(frozen=True)
class CheckOutcome:
    status: CheckStatus
    response_time_ms: int | None = None
    status_code: int | None = None
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data
