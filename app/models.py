from __future__ import annotations

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class Defaults(BaseModel):
    interval_s: int = Field(default=300, ge=1)


class Monitor(BaseModel):
    id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    name: Optional[str] = None
    interval_s: Optional[int] = Field(default=None, ge=1)
    # Filled in by MonitorStore from the last completed check.
    last_checked_at: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _url_has_host(cls, v: str) -> str:
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("url must be a host or an absolute http(s) URL")
        if "://" in v and not v.lower().startswith(("http://", "https://")):
            raise ValueError("only http and https URLs can be monitored")
        return v

    @property
    def display_name(self) -> str:
        return self.name or self.id


class Registry(BaseModel):
    defaults: Defaults = Defaults()
    monitors: List[Monitor] = Field(default_factory=list)
