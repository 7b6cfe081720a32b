from __future__ import annotations

import logging
from pathlib import Path
import yaml
from app.config import settings
from app.models import Monitor, Registry

logger = logging.getLogger(__name__)


def registry_path() -> Path:
    p = Path(settings.MONITORS_PATH).expanduser()
    if p.is_absolute():
        return p
    return Path.cwd() / p


def load_registry(path: Path | None = None) -> Registry:
    path = path or registry_path()
    if not path.exists():
        raise FileNotFoundError(
            f"Missing monitors file at {path}. Copy monitors.example.yml to monitors.yml."
        )

    data = yaml.safe_load(path.read_text()) or {}
    reg = Registry.model_validate(data)

    # Ensure unique IDs
    seen = set()
    for m in reg.monitors:
        if m.id in seen:
            raise ValueError(f"Duplicate monitor id: {m.id}")
        seen.add(m.id)

    logger.info("Loaded %d monitors from %s", len(reg.monitors), path)
    return reg


def apply_defaults(reg: Registry) -> list[Monitor]:
    """
    Return the registry's monitors with defaults filled in, in file order.
    """
    d = reg.defaults
    return [
        m.model_copy(
            update={
                "interval_s": m.interval_s or d.interval_s,
                "name": m.name or m.id,
            }
        )
        for m in reg.monitors
    ]
