import os
from dotenv import load_dotenv

load_dotenv()


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Settings:
    STATUS_CHECKER_PRODUCT: str = os.getenv("STATUS_CHECKER_PRODUCT", "Aurora")
    CHECK_TIMEOUT_S: float = float(os.getenv("CHECK_TIMEOUT_S", "30"))
    CHECK_CONNECT_TIMEOUT_S: float | None = _optional_float("CHECK_CONNECT_TIMEOUT_S")
    SLOW_RESPONSE_MS: int = int(os.getenv("SLOW_RESPONSE_MS", 3000))
    CHECK_CONCURRENCY: int = int(os.getenv("CHECK_CONCURRENCY", 20))
    UPTIME_WINDOW: int = int(os.getenv("UPTIME_WINDOW", 24))
    MONITORS_PATH: str = os.getenv("MONITORS_PATH", "monitors.yml")
    STATUS_DB_PATH: str = os.getenv(
        "STATUS_DB_PATH", "./data/status-checker.sqlite3"
    )

    @property
    def user_agent(self) -> str:
        return f"{self.STATUS_CHECKER_PRODUCT} Status Checker/1.0"


settings = Settings()
