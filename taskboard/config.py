from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    step_max_attempts: int = 3
    step_retry_delay_ms: int = 200
    default_status: str = "todo"
    org_utc_offset_minutes: int = 0

    @property
    def org_utc_offset(self) -> timedelta:
        return timedelta(minutes=self.org_utc_offset_minutes)


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip() or f"sqlite:///{PROJECT_ROOT / 'taskboard.db'}"

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    step_max_attempts=int(os.getenv("STEP_MAX_ATTEMPTS", "3")),
    step_retry_delay_ms=int(os.getenv("STEP_RETRY_DELAY_MS", "200")),
    default_status=os.getenv("DEFAULT_STATUS", "todo").strip() or "todo",
    org_utc_offset_minutes=int(os.getenv("ORG_UTC_OFFSET_MINUTES", "0")),
)
