"""
Service configuration.

Values come from environment variables; a ``.env`` file is loaded into the
environment first, except under pytest so tests see predictable defaults.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

is_testing = "pytest" in sys.modules or os.getenv("PYTEST_VERSION") is not None

if not is_testing:
    for env_path in (BASE_DIR / ".env", Path.cwd() / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            break


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


DEFAULT_DB_PATH = BASE_DIR / "data" / "booking.db"

DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite+aiosqlite:///{DEFAULT_DB_PATH}")
SQL_ECHO = _get_bool("SQL_ECHO", False)

# Slot length until durations are resolved per service
SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "30"))

# Deadline applied to every engine operation
OPERATION_TIMEOUT_SECONDS = float(os.getenv("OPERATION_TIMEOUT_SECONDS", "2.0"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
