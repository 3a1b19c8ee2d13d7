"""Settings loaded from environment variables (+ optional .env)."""
import os

from dotenv import load_dotenv

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.split(",") if p.strip()]


DATABASE_PATH = os.getenv("HABITLOOP_DATABASE_PATH", "habitloop.db")
LOG_LEVEL = os.getenv("HABITLOOP_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = _env_list("HABITLOOP_CORS_ORIGINS", ["http://localhost:5173"])

# Fixed-window rate limits, per caller id
TASKS_RATE_LIMIT = _env_int("HABITLOOP_TASKS_RATE_LIMIT", 60)
TASKS_RATE_WINDOW_SECONDS = _env_int("HABITLOOP_TASKS_RATE_WINDOW_SECONDS", 60)
RENEGOTIATION_RATE_LIMIT = _env_int("HABITLOOP_RENEGOTIATION_RATE_LIMIT", 30)
RENEGOTIATION_RATE_WINDOW_SECONDS = _env_int("HABITLOOP_RENEGOTIATION_RATE_WINDOW_SECONDS", 60)
