"""
Configuration - Environment-driven settings (.env supported).

Every value can be overridden with an environment variable of the same name.
"""

import logging
import os
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


def _floats(raw: str) -> Tuple[float, ...]:
    return tuple(float(part) for part in raw.split(",") if part.strip())


class Config:
    # LLM collaborators
    OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    GENERATION_TEMPERATURE = float(os.getenv("GENERATION_TEMPERATURE", 0.7))
    GRADING_TEMPERATURE = float(os.getenv("GRADING_TEMPERATURE", 0.3))

    # Generation policy
    GENERATION_TIMEOUT = float(os.getenv("GENERATION_TIMEOUT", 30))
    GENERATION_MAX_ATTEMPTS = int(os.getenv("GENERATION_MAX_ATTEMPTS", 3))
    GENERATION_BACKOFF = _floats(os.getenv("GENERATION_BACKOFF", "1,2"))

    # Profile store
    PROFILE_STORE = os.getenv("PROFILE_STORE", "redis")  # "redis" or "memory"
    PROFILE_UPDATE_RETRIES = int(os.getenv("PROFILE_UPDATE_RETRIES", 3))
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
    REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level: Optional[str] = None):
    """Configure root logging once for the application process."""
    logging.basicConfig(
        level=(level or Config.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
