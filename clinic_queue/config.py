"""Runtime configuration loaded from the environment / .env file."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

load_dotenv(override=True)

DEFAULT_DB_PATH = Path(__file__).parent / "records" / "clinic_queue.db"


def get_db_path() -> Path:
    """Database file location, read on every call so tests can override it."""
    return Path(os.environ.get("CLINIC_DB_PATH", DEFAULT_DB_PATH))


def get_consultation_fee() -> int:
    """Default consultation fee charged at check-in."""
    return int(os.environ.get("CONSULTATION_FEE", "500"))


def configure_logging(level: str | None = None) -> None:
    """Route clinic_queue logs through rich. Safe to call more than once."""
    level = level or os.environ.get("CLINIC_LOG_LEVEL", "INFO")
    logger = logging.getLogger("clinic_queue")
    logger.setLevel(level.upper())
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(rich_tracebacks=True, show_path=False))
