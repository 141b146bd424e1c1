"""Logging setup: one stream handler on the root logger, level from settings."""
import logging
import sys
from typing import Optional

from app.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging once per process. Safe to call repeatedly."""
    global _configured
    resolved = (level or settings.log_level or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(resolved)
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)

    # uvicorn access lines duplicate our request logging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # SQL echo stays off unless explicitly requested
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    # passlib warns about the bcrypt version lookup on every start
    logging.getLogger("passlib").setLevel(logging.ERROR)
    _configured = True
