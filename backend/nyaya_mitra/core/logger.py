"""
Shared application logger
"""
import logging
import sys

from nyaya_mitra.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

logger = logging.getLogger("nyaya_mitra")


def setup_logging(level: str = None) -> None:
    """Attach a single stream handler to the root logger (idempotent)."""
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(level_name)

    if not any(getattr(h, "_nyaya_mitra", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._nyaya_mitra = True
        root.addHandler(handler)

    # SQL echo stays off unless explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )
