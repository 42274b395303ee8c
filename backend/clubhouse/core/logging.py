"""Root logger configuration applied once at application start."""

import logging

from .config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger from settings unless handlers already exist."""
    resolved = (level or settings.log_level or "INFO").upper()
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=resolved, format=_LOG_FORMAT)
    else:
        root.setLevel(resolved)
    # SQL echo is noisy at INFO; keep it behind DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.DEBUG if resolved == "DEBUG" else logging.WARNING
    )
