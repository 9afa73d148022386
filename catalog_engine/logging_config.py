import logging
from typing import Optional

from catalog_engine.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_HANDLER_NAME = "catalog_engine"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure a single stream handler on the root logger (safe to call twice)."""
    level = (level or settings.LOG_LEVEL).upper()

    root = logging.getLogger()
    root.setLevel(level)

    # avoid duplicate handlers
    if not any(getattr(h, "name", None) == _HANDLER_NAME for h in root.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)

    # SQL echo is controlled by DEBUG on the engine
    logging.getLogger("apscheduler").setLevel(max(logging.getLevelName(level), logging.INFO))
    return root
