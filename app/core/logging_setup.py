import logging.config
import os
from typing import Any, Dict

from app.core.config import Settings

SERVICE_NAME = "soro-finance-api"
LOG_FORMAT = "%(asctime)s %(levelname)s [" + SERVICE_NAME + "] %(name)s: %(message)s"


def setup_logging(settings: Settings) -> None:
    """
    Configure the root logger.

    When LOG_DIR is set, logs go to error.log (ERROR and above) and
    combined.log (everything). Console output is added outside production,
    and in production when there is no LOG_DIR.
    """
    handlers: Dict[str, Dict[str, Any]] = {}

    if not settings.is_production or not settings.LOG_DIR:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "default",
        }

    if settings.LOG_DIR:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        handlers["error_file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": os.path.join(settings.LOG_DIR, "error.log"),
            "level": "ERROR",
        }
        handlers["combined_file"] = {
            "class": "logging.FileHandler",
            "formatter": "default",
            "filename": os.path.join(settings.LOG_DIR, "combined.log"),
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "root": {
            "level": settings.LOG_LEVEL.upper(),
            "handlers": list(handlers),
        },
    })
