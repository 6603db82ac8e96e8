"""Structured JSON logging configuration."""
import logging
import sys
from pythonjsonlogger import jsonlogger
from app.core.config import settings

_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def setup_logging() -> None:
    """Configure JSON structured logging for production, human-readable for dev.

    Scheduler passes run in worker threads and Celery processes, so the
    thread name is kept in the JSON record to tell passes apart.
    """
    if getattr(settings, "APP_ENV", "development") == "production":
        handler = logging.StreamHandler(sys.stdout)
        formatter = jsonlogger.JsonFormatter(
            _FORMAT + " %(threadName)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
        handler.setFormatter(formatter)
        logging.root.handlers = [handler]
        logging.root.setLevel(logging.INFO)
    else:
        logging.basicConfig(level=logging.INFO, format=_FORMAT)

    # SQL echo is noisy during hourly passes
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
