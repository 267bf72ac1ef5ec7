"""Logging configuration"""
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from infrastructure.config import Settings

PACKAGE_LOGGERS = ("domain", "application", "infrastructure", "api", "main")


class BookingJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with timestamp, level and logger fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def build_logging_config(level: str, fmt: str = "json") -> Dict[str, Any]:
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
            },
            "json": {
                "()": BookingJsonFormatter,
                "format": "%(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": fmt,
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            name: {"level": level}
            for name in PACKAGE_LOGGERS
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def configure_logging(settings: Settings) -> None:
    logging.config.dictConfig(build_logging_config(settings.LOG_LEVEL, settings.LOG_FORMAT))
    logging.getLogger(__name__).debug("Logging configured at %s", settings.LOG_LEVEL)
