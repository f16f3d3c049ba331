"""Structured logging configuration using dictConfig."""
import logging
import logging.config
import sys
from typing import Dict, Any, Optional

from .settings import get_settings

# Third-party loggers that are too chatty at INFO during a pipeline run
QUIET_LOGGERS = {
    "uvicorn": "INFO",
    "uvicorn.access": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "google_genai": "WARNING",
}


class ServiceNameFilter(logging.Filter):
    """Stamps every record with the name of the running service."""

    def __init__(self, service_name: str = "trendpulse"):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        return True


def get_logging_config(service_name: Optional[str] = None, verbose: bool = False) -> Dict[str, Any]:
    """
    Build the dictConfig for a service.

    JSON lines in production, a readable console format elsewhere. Both carry
    the service name so pipeline and API logs can be told apart.
    """
    settings = get_settings()
    level = "DEBUG" if verbose else settings.log_level.upper()
    formatter = "json" if settings.environment == "production" else "console"

    handler = {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["service"],
        "stream": sys.stdout,
    }

    loggers = {
        name: {"level": quiet_level, "handlers": ["console"], "propagate": False}
        for name, quiet_level in QUIET_LOGGERS.items()
    }
    loggers["trendpulse"] = {"level": level, "handlers": ["console"], "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "service": {
                "()": ServiceNameFilter,
                "service_name": service_name or "trendpulse",
            }
        },
        "formatters": {
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "fmt": "%(asctime)s %(levelname)s %(service)s %(name)s %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S%z",
            },
            "console": {
                "format": "%(asctime)s [%(service)s] [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {"console": handler},
        "loggers": loggers,
        "root": {"level": settings.log_level.upper(), "handlers": ["console"]},
    }


def setup_logging(service_name: Optional[str] = None, verbose: bool = False) -> None:
    """Configure logging for a service entry point (API app or CLI)."""
    logging.config.dictConfig(get_logging_config(service_name, verbose=verbose))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)
