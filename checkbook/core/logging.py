"""
Logging configuration for the checkbook package.

Every record is stamped with the service name and environment so audit
write failures and retention runs can be told apart once logs from
several deployments are aggregated.
"""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any

from checkbook.core.config import settings

# Audit write failures are logged here at ERROR and must never be filtered out
AUDIT_LOGGER = "checkbook.services.audit_service"


class ServiceContextFilter(logging.Filter):
    """Add service and environment fields to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = f"{settings.app_name}/{settings.version}"
        record.environment = settings.environment
        return True


def get_logging_config() -> dict[str, Any]:
    """
    Build the dictConfig for the current settings.

    Console output is plain text or JSON depending on log_format. A rotating
    file handler is added when log_file_enabled is set.
    """
    formatter = "json" if settings.log_format == "json" else "console"
    audit_level = "ERROR" if settings.log_level == "CRITICAL" else settings.log_level
    handlers = ["console"]

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "format": (
                    "%(asctime)s - %(levelname)s - [%(service)s %(environment)s] "
                    "%(name)s - %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                "format": (
                    "%(asctime)s %(levelname)s %(service)s %(environment)s "
                    "%(name)s %(message)s"
                ),
            },
        },
        "filters": {
            "service_context": {"()": ServiceContextFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
                "stream": sys.stdout,
                "filters": ["service_context"],
            },
        },
        "root": {"level": "WARNING", "handlers": handlers},
        "loggers": {
            "checkbook": {
                "level": settings.log_level,
                "handlers": handlers,
                "propagate": False,
            },
            AUDIT_LOGGER: {"level": audit_level},
            "sqlalchemy.engine": {"level": "INFO" if settings.debug else "WARNING"},
        },
    }

    if settings.log_file_enabled:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": formatter,
            "filename": settings.log_file_path,
            "maxBytes": settings.log_file_max_bytes,
            "backupCount": settings.log_file_backup_count,
            "encoding": "utf-8",
            "filters": ["service_context"],
        }
        handlers.append("file")

    return config


def setup_logging() -> None:
    """Configure logging once at process startup (API server or scheduled job)."""
    if settings.log_file_enabled:
        Path(settings.log_file_path).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(get_logging_config())

    logging.getLogger(__name__).info(
        f"Logging configured: level={settings.log_level}, format={settings.log_format}"
    )
