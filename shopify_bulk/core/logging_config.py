"""
Logging configuration.

Provides:
- Console handler with optional colors
- Optional rotating file handlers
- Structured JSON logging in production
- A filter tagging records with the bulk operation being processed
"""

import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from shopify_bulk.core.config import Settings, get_settings

# Per task, so concurrent runs do not mix up their ids
current_operation_id: ContextVar[Optional[str]] = ContextVar("current_operation_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_RECORD_FIELDS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name on terminals.
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def format(self, record):
        formatted = super().format(record)

        if hasattr(sys.stderr, "isatty") and sys.stderr.isatty():
            color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
            reset = self.COLORS["RESET"]
            formatted = formatted.replace(record.levelname, f"{color}{record.levelname}{reset}")

        return formatted


class StructuredFormatter(logging.Formatter):
    """
    Formatter emitting one JSON document per record, for log shippers.
    """

    def __init__(self, *args, settings: Optional[Settings] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings = settings or get_settings()

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "app_name": self.settings.APP_NAME,
            "app_version": self.settings.APP_VERSION,
            "environment": self.settings.ENVIRONMENT,
        }

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_RECORD_FIELDS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class BulkOperationContextFilter(logging.Filter):
    """
    Adds the id of the bulk operation handled by the current task.
    """

    def filter(self, record):
        if not hasattr(record, "operation_id"):
            record.operation_id = current_operation_id.get()
        return True


def get_logging_configuration(settings: Settings) -> Dict[str, Any]:
    """
    Build the dictConfig for the given settings.

    Args:
        settings: Package settings

    Returns:
        Dict: Logging configuration
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"bulk_context": {"()": BulkOperationContextFilter}},
        "formatters": {
            "standard": {
                "format": settings.LOG_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s - %(name)s - %(levelname)s - [%(operation_id)s] "
                    "%(module)s.%(funcName)s:%(lineno)d - %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "colored": {
                "()": ColoredFormatter,
                "format": settings.LOG_FORMAT,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {"()": StructuredFormatter, "settings": settings},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.LOG_LEVEL,
                "formatter": "json" if settings.is_production else ("colored" if settings.DEBUG else "standard"),
                "filters": ["bulk_context"],
                "stream": "ext://sys.stdout",
            }
        },
        "loggers": {
            "shopify_bulk": {"level": settings.LOG_LEVEL},
        },
        "root": {"level": settings.LOG_LEVEL, "handlers": ["console"]},
    }

    if settings.LOG_FILE_PATH:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.LOG_LEVEL,
            "formatter": "json" if settings.is_production else "detailed",
            "filters": ["bulk_context"],
            "filename": settings.LOG_FILE_PATH,
            "maxBytes": settings.LOG_MAX_SIZE_MB * 1024 * 1024,
            "backupCount": settings.LOG_BACKUP_COUNT,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    return config


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Configure logging for an application embedding the package.

    Args:
        settings: Settings to use, defaults to the environment ones
    """
    settings = settings or get_settings()

    if settings.LOG_FILE_PATH:
        Path(settings.LOG_FILE_PATH).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(get_logging_configuration(settings))

    # Quieter third-party libraries
    for logger_name in ["aiohttp.access", "aiohttp.client", "asyncio"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured - level: {settings.LOG_LEVEL}")


def log_api_call(method: str, url: str, status_code: int, duration: float, **kwargs):
    """
    Log a call to an external API.

    Args:
        method: HTTP method
        url: API URL
        status_code: Response status
        duration: Duration in seconds
        **kwargs: Additional data
    """
    logger = logging.getLogger("shopify_bulk.api.call")

    extra_data = {
        "method": method,
        "url": url,
        "status_code": status_code,
        "duration_ms": round(duration * 1000, 2),
        **kwargs,
    }

    if 200 <= status_code < 300:
        level = logging.DEBUG
    elif 400 <= status_code < 500 and status_code != 429:
        level = logging.WARNING
    else:
        level = logging.ERROR

    logger.log(
        level,
        f"API call: {method} {url} -> {status_code} ({duration * 1000:.1f}ms)",
        extra=extra_data,
    )
