"""
Structured logging configuration.

Ledger mutations (posting, voiding, period closing) are logged with the
affected entity in ``extra`` so that a log aggregator can join them with
the audit trail.

Configuration:
- Development: Human-readable console output
- Production: JSON lines to stdout

Environment variables:
- LOG_FORMAT: "json" or "console" (default: json unless DEBUG)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
"""
import json
import logging
import os
from datetime import datetime, timezone


LEDGER_APPS = ("accounts", "accounting", "fiscal", "audit", "balances", "ledger")


def get_logging_config(debug: bool = False) -> dict:
    """
    Build the Django LOGGING dict.

    Args:
        debug: Whether running in debug mode

    Returns:
        Django LOGGING dict
    """
    log_level = os.environ.get("LOG_LEVEL", "INFO" if not debug else "DEBUG")
    log_format = os.environ.get("LOG_FORMAT", "console" if debug else "json")

    config = {
        "version": 1,
        "disable_existing_loggers": False,
    }

    if log_format == "json":
        config["formatters"] = {
            "json": {
                "()": "ops.logging_config.JsonFormatter",
            },
        }
        config["handlers"] = {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
            "null": {
                "class": "logging.NullHandler",
            },
        }
    else:
        config["formatters"] = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        config["handlers"] = {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
            "null": {
                "class": "logging.NullHandler",
            },
        }

    config["loggers"] = {
        "": {
            "handlers": ["console"],
            "level": log_level,
        },
        "django": {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        },
        "django.db.backends": {
            "handlers": ["console"] if debug else ["null"],
            "level": "DEBUG" if debug else "INFO",
            "propagate": False,
        },
    }
    for app in LEDGER_APPS:
        config["loggers"][app] = {
            "handlers": ["console"],
            "level": log_level,
            "propagate": False,
        }

    return config


_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


class JsonFormatter(logging.Formatter):
    """
    JSON log formatter.

    Each line carries timestamp, level, logger and message, plus an
    ``extra`` object with whatever the caller passed (entity ids, amounts).
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)

        if extras:
            log_entry["extra"] = extras

        return json.dumps(log_entry, default=str)
