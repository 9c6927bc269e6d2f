"""Structured logging configuration for Splunk compatibility.

Application events go to stderr. Audit events (see :mod:`opex_planner.audit`)
go to stderr as well and, when ``logging.file`` is set, are also written to
that file so the audit trail can be shipped on its own.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

from . import audit
from .config import Config

SPLUNK_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def splunk_processor(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> str:
    """Format log entries in Splunk key=value format.

    Format: 2026-01-08T12:15:00Z INFO  expenses.saved logger=audit row_count=120

    Uses the ``timestamp`` stamped earlier in the chain, or the current time
    when the entry was not stamped.
    """
    timestamp = event_dict.pop("timestamp", None)
    if timestamp is None:
        timestamp = datetime.now(timezone.utc).strftime(SPLUNK_TIMESTAMP_FORMAT)
    level = event_dict.pop("level", "INFO").upper()
    event = event_dict.pop("event", "")

    kvs = []
    for key, value in sorted(event_dict.items()):
        if key.startswith("_"):
            continue
        # Version names ("Live Forecast") and vendor names carry spaces
        if isinstance(value, str) and " " in value:
            value = f'"{value}"'
        kvs.append(f"{key}={value}")

    if kvs:
        return f"{timestamp} {level:5} {event} {' '.join(kvs)}"
    return f"{timestamp} {level:5} {event}"


def uppercase_level(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Upper-case the level so JSON entries match the Splunk format."""
    event_dict["level"] = event_dict.get("level", method_name).upper()
    return event_dict


def build_processors(log_format: str) -> list:
    """Processor chain for the configured output format."""
    processors: list = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors += [
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            uppercase_level,
            structlog.processors.JSONRenderer(),
        ]
    else:  # splunk format
        processors += [
            structlog.processors.TimeStamper(fmt=SPLUNK_TIMESTAMP_FORMAT, utc=True),
            splunk_processor,
        ]
    return processors


def _configure_audit_file(config: Config) -> None:
    """Attach (or detach) the audit log file handler."""
    audit_logger = logging.getLogger(audit.AUDIT_LOGGER_NAME)
    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    if config.logging.file:
        config.logging.file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.logging.file)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        audit_logger.addHandler(file_handler)


def configure_logging(config: Config) -> structlog.stdlib.BoundLogger:
    """Configure structured logging and audit events from config.

    Args:
        config: Application configuration.

    Returns:
        Configured structlog logger.
    """
    logging.basicConfig(
        format="%(message)s",
        level=LEVELS.get(config.logging.level, logging.INFO),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    _configure_audit_file(config)
    audit.configure(config.logging.enabled)

    structlog.configure(
        processors=build_processors(config.logging.format),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Optional logger name.

    Returns:
        Structlog bound logger.
    """
    return structlog.get_logger(name)
