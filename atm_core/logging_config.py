"""
Structured Logging Configuration Module

Provides JSON-formatted structured logging for ATM sessions. Audit records
carry the masked account number and the session id; PINs and full account
numbers never reach a log record.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional


AUDIT_FIELDS = ("session_id", "account", "action", "status", "extra")


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module if hasattr(record, 'module') else record.name,
            "message": record.getMessage(),
        }
        for name in AUDIT_FIELDS:
            log_entry[name] = getattr(record, name, None)

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        # Add exception info if present
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line text formatter, audit fields appended as key=value"""

    def __init__(self):
        super().__init__("[%(asctime)s] [%(levelname)s] %(message)s", "%Y-%m-%d %H:%M:%S")

    def format(self, record):
        line = super().format(record)
        fields = [
            f"{name}={getattr(record, name)}"
            for name in AUDIT_FIELDS
            if getattr(record, name, None) is not None
        ]
        if fields:
            line = f"{line} | {' '.join(fields)}"
        return line


def setup_logging(level: str = "INFO", logger_name: str = "atm",
                  log_format: str = "json") -> logging.Logger:
    """
    Setup structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the logger
        log_format: "json" or "text"

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "text":
        handler.setFormatter(TextFormatter())
    else:
        handler.setFormatter(JSONFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False

    return logger


def get_logger(name: str = "atm") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               account: Optional[str] = None, action: Optional[str] = None,
               status: Optional[str] = None, session_id: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log an action with structured data.

    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message
        account: Masked account number
        action: Action being performed
        status: Outcome (SUCCESS / FAILED)
        session_id: Session identifier
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(
        logger.name, levelno,
        __name__, 0, message, (), None
    )

    # Add custom fields
    if account:
        record.account = account
    if action:
        record.action = action
    if status:
        record.status = status
    if session_id:
        record.session_id = session_id
    if extra:
        record.extra = extra

    logger.handle(record)
