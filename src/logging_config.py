"""Structured logging configuration for the refuel log."""

import json
import logging
import logging.handlers
import os
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

UTC = timezone.utc

APP_LOGGER_NAME = "refuel_log"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, include_traceback: bool = True):
        super().__init__()
        self.include_traceback = include_traceback

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        # Request context set by the middleware
        for key in ("request_id", "user_id", "method", "path"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if hasattr(record, "extra"):
            log_data["extra"] = record.extra

        if record.exc_info and self.include_traceback:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class AuditLogger:
    """Audit trail for changes to stored refuel records."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, action: str, details: dict[str, Any], user_id: str | None = None):
        """Log an audit event."""
        extra = {
            "audit_action": action,
            "audit_details": details,
        }
        if user_id:
            extra["user_id"] = user_id

        self.logger.info(f"AUDIT: {action}", extra={"extra": extra})

    def refuel_created(self, user_id: str, refuel_id: int, refuel_date: str):
        """Log refuel record creation."""
        self._log("refuel.created", {
            "refuel_id": refuel_id,
            "refuel_date": refuel_date,
        }, user_id=user_id)

    def refuel_updated(self, user_id: str, refuel_id: int, fields: list[str]):
        """Log refuel record correction."""
        self._log("refuel.updated", {
            "refuel_id": refuel_id,
            "fields_updated": fields,
        }, user_id=user_id)

    def refuel_deleted(self, user_id: str, refuel_id: int):
        """Log refuel record deletion."""
        self._log("refuel.deleted", {"refuel_id": refuel_id}, user_id=user_id)


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_bytes: int, backup_count: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: str | None = None,
    log_dir: str | Path | None = None,
    json_format: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> tuple[logging.Logger, AuditLogger]:
    """
    Configure application logging.

    Args:
        app_name: Logger name prefix
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO.
        log_dir: Directory for log files. Defaults to 'logs/' in project root.
        json_format: Use JSON formatting (True for prod, can disable for dev readability)
        max_bytes: Max log file size before rotation
        backup_count: Number of rotated files to keep

    Returns:
        Tuple of (main logger, audit logger)
    """
    if log_level is None:
        env = os.environ.get("FLASK_ENV", "development")
        log_level = os.environ.get(
            "LOG_LEVEL",
            "DEBUG" if env == "development" else "INFO"
        )

    level = getattr(logging, log_level.upper(), logging.INFO)

    log_dir = Path(log_dir) if log_dir else Path(__file__).parent.parent / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    # --- Main application logger ---
    app_logger = logging.getLogger(app_name)
    app_logger.setLevel(level)
    app_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)
    app_logger.addHandler(
        _rotating_handler(log_dir / f"{app_name}.log", level, formatter, max_bytes, backup_count)
    )

    # Errors also go to their own file for quick scanning
    app_logger.addHandler(
        _rotating_handler(log_dir / f"{app_name}_errors.log", logging.ERROR,
                          JSONFormatter(), max_bytes, backup_count)
    )

    # Pipeline modules log under their own names (services.analytics, ...)
    logging.getLogger("services").setLevel(level)

    # --- Audit logger (always INFO+, always JSON, separate file) ---
    audit_logger = logging.getLogger(f"{app_name}.audit")
    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()
    audit_logger.propagate = False
    audit_logger.addHandler(
        _rotating_handler(log_dir / f"{app_name}_audit.log", logging.INFO,
                          JSONFormatter(), max_bytes, backup_count)
    )

    app_logger.info(f"Logging initialized: level={log_level}, dir={log_dir}")

    return app_logger, AuditLogger(audit_logger)


def get_logger(name: str = APP_LOGGER_NAME) -> logging.Logger:
    """Get a logger instance."""
    return logging.getLogger(name)


def get_audit_logger() -> AuditLogger:
    """Get the audit logger instance."""
    return AuditLogger(logging.getLogger(f"{APP_LOGGER_NAME}.audit"))
