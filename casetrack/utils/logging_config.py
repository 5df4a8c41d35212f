"""
Structured logging configuration for the Case & Report Tracker.

This module provides logging setup with:
- JSON formatted logs for production
- Human-readable logs for development
- Request correlation IDs
- Log rotation
- Flask request lifecycle integration
"""

import json
import logging
import logging.handlers
import os
import sys
import uuid
from datetime import datetime, timezone
from logging import Logger
from typing import Any, Dict, Optional

from flask import Flask, g, has_request_context, request, session

_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class RequestContextFilter(logging.Filter):
    """Add request context information to log records."""

    def filter(self, record):
        if has_request_context():
            record.correlation_id = getattr(g, "correlation_id", "no-request")
            record.request_method = getattr(request, "method", "UNKNOWN")
            record.request_path = getattr(request, "path", "unknown")
            record.remote_addr = getattr(request, "remote_addr", "unknown")
            user = session.get("user") or {}
            record.user_email = user.get("email", "anonymous")
        else:
            record.correlation_id = "no-request"
            record.request_method = "SYSTEM"
            record.request_path = "system"
            record.remote_addr = "system"
            record.user_email = "system"

        return True


class CustomJSONFormatter(logging.Formatter):
    """JSON formatter carrying request context and ``extra`` fields."""

    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.upper(),
            "name": record.name,
            "message": record.getMessage(),
            "service": "case-tracker",
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS and key not in log_record:
                log_record[key] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for development console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
        "RESET": "\033[0m",
    }

    def format(self, record):
        level_color = self.COLORS.get(record.levelname, self.COLORS["RESET"])
        reset_color = self.COLORS["RESET"]
        formatted = super().format(record)
        return formatted.replace(record.levelname, f"{level_color}{record.levelname}{reset_color}", 1)


class StructuredLogger:
    """Main structured logger class."""

    def __init__(self, name: str = "casetrack"):
        self.name = name
        self.logger: Optional[Logger] = None
        self._configured = False

    @property
    def configured(self) -> bool:
        return self._configured

    def configure(self, app: Optional[Flask] = None, **kwargs):
        """Configure the structured logger. An app always reapplies its own settings."""
        if self._configured and app is None:
            return self.logger

        if app:
            log_level = app.config.get("LOG_LEVEL", "INFO")
            log_format = app.config.get("LOG_FORMAT", "development")
            log_file = app.config.get("LOG_FILE", "logs/app.log")
            max_bytes = app.config.get("LOG_MAX_BYTES", 10 * 1024 * 1024)
            backup_count = app.config.get("LOG_BACKUP_COUNT", 5)
            enable_console = app.config.get("LOG_ENABLE_CONSOLE", True)
        else:
            log_level = kwargs.get("log_level", os.getenv("LOG_LEVEL", "INFO"))
            log_format = kwargs.get("log_format", os.getenv("LOG_FORMAT", "development"))
            log_file = kwargs.get("log_file", os.getenv("LOG_FILE", ""))
            max_bytes = kwargs.get("max_bytes", int(os.getenv("LOG_MAX_BYTES", "10485760")))
            backup_count = kwargs.get("backup_count", int(os.getenv("LOG_BACKUP_COUNT", "5")))
            enable_console = kwargs.get("enable_console", os.getenv("LOG_ENABLE_CONSOLE", "true").lower() == "true")

        self.logger = logging.getLogger(self.name)
        self.logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
        self.logger.handlers.clear()

        if log_file:
            log_dir = os.path.dirname(log_file)
            if log_dir and not os.path.exists(log_dir):
                os.makedirs(log_dir, exist_ok=True)

        context_filter = RequestContextFilter()

        if log_format.lower() == "json":
            formatter = CustomJSONFormatter()
            console_formatter = formatter
        else:
            dev_format = (
                "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d "
                "[%(correlation_id)s] %(request_method)s %(request_path)s - %(message)s"
            )
            formatter = logging.Formatter(dev_format)
            console_formatter = ColoredFormatter(dev_format)

        if log_file:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
            file_handler.setFormatter(formatter)
            file_handler.addFilter(context_filter)
            self.logger.addHandler(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(console_formatter)
            console_handler.addFilter(context_filter)
            self.logger.addHandler(console_handler)

        if not self.logger.handlers:
            self.logger.addHandler(logging.NullHandler())

        self._configured = True

        self.logger.info(
            "Structured logging configured successfully",
            extra={
                "log_level": log_level,
                "log_format": log_format,
                "log_file": log_file,
                "enable_console": enable_console,
            },
        )

        return self.logger

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        """Get a logger instance."""
        if not self._configured:
            raise RuntimeError("Logger not configured. Call configure() first.")

        if name:
            return logging.getLogger(f"{self.name}.{name}")

        if self.logger is None:
            raise RuntimeError("Logger not properly initialized.")
        return self.logger


# Process-wide logging setup, the one piece of shared state logging needs
structured_logger = StructuredLogger()


def setup_flask_logging(app: Flask):
    """Set up Flask application logging with request correlation."""
    logger = structured_logger.configure(app)

    app.logger.handlers.clear()
    for handler in logger.handlers:
        app.logger.addHandler(handler)
    app.logger.setLevel(logger.level)

    @app.before_request
    def before_request():
        g.correlation_id = str(uuid.uuid4())[:8]
        g.request_start_time = datetime.now(timezone.utc)

        logger.debug(
            "Request started",
            extra={
                "event": "request_start",
                "method": request.method,
                "path": request.path,
                "content_length": request.content_length,
            },
        )

    @app.after_request
    def after_request(response):
        start = getattr(g, "request_start_time", None)
        duration = (datetime.now(timezone.utc) - start).total_seconds() * 1000 if start else 0.0

        logger.info(
            "Request completed",
            extra={
                "event": "request_end",
                "status_code": response.status_code,
                "duration_ms": round(duration, 2),
            },
        )

        if hasattr(g, "correlation_id"):
            response.headers["X-Correlation-ID"] = g.correlation_id
        return response


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger instance."""
    if not structured_logger.configured:
        structured_logger.configure()
    return structured_logger.get_logger(name)


def log_persistence_event(operation: str, collection: Optional[str] = None, **kwargs):
    """Helper function to log persistence operations."""
    try:
        logger = get_logger("persistence")
        logger.info(
            f"Persistence operation: {operation}",
            extra={"event": "persistence_operation", "operation": operation, "collection": collection, **kwargs},
        )
    except Exception:
        logging.getLogger("persistence").info(f"Persistence operation: {operation} on {collection}")


def log_security_event(event_type: str, details: Dict[str, Any]):
    """Helper function to log security events."""
    try:
        logger = get_logger("security")
        logger.warning(
            f"Security event: {event_type}", extra={"event": "security_event", "event_type": event_type, **details}
        )
    except Exception:
        logging.getLogger("security").warning(f"Security event: {event_type}")


def log_business_event(event_type: str, entity_type: Optional[str] = None, entity_id: Optional[str] = None, **kwargs):
    """Helper function to log business events."""
    try:
        logger = get_logger("business")
        logger.info(
            f"Business event: {event_type}",
            extra={
                "event": "business_event",
                "event_type": event_type,
                "entity_type": entity_type,
                "entity_id": entity_id,
                **kwargs,
            },
        )
    except Exception:
        logging.getLogger("business").info(f"Business event: {event_type} on {entity_type}: {entity_id}")
