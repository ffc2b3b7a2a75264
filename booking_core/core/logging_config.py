"""
Logging setup for the booking core.

Records carry structured fields in ``extra={"context": {...}}``. Files and
production consoles get one JSON object per line; development consoles
get a colored single-line format with the context appended.

Usage:
    # In create_app()
    setup_logging(app, log_level="INFO")

    # In any module
    logger = logging.getLogger(__name__)
    logger.info("Appointment booked", extra={"context": {"appointment_id": 7}})
"""

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flask import Flask, g, request

LOG_FILE = "booking.log"
ERROR_LOG_FILE = "booking_errors.log"
MAX_LOG_BYTES = 10 * 1024 * 1024

SLOW_REQUEST_MS = 1000

QUIET_LOGGERS = ("werkzeug", "apscheduler", "urllib3")


class JSONFormatter(logging.Formatter):
    """One JSON object per record: time, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored level names, context rendered as ``key=value`` pairs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        record.levelname = f"{self.COLORS.get(level, '')}{level:<8}{self.RESET}"
        try:
            line = super().format(record)
        finally:
            record.levelname = level
        context = getattr(record, "context", None)
        if context:
            line += " | " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def _resolve_level(log_level: Union[int, str]) -> int:
    if isinstance(log_level, int):
        return log_level
    return getattr(logging, str(log_level).upper(), logging.INFO)


def _file_logging_requested(default: bool) -> bool:
    raw = os.getenv("LOG_TO_FILE")
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes")


def _file_handlers(log_dir: Path, level: int) -> List[logging.Handler]:
    """Rotating handlers for all records and for errors only.

    Raises OSError when the directory or files cannot be created.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    handlers = []
    for filename, handler_level in ((LOG_FILE, level), (ERROR_LOG_FILE, logging.ERROR)):
        handler = logging.handlers.RotatingFileHandler(
            log_dir / filename,
            maxBytes=MAX_LOG_BYTES,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setLevel(handler_level)
        handler.setFormatter(JSONFormatter())
        handlers.append(handler)
    return handlers


def register_request_logging(app: Flask) -> None:
    """Log each request and its response with a shared request id.

    The id comes from ``X-Request-ID`` when the client sends one and is
    echoed back on the response.
    """
    request_logger = logging.getLogger("booking_core.http")

    @app.before_request
    def _start_request():
        g.request_started = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.route = request.url_rule.rule if request.url_rule else request.path
        request_logger.debug(
            f"-> {request.method} {request.path}",
            extra={
                "context": {
                    "request_id": g.request_id,
                    "route": g.route,
                    "remote_addr": request.remote_addr,
                }
            },
        )

    @app.after_request
    def _finish_request(response):
        started = g.get("request_started")
        if started is None:
            return response
        duration_ms = (time.perf_counter() - started) * 1000
        user = g.get("current_user")
        level = logging.WARNING if duration_ms >= SLOW_REQUEST_MS else logging.INFO
        request_logger.log(
            level,
            f"{request.method} {request.path} {response.status_code}",
            extra={
                "context": {
                    "request_id": g.request_id,
                    "route": g.route,
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 2),
                    "user_id": getattr(user, "id", None),
                }
            },
        )
        response.headers["X-Request-ID"] = g.request_id
        return response


def setup_logging(
    app: Optional[Flask] = None,
    log_level: Union[int, str] = "INFO",
    log_to_file: bool = True,
    use_json_format: bool = False,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure the root logger and, when ``app`` is given, request logging.

    Args:
        app: Flask application to attach request/response hooks to
        log_level: level name or number
        log_to_file: write rotating JSON files (LOG_TO_FILE overrides)
        use_json_format: JSON on the console instead of the colored format
        log_dir: directory for log files, ``./logs`` by default
    """
    level = _resolve_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(JSONFormatter() if use_json_format else ConsoleFormatter())
    root_logger.addHandler(console)

    to_file = _file_logging_requested(log_to_file)
    if to_file:
        log_dir = log_dir or Path.cwd() / "logs"
        try:
            for handler in _file_handlers(log_dir, level):
                root_logger.addHandler(handler)
        except OSError as e:
            to_file = False
            root_logger.warning(
                "File logging unavailable, using console only",
                extra={"context": {"log_dir": str(log_dir), "error": str(e)}},
            )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        register_request_logging(app)

    logging.getLogger("booking_core").info(
        "Logging configured",
        extra={
            "context": {
                "level": logging.getLevelName(level),
                "log_to_file": to_file,
                "json_format": use_json_format,
            }
        },
    )


def log_performance(operation: str, duration_ms: float, **context) -> None:
    """Record how long ``operation`` took, with extra context fields."""
    logging.getLogger("booking_core.performance").info(
        f"{operation} took {duration_ms:.2f}ms",
        extra={
            "context": {
                "operation": operation,
                "duration_ms": round(duration_ms, 2),
                **context,
            }
        },
    )
