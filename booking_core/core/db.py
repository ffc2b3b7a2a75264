"""
Query timing for the booking database.

Two kinds of slow statements are reported:

- any query above ``ALERT_QUERY_MS_THRESHOLD`` ("Slow query detected");
- statements on ``slot_locks`` above ``SLOT_LOCK_WAIT_WARN_MS``. Those
  statements block while another transaction books the same specialist
  and date, so their duration is the booking lock wait.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

from flask import g, has_request_context
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger("booking_core.sql")

_MASKED_COLUMNS = ("comment",)
_MAX_STATEMENT_CHARS = 500


def _env_ms(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _timing_enabled() -> bool:
    return os.getenv("ALERT_SLOW_QUERY_ENABLED", "true").strip().lower() == "true"


def _clip(value: Any, limit: int) -> str:
    text = str(value)
    return text if len(text) <= limit else text[:limit] + "..."


def _describe_params(statement: str, parameters: Any) -> Any:
    """Parameters safe for logs: free-text client comments are hidden."""
    if isinstance(parameters, dict):
        return {
            key: "***" if key in _MASKED_COLUMNS else _clip(value, 100)
            for key, value in parameters.items()
        }
    if isinstance(parameters, (list, tuple)):
        if any(column in statement for column in _MASKED_COLUMNS):
            return f"<{len(parameters)} params>"
        return [_clip(value, 100) for value in parameters]
    return _clip(parameters, 100)


def _request_fields() -> Dict[str, Any]:
    if not has_request_context():
        return {}
    fields = {}
    for attr in ("request_id", "route"):
        value = getattr(g, attr, None)
        if value:
            fields[attr] = value
    user = getattr(g, "current_user", None)
    if user is not None:
        fields["user_id"] = user.id
    return fields


def register_query_timing(
    engine: Engine, db_info: Optional[Dict[str, Any]] = None
) -> None:
    """Attach timing listeners to ``engine`` (once per engine)."""
    if getattr(engine, "_booking_query_timing", False):
        return

    database = dict(db_info or {"db_name": engine.url.database})

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        context._booking_query_started = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _stop_timer(conn, cursor, statement, parameters, context, executemany):
        started = getattr(context, "_booking_query_started", None)
        if started is None:
            return
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if not _timing_enabled():
            return

        if "slot_locks" in statement:
            if elapsed_ms >= _env_ms("SLOT_LOCK_WAIT_WARN_MS", 500):
                logger.warning(
                    "Booking lock wait",
                    extra={
                        "context": {
                            "duration_ms": round(elapsed_ms, 2),
                            "params": _describe_params(statement, parameters),
                            **database,
                            **_request_fields(),
                        }
                    },
                )
            return

        if elapsed_ms >= _env_ms("ALERT_QUERY_MS_THRESHOLD", 100):
            logger.warning(
                "Slow query detected",
                extra={
                    "context": {
                        "duration_ms": round(elapsed_ms, 2),
                        "statement": _clip(statement or "", _MAX_STATEMENT_CHARS),
                        "params": _describe_params(statement, parameters),
                        **database,
                        **_request_fields(),
                    }
                },
            )

    setattr(engine, "_booking_query_timing", True)
