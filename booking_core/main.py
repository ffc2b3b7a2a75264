import atexit
import logging
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import HTTPException

from booking_core.core import config
from booking_core.core.api_utils import api_response, error_response
from booking_core.core.exceptions import BookingError
from booking_core.core.logging_config import setup_logging
from booking_core.db.session import Database

logger = logging.getLogger(__name__)

AUTO_COMPLETE_JOB_ID = "auto_complete_appointments"


def _mask_url_password(url: str) -> str:
    """Hide the password part of a database URL before logging it."""
    if "://" not in url or "@" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    if ":" in credentials:
        user = credentials.split(":", 1)[0]
        return f"{scheme}://{user}:***@{host}"
    return url


def auto_complete_job(database: Database, policy=None, clock=None) -> None:
    """Background job: complete confirmed appointments that have ended."""
    from booking_core.services.factory import build_services

    try:
        with database.session() as db:
            services = build_services(db, policy=policy, clock=clock)
            result = services.appointments.auto_complete_past()
    except Exception as e:
        logger.error(
            "Auto-complete job failed",
            extra={"context": {"job_id": AUTO_COMPLETE_JOB_ID, "error": str(e)}},
            exc_info=True,
        )
        return

    if result.failed_ids:
        logger.warning(
            "Auto-complete job left appointments unchanged",
            extra={"context": {"failed_ids": result.failed_ids}},
        )


def _drop_client_errors(event, hint):
    """Sentry ``before_send``: 4xx booking failures are expected traffic."""
    exc_info = hint.get("exc_info")
    if exc_info and isinstance(exc_info[1], BookingError):
        if exc_info[1].status_code < 500:
            return None
    return event


def _init_sentry(env: str) -> None:
    sentry_dsn = os.getenv("SENTRY_DSN")
    if not sentry_dsn:
        logger.info(
            "Sentry disabled (SENTRY_DSN not set)",
            extra={"context": {"environment": env}},
        )
        return

    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=sentry_dsn,
        environment=env,
        release=os.getenv("GIT_SHA", "unknown"),
        integrations=[FlaskIntegration(), SqlalchemyIntegration()],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1")),
        send_default_pii=False,
        before_send=_drop_client_errors,
    )
    logger.info("Sentry initialized", extra={"context": {"environment": env}})


def _init_metrics(app: Flask, env: str) -> None:
    """Expose /metrics; must run before the limiter so scrapes are not limited."""
    from prometheus_client import CollectorRegistry, Gauge
    from prometheus_flask_exporter import PrometheusMetrics

    from booking_core.repositories.appointment_repo import booking_locks

    # Tests build many apps in one process; each gets its own registry
    registry = CollectorRegistry(auto_describe=True) if app.config["TESTING"] else None
    metrics = PrometheusMetrics(app, registry=registry, excluded_paths=["/health"])
    try:
        metrics.info(
            "booking_app_info",
            "Booking core build information",
            version=os.getenv("GIT_SHA", "unknown"),
            environment=env,
        )
        lock_gauge = Gauge(
            "booking_lock_keys",
            "Specialist/date keys currently held or awaited by booking writers",
            registry=metrics.registry,
        )
        lock_gauge.set_function(lambda: len(booking_locks))
    except ValueError as e:
        # Already registered in the default registry by an earlier create_app
        logger.debug(
            "Booking metrics already registered",
            extra={"context": {"error": str(e)}},
        )


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(BookingError)
    def handle_booking_error(exc: BookingError):
        if exc.status_code >= 500:
            logger.error(
                f"Booking failure: {exc.message}",
                extra={"context": {"code": exc.code}},
                exc_info=exc,
            )
        else:
            logger.info(
                f"Request rejected: {exc.message}",
                extra={"context": {"code": exc.code, "status": exc.status_code}},
            )
        return error_response(exc)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return api_response(
            False,
            exc.description or exc.name,
            None,
            exc.code or 500,
            error=exc.name.lower().replace(" ", "_"),
        )


def _start_scheduler(app: Flask, database: Database) -> None:
    from apscheduler.schedulers.background import BackgroundScheduler
    from apscheduler.triggers.interval import IntervalTrigger

    from booking_core.controllers.dependencies import CLOCK_EXTENSION, POLICY_EXTENSION

    scheduler = BackgroundScheduler(timezone=config.APP_TZ)
    scheduler.add_job(
        auto_complete_job,
        trigger=IntervalTrigger(minutes=config.AUTO_COMPLETE_INTERVAL_MINUTES),
        kwargs={
            "database": database,
            "policy": app.extensions.get(POLICY_EXTENSION),
            "clock": app.extensions.get(CLOCK_EXTENSION),
        },
        id=AUTO_COMPLETE_JOB_ID,
        name="Complete confirmed appointments that have ended",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info(
        "Background scheduler started",
        extra={
            "context": {
                "job_id": AUTO_COMPLETE_JOB_ID,
                "interval_minutes": config.AUTO_COMPLETE_INTERVAL_MINUTES,
            }
        },
    )

    # Keep a reference so the scheduler is not garbage collected
    app.config["SCHEDULER"] = scheduler
    atexit.register(lambda: scheduler.shutdown(wait=False))


def create_app(
    database: Optional[Database] = None,
    config_overrides: Optional[Mapping[str, Any]] = None,
) -> Flask:
    """Application factory.

    Args:
        database: storage handle to use; built from DATABASE_URL when None
            (and then disposed at process exit)
        config_overrides: Flask config values applied last. Besides the
            usual keys, ``BOOKING_POLICY`` (a BookingPolicy) and
            ``BOOKING_CLOCK`` (a callable returning the current datetime)
            are honoured.
    """
    # .env is only a fallback for local runs
    if not os.getenv("DATABASE_URL"):
        load_dotenv()

    from booking_core.controllers.dependencies import (
        CLOCK_EXTENSION,
        DATABASE_EXTENSION,
        POLICY_EXTENSION,
    )
    from booking_core.core.limiter_config import limiter, rate_limit_enabled
    from booking_core.services.factory import policy_from_config

    app = Flask(__name__)
    env = os.getenv("FLASK_ENV", "development")

    app.config.update(
        SECRET_KEY=os.getenv("FLASK_SECRET_KEY", "dev-secret-change-me"),
        TESTING=config.is_testing(),
        CRON_API_KEY=config.CRON_API_KEY,
        AUTO_COMPLETE_JOB_ENABLED=config.ENABLE_AUTO_COMPLETE_JOB,
        RATELIMIT_ENABLED=rate_limit_enabled(),
        RATELIMIT_STORAGE_URI=os.getenv("LIMITER_STORAGE_URI", "memory://"),
    )
    app.config.update(config_overrides or {})

    setup_logging(
        app,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_to_file=not app.config["TESTING"],
        use_json_format=env == "production",
    )
    config.log_timezone_config()
    config.log_booking_config()
    config.log_cron_config()

    if database is None:
        database = Database()
        atexit.register(database.dispose)
    logger.info(
        "Database configured",
        extra={"context": {"database_url": _mask_url_password(database.url)}},
    )

    app.extensions[DATABASE_EXTENSION] = database
    app.extensions[POLICY_EXTENSION] = (
        app.config.get("BOOKING_POLICY") or policy_from_config()
    )
    app.extensions[CLOCK_EXTENSION] = app.config.get("BOOKING_CLOCK")

    _init_sentry(env)
    _init_metrics(app, env)
    limiter.init_app(app)

    from booking_core.controllers.admin_controller import admin_bp
    from booking_core.controllers.appointment_controller import appointments_bp
    from booking_core.controllers.availability_controller import availability_bp
    from booking_core.controllers.cron_controller import cron_bp
    from booking_core.controllers.health_controller import health_bp

    for blueprint in (availability_bp, appointments_bp, admin_bp, cron_bp, health_bp):
        app.register_blueprint(blueprint)
    _register_error_handlers(app)

    if app.config["AUTO_COMPLETE_JOB_ENABLED"] and not app.config["TESTING"]:
        _start_scheduler(app, database)
    else:
        logger.info(
            "Auto-complete background job disabled",
            extra={"context": {"testing": app.config["TESTING"]}},
        )

    @app.cli.command("init-db")
    def init_db_command():
        """Create tables and seed demo data."""
        from booking_core.db.seed import seed_demo_data

        database.create_tables()
        with database.session() as db:
            seed_demo_data(db)
        logger.info("Database initialized with demo data")

    return app
