"""
Shared fixtures for the booking core test suite.

Environment flags are set before any booking_core import so module level
configuration (rate limiting, logging to files) picks them up.
"""

import os
from datetime import date, datetime

os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ["LOG_TO_FILE"] = "false"
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")

import pytest  # noqa: E402

from booking_core.core.security import ROLE_ADMIN, create_user_token  # noqa: E402
from booking_core.db.session import Database  # noqa: E402
from booking_core.domain.entities import BookingPolicy  # noqa: E402
from booking_core.services.factory import build_services  # noqa: E402
from tests.config.markers import (  # noqa: E402,F401
    pytest_collection_modifyitems,
    pytest_configure,
)

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
CLIENT_ID = 101
OTHER_CLIENT_ID = 102
ADMIN_ID = 1


class FixedClock:
    """Callable clock whose current moment tests can move."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment


@pytest.fixture
def monday():
    return MONDAY


@pytest.fixture
def clock():
    """Clock frozen on the Tuesday before MONDAY, 08:00."""
    return FixedClock(datetime(2030, 1, 1, 8, 0))


@pytest.fixture
def policy():
    return BookingPolicy(
        slot_step_minutes=30, require_confirmation=True, max_range_days=92
    )


@pytest.fixture
def database():
    """Fresh in-memory SQLite database with all tables created."""
    db = Database("sqlite:///:memory:")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def db_session(database):
    session = database.new_session()
    yield session
    session.close()


@pytest.fixture
def services(db_session, policy, clock):
    """Service graph over the test session."""
    return build_services(db_session, policy=policy, clock=clock)


@pytest.fixture
def app(database, policy, clock):
    from booking_core.main import create_app

    app = create_app(
        database=database,
        config_overrides={
            "TESTING": True,
            "CRON_API_KEY": "cron-test-key",
            "AUTO_COMPLETE_JOB_ENABLED": False,
            "RATELIMIT_ENABLED": False,
            "BOOKING_POLICY": policy,
            "BOOKING_CLOCK": clock,
        },
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def client_headers():
    return {"Authorization": f"Bearer {create_user_token(CLIENT_ID)}"}


@pytest.fixture
def other_client_headers():
    return {"Authorization": f"Bearer {create_user_token(OTHER_CLIENT_ID)}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_user_token(ADMIN_ID, role=ROLE_ADMIN)}"}
