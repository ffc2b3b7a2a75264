"""Per-request access to the booking services."""

from contextlib import contextmanager
from typing import Iterator

from flask import current_app

from booking_core.services.factory import BookingServices, build_services

DATABASE_EXTENSION = "booking_db"
POLICY_EXTENSION = "booking_policy"
CLOCK_EXTENSION = "booking_clock"


@contextmanager
def booking_services() -> Iterator[BookingServices]:
    """Open a session on the app's Database and wire services over it.

    The session is closed when the block exits and rolled back if it
    raised.
    """
    database = current_app.extensions[DATABASE_EXTENSION]
    with database.session() as db:
        yield build_services(
            db,
            policy=current_app.extensions.get(POLICY_EXTENSION),
            clock=current_app.extensions.get(CLOCK_EXTENSION),
        )
