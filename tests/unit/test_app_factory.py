"""
Unit tests for the helpers in booking_core.main.
"""

import sys

import pytest

from booking_core.core.exceptions import (
    SlotUnavailableError,
    StorageError,
    ValidationError,
)
from booking_core.main import _drop_client_errors, _mask_url_password


def _hint_for(exc):
    try:
        raise exc
    except Exception:
        return {"exc_info": sys.exc_info()}


@pytest.mark.unit
class TestSentryFilter:
    def test_client_side_booking_errors_are_dropped(self):
        event = {"level": "error"}

        taken = _hint_for(SlotUnavailableError("taken"))
        assert _drop_client_errors(event, taken) is None
        assert (
            _drop_client_errors(event, _hint_for(ValidationError("bad", field="date")))
            is None
        )

    def test_storage_failures_are_reported(self):
        event = {"level": "error"}
        assert _drop_client_errors(event, _hint_for(StorageError("db down"))) is event

    def test_unrelated_exceptions_are_reported(self):
        event = {"level": "error"}
        assert _drop_client_errors(event, _hint_for(RuntimeError("boom"))) is event
        assert _drop_client_errors(event, {}) is event


@pytest.mark.unit
class TestMaskUrlPassword:
    def test_password_is_hidden(self):
        assert (
            _mask_url_password("postgresql://booking:s3cret@db:5432/booking")
            == "postgresql://booking:***@db:5432/booking"
        )

    def test_urls_without_credentials_are_unchanged(self):
        assert _mask_url_password("sqlite:///./booking.db") == "sqlite:///./booking.db"
        assert _mask_url_password("postgresql://booking@db/booking") == (
            "postgresql://booking@db/booking"
        )
