"""
Unit tests for AppointmentService (appointment lifecycle).

Tests cover:
- Booking: initial status from the confirmation setting, slot checks,
  store conflicts mapped to SlotUnavailableError, input validation
- Cancellation: ownership, admin override, terminal statuses
- Owner-scoped reads
- Rescheduling within free slots
- Administrative status changes
- Auto-completion with per-item failure isolation
"""

from dataclasses import replace
from datetime import date, datetime, time

import pytest

from booking_core.core.exceptions import (
    AppointmentNotFoundError,
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
    ServiceArchivedError,
    SlotUnavailableError,
    ValidationError,
)
from booking_core.domain.entities import (
    Appointment,
    AppointmentStatus,
    BookingPolicy,
    ScheduleEntry,
    Service,
)
from booking_core.services.appointment_service import (
    REQUIRE_CONFIRMATION_KEY,
    AppointmentService,
    compute_end_time,
)
from booking_core.services.availability_service import AvailabilityService
from booking_core.services.schedule_calendar import ScheduleCalendar
from tests.factories.repository_factories import (
    AppointmentRepositoryFactory,
    ScheduleProviderFactory,
    ServiceCatalogFactory,
    SettingsRepositoryFactory,
)

MONDAY = date(2030, 1, 7)
CLIENT_ID = 101
SERVICE = Service(id=1, name="Consultation", duration_minutes=30)
ARCHIVED = Service(id=2, name="Old", duration_minutes=30, is_archived=True)


def stored(appointment_id=7, status=AppointmentStatus.CONFIRMED, **overrides):
    values = dict(
        id=appointment_id,
        specialist_id=1,
        service_id=SERVICE.id,
        client_id=CLIENT_ID,
        date=MONDAY,
        start_time=time(9, 0),
        end_time=time(9, 30),
        status=status,
    )
    values.update(overrides)
    return Appointment(**values)


@pytest.fixture
def clock_value():
    return {"now": datetime(2030, 1, 1, 8, 0)}


@pytest.fixture
def appointment_repo():
    repo = AppointmentRepositoryFactory.create_mock_full()
    repo.create.side_effect = lambda appointment: replace(appointment, id=7)
    return repo


@pytest.fixture
def settings_repo():
    return SettingsRepositoryFactory.create_mock()


@pytest.fixture
def availability(appointment_repo, clock_value):
    provider = ScheduleProviderFactory.create_mock(
        [ScheduleEntry(day_of_week=1, start=time(9, 0), end=time(12, 0))]
    )
    return AvailabilityService(
        ScheduleCalendar(provider),
        appointment_repo,
        ServiceCatalogFactory.create_mock(SERVICE, ARCHIVED),
        policy=BookingPolicy(slot_step_minutes=30, require_confirmation=True),
        clock=lambda: clock_value["now"],
    )


@pytest.fixture
def appointment_service(appointment_repo, availability, settings_repo):
    return AppointmentService(
        appointment_repo, availability, settings_repo=settings_repo
    )


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestComputeEndTime:
    def test_adds_the_duration(self):
        assert compute_end_time(time(9, 30), 90) == time(11, 0)

    def test_crossing_midnight_is_rejected(self):
        with pytest.raises(ValidationError):
            compute_end_time(time(23, 30), 60)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestBook:
    def test_booking_waits_for_confirmation_by_default(
        self, appointment_service, appointment_repo
    ):
        created = appointment_service.book(1, 1, CLIENT_ID, "2030-01-07", "10:00")

        assert created.id == 7
        assert created.status == AppointmentStatus.PENDING
        assert created.end_time == time(10, 30)
        appointment_repo.create.assert_called_once()

    def test_stored_setting_confirms_immediately(
        self, appointment_service, settings_repo
    ):
        settings_repo.store[REQUIRE_CONFIRMATION_KEY] = "false"

        created = appointment_service.book(1, 1, CLIENT_ID, MONDAY, time(10, 0))

        assert created.status == AppointmentStatus.CONFIRMED

    def test_comment_is_kept(self, appointment_service):
        created = appointment_service.book(
            1, 1, CLIENT_ID, MONDAY, "09:00", comment="  first visit "
        )
        assert created.comment == "first visit"

    def test_taken_slot_is_unavailable(self, appointment_service, appointment_repo):
        appointment_repo.list_active_by_date.return_value = [
            stored(start_time=time(10, 0), end_time=time(10, 30))
        ]

        with pytest.raises(SlotUnavailableError):
            appointment_service.book(1, 1, CLIENT_ID, MONDAY, "10:00")
        appointment_repo.create.assert_not_called()

    def test_off_grid_start_is_unavailable(self, appointment_service):
        with pytest.raises(SlotUnavailableError):
            appointment_service.book(1, 1, CLIENT_ID, MONDAY, "10:15")

    def test_start_in_the_past_is_unavailable(self, appointment_service, clock_value):
        clock_value["now"] = datetime(2030, 1, 7, 10, 0)

        with pytest.raises(SlotUnavailableError):
            appointment_service.book(1, 1, CLIENT_ID, MONDAY, "10:00")

    def test_store_conflict_becomes_slot_unavailable(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.create.side_effect = ConflictError(
            "Time slot overlaps an existing appointment", specialist_id=1
        )

        with pytest.raises(SlotUnavailableError) as exc_info:
            appointment_service.book(1, 1, CLIENT_ID, MONDAY, "10:00")

        assert isinstance(exc_info.value.__cause__, ConflictError)
        assert exc_info.value.code == "slot_unavailable"

    def test_archived_service_cannot_be_booked(self, appointment_service):
        with pytest.raises(ServiceArchivedError):
            appointment_service.book(1, ARCHIVED.id, CLIENT_ID, MONDAY, "10:00")

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"specialist_id": 0}, "specialist_id"),
            ({"day": "07/01/2030"}, "date"),
            ({"start_time": "25:00"}, "start_time"),
            ({"start_time": None}, "start_time"),
        ],
    )
    def test_malformed_input_is_rejected(self, appointment_service, kwargs, field):
        values = dict(
            specialist_id=1,
            service_id=1,
            client_id=CLIENT_ID,
            day="2030-01-07",
            start_time="10:00",
        )
        values.update(kwargs)

        with pytest.raises(ValidationError) as exc_info:
            appointment_service.book(**values)
        assert exc_info.value.field == field


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestCancel:
    def test_owner_cancels_confirmed_appointment(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.get_by_id.return_value = stored()
        appointment_repo.update_status.return_value = stored(
            status=AppointmentStatus.CANCELLED
        )

        result = appointment_service.cancel(7, CLIENT_ID)

        assert result.status == AppointmentStatus.CANCELLED
        appointment_repo.update_status.assert_called_once_with(
            7, AppointmentStatus.CANCELLED
        )

    def test_other_client_is_denied(self, appointment_service, appointment_repo):
        appointment_repo.get_by_id.return_value = stored()

        with pytest.raises(PermissionDeniedError):
            appointment_service.cancel(7, 999)
        appointment_repo.update_status.assert_not_called()

    def test_admin_may_cancel_any_appointment(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.get_by_id.return_value = stored()

        appointment_service.cancel(7, 1, is_admin=True)

        appointment_repo.update_status.assert_called_once()

    @pytest.mark.parametrize(
        "status", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED]
    )
    def test_terminal_appointment_cannot_be_cancelled(
        self, appointment_service, appointment_repo, status
    ):
        appointment_repo.get_by_id.return_value = stored(status=status)

        with pytest.raises(InvalidTransitionError):
            appointment_service.cancel(7, CLIENT_ID)

    def test_missing_appointment(self, appointment_service):
        with pytest.raises(AppointmentNotFoundError):
            appointment_service.cancel(404, CLIENT_ID)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestReads:
    def test_owner_reads_own_appointment(self, appointment_service, appointment_repo):
        appointment_repo.get_by_id.return_value = stored()

        assert appointment_service.get_appointment(7, CLIENT_ID).id == 7

    def test_other_client_cannot_read(self, appointment_service, appointment_repo):
        appointment_repo.get_by_id.return_value = stored()

        with pytest.raises(PermissionDeniedError):
            appointment_service.get_appointment(7, 999)

    def test_admin_reads_any_appointment(self, appointment_service, appointment_repo):
        appointment_repo.get_by_id.return_value = stored()

        assert appointment_service.get_appointment(7, 1, is_admin=True).id == 7

    def test_list_for_client_delegates_to_store(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.list_by_client.return_value = [stored(), stored(8)]

        result = appointment_service.list_for_client(CLIENT_ID)

        assert [a.id for a in result] == [7, 8]
        appointment_repo.list_by_client.assert_called_once_with(CLIENT_ID)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestReschedule:
    def test_moves_into_a_free_slot(self, appointment_service, appointment_repo):
        current = stored()
        appointment_repo.get_by_id.return_value = current
        appointment_repo.list_active_by_date.return_value = [current]
        appointment_repo.reschedule.side_effect = (
            lambda appointment_id, day, start, end: replace(
                current, date=day, start_time=start, end_time=end
            )
        )

        moved = appointment_service.reschedule(7, CLIENT_ID, MONDAY, "11:00")

        assert moved.start_time == time(11, 0)
        assert moved.end_time == time(11, 30)
        assert moved.status == AppointmentStatus.CONFIRMED
        appointment_repo.reschedule.assert_called_once_with(
            7, MONDAY, time(11, 0), time(11, 30)
        )

    def test_can_shift_within_its_own_interval(
        self, appointment_service, appointment_repo
    ):
        current = stored(start_time=time(9, 0), end_time=time(10, 0))
        appointment_repo.get_by_id.return_value = current
        appointment_repo.list_active_by_date.return_value = [current]
        appointment_repo.reschedule.return_value = current

        appointment_service.reschedule(7, CLIENT_ID, MONDAY, "09:30")

        appointment_repo.reschedule.assert_called_once()

    def test_cancelled_appointment_cannot_move(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.get_by_id.return_value = stored(
            status=AppointmentStatus.CANCELLED
        )

        with pytest.raises(InvalidTransitionError):
            appointment_service.reschedule(7, CLIENT_ID, MONDAY, "11:00")

    def test_taken_target_is_unavailable(self, appointment_service, appointment_repo):
        appointment_repo.get_by_id.return_value = stored()
        appointment_repo.list_active_by_date.return_value = [
            stored(appointment_id=8, start_time=time(11, 0), end_time=time(11, 30))
        ]

        with pytest.raises(SlotUnavailableError):
            appointment_service.reschedule(7, CLIENT_ID, MONDAY, "11:00")
        appointment_repo.reschedule.assert_not_called()


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestAdministration:
    def test_change_status_parses_the_value(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.update_status.return_value = stored(
            status=AppointmentStatus.COMPLETED
        )

        result = appointment_service.change_status(7, "completed")

        assert result.status == AppointmentStatus.COMPLETED
        appointment_repo.update_status.assert_called_once_with(
            7, AppointmentStatus.COMPLETED
        )

    def test_unknown_status_is_rejected(self, appointment_service, appointment_repo):
        with pytest.raises(ValidationError):
            appointment_service.change_status(7, "archived")
        appointment_repo.update_status.assert_not_called()

    def test_confirmation_setting_round_trip(self, appointment_service, settings_repo):
        assert appointment_service.requires_confirmation() is True

        appointment_service.set_requires_confirmation(False)

        assert settings_repo.store[REQUIRE_CONFIRMATION_KEY] == "false"
        assert appointment_service.requires_confirmation() is False

    def test_confirmation_setting_must_be_boolean(self, appointment_service):
        with pytest.raises(ValidationError):
            appointment_service.set_requires_confirmation("no")


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestAutoCompletePast:
    def test_completes_every_candidate(
        self, appointment_service, appointment_repo, clock_value
    ):
        clock_value["now"] = datetime(2030, 1, 8, 9, 0)
        appointment_repo.list_confirmed_ended_before.return_value = [
            stored(appointment_id=1),
            stored(appointment_id=2),
        ]

        result = appointment_service.auto_complete_past()

        assert result.updated_ids == [1, 2]
        assert result.failed_ids == []
        appointment_repo.list_confirmed_ended_before.assert_called_once_with(
            datetime(2030, 1, 8, 9, 0)
        )

    def test_one_failure_does_not_stop_the_batch(
        self, appointment_service, appointment_repo
    ):
        appointment_repo.list_confirmed_ended_before.return_value = [
            stored(appointment_id=1),
            stored(appointment_id=2),
            stored(appointment_id=3),
        ]

        def update_status(appointment_id, status):
            if appointment_id == 2:
                raise RuntimeError("constraint violated")
            return stored(appointment_id=appointment_id, status=status)

        appointment_repo.update_status.side_effect = update_status

        result = appointment_service.auto_complete_past()

        assert result.updated_ids == [1, 3]
        assert result.failed_ids == [2]
        assert result.updated_count == 2

    def test_nothing_to_do(self, appointment_service):
        result = appointment_service.auto_complete_past()
        assert result.updated_count == 0
        assert result.failed_ids == []
