"""
Unit tests for AvailabilityService and compute_free_slots.

Tests cover:
- Subtraction of active appointments from working windows
- Services longer than the working window
- Exclusion of slots at or before the current moment
- Past dates, archived and unknown services
- Available dates over a range and range validation
"""

from datetime import date, datetime, time, timezone

import pytest

from booking_core.core.exceptions import (
    ServiceArchivedError,
    ServiceNotFoundError,
    SpecialistNotFoundError,
    ValidationError,
)
from booking_core.domain.entities import (
    Appointment,
    AppointmentStatus,
    BookingPolicy,
    ScheduleEntry,
    Service,
    TimeSlot,
)
from booking_core.services.availability_service import (
    AvailabilityService,
    compute_free_slots,
    local_now,
)
from booking_core.services.schedule_calendar import ScheduleCalendar
from tests.factories.repository_factories import (
    AppointmentRepositoryFactory,
    ScheduleProviderFactory,
    ServiceCatalogFactory,
)

MONDAY = date(2030, 1, 7)
HALF_HOUR = Service(id=1, name="Consultation", duration_minutes=30)
HOUR = Service(id=2, name="Massage", duration_minutes=60)
ARCHIVED = Service(id=3, name="Old", duration_minutes=30, is_archived=True)


def appointment(start, end, day=MONDAY, appointment_id=10):
    return Appointment(
        id=appointment_id,
        specialist_id=1,
        service_id=1,
        client_id=5,
        date=day,
        start_time=start,
        end_time=end,
        status=AppointmentStatus.CONFIRMED,
    )


def starts(slots):
    return [slot.start.strftime("%H:%M") for slot in slots]


@pytest.fixture
def appointment_repo():
    return AppointmentRepositoryFactory.create_mock_full()


@pytest.fixture
def schedule_provider():
    return ScheduleProviderFactory.create_mock(
        [ScheduleEntry(day_of_week=1, start=time(9, 0), end=time(12, 0))]
    )


@pytest.fixture
def make_service(schedule_provider, appointment_repo):
    def _make(now=datetime(2030, 1, 1, 8, 0), policy=None):
        return AvailabilityService(
            ScheduleCalendar(schedule_provider),
            appointment_repo,
            ServiceCatalogFactory.create_mock(HALF_HOUR, HOUR, ARCHIVED),
            policy=policy or BookingPolicy(slot_step_minutes=30),
            clock=lambda: now,
        )

    return _make


@pytest.mark.unit
@pytest.mark.availability
class TestComputeFreeSlots:
    def test_booked_interval_is_excluded(self):
        slots = compute_free_slots(
            [TimeSlot(time(9, 0), time(12, 0))],
            [appointment(time(10, 0), time(10, 30))],
            duration_minutes=30,
            step_minutes=30,
        )
        assert starts(slots) == ["09:00", "09:30", "10:30", "11:00", "11:30"]
        assert slots[-1].end == time(12, 0)

    def test_slots_never_cross_a_booking(self):
        slots = compute_free_slots(
            [TimeSlot(time(9, 0), time(12, 0))],
            [appointment(time(10, 0), time(10, 30))],
            duration_minutes=60,
            step_minutes=30,
        )
        assert starts(slots) == ["09:00", "10:30", "11:00"]

    def test_cutoff_excludes_a_slot_starting_exactly_now(self):
        slots = compute_free_slots(
            [TimeSlot(time(9, 0), time(18, 0))],
            [],
            duration_minutes=30,
            step_minutes=30,
            not_before=datetime(2030, 1, 7, 14, 0),
            day=MONDAY,
        )
        assert starts(slots)[0] == "14:30"
        assert starts(slots)[-1] == "17:30"

    def test_cutoff_on_another_day_is_ignored(self):
        slots = compute_free_slots(
            [TimeSlot(time(9, 0), time(10, 0))],
            [],
            duration_minutes=30,
            step_minutes=30,
            not_before=datetime(2030, 1, 6, 23, 0),
            day=MONDAY,
        )
        assert starts(slots) == ["09:00", "09:30"]


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.availability
class TestGetAvailableSlots:
    def test_existing_booking_leaves_five_slots(self, make_service, appointment_repo):
        appointment_repo.list_active_by_date.return_value = [
            appointment(time(10, 0), time(10, 30))
        ]
        slots = make_service().get_available_slots(1, HALF_HOUR.id, MONDAY)

        assert starts(slots) == ["09:00", "09:30", "10:30", "11:00", "11:30"]
        appointment_repo.list_active_by_date.assert_called_once_with(1, MONDAY)

    def test_service_longer_than_window_gives_nothing(
        self, schedule_provider, make_service
    ):
        schedule_provider.get_specialist_schedule.return_value = [
            ScheduleEntry(day_of_week=1, start=time(9, 0), end=time(9, 45))
        ]
        assert make_service().get_available_slots(1, HOUR.id, MONDAY) == []

    def test_today_only_offers_slots_after_now(self, schedule_provider, make_service):
        schedule_provider.get_specialist_schedule.return_value = [
            ScheduleEntry(day_of_week=1, start=time(9, 0), end=time(18, 0))
        ]
        service = make_service(now=datetime(2030, 1, 7, 14, 0))

        slots = service.get_available_slots(1, HALF_HOUR.id, MONDAY)

        assert starts(slots)[0] == "14:30"
        assert all(slot.start > time(14, 0) for slot in slots)

    def test_past_date_gives_nothing(self, make_service, appointment_repo):
        service = make_service(now=datetime(2030, 1, 8, 9, 0))

        assert service.get_available_slots(1, HALF_HOUR.id, MONDAY) == []
        appointment_repo.list_active_by_date.assert_not_called()

    @pytest.mark.parametrize(
        "now", [datetime(2030, 1, 1, 8, 0), datetime(2030, 1, 8, 9, 0)]
    )
    def test_unknown_specialist_raises_for_past_and_future_dates(
        self, schedule_provider, make_service, now
    ):
        schedule_provider.get_specialist_schedule.side_effect = (
            SpecialistNotFoundError(999)
        )

        with pytest.raises(SpecialistNotFoundError):
            make_service(now=now).get_available_slots(999, HALF_HOUR.id, MONDAY)

    def test_non_working_day_gives_nothing(self, make_service):
        tuesday = date(2030, 1, 8)
        assert make_service().get_available_slots(1, HALF_HOUR.id, tuesday) == []

    def test_archived_service_is_rejected(self, make_service):
        with pytest.raises(ServiceArchivedError):
            make_service().get_available_slots(1, ARCHIVED.id, MONDAY)

    def test_unknown_service_is_rejected(self, make_service):
        with pytest.raises(ServiceNotFoundError):
            make_service().get_available_slots(1, 999, MONDAY)

    def test_excluded_appointment_frees_its_own_time(
        self, make_service, appointment_repo
    ):
        appointment_repo.list_active_by_date.return_value = [
            appointment(time(9, 0), time(12, 0), appointment_id=42)
        ]
        service = make_service()

        assert service.slots_for_service(1, HALF_HOUR, MONDAY) == []
        freed = service.slots_for_service(
            1, HALF_HOUR, MONDAY, exclude_appointment_id=42
        )
        assert len(freed) == 6


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.availability
class TestGetAvailableDates:
    def test_only_days_with_a_free_slot_are_returned(
        self, make_service, appointment_repo
    ):
        fully_booked = date(2030, 1, 14)

        def active_by_date(specialist_id, day):
            if day == fully_booked:
                return [appointment(time(9, 0), time(12, 0), day=fully_booked)]
            return []

        appointment_repo.list_active_by_date.side_effect = active_by_date

        dates = make_service().get_available_dates(
            1, HALF_HOUR.id, MONDAY, date(2030, 1, 21)
        )
        assert dates == [MONDAY, date(2030, 1, 21)]

    def test_range_start_in_the_past_is_clamped_to_today(
        self, make_service, appointment_repo
    ):
        service = make_service(now=datetime(2030, 1, 10, 9, 0))

        dates = service.get_available_dates(
            1, HALF_HOUR.id, date(2030, 1, 1), date(2030, 1, 14)
        )

        assert dates == [date(2030, 1, 14)]
        calls = appointment_repo.list_active_by_date.call_args_list
        checked = [c.args[1] for c in calls]
        assert all(day >= date(2030, 1, 10) for day in checked)

    def test_all_past_range_is_empty_but_checks_the_specialist(
        self, schedule_provider, make_service
    ):
        service = make_service(now=datetime(2030, 2, 1, 9, 0))

        assert service.get_available_dates(1, HALF_HOUR.id, MONDAY, MONDAY) == []

        schedule_provider.get_specialist_schedule.side_effect = (
            SpecialistNotFoundError(999)
        )
        with pytest.raises(SpecialistNotFoundError):
            service.get_available_dates(999, HALF_HOUR.id, MONDAY, MONDAY)

    def test_reversed_range_is_rejected(self, make_service):
        with pytest.raises(ValidationError) as exc_info:
            make_service().get_available_dates(
                1, HALF_HOUR.id, date(2030, 1, 10), MONDAY
            )
        assert exc_info.value.field == "end"

    def test_range_longer_than_policy_is_rejected(self, make_service):
        service = make_service(policy=BookingPolicy(max_range_days=7))
        with pytest.raises(ValidationError):
            service.get_available_dates(1, HALF_HOUR.id, MONDAY, date(2030, 1, 14))

    def test_archived_service_is_rejected(self, make_service):
        with pytest.raises(ServiceArchivedError):
            make_service().get_available_dates(1, ARCHIVED.id, MONDAY, MONDAY)


@pytest.mark.unit
@pytest.mark.availability
class TestLocalNow:
    def test_naive_clock_is_taken_as_local(self):
        moment = datetime(2030, 1, 7, 10, 0)
        assert local_now(lambda: moment) == moment

    def test_aware_clock_is_converted_to_naive(self):
        aware = datetime(2030, 1, 7, 10, 0, tzinfo=timezone.utc)
        result = local_now(lambda: aware)
        assert result.tzinfo is None
