"""
Working windows of a specialist on a calendar date.

A window is derived from the active weekly schedule entries for the
date's ISO weekday, merged when they overlap or touch, with lunch breaks
removed. Vacations and a disabled schedule leave the day empty.
"""

from datetime import date, timedelta
from typing import Dict, List, Sequence

from booking_core.domain.entities import ScheduleEntry, TimeSlot, Vacation
from booking_core.domain.interfaces import ISpecialistScheduleProvider
from booking_core.domain.intervals import (
    from_minutes,
    merge_intervals,
    subtract_intervals,
    to_minutes,
)


def working_windows_for(
    entries: Sequence[ScheduleEntry], vacations: Sequence[Vacation], day: date
) -> List[TimeSlot]:
    """Pure computation behind ScheduleCalendar.get_working_windows."""
    weekday = day.isoweekday()
    day_entries = [e for e in entries if e.active and e.day_of_week == weekday]
    if not day_entries:
        return []
    if any(v.covers(day) for v in vacations):
        return []

    windows = merge_intervals(
        (to_minutes(e.start), to_minutes(e.end)) for e in day_entries
    )
    breaks = [
        (to_minutes(b.start), to_minutes(b.end))
        for e in day_entries
        for b in e.lunch_breaks
    ]
    return [
        TimeSlot(from_minutes(start), from_minutes(end))
        for start, end in subtract_intervals(windows, breaks)
    ]


class ScheduleCalendar:
    """Query functions over a specialist schedule provider. No side effects."""

    def __init__(self, schedule_provider: ISpecialistScheduleProvider):
        self.schedule_provider = schedule_provider

    def get_working_windows(self, specialist_id: int, day: date) -> List[TimeSlot]:
        """Working intervals of ``specialist_id`` on ``day``, sorted by start.

        Returns an empty list on a non-working day. Raises
        SpecialistNotFoundError for an unknown specialist.
        """
        entries = self.schedule_provider.get_specialist_schedule(specialist_id)
        if not entries:
            return []
        vacations = self.schedule_provider.get_vacations(specialist_id)
        return working_windows_for(entries, vacations, day)

    def get_working_windows_between(
        self, specialist_id: int, start: date, end: date
    ) -> Dict[date, List[TimeSlot]]:
        """Windows for every day of the inclusive range, loading the schedule once."""
        entries = self.schedule_provider.get_specialist_schedule(specialist_id)
        vacations = []
        if entries:
            vacations = self.schedule_provider.get_vacations(specialist_id)

        result: Dict[date, List[TimeSlot]] = {}
        day = start
        while day <= end:
            result[day] = working_windows_for(entries, vacations, day)
            day += timedelta(days=1)
        return result
