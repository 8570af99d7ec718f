"""
Read-only projections of appointments and slots into calendar views.

Nothing here mutates its inputs, so the projector is safe to share
between threads as long as callers hand it a store snapshot.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

import pendulum
from pendulum import Date, DateTime

from .models import Appointment, AppointmentStatus, AvailableSlot, TimeRange, as_date

SUNDAY = 6
MONDAY = 0


class ListTab(str, Enum):
    ALL = "all"
    UPCOMING = "upcoming"
    PAST = "past"
    CANCELED = "canceled"


@dataclass(frozen=True)
class MonthCell:
    date: Date
    in_month: bool
    appointment_count: int
    has_open_availability: bool


@dataclass(frozen=True)
class MonthGrid:
    year: int
    month: int
    weeks: Tuple[Tuple[MonthCell, ...], ...]

    @property
    def cells(self) -> List[MonthCell]:
        return [cell for week in self.weeks for cell in week]

    def cell_for(self, day: Date | datetime) -> Optional[MonthCell]:
        target = as_date(day)
        for cell in self.cells:
            if cell.date == target:
                return cell
        return None


@dataclass(frozen=True)
class HourCell:
    """One hour of one day: the appointments overlapping it and the first open slot."""
    date: Date
    hour: int
    time_range: TimeRange
    appointments: Tuple[Appointment, ...]
    open_slot: Optional[AvailableSlot]

    @property
    def is_empty(self) -> bool:
        return not self.appointments and self.open_slot is None


@dataclass(frozen=True)
class HourRow:
    hour: int
    cells: Tuple[HourCell, ...]


@dataclass(frozen=True)
class WeekView:
    days: Tuple[Date, ...]
    rows: Tuple[HourRow, ...]


@dataclass(frozen=True)
class DayView:
    date: Date
    rows: Tuple[HourCell, ...]


class CalendarProjector:
    """
    Stateless view builders for the month, week and day calendars and
    for the tabbed appointment list.

    Calendar cells only consider appointments that still occupy time;
    canceled ones stay reachable through the list tabs.
    """

    def __init__(
        self,
        timezone: str = "UTC",
        week_hours: Sequence[int] = tuple(range(9, 19)),
        day_hours: Sequence[int] = tuple(range(9, 21)),
        month_week_start: int = SUNDAY
    ):
        for hour in list(week_hours) + list(day_hours):
            if not 0 <= hour <= 23:
                raise ValueError(f"Hour must be between 0 and 23, got {hour}")
        if month_week_start not in range(7):
            raise ValueError(f"month_week_start must be between 0 and 6, got {month_week_start}")

        self.timezone = timezone
        self.week_hours = tuple(week_hours)
        self.day_hours = tuple(day_hours)
        self.month_week_start = month_week_start

    def month_span(self, year: int, month: int) -> Tuple[Date, Date]:
        """First and last day shown by the month grid, both inclusive."""
        if not 1 <= month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {month}")

        first = pendulum.date(year, month, 1)
        last = pendulum.date(year, month, calendar.monthrange(year, month)[1])
        grid_start = first.subtract(days=(first.weekday() - self.month_week_start) % 7)
        grid_end = last.add(days=6 - (last.weekday() - self.month_week_start) % 7)

        return grid_start, grid_end

    @staticmethod
    def week_span(reference_date: Date | datetime) -> Tuple[Date, Date]:
        """Monday and Sunday of the week containing ``reference_date``."""
        reference = as_date(reference_date)
        monday = reference.subtract(days=reference.weekday())
        return monday, monday.add(days=6)

    def month_grid(
        self,
        year: int,
        month: int,
        appointments: Iterable[Appointment],
        slots: Iterable[AvailableSlot]
    ) -> MonthGrid:
        """
        Build the month grid, padded to complete weeks on both ends.
        """
        grid_start, grid_end = self.month_span(year, month)

        counts: dict = {}
        for appointment in self._active(appointments):
            day = self._local_date(appointment.when)
            counts[day] = counts.get(day, 0) + 1

        open_days = {self._local_date(s.start) for s in slots if s.is_open}

        weeks: List[Tuple[MonthCell, ...]] = []
        week: List[MonthCell] = []
        day = grid_start
        while day <= grid_end:
            count = counts.get(day, 0)
            week.append(
                MonthCell(
                    date=day,
                    in_month=day.month == month,
                    appointment_count=count,
                    has_open_availability=day in open_days and count == 0,
                )
            )
            if len(week) == 7:
                weeks.append(tuple(week))
                week = []
            day = day.add(days=1)

        return MonthGrid(year=year, month=month, weeks=tuple(weeks))

    def week_rows(
        self,
        reference_date: Date | datetime,
        appointments: Iterable[Appointment],
        slots: Iterable[AvailableSlot]
    ) -> WeekView:
        """
        One row per visible hour, one column per day of the Monday-start
        week containing ``reference_date``.
        """
        monday, _ = self.week_span(reference_date)
        days = tuple(monday.add(days=offset) for offset in range(7))

        active = self._active(appointments)
        open_slots = self._open_slots(slots)

        rows = tuple(
            HourRow(
                hour=hour,
                cells=tuple(self._hour_cell(day, hour, active, open_slots) for day in days)
            )
            for hour in self.week_hours
        )
        return WeekView(days=days, rows=rows)

    def day_rows(
        self,
        reference_date: Date | datetime,
        appointments: Iterable[Appointment],
        slots: Iterable[AvailableSlot]
    ) -> DayView:
        """Hourly rows for a single day, resolved like ``week_rows``."""
        day = as_date(reference_date)
        active = self._active(appointments)
        open_slots = self._open_slots(slots)

        return DayView(
            date=day,
            rows=tuple(self._hour_cell(day, hour, active, open_slots) for hour in self.day_hours)
        )

    @staticmethod
    def filter_by_tab(
        appointments: Iterable[Appointment],
        tab: ListTab | str,
        now: DateTime
    ) -> List[Appointment]:
        """
        Filter and order appointments for a list tab.

        all: everything, newest first
        upcoming: future and still active, soonest first
        past: started already or completed, newest first
        canceled: canceled only, newest first

        Ties break on id ascending.
        """
        tab = ListTab(tab)
        items = list(appointments)

        def newest_first(a: Appointment):
            return (-a.when.timestamp(), a.id)

        def soonest_first(a: Appointment):
            return (a.when.timestamp(), a.id)

        if tab is ListTab.ALL:
            return sorted(items, key=newest_first)

        if tab is ListTab.UPCOMING:
            closed = (AppointmentStatus.CANCELED, AppointmentStatus.COMPLETED)
            return sorted(
                (a for a in items if a.when > now and a.status not in closed),
                key=soonest_first
            )

        if tab is ListTab.PAST:
            return sorted(
                (a for a in items if a.when <= now or a.status is AppointmentStatus.COMPLETED),
                key=newest_first
            )

        return sorted(
            (a for a in items if a.status is AppointmentStatus.CANCELED),
            key=newest_first
        )

    def _hour_cell(
        self,
        day: Date,
        hour: int,
        appointments: Sequence[Appointment],
        open_slots: Sequence[AvailableSlot]
    ) -> HourCell:
        start = pendulum.datetime(day.year, day.month, day.day, hour, tz=self.timezone)
        window = TimeRange.from_duration(start, 60)

        overlapping = tuple(a for a in appointments if a.time_range.overlaps(window))
        open_slot = next((s for s in open_slots if window.contains(s.start)), None)

        return HourCell(
            date=day,
            hour=hour,
            time_range=window,
            appointments=overlapping,
            open_slot=open_slot,
        )

    def _local_date(self, instant: DateTime) -> Date:
        return as_date(instant.in_timezone(self.timezone))

    @staticmethod
    def _active(appointments: Iterable[Appointment]) -> List[Appointment]:
        return sorted(
            (a for a in appointments if a.blocks_time),
            key=lambda a: (a.when, a.id)
        )

    @staticmethod
    def _open_slots(slots: Iterable[AvailableSlot]) -> List[AvailableSlot]:
        return sorted((s for s in slots if s.is_open), key=lambda s: s.start)
