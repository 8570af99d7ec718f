"""
Tailor travel windows.

While travelling, the tailor offers hotel visits at the destination in
addition to the regular shop calendar.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from pendulum import Date

from .models import Coordinates, Location, as_date


@dataclass(frozen=True)
class TravelDestination:
    city: str
    country: str
    address: str
    venue: Optional[str] = None
    coordinates: Optional[Coordinates] = None


@dataclass(frozen=True)
class TravelWindow:
    """
    A dated stay at a destination.

    Invariant: start_date <= end_date. Both days are inclusive.
    """
    id: str
    destination: TravelDestination
    start_date: Date
    end_date: Date

    def __post_init__(self):
        object.__setattr__(self, "start_date", as_date(self.start_date))
        object.__setattr__(self, "end_date", as_date(self.end_date))
        if self.start_date > self.end_date:
            raise ValueError(
                f"Travel window {self.id} starts {self.start_date} after it ends {self.end_date}"
            )

    def covers(self, day: Date | datetime) -> bool:
        return self.start_date <= as_date(day) <= self.end_date

    def overlaps(self, other: "TravelWindow") -> bool:
        return self.start_date <= other.end_date and other.start_date <= self.end_date

    @property
    def location(self) -> Location:
        """The hotel-visit location offered during this window."""
        return Location.hotel(
            address=self.destination.address,
            city=self.destination.city,
            country=self.destination.country,
            coordinates=self.destination.coordinates
        )

    def format_display(self) -> str:
        """Format: City (MMM D–MMM D)"""
        return (
            f"{self.destination.city} "
            f"({self.start_date.format('MMM D')}–{self.end_date.format('MMM D')})"
        )


class TravelSchedule:
    """
    Ordered, non-overlapping list of travel windows.

    Read-only once built; the availability engine and notification copy
    consult it.
    """

    def __init__(self, windows: Iterable[TravelWindow] = ()):
        ordered = sorted(windows, key=lambda w: (w.start_date, w.id))

        for previous, current in zip(ordered, ordered[1:]):
            if previous.overlaps(current):
                raise ValueError(
                    f"Travel windows {previous.id} and {current.id} overlap"
                )

        self._windows = tuple(ordered)

    @property
    def windows(self) -> tuple:
        return self._windows

    def __iter__(self) -> Iterator[TravelWindow]:
        return iter(self._windows)

    def __len__(self) -> int:
        return len(self._windows)

    def active_window(self, day: Date | datetime) -> Optional[TravelWindow]:
        """Return the window covering ``day``, if any."""
        for window in self._windows:
            if window.covers(day):
                return window
        return None

    def upcoming(self, day: Date | datetime) -> List[TravelWindow]:
        """Windows that have not finished on ``day``, earliest first."""
        target = as_date(day)
        return [w for w in self._windows if w.end_date >= target]

    def windows_between(self, start: Date | datetime, end: Date | datetime) -> List[TravelWindow]:
        """Windows sharing at least one day with ``[start, end]``."""
        first = as_date(start)
        last = as_date(end)
        return [
            w for w in self._windows
            if w.start_date <= last and first <= w.end_date
        ]

    def next_notice(self, day: Date | datetime) -> Optional[str]:
        """
        Notification copy for the next stay, e.g. ``Next: Bangkok (Nov 25–Nov 28)``.
        """
        upcoming = self.upcoming(day)
        if not upcoming:
            return None
        return f"Next: {upcoming[0].format_display()}"
