from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import FrozenSet, Mapping, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

from .models import Event


@dataclass(frozen=True)
class BusinessHours:
    """Opening window for one location.

    ``weekday_close``/``holiday_close`` are the times by which a session must
    have ended, so with 60-minute sessions the last starts are one hour earlier.
    """

    open: time = time(9, 0)
    weekday_close: time = time(22, 0)
    holiday_close: time = time(20, 0)

    def close_for(self, day: date, holidays: FrozenSet[date]) -> time:
        if day.weekday() >= 5 or day in holidays:
            return self.holiday_close
        return self.weekday_close


@dataclass(frozen=True)
class RoomPairCapacity:
    """Full once every named room has at least one overlapping booking."""

    rooms: Tuple[str, ...] = ("A", "B")

    def is_full(self, bookings: Sequence[Event]) -> bool:
        booked = {b.room for b in bookings if b.room}
        return all(room in booked for room in self.rooms)


@dataclass(frozen=True)
class CountingCapacity:
    """Full once ``limit`` bookings overlap the session."""

    limit: int = 3

    def is_full(self, bookings: Sequence[Event]) -> bool:
        return len(bookings) >= self.limit


@dataclass(frozen=True)
class BookingRules:
    timezone: str = "Asia/Tokyo"
    hours: BusinessHours = field(default_factory=BusinessHours)
    location_hours: Mapping[str, BusinessHours] = field(default_factory=dict)
    holidays: FrozenSet[date] = frozenset()
    capacity: Mapping[str, object] = field(default_factory=dict)
    day_off_keywords: Tuple[str, ...] = ("休日", "定休日", "day off", "day-off", "closed")
    unavailable_markers: Tuple[str, ...] = ("予約不可", "not bookable")
    hold_signature: Tuple[str, ...] = ("TOPFORM", "石原")
    lead_time: timedelta = timedelta(hours=3)
    horizon_months: int = 2
    session: timedelta = timedelta(minutes=60)
    travel_buffer: timedelta = timedelta(minutes=60)
    slot_step: timedelta = timedelta(minutes=30)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def locations(self) -> Tuple[str, ...]:
        return tuple(self.capacity)

    def hours_for(self, location: Optional[str]) -> BusinessHours:
        if location is not None and location in self.location_hours:
            return self.location_hours[location]
        return self.hours

    def local(self, when: datetime) -> datetime:
        return when.astimezone(self.tz)
