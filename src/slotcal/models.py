from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple


class MalformedEventError(ValueError):
    """Raised when calendar data violates the event/snapshot invariants."""


class SourceKind(str, Enum):
    TRAINER_WORK = "trainer-work"
    TRAINER_PRIVATE = "trainer-private"
    LOCATION = "location"


class DenialReason(str, Enum):
    TOO_SOON = "too-soon"
    TOO_FAR = "too-far"
    OUTSIDE_HOURS = "outside-hours"
    BLOCKED = "blocked"
    TRAINER_BUSY = "trainer-busy"
    TRAVEL_CONFLICT = "travel-conflict"
    LOCATION_FULL = "location-full"


@dataclass(frozen=True)
class Event:
    id: str
    start: datetime             # timezone-aware
    end: datetime               # timezone-aware, always after start
    source_kind: SourceKind
    title: Optional[str] = None
    location: Optional[str] = None
    room: Optional[str] = None  # only meaningful on room-pair locations

    def __post_init__(self) -> None:
        if not self.id:
            raise MalformedEventError("Event id is required.")
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise MalformedEventError(f"Event {self.id} has a naive start/end.")
        if self.start >= self.end:
            raise MalformedEventError(
                f"Event {self.id} starts at {self.start.isoformat()} but ends at {self.end.isoformat()}."
            )

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and self.end > start


def _check_unique_ids(name: str, events: Iterable[Event]) -> None:
    seen = set()
    for e in events:
        if e.id in seen:
            raise MalformedEventError(f"Duplicate event id {e.id!r} in {name} calendar.")
        seen.add(e.id)


@dataclass(frozen=True)
class Snapshot:
    """Immutable bundle of every calendar the engine reads.

    ``trainer`` holds the trainer's work and private events together;
    ``locations`` maps each location name to that location's bookings.
    """

    trainer: Tuple[Event, ...]
    locations: Mapping[str, Tuple[Event, ...]]
    generated_at: datetime

    def __post_init__(self) -> None:
        trainer = tuple(self.trainer)
        locations = {name: tuple(events) for name, events in self.locations.items()}
        _check_unique_ids("trainer", trainer)
        for name, events in locations.items():
            _check_unique_ids(name, events)
        object.__setattr__(self, "trainer", trainer)
        object.__setattr__(self, "locations", MappingProxyType(locations))

    def location_events(self, location: str) -> Tuple[Event, ...]:
        return self.locations.get(location, ())

    @property
    def work_events(self) -> Tuple[Event, ...]:
        return tuple(e for e in self.trainer if e.source_kind == SourceKind.TRAINER_WORK)

    @property
    def private_events(self) -> Tuple[Event, ...]:
        return tuple(e for e in self.trainer if e.source_kind == SourceKind.TRAINER_PRIVATE)


@dataclass(frozen=True)
class OverrideMaps:
    # private: False -> ignore that private event. facility_holds: True -> always ignore that hold.
    private: Mapping[str, bool] = field(default_factory=dict)
    facility_holds: Mapping[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class Verdict:
    admitted: bool
    reason: Optional[DenialReason] = None

    @classmethod
    def admit(cls) -> "Verdict":
        return cls(admitted=True)

    @classmethod
    def deny(cls, reason: DenialReason) -> "Verdict":
        return cls(admitted=False, reason=reason)

    def as_dict(self) -> dict:
        if self.admitted:
            return {"admitted": True}
        return {"admitted": False, "reason": self.reason.value if self.reason else None}
