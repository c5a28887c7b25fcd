from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional

from .availability import has_real_booking, is_facility_hold
from .models import Snapshot
from .rules import BookingRules


@dataclass(frozen=True)
class PrivateEventStatus:
    id: str
    title: str
    start: datetime
    end: datetime
    blocked: bool


@dataclass(frozen=True)
class HoldStatus:
    id: str
    title: str
    start: datetime
    end: datetime
    location: Optional[str]
    room: Optional[str]
    has_real_booking: bool
    ignored: bool               # manually suppressed

    @property
    def counts(self) -> bool:
        return self.has_real_booking and not self.ignored


def private_events(snapshot: Snapshot, private_overrides: Mapping[str, bool]) -> List[PrivateEventStatus]:
    """Private calendar entries with whether each one currently blocks bookings."""
    return [
        PrivateEventStatus(
            id=e.id,
            title=e.title or "(no title)",
            start=e.start,
            end=e.end,
            blocked=private_overrides.get(e.id) is not False,
        )
        for e in sorted(snapshot.private_events, key=lambda e: e.start)
    ]


def facility_holds(
    snapshot: Snapshot,
    facility_overrides: Mapping[str, bool],
    rules: BookingRules,
) -> List[HoldStatus]:
    holds: List[HoldStatus] = []
    for name in sorted(snapshot.locations):
        for e in snapshot.location_events(name):
            if not is_facility_hold(e, rules):
                continue
            holds.append(HoldStatus(
                id=e.id,
                title=e.title or "(no title)",
                start=e.start,
                end=e.end,
                location=e.location or name,
                room=e.room,
                has_real_booking=has_real_booking(e, snapshot),
                ignored=facility_overrides.get(e.id) is True,
            ))
    return sorted(holds, key=lambda h: (h.start, h.location or ""))
