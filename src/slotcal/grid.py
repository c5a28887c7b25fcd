from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .availability import check_availability
from .gate import horizon_end
from .models import DenialReason, OverrideMaps, Snapshot, Verdict
from .rules import BookingRules


@dataclass(frozen=True)
class SlotVerdict:
    start: datetime
    location: str
    verdict: Verdict


def slot_starts(day: date, rules: BookingRules) -> List[datetime]:
    """Half-hour starts from the earliest opening to the latest start any location allows.

    09:00-21:00 by default. Location hours that run later widen the grid;
    the gate still closes slots outside each location's own hours.
    """
    tz = rules.tz
    all_hours = [rules.hours, *rules.location_hours.values()]
    first = datetime.combine(day, min(h.open for h in all_hours), tzinfo=tz)
    latest_close = max(max(h.weekday_close, h.holiday_close) for h in all_hours)
    last = datetime.combine(day, latest_close, tzinfo=tz) - rules.session
    starts: List[datetime] = []
    current = first
    while current <= last:
        starts.append(current)
        current += rules.slot_step
    return starts


def iter_slots(today: date, rules: BookingRules) -> Iterator[datetime]:
    day = today
    last_day = horizon_end(today, rules)
    while day <= last_day:
        yield from slot_starts(day, rules)
        day += timedelta(days=1)


def build_grid(
    snapshot: Optional[Snapshot],
    overrides: Optional[OverrideMaps],
    rules: BookingRules,
    now: datetime,
    locations: Optional[Sequence[str]] = None,
) -> List[SlotVerdict]:
    """Evaluate every slot in the bookable window for each location.

    A missing snapshot or override set means the inputs could not be confirmed,
    so every slot is reported closed rather than evaluated.
    """
    names = list(locations or rules.locations)
    today = rules.local(now).date()
    grid: List[SlotVerdict] = []

    if snapshot is None or overrides is None:
        closed = Verdict.deny(DenialReason.OUTSIDE_HOURS)
        for start in iter_slots(today, rules):
            grid.extend(SlotVerdict(start, name, closed) for name in names)
        return grid

    for start in iter_slots(today, rules):
        for name in names:
            verdict = check_availability(
                start,
                name,
                snapshot,
                overrides.private,
                overrides.facility_holds,
                rules=rules,
                now=now,
            )
            grid.append(SlotVerdict(start, name, verdict))
    return grid


def summarize(grid: Sequence[SlotVerdict]) -> Dict[Tuple[date, str], int]:
    """Admitted slot count per (day, location), including days with none."""
    counts: Dict[Tuple[date, str], int] = {}
    admitted = Counter((s.start.date(), s.location) for s in grid if s.verdict.admitted)
    for s in grid:
        key = (s.start.date(), s.location)
        counts[key] = admitted.get(key, 0)
    return counts
