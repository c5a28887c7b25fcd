"""Availability engine.

``check_availability`` decides whether one slot at one location can be
offered. It reads a snapshot and two override maps and never writes anything,
so it is safe to call once per grid cell from any number of threads. Override
maps are consulted on every call; nothing is cached between calls.
"""
from __future__ import annotations
from datetime import date, datetime, time
from typing import List, Mapping, Optional, Sequence

from .gate import check_candidate
from .matching import is_day_off_event, is_facility_hold_for, is_unavailable_marker
from .models import DenialReason, Event, Snapshot, SourceKind, Verdict
from .rules import BookingRules

_EMPTY: Mapping[str, bool] = {}


def _is_full_day_on(event: Event, day: date, rules: BookingRules) -> bool:
    """True when an all-day event (00:00 to 23:59 local) covers ``day``, on any of its days."""
    start = rules.local(event.start)
    end = rules.local(event.end)
    return (
        start.date() <= day <= end.date()
        and start.time() == time(0, 0)
        and (end.hour, end.minute) == (23, 59)
    )


def _is_private_suppressed(event: Event, private_overrides: Mapping[str, bool]) -> bool:
    return event.source_kind == SourceKind.TRAINER_PRIVATE and private_overrides.get(event.id) is False


def is_facility_hold(event: Event, rules: BookingRules) -> bool:
    return is_facility_hold_for(event.title, rules.hold_signature)


def has_real_booking(hold: Event, snapshot: Snapshot) -> bool:
    return any(
        e.overlaps(hold.start, hold.end)
        for e in snapshot.trainer
        if e.source_kind == SourceKind.TRAINER_WORK
    )


def hold_is_ignored(hold: Event, snapshot: Snapshot, facility_overrides: Mapping[str, bool]) -> bool:
    """Resolve a facility hold: ignored when suppressed, or when no work event backs it."""
    if facility_overrides.get(hold.id) is True:
        return True
    return not has_real_booking(hold, snapshot)


def _counts(
    event: Event,
    snapshot: Snapshot,
    facility_overrides: Mapping[str, bool],
    rules: BookingRules,
) -> bool:
    if is_facility_hold(event, rules):
        return not hold_is_ignored(event, snapshot, facility_overrides)
    return True


def _active_trainer_events(snapshot: Snapshot, private_overrides: Mapping[str, bool]) -> List[Event]:
    return [e for e in snapshot.trainer if not _is_private_suppressed(e, private_overrides)]


def has_day_off(candidate: datetime, snapshot: Snapshot, rules: BookingRules) -> bool:
    day = rules.local(candidate).date()
    return any(
        _is_full_day_on(e, day, rules) and is_day_off_event(e.title, rules.day_off_keywords)
        for e in snapshot.trainer
    )


def has_unavailable_block(candidate: datetime, snapshot: Snapshot, rules: BookingRules) -> bool:
    end = candidate + rules.session
    return any(
        is_unavailable_marker(e.title, rules.unavailable_markers) and e.overlaps(candidate, end)
        for e in snapshot.trainer
    )


def is_trainer_busy(
    candidate: datetime,
    snapshot: Snapshot,
    private_overrides: Mapping[str, bool],
    facility_overrides: Mapping[str, bool],
    rules: BookingRules,
) -> bool:
    end = candidate + rules.session
    return any(
        e.overlaps(candidate, end) and _counts(e, snapshot, facility_overrides, rules)
        for e in _active_trainer_events(snapshot, private_overrides)
    )


def has_travel_conflict(
    candidate: datetime,
    location: str,
    snapshot: Snapshot,
    private_overrides: Mapping[str, bool],
    facility_overrides: Mapping[str, bool],
    rules: BookingRules,
) -> bool:
    window_start = candidate - rules.travel_buffer
    window_end = candidate + rules.session + rules.travel_buffer
    for e in _active_trainer_events(snapshot, private_overrides):
        # Untagged events are personal commitments, not a location assignment.
        if not e.location or e.location == location:
            continue
        if not e.overlaps(window_start, window_end):
            continue
        if _counts(e, snapshot, facility_overrides, rules):
            return True
    return False


def overlapping_bookings(
    candidate: datetime,
    location: str,
    snapshot: Snapshot,
    facility_overrides: Mapping[str, bool],
    rules: BookingRules,
) -> List[Event]:
    end = candidate + rules.session
    return [
        e
        for e in snapshot.location_events(location)
        if e.overlaps(candidate, end) and _counts(e, snapshot, facility_overrides, rules)
    ]


def is_location_full(
    candidate: datetime,
    location: str,
    snapshot: Snapshot,
    facility_overrides: Mapping[str, bool],
    rules: BookingRules,
) -> bool:
    bookings: Sequence[Event] = overlapping_bookings(candidate, location, snapshot, facility_overrides, rules)
    return rules.capacity[location].is_full(bookings)


def check_availability(
    candidate: datetime,
    location: str,
    snapshot: Snapshot,
    private_overrides: Optional[Mapping[str, bool]] = None,
    facility_overrides: Optional[Mapping[str, bool]] = None,
    *,
    rules: BookingRules,
    now: Optional[datetime] = None,
) -> Verdict:
    if location not in rules.capacity:
        raise ValueError(f"Unknown location: {location!r}")
    if candidate.tzinfo is None:
        raise ValueError("Candidate time must be timezone-aware.")

    private_overrides = private_overrides if private_overrides is not None else _EMPTY
    facility_overrides = facility_overrides if facility_overrides is not None else _EMPTY
    now = now or datetime.now(tz=rules.tz)

    reason = check_candidate(candidate, now, rules, location)
    if reason is not None:
        return Verdict.deny(reason)

    if has_day_off(candidate, snapshot, rules):
        return Verdict.deny(DenialReason.OUTSIDE_HOURS)

    if has_unavailable_block(candidate, snapshot, rules):
        return Verdict.deny(DenialReason.BLOCKED)

    if is_trainer_busy(candidate, snapshot, private_overrides, facility_overrides, rules):
        return Verdict.deny(DenialReason.TRAINER_BUSY)

    if has_travel_conflict(candidate, location, snapshot, private_overrides, facility_overrides, rules):
        return Verdict.deny(DenialReason.TRAVEL_CONFLICT)

    if is_location_full(candidate, location, snapshot, facility_overrides, rules):
        return Verdict.deny(DenialReason.LOCATION_FULL)

    return Verdict.admit()
