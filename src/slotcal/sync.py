from __future__ import annotations
from dataclasses import replace
from datetime import datetime, time, timedelta
from typing import Dict, List, Mapping, Optional, Sequence
import logging

from .calendar_google import fetch_google_events
from .config import AppConfig, LocationConfig
from .gate import horizon_end
from .matching import has_location_marker, room_marker
from .models import Event, Snapshot, SourceKind
from .rules import BookingRules

log = logging.getLogger(__name__)


def tag_location(event: Event, locations: Sequence[LocationConfig]) -> Event:
    """Copy of a trainer event carrying the location its title marks, if any."""
    if event.location:
        return event
    for loc in locations:
        if has_location_marker(event.title, loc.title_markers, loc.title_prefixes):
            return replace(event, location=loc.name)
    return event


def _with_room(event: Event, loc: LocationConfig) -> Event:
    if not loc.rooms or event.room:
        return event
    room = room_marker(event.title, loc.rooms)
    return replace(event, room=room) if room else event


def build_snapshot(
    work: Sequence[Event],
    private: Sequence[Event],
    location_events: Mapping[str, Sequence[Event]],
    locations: Sequence[LocationConfig],
    generated_at: datetime,
) -> Snapshot:
    # One invite shows up with the same id on every calendar it is on; the work copy wins.
    trainer: List[Event] = []
    seen = set()
    for e in [*work, *private]:
        if e.id in seen:
            continue
        seen.add(e.id)
        trainer.append(tag_location(e, locations))

    collections: Dict[str, List[Event]] = {}
    for loc in locations:
        merged: List[Event] = [replace(e, location=loc.name) for e in location_events.get(loc.name, [])]
        known = {e.id for e in merged}
        # Trainer sessions tagged for this location also occupy its capacity.
        added = 0
        for e in trainer:
            if e.location == loc.name and e.id not in known:
                merged.append(e)
                known.add(e.id)
                added += 1
        collections[loc.name] = [_with_room(e, loc) for e in merged]
        log.info("%s: %d location events, %d trainer sessions merged", loc.name, len(merged) - added, added)

    return Snapshot(trainer=tuple(trainer), locations=collections, generated_at=generated_at)


def fetch_window(now: datetime, rules: BookingRules, days: int = 0):
    """Local midnight today through local midnight after the last bookable day.

    ``days`` only widens the window; it never cuts off part of the horizon.
    """
    day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
    last_day = horizon_end(day_start.date(), rules)
    horizon_stop = datetime.combine(last_day + timedelta(days=1), time.min, tzinfo=now.tzinfo)
    return day_start, max(horizon_stop, now + timedelta(days=days))


def fetch_snapshot(cfg: AppConfig, service, now: Optional[datetime] = None) -> Snapshot:
    """Fetch the trainer and location calendars and bundle them. Any fetch error propagates."""
    tz = cfg.rules.tz
    now = (now or datetime.now(tz=tz)).astimezone(tz)
    time_min, time_max = fetch_window(now, cfg.rules, cfg.google.fetch_days)

    work = fetch_google_events(
        service, cfg.trainer.work_calendar_id, time_min, time_max, SourceKind.TRAINER_WORK, tz
    )
    private: List[Event] = []
    if cfg.trainer.private_calendar_id:
        private = fetch_google_events(
            service, cfg.trainer.private_calendar_id, time_min, time_max, SourceKind.TRAINER_PRIVATE, tz
        )
    location_events = {
        loc.name: fetch_google_events(
            service, loc.calendar_id, time_min, time_max, SourceKind.LOCATION, tz, location=loc.name
        )
        for loc in cfg.locations
        if loc.calendar_id
    }
    return build_snapshot(work, private, location_events, cfg.locations, generated_at=now)
