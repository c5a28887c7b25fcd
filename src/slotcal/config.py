from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, time, timedelta
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional
import yaml

from .rules import BookingRules, BusinessHours, CountingCapacity, RoomPairCapacity

@dataclass
class TrainerConfig:
    name: str
    work_calendar_id: str
    private_calendar_id: str

@dataclass
class LocationConfig:
    name: str
    display_name: str
    calendar_id: str
    title_markers: List[str]     # substrings tagging a trainer event with this location
    title_prefixes: List[str]    # title prefixes tagging a trainer event with this location
    rooms: List[str] = field(default_factory=list)

@dataclass
class GoogleConfig:
    enabled: bool
    auth: str                    # "service_account" or "oauth"
    fetch_days: int

@dataclass
class AppConfig:
    timezone: str
    settings_path: str
    trainer: TrainerConfig
    locations: List[LocationConfig]
    google: GoogleConfig
    rules: BookingRules

    def location(self, name: str) -> LocationConfig:
        for loc in self.locations:
            if loc.name == name:
                return loc
        raise ValueError(f"Unknown location: {name!r}")

    @property
    def display_names(self) -> Dict[str, str]:
        return {loc.name: loc.display_name for loc in self.locations}

DEFAULT_LOCATIONS: Dict[str, Dict[str, Any]] = {
    "ebisu": {
        "display_name": "Ebisu",
        "calendar_id": "ebisu@topform.jp",
        "title_markers": ["(恵)"],
        "title_prefixes": ["恵 "],
        "capacity": {"model": "rooms", "rooms": ["A", "B"]},
    },
    "hanzomon": {
        "display_name": "Hanzomon",
        "calendar_id": "light@topform.jp",
        "title_markers": ["(半)"],
        "title_prefixes": ["半 "],
        "capacity": {"model": "count", "limit": 3},
    },
}

def _parse_hhmm(s: str) -> time:
    hh, mm = str(s).split(":")
    return time(hour=int(hh), minute=int(mm))

def _parse_day(s: Any) -> date:
    if isinstance(s, date):
        return s
    # Accepts both "2025-01-13" and the unpadded "2025-1-13".
    y, m, d = str(s).strip().split("-")
    return date(int(y), int(m), int(d))

def parse_holidays(raw: Any) -> FrozenSet[date]:
    """Holidays as a flat list of dates, or a ``{year: [dates]}`` table."""
    if not raw:
        return frozenset()
    if isinstance(raw, dict):
        values: List[Any] = []
        for year_days in raw.values():
            values.extend(year_days or [])
    else:
        values = list(raw)
    return frozenset(_parse_day(v) for v in values)

def _parse_hours(data: Dict[str, Any], fallback: BusinessHours) -> BusinessHours:
    return BusinessHours(
        open=_parse_hhmm(data["open"]) if "open" in data else fallback.open,
        weekday_close=_parse_hhmm(data["weekday_close"]) if "weekday_close" in data else fallback.weekday_close,
        holiday_close=_parse_hhmm(data["holiday_close"]) if "holiday_close" in data else fallback.holiday_close,
    )

def _parse_capacity(name: str, data: Dict[str, Any]):
    model = str(data.get("model", "count"))
    if model == "rooms":
        return RoomPairCapacity(rooms=tuple(str(r) for r in data.get("rooms", ["A", "B"])))
    if model == "count":
        return CountingCapacity(limit=int(data.get("limit", 3)))
    raise ValueError(f"Location {name!r} has unknown capacity model {model!r}.")

def load_config(path: Optional[str] = None) -> AppConfig:
    data: Dict[str, Any] = {}
    if path:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    return config_from_dict(data)

def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    trainer = data.get("trainer", {})
    hours = data.get("hours", {})
    booking = data.get("booking", {})
    keywords = data.get("keywords", {})
    google = data.get("google", {})
    raw_locations: Dict[str, Dict[str, Any]] = data.get("locations") or DEFAULT_LOCATIONS

    timezone = str(data.get("timezone", "Asia/Tokyo"))
    default_hours = _parse_hours(hours, BusinessHours())

    locations: List[LocationConfig] = []
    capacity: Dict[str, Any] = {}
    location_hours: Dict[str, BusinessHours] = {}
    for name, loc in raw_locations.items():
        cap = loc.get("capacity", {})
        capacity[name] = _parse_capacity(name, cap)
        if "hours" in loc:
            location_hours[name] = _parse_hours(loc["hours"], default_hours)
        locations.append(LocationConfig(
            name=name,
            display_name=str(loc.get("display_name", name)),
            calendar_id=str(loc.get("calendar_id", "")),
            title_markers=list(loc.get("title_markers", [])),
            title_prefixes=list(loc.get("title_prefixes", [])),
            rooms=list(cap.get("rooms", [])) if cap.get("model") == "rooms" else [],
        ))

    defaults = BookingRules()
    rules = BookingRules(
        timezone=timezone,
        hours=default_hours,
        location_hours=location_hours,
        holidays=parse_holidays(data.get("holidays")),
        capacity=capacity,
        day_off_keywords=tuple(keywords.get("day_off", defaults.day_off_keywords)),
        unavailable_markers=tuple(keywords.get("unavailable", defaults.unavailable_markers)),
        hold_signature=tuple(trainer.get("hold_signature", defaults.hold_signature)),
        lead_time=timedelta(hours=float(booking.get("lead_time_hours", 3))),
        horizon_months=int(booking.get("horizon_months", 2)),
        session=timedelta(minutes=int(booking.get("session_minutes", 60))),
        travel_buffer=timedelta(minutes=int(booking.get("travel_buffer_minutes", 60))),
        slot_step=timedelta(minutes=int(booking.get("slot_minutes", 30))),
    )

    return AppConfig(
        timezone=timezone,
        settings_path=str(data.get("settings_path", "/var/lib/slotcal/settings.json")),
        trainer=TrainerConfig(
            name=str(trainer.get("name", "Ishihara")),
            work_calendar_id=str(trainer.get("work_calendar_id", "")),
            private_calendar_id=str(trainer.get("private_calendar_id", "")),
        ),
        locations=locations,
        google=GoogleConfig(
            enabled=bool(google.get("enabled", True)),
            auth=str(google.get("auth", "service_account")),
            fetch_days=int(google.get("fetch_days", 0)),
        ),
        rules=rules,
    )
