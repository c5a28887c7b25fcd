from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Mapping

WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


@dataclass(frozen=True)
class RequestedSlot:
    start: datetime
    location: str


def format_slot(slot: RequestedSlot, display_names: Mapping[str, str], session: timedelta) -> str:
    end = slot.start + session
    day = slot.start.strftime("%Y/%m/%d")
    place = display_names.get(slot.location, slot.location)
    return f"{day} ({WEEKDAYS[slot.start.weekday()]}) {slot.start:%H:%M}-{end:%H:%M} @ {place}"


def compose_request(
    slots: Iterable[RequestedSlot],
    display_names: Mapping[str, str],
    trainer_name: str,
    session: timedelta = timedelta(minutes=60),
) -> str:
    """Booking request text a client sends for one or more chosen slots."""
    ordered = sorted(slots, key=lambda s: (s.start, s.location))
    if not ordered:
        return ""

    if len(ordered) == 1:
        return (
            "[Booking request]\n"
            f"{format_slot(ordered[0], display_names, session)}\n"
            "\n"
            f"Is a personal training session with {trainer_name} available at the time above?\n"
            "Thank you."
        )

    lines = "\n".join(f"- {format_slot(s, display_names, session)}" for s in ordered)
    return (
        "[Booking request]\n"
        f"{lines}\n"
        "\n"
        f"Are any of the times above available for a personal training session with {trainer_name}?\n"
        "Thank you."
    )
