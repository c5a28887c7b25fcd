from __future__ import annotations
import calendar
from datetime import date, datetime, timedelta
from typing import Optional

from .models import DenialReason
from .rules import BookingRules


def _minus_months(day: date, months: int) -> date:
    # Clamp to the month's last day: 2026-04-30 minus 2 months is 2026-02-28.
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def bookable_from(slot_day: date, rules: BookingRules) -> date:
    """First calendar day on which a slot on ``slot_day`` may be booked."""
    return _minus_months(slot_day, rules.horizon_months)


def is_within_hours(local_start: datetime, rules: BookingRules, location: Optional[str] = None) -> bool:
    hours = rules.hours_for(location)
    start_time = local_start.timetz().replace(tzinfo=None)
    if start_time < hours.open:
        return False
    close = hours.close_for(local_start.date(), rules.holidays)
    end = local_start + rules.session
    # Sessions never run past midnight.
    if end.date() != local_start.date():
        return False
    return end.timetz().replace(tzinfo=None) <= close


def check_candidate(
    candidate: datetime,
    now: datetime,
    rules: BookingRules,
    location: Optional[str] = None,
) -> Optional[DenialReason]:
    """Temporal admissibility of a slot start; ``None`` means it may go on to conflict checks."""
    if candidate <= now + rules.lead_time:
        return DenialReason.TOO_SOON

    local_candidate = rules.local(candidate)
    today = rules.local(now).date()
    if today < bookable_from(local_candidate.date(), rules):
        return DenialReason.TOO_FAR

    if not is_within_hours(local_candidate, rules, location):
        return DenialReason.OUTSIDE_HOURS
    return None


def horizon_end(today: date, rules: BookingRules) -> date:
    """Last calendar day that is already bookable on ``today``."""
    month_index = today.year * 12 + (today.month - 1) + rules.horizon_months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    target = date(year, month, min(today.day, last_day))
    # Step forward while the next day would still pass the floor check.
    while bookable_from(target + timedelta(days=1), rules) <= today:
        target += timedelta(days=1)
    return target
