"""Free-text title predicates.

Calendar titles are the only signal for day-off blocks, manual "not bookable"
blocks and mirrored facility holds. Every rule that inspects a title lives
here so the rest of the engine only sees booleans.
"""
from __future__ import annotations
import re
import unicodedata
from typing import Iterable, Optional


def _normalize_text(value: Optional[str]) -> str:
    if not value:
        return ""
    # NFKC folds full-width Latin ("ＴＯＰＦＯＲＭ") and brackets onto ASCII.
    folded = unicodedata.normalize("NFKC", value)
    return " ".join(folded.strip().lower().split())


def _contains_any(title: Optional[str], needles: Iterable[str]) -> bool:
    text = _normalize_text(title)
    if not text:
        return False
    return any(_normalize_text(n) and _normalize_text(n) in text for n in needles)


def is_day_off_event(title: Optional[str], keywords: Iterable[str]) -> bool:
    return _contains_any(title, keywords)


def is_unavailable_marker(title: Optional[str], markers: Iterable[str]) -> bool:
    return _contains_any(title, markers)


def is_facility_hold_for(title: Optional[str], signature: Iterable[str]) -> bool:
    """True when every signature token (business, trainer, ...) appears in the title."""
    text = _normalize_text(title)
    tokens = [_normalize_text(t) for t in signature]
    tokens = [t for t in tokens if t]
    if not text or not tokens:
        return False
    return all(t in text for t in tokens)


def has_location_marker(title: Optional[str], markers: Iterable[str], prefixes: Iterable[str] = ()) -> bool:
    """True when a trainer event title carries a location tag such as ``(恵)`` or a ``半 `` prefix."""
    if not title:
        return False
    folded = unicodedata.normalize("NFKC", title)
    if any(m and unicodedata.normalize("NFKC", m) in folded for m in markers):
        return True
    # Prefixes keep their trailing space: "半 " must not match "半蔵門".
    stripped = folded.lstrip()
    return any(p and stripped.startswith(unicodedata.normalize("NFKC", p)) for p in prefixes)


def room_marker(title: Optional[str], rooms: Iterable[str]) -> Optional[str]:
    """Room name standing alone in the title ("Room A", "A室", "(B)"); the last listed room wins."""
    if not title:
        return None
    folded = unicodedata.normalize("NFKC", title)
    found = None
    for room in rooms:
        if re.search(rf"(?<![A-Za-z0-9]){re.escape(room)}(?![A-Za-z0-9])", folded):
            found = room
    return found
