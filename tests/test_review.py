from datetime import datetime
from zoneinfo import ZoneInfo

from slotcal.models import Event, Snapshot, SourceKind
from slotcal.review import facility_holds, private_events
from slotcal.rules import BookingRules, CountingCapacity, RoomPairCapacity

TZ = ZoneInfo("Asia/Tokyo")
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=TZ)
RULES = BookingRules(capacity={"ebisu": RoomPairCapacity(), "hanzomon": CountingCapacity()})


def _event(id, hour, kind, title=None, location=None, room=None) -> Event:
    return Event(
        id=id,
        start=datetime(2026, 10, 21, hour, 0, tzinfo=TZ),
        end=datetime(2026, 10, 21, hour + 1, 0, tzinfo=TZ),
        source_kind=kind,
        title=title,
        location=location,
        room=room,
    )


def test_private_events_default_to_blocking():
    snapshot = Snapshot(
        trainer=(
            _event("p2", 16, SourceKind.TRAINER_PRIVATE, "Gym"),
            _event("p1", 12, SourceKind.TRAINER_PRIVATE),
            _event("w1", 14, SourceKind.TRAINER_WORK, "Session"),
        ),
        locations={},
        generated_at=NOW,
    )

    rows = private_events(snapshot, {"p2": False})

    assert [(r.id, r.title, r.blocked) for r in rows] == [("p1", "(no title)", True), ("p2", "Gym", False)]


def test_facility_holds_report_backing_and_override():
    snapshot = Snapshot(
        trainer=(_event("w1", 10, SourceKind.TRAINER_WORK, "Session"),),
        locations={
            "ebisu": (
                _event("h1", 10, SourceKind.LOCATION, "TOPFORM 石原", "ebisu", "A"),
                _event("x", 10, SourceKind.LOCATION, "Other gym", "ebisu", "B"),
            ),
            "hanzomon": (_event("h2", 15, SourceKind.LOCATION, "石原 TOPFORM", "hanzomon"),),
        },
        generated_at=NOW,
    )

    holds = facility_holds(snapshot, {"h1": True}, RULES)

    assert [(h.id, h.location, h.has_real_booking, h.ignored) for h in holds] == [
        ("h1", "ebisu", True, True),
        ("h2", "hanzomon", False, False),
    ]
    assert holds[0].room == "A"
    assert not holds[0].counts
    assert not holds[1].counts
