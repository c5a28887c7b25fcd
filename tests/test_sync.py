from datetime import datetime
from zoneinfo import ZoneInfo

from slotcal.config import config_from_dict
from slotcal.models import Event, SourceKind
from slotcal.sync import build_snapshot, fetch_snapshot, fetch_window

TZ = ZoneInfo("Asia/Tokyo")
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=TZ)
CFG = config_from_dict({})


def _event(id, title, kind, hour=14) -> Event:
    return Event(
        id=id,
        start=datetime(2026, 10, 21, hour, 0, tzinfo=TZ),
        end=datetime(2026, 10, 21, hour + 1, 0, tzinfo=TZ),
        source_kind=kind,
        title=title,
    )


def test_trainer_events_are_tagged_and_merged_into_location():
    work = [
        _event("w1", "山田様 (恵) A", SourceKind.TRAINER_WORK),
        _event("w2", "半 佐藤様", SourceKind.TRAINER_WORK, hour=16),
        _event("w3", "Admin", SourceKind.TRAINER_WORK, hour=18),
    ]
    ebisu = [_event("e1", "Rental Gym Ebisu - Room B", SourceKind.LOCATION)]

    snapshot = build_snapshot(work, [], {"ebisu": ebisu}, CFG.locations, NOW)

    tags = {e.id: e.location for e in snapshot.trainer}
    assert tags == {"w1": "ebisu", "w2": "hanzomon", "w3": None}
    assert [e.id for e in snapshot.location_events("ebisu")] == ["e1", "w1"]
    assert {e.id: e.room for e in snapshot.location_events("ebisu")} == {"e1": "B", "w1": "A"}
    assert [e.id for e in snapshot.location_events("hanzomon")] == ["w2"]
    assert snapshot.location_events("hanzomon")[0].room is None


def test_merge_skips_ids_already_in_location_calendar():
    shared = _event("same", "山田様 (恵)", SourceKind.TRAINER_WORK)
    mirrored = _event("same", "山田様", SourceKind.LOCATION)

    snapshot = build_snapshot([shared], [], {"ebisu": [mirrored]}, CFG.locations, NOW)

    assert len(snapshot.location_events("ebisu")) == 1
    assert snapshot.location_events("ebisu")[0].source_kind == SourceKind.LOCATION


def test_fetch_window_covers_the_last_bookable_day():
    start, end = fetch_window(NOW, CFG.rules, 0)

    assert start == datetime(2026, 10, 19, 0, 0, tzinfo=TZ)
    last_slot_end = datetime(2026, 12, 19, 20, 0, tzinfo=TZ)
    assert end >= last_slot_end
    assert end == datetime(2026, 12, 20, 0, 0, tzinfo=TZ)


def test_fetch_window_days_only_widen():
    _, end = fetch_window(NOW, CFG.rules, 90)

    assert end == datetime(2027, 1, 17, 10, 0, tzinfo=TZ)


def test_fetch_snapshot_asks_google_for_the_whole_horizon(monkeypatch):
    windows = []

    def fake_fetch(service, calendar_id, time_min, time_max, source_kind, tz, location=None):
        windows.append((time_min, time_max))
        return []

    monkeypatch.setattr("slotcal.sync.fetch_google_events", fake_fetch)

    fetch_snapshot(CFG, service=object(), now=datetime(2026, 6, 30, 10, 0, tzinfo=TZ))

    assert windows
    assert all(time_max == datetime(2026, 9, 1, 0, 0, tzinfo=TZ) for _, time_max in windows)


def test_invite_on_both_trainer_calendars_is_kept_once():
    work = [_event("shared", "山田様 (恵)", SourceKind.TRAINER_WORK)]
    private = [
        _event("shared", "山田様 (恵)", SourceKind.TRAINER_PRIVATE),
        _event("p1", "Dentist", SourceKind.TRAINER_PRIVATE, hour=16),
    ]

    snapshot = build_snapshot(work, private, {}, CFG.locations, NOW)

    assert [(e.id, e.source_kind) for e in snapshot.trainer] == [
        ("shared", SourceKind.TRAINER_WORK),
        ("p1", SourceKind.TRAINER_PRIVATE),
    ]
    assert [e.id for e in snapshot.location_events("ebisu")] == ["shared"]


def test_fetch_snapshot_reads_every_calendar(monkeypatch):
    cfg = config_from_dict({
        "trainer": {"work_calendar_id": "work@x", "private_calendar_id": "private@x"},
    })
    seen = []

    def fake_fetch(service, calendar_id, time_min, time_max, source_kind, tz, location=None):
        seen.append((calendar_id, source_kind, location))
        if source_kind == SourceKind.TRAINER_PRIVATE:
            return [_event("p1", "Dentist", source_kind)]
        return []

    monkeypatch.setattr("slotcal.sync.fetch_google_events", fake_fetch)

    snapshot = fetch_snapshot(cfg, service=object(), now=NOW)

    assert ("work@x", SourceKind.TRAINER_WORK, None) in seen
    assert ("private@x", SourceKind.TRAINER_PRIVATE, None) in seen
    assert ("ebisu@topform.jp", SourceKind.LOCATION, "ebisu") in seen
    assert ("light@topform.jp", SourceKind.LOCATION, "hanzomon") in seen
    assert [e.id for e in snapshot.private_events] == ["p1"]
    assert snapshot.generated_at == NOW
