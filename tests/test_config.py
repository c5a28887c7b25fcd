from datetime import date, time, timedelta
from pathlib import Path

import pytest

from slotcal.config import config_from_dict, load_config, parse_holidays
from slotcal.rules import CountingCapacity, RoomPairCapacity


def test_defaults_without_config_file():
    cfg = load_config(None)

    assert cfg.timezone == "Asia/Tokyo"
    assert [loc.name for loc in cfg.locations] == ["ebisu", "hanzomon"]
    assert cfg.rules.capacity["ebisu"] == RoomPairCapacity(("A", "B"))
    assert cfg.rules.capacity["hanzomon"] == CountingCapacity(3)
    assert cfg.rules.hours.weekday_close == time(22, 0)
    assert cfg.rules.hours.holiday_close == time(20, 0)
    assert cfg.rules.lead_time == timedelta(hours=3)
    assert cfg.rules.holidays == frozenset()


def test_yaml_config_overrides(tmp_path: Path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        """
timezone: 'Asia/Tokyo'
settings_path: /tmp/slotcal.json
trainer:
  name: Sato
  work_calendar_id: sato@example.com
  hold_signature: ["GYMCO", "Sato"]
locations:
  north:
    display_name: North
    calendar_id: north@example.com
    title_markers: ["[N]"]
    capacity:
      model: count
      limit: 5
    hours:
      weekday_close: "21:30"
hours:
  open: "10:00"
booking:
  lead_time_hours: 6
holidays:
  2026: [2026-1-1, "2026-11-3"]
  2027: ["2027-01-01"]
""",
        encoding="utf-8",
    )

    cfg = load_config(str(cfg_path))

    assert cfg.trainer.name == "Sato"
    assert cfg.settings_path == "/tmp/slotcal.json"
    assert cfg.rules.hold_signature == ("GYMCO", "Sato")
    assert cfg.rules.capacity == {"north": CountingCapacity(5)}
    assert cfg.rules.hours.open == time(10, 0)
    assert cfg.rules.hours_for("north").weekday_close == time(21, 30)
    assert cfg.rules.hours_for("north").open == time(10, 0)
    assert cfg.rules.lead_time == timedelta(hours=6)
    assert cfg.rules.holidays == {date(2026, 1, 1), date(2026, 11, 3), date(2027, 1, 1)}
    assert cfg.location("north").title_markers == ["[N]"]
    assert cfg.display_names == {"north": "North"}


def test_flat_holiday_list_with_unpadded_dates():
    assert parse_holidays(["2025-1-13", "2025-11-24"]) == {date(2025, 1, 13), date(2025, 11, 24)}
    assert parse_holidays(None) == frozenset()


def test_unknown_capacity_model_is_rejected():
    with pytest.raises(ValueError):
        config_from_dict({"locations": {"x": {"capacity": {"model": "queue"}}}})


def test_unknown_location_lookup():
    cfg = config_from_dict({})

    with pytest.raises(ValueError):
        cfg.location("shibuya")


def test_example_config_loads():
    example = Path(__file__).resolve().parent.parent / "config.example.yaml"

    cfg = load_config(str(example))

    assert date(2026, 11, 3) in cfg.rules.holidays
    assert cfg.location("ebisu").rooms == ["A", "B"]
