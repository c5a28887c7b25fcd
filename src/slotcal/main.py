from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from typing import List, Optional

from dotenv import load_dotenv

from .availability import check_availability
from .calendar_google import build_calendar_service
from .config import AppConfig, load_config
from .grid import SlotVerdict, build_grid, summarize
from .models import OverrideMaps, Snapshot
from .request_message import RequestedSlot, compose_request
from .review import facility_holds, private_events
from .store import JsonFileSettingsStore, OverrideStore, SettingsUnavailableError
from .sync import fetch_snapshot

CONFIG_PATH_DEFAULT = "/opt/slotcal/config.yaml"


def _load_snapshot(cfg: AppConfig, now: datetime) -> Optional[Snapshot]:
    if not cfg.google.enabled:
        print("Google Calendar disabled; no calendar data available.")
        return None
    try:
        service = build_calendar_service(cfg.google.auth)
        return fetch_snapshot(cfg, service, now)
    except Exception as e:
        print(f"Calendar fetch failed; every slot is closed. Error: {e}")
        return None


def _load_overrides(cfg: AppConfig) -> Optional[OverrideMaps]:
    try:
        return OverrideStore(JsonFileSettingsStore(cfg.settings_path)).load()
    except SettingsUnavailableError as e:
        print(f"Override settings unavailable; every slot is closed. Error: {e}")
        return None


def _parse_when(value: str, cfg: AppConfig) -> datetime:
    when = datetime.fromisoformat(value)
    if when.tzinfo is None:
        when = when.replace(tzinfo=cfg.rules.tz)
    return when


def _grid_payload(grid: List[SlotVerdict]) -> list:
    return [
        {"start": s.start.isoformat(), "location": s.location, **s.verdict.as_dict()}
        for s in grid
    ]


def run_grid(cfg: AppConfig, now: Optional[datetime] = None, as_json: bool = False) -> List[SlotVerdict]:
    now = now or datetime.now(tz=cfg.rules.tz)
    overrides = _load_overrides(cfg)
    snapshot = _load_snapshot(cfg, now)
    grid = build_grid(snapshot, overrides, cfg.rules, now)

    if as_json:
        print(json.dumps(_grid_payload(grid), indent=2, ensure_ascii=False))
        return grid

    names = cfg.display_names
    for (day, location), count in sorted(summarize(grid).items()):
        print(f"{day:%Y-%m-%d} {names.get(location, location)}: {count} open slots")
    return grid


def run_check(cfg: AppConfig, at: str, location: str, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(tz=cfg.rules.tz)
    overrides = _load_overrides(cfg)
    snapshot = _load_snapshot(cfg, now)
    candidate = _parse_when(at, cfg)
    cfg.location(location)

    if snapshot is None or overrides is None:
        result = {"admitted": False, "reason": "outside-hours"}
    else:
        verdict = check_availability(
            candidate, location, snapshot, overrides.private, overrides.facility_holds,
            rules=cfg.rules, now=now,
        )
        result = verdict.as_dict()
    print(json.dumps({"start": candidate.isoformat(), "location": location, **result}, indent=2))
    return result


def _review(cfg: AppConfig, kind: str) -> None:
    now = datetime.now(tz=cfg.rules.tz)
    snapshot = _load_snapshot(cfg, now)
    overrides = _load_overrides(cfg)
    if snapshot is None or overrides is None:
        raise SystemExit(1)

    if kind == "private":
        rows = [
            {"id": p.id, "title": p.title, "start": p.start.isoformat(), "end": p.end.isoformat(),
             "blocked": p.blocked}
            for p in private_events(snapshot, overrides.private)
        ]
    else:
        rows = [
            {"id": h.id, "title": h.title, "start": h.start.isoformat(), "end": h.end.isoformat(),
             "location": h.location, "room": h.room, "has_real_booking": h.has_real_booking,
             "ignored": h.ignored}
            for h in facility_holds(snapshot, overrides.facility_holds, cfg.rules)
        ]
    print(json.dumps(rows, indent=2, ensure_ascii=False))


def _parse_requested(value: str, cfg: AppConfig) -> RequestedSlot:
    when, sep, location = value.rpartition("@")
    if not sep or not when:
        raise ValueError(f"Expected ISO-TIME@LOCATION, got {value!r}")
    cfg.location(location)
    return RequestedSlot(start=_parse_when(when, cfg).astimezone(cfg.rules.tz), location=location)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Trainer appointment availability calculator")
    ap.add_argument("--config", default=None, help=f"YAML config (e.g. {CONFIG_PATH_DEFAULT})")
    ap.add_argument("--verbose", action="store_true")
    sub = ap.add_subparsers(dest="command", required=True)

    grid = sub.add_parser("grid")
    grid.add_argument("--json", action="store_true")

    check = sub.add_parser("check")
    check.add_argument("--at", required=True, help="ISO-8601 slot start")
    check.add_argument("--location", required=True)

    sub.add_parser("holds")
    sub.add_parser("private")

    set_private = sub.add_parser("set-private")
    set_private.add_argument("--event-id", required=True)
    set_private.add_argument("--ignored", action="store_true", help="ignore this private event")

    set_hold = sub.add_parser("set-hold")
    set_hold.add_argument("--event-id", required=True)
    set_hold.add_argument("--respected", action="store_true", help="stop ignoring this hold")

    sub.add_parser("clear-private")

    request = sub.add_parser("request")
    request.add_argument("--slot", action="append", required=True, help="ISO-TIME@LOCATION, repeatable")

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    cfg = load_config(args.config)

    if args.command == "grid":
        run_grid(cfg, as_json=args.json)
        return

    if args.command == "check":
        run_check(cfg, args.at, args.location)
        return

    if args.command in ("holds", "private"):
        _review(cfg, args.command)
        return

    overrides = OverrideStore(JsonFileSettingsStore(cfg.settings_path))

    if args.command == "set-private":
        flags = overrides.set_private(args.event_id, respected=not args.ignored)
        print(json.dumps({"success": True, "settings": flags}, indent=2))
        return

    if args.command == "set-hold":
        flags = overrides.set_hold_ignored(args.event_id, ignored=not args.respected)
        print(json.dumps({"success": True, "settings": flags}, indent=2))
        return

    if args.command == "clear-private":
        overrides.clear_private()
        print(json.dumps({"success": True}, indent=2))
        return

    if args.command == "request":
        slots = [_parse_requested(s, cfg) for s in args.slot]
        print(compose_request(slots, cfg.display_names, cfg.trainer.name, cfg.rules.session))
        return


if __name__ == "__main__":
    main()
