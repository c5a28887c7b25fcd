from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, Optional, Protocol
import json
import logging

from .models import OverrideMaps

PRIVATE_KEY = "private_events"
HOLDS_KEY = "facility_holds"

log = logging.getLogger(__name__)


class SettingsUnavailableError(RuntimeError):
    """The settings document could not be read; callers must not assume defaults."""


class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySettingsStore:
    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSettingsStore:
    """Key-value settings persisted as one JSON object. Every call re-reads the file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SettingsUnavailableError(f"Cannot read settings from {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise SettingsUnavailableError(f"Settings file {self.path} must hold a JSON object.")
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def _flag_map(value: Any, key: str) -> Dict[str, bool]:
    if value is None:
        return {}
    if not isinstance(value, dict) or not all(isinstance(v, bool) for v in value.values()):
        raise SettingsUnavailableError(f"Setting {key!r} must map event ids to true/false.")
    return {str(k): v for k, v in value.items()}


def _check_flag(event_id: str, flag: Any) -> None:
    if not event_id:
        raise ValueError("eventId is required.")
    if not isinstance(flag, bool):
        raise ValueError("Override flag must be true or false.")


class OverrideStore:
    """Per-event override flags on top of any SettingsStore."""

    def __init__(self, store: SettingsStore) -> None:
        self.store = store

    def load(self) -> OverrideMaps:
        maps = OverrideMaps(
            private=_flag_map(self.store.get(PRIVATE_KEY), PRIVATE_KEY),
            facility_holds=_flag_map(self.store.get(HOLDS_KEY), HOLDS_KEY),
        )
        log.debug("Loaded %d private and %d hold overrides", len(maps.private), len(maps.facility_holds))
        return maps

    def set_private(self, event_id: str, respected: bool) -> Dict[str, bool]:
        """``respected=False`` makes the engine ignore that private event."""
        _check_flag(event_id, respected)
        flags = _flag_map(self.store.get(PRIVATE_KEY), PRIVATE_KEY)
        flags[event_id] = respected
        self.store.set(PRIVATE_KEY, flags)
        return flags

    def set_hold_ignored(self, event_id: str, ignored: bool) -> Dict[str, bool]:
        _check_flag(event_id, ignored)
        flags = _flag_map(self.store.get(HOLDS_KEY), HOLDS_KEY)
        flags[event_id] = ignored
        self.store.set(HOLDS_KEY, flags)
        return flags

    def clear_private(self) -> None:
        self.store.delete(PRIVATE_KEY)
