"""Settings storage for installer preferences."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from easydmg.domain import FeedbackMode, Preferences


SETTINGS_PATH = Path(
    os.environ.get(
        "EASYDMG_SETTINGS_PATH",
        Path.home() / ".config" / "easydmg" / "settings.json",
    )
)

DEFAULT_SETTINGS: dict[str, Any] = {
    "feedback_mode": FeedbackMode.PROGRESS.value,
    "auto_trash_dmg": True,
    "reveal_in_finder": True,
}


@dataclass
class SettingsStore:
    values: dict[str, Any] = field(default_factory=dict)


settings_store = SettingsStore()


def load_settings() -> None:
    settings_store.values = dict(DEFAULT_SETTINGS)
    if not SETTINGS_PATH.exists():
        return
    try:
        data = json.loads(SETTINGS_PATH.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return
    if isinstance(data, dict):
        settings_store.values.update(data)


def save_settings() -> None:
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    SETTINGS_PATH.write_text(
        json.dumps(settings_store.values, indent=2, sort_keys=True),
        encoding="utf-8",
    )


def get_setting(key: str, default: Any | None = None) -> Any:
    return settings_store.values.get(key, default)


def set_setting(key: str, value: Any) -> None:
    settings_store.values[key] = value
    save_settings()


def get_bool(key: str, default: bool = False) -> bool:
    return bool(get_setting(key, default))


def set_bool(key: str, value: bool) -> None:
    set_setting(key, bool(value))


def get_feedback_mode() -> FeedbackMode:
    """Return the configured feedback mode, defaulting to the progress display."""
    raw = get_setting("feedback_mode", FeedbackMode.PROGRESS.value)
    try:
        return FeedbackMode(str(raw).lower())
    except ValueError:
        return FeedbackMode.PROGRESS


def load_preferences() -> Preferences:
    """Snapshot the current settings for one install job."""
    return Preferences(
        feedback_mode=get_feedback_mode(),
        auto_trash=get_bool("auto_trash_dmg", True),
        reveal_after_install=get_bool("reveal_in_finder", True),
    )


load_settings()
