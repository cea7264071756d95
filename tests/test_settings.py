"""
Tests for easydmg.config.settings module.

This test suite covers:
- Settings loading and saving
- Default settings initialization
- Settings persistence to JSON file
- Type conversion helpers (get_bool, set_bool)
- Error handling for corrupted settings files
- Feedback mode parsing and the per-job preferences snapshot
"""

import json

import pytest

from easydmg.config import settings
from easydmg.domain import FeedbackMode, Preferences


@pytest.fixture(autouse=True)
def isolated_store(temp_settings_file, monkeypatch):
    """Point the store at a temp file and restore its values afterwards."""
    monkeypatch.setattr("easydmg.config.settings.SETTINGS_PATH", temp_settings_file)
    monkeypatch.setattr(settings.settings_store, "values", dict(settings.DEFAULT_SETTINGS))


class TestLoadSettings:
    """Tests for load_settings() function."""

    def test_load_defaults_when_no_file(self, tmp_path, monkeypatch):
        """Test that default settings are loaded when file doesn't exist."""
        monkeypatch.setattr(
            "easydmg.config.settings.SETTINGS_PATH", tmp_path / "nonexistent" / "settings.json"
        )

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS

    def test_load_from_existing_file(self, temp_settings_file):
        """Test loading settings from existing file."""
        temp_settings_file.write_text(
            json.dumps({"feedback_mode": "notification", "auto_trash_dmg": False})
        )

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values["feedback_mode"] == "notification"
        assert settings.settings_store.values["auto_trash_dmg"] is False

    def test_load_merges_with_defaults(self, temp_settings_file):
        """Test that loaded settings merge with defaults."""
        temp_settings_file.write_text(json.dumps({"reveal_in_finder": False}))

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values["reveal_in_finder"] is False
        assert settings.settings_store.values["auto_trash_dmg"] is True

    def test_load_handles_corrupted_json(self, temp_settings_file):
        """Test handling of corrupted JSON file."""
        temp_settings_file.write_text("{invalid json")

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS

    def test_load_handles_non_dict_json(self, temp_settings_file):
        """Test handling of JSON that's not a dict."""
        temp_settings_file.write_text("[]")

        settings.settings_store.values = {}
        settings.load_settings()

        assert settings.settings_store.values == settings.DEFAULT_SETTINGS


class TestSaveSettings:
    """Tests for save_settings() function."""

    def test_save_creates_directory(self, tmp_path, monkeypatch):
        """Test that save_settings creates parent directory if needed."""
        settings_file = tmp_path / "new_dir" / "settings.json"
        monkeypatch.setattr("easydmg.config.settings.SETTINGS_PATH", settings_file)

        settings.save_settings()

        assert settings_file.exists()

    def test_save_writes_sorted_json(self, temp_settings_file):
        """Test that JSON is formatted with indentation and sorted keys."""
        settings.settings_store.values = {"reveal_in_finder": True, "auto_trash_dmg": False}
        settings.save_settings()

        content = temp_settings_file.read_text()
        assert json.loads(content) == {"reveal_in_finder": True, "auto_trash_dmg": False}
        assert content.index("auto_trash_dmg") < content.index("reveal_in_finder")
        assert "  " in content


class TestGetAndSet:
    """Tests for get_setting(), set_setting() and the bool helpers."""

    def test_get_with_default(self):
        assert settings.get_setting("nonexistent", default="fallback") == "fallback"

    def test_set_automatically_saves(self, temp_settings_file):
        """Test that set_setting automatically saves to disk."""
        settings.set_setting("feedback_mode", "silent")

        data = json.loads(temp_settings_file.read_text())
        assert data["feedback_mode"] == "silent"

    def test_set_bool_converts(self):
        settings.set_bool("auto_trash_dmg", 0)

        assert settings.settings_store.values["auto_trash_dmg"] is False

    def test_get_bool_converts(self):
        settings.settings_store.values["reveal_in_finder"] = 1

        assert settings.get_bool("reveal_in_finder") is True


class TestFeedbackMode:
    """Tests for get_feedback_mode()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("progress", FeedbackMode.PROGRESS),
            ("notification", FeedbackMode.NOTIFICATION),
            ("silent", FeedbackMode.SILENT),
            ("SILENT", FeedbackMode.SILENT),
        ],
    )
    def test_parses_known_modes(self, raw, expected):
        settings.settings_store.values["feedback_mode"] = raw

        assert settings.get_feedback_mode() is expected

    def test_unknown_mode_defaults_to_progress(self):
        settings.settings_store.values["feedback_mode"] = "fireworks"

        assert settings.get_feedback_mode() is FeedbackMode.PROGRESS

    def test_missing_mode_defaults_to_progress(self):
        settings.settings_store.values = {}

        assert settings.get_feedback_mode() is FeedbackMode.PROGRESS


class TestLoadPreferences:
    """Tests for load_preferences()."""

    def test_defaults(self):
        assert settings.load_preferences() == Preferences(
            feedback_mode=FeedbackMode.PROGRESS, auto_trash=True, reveal_after_install=True
        )

    def test_reflects_store(self):
        settings.settings_store.values.update(
            {"feedback_mode": "notification", "auto_trash_dmg": False, "reveal_in_finder": False}
        )

        assert settings.load_preferences() == Preferences(
            feedback_mode=FeedbackMode.NOTIFICATION, auto_trash=False, reveal_after_install=False
        )

    def test_snapshot_is_independent_of_later_changes(self):
        snapshot = settings.load_preferences()

        settings.settings_store.values["auto_trash_dmg"] = False

        assert snapshot.auto_trash is True
