"""Tests for the settings store and topology helpers."""

import pytest

from waybar_manager.errors import ErrorCode, SettingsError
from waybar_manager.models import DisplayMode, DisplaySettings, Settings
from waybar_manager.paths import Paths
from waybar_manager.settings import (
    SettingsStore,
    configure_multiple,
    configure_single,
    find_matches,
    lists_match,
    parse_monitor_numbers,
    sync_available_monitors,
    topology_changed,
)


class TestSettingsStore:
    """Test loading and saving config.toml."""

    def test_load_creates_default(self, temp_paths):
        """Test a missing settings file is created with defaults."""
        store = SettingsStore(temp_paths.settings_file)

        settings = store.load()

        assert settings == Settings()
        assert temp_paths.settings_file.exists()
        assert settings.display.mode == DisplayMode.MULTIPLE

    def test_load_without_creating(self, temp_paths):
        """Test defaults are returned without touching disk when asked."""
        settings = SettingsStore(temp_paths.settings_file).load(create_missing=False)

        assert settings == Settings()
        assert not temp_paths.settings_file.exists()

    def test_init_only_once(self, temp_paths):
        """Test init does not overwrite an existing file."""
        store = SettingsStore(temp_paths.settings_file)

        assert store.init() is True
        assert store.init() is False

    def test_round_trip(self, temp_paths):
        """Test saved settings load back unchanged."""
        store = SettingsStore(temp_paths.settings_file)
        settings = Settings(display=DisplaySettings(
            preferred_monitor="eDP-1",
            available_monitors=["eDP-1", "HDMI-A-1"],
            mode=DisplayMode.SINGLE,
        ))

        store.save(settings)

        assert store.load() == settings
        text = temp_paths.settings_file.read_text()
        assert "[display]" in text
        assert 'mode = "single"' in text

    def test_invalid_toml(self, temp_paths):
        """Test unparsable file raises SettingsError."""
        temp_paths.settings_file.parent.mkdir(parents=True)
        temp_paths.settings_file.write_text("[display\nmode = ")

        with pytest.raises(SettingsError) as exc_info:
            SettingsStore(temp_paths.settings_file).load()

        assert exc_info.value.code == ErrorCode.SETTINGS_LOAD_FAILED

    def test_invalid_values(self, temp_paths):
        """Test schema violations raise SettingsError naming the field."""
        temp_paths.settings_file.parent.mkdir(parents=True)
        temp_paths.settings_file.write_text('[display]\nmode = "triple"\n')

        with pytest.raises(SettingsError) as exc_info:
            SettingsStore(temp_paths.settings_file).load()

        assert "display.mode" in exc_info.value.message

    def test_not_utf8(self, temp_paths):
        """Test undecodable bytes raise SettingsError instead of crashing."""
        temp_paths.settings_file.parent.mkdir(parents=True)
        temp_paths.settings_file.write_bytes(b'[display]\npreferred_monitor = "\xff\xfe"\n')

        with pytest.raises(SettingsError) as exc_info:
            SettingsStore(temp_paths.settings_file).load()

        assert exc_info.value.code == ErrorCode.SETTINGS_LOAD_FAILED
        assert "UTF-8" in exc_info.value.message

    def test_loads_existing_omynix_file(self, temp_paths):
        """Test a config.toml written by the earlier omynix tool is read as is."""
        temp_paths.settings_file.parent.mkdir(parents=True)
        temp_paths.settings_file.write_text(
            "[display]\n"
            'preferred_monitor = "DP-1"\n'
            'available_monitors = ["DP-1", "HDMI-A-1"]\n'
            'mode = "multiple"\n'
        )

        settings = SettingsStore(temp_paths.settings_file).load()

        assert settings.display.preferred_monitor == "DP-1"
        assert settings.display.available_monitors == ["DP-1", "HDMI-A-1"]
        assert settings.display.mode == DisplayMode.MULTIPLE

    def test_default_location(self, monkeypatch, tmp_path):
        """Test settings and stylesheet resolve to the omynix locations."""
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "share"))
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

        paths = Paths.from_environment()

        assert paths.settings_file == tmp_path / "share" / "omynix" / "waybar-manager" / "config.toml"
        assert paths.stylesheet == tmp_path / "config" / "waybar" / "omynix_style.css"

    def test_save_failure(self, temp_paths):
        """Test unwritable location raises SETTINGS_SAVE_FAILED."""
        blocker = temp_paths.settings_file.parent
        blocker.parent.mkdir(parents=True)
        blocker.write_text("a file where a directory should be")

        with pytest.raises(SettingsError) as exc_info:
            SettingsStore(temp_paths.settings_file).save(Settings())

        assert exc_info.value.code == ErrorCode.SETTINGS_SAVE_FAILED

    def test_available_monitors_deduplicated(self):
        """Test blank and repeated monitor names are dropped."""
        display = DisplaySettings(available_monitors=["eDP-1", " ", "eDP-1", "DP-1 "])

        assert display.available_monitors == ["eDP-1", "DP-1"]


class TestTopology:
    """Test comparing persisted and connected monitors."""

    def test_find_matches(self):
        assert find_matches(["eDP-1", "DP-2"], ["HDMI-A-1", "DP-2", "eDP-1"]) == ["DP-2", "eDP-1"]

    def test_lists_match_ignores_order(self):
        assert lists_match(["eDP-1", "DP-1"], ["DP-1", "eDP-1"])
        assert not lists_match(["eDP-1"], ["eDP-1", "DP-1"])

    def test_multiple_mode_compares_lists(self):
        """Test multiple mode reports any added or removed monitor."""
        display = DisplaySettings(preferred_monitor="eDP-1", available_monitors=["eDP-1", "DP-1"])

        assert not topology_changed(display, ["DP-1", "eDP-1"])
        assert topology_changed(display, ["eDP-1"])
        assert topology_changed(display, ["eDP-1", "DP-1", "DP-2"])

    def test_single_mode_checks_preferred(self):
        """Test single mode only cares about the preferred monitor."""
        display = DisplaySettings(preferred_monitor="eDP-1", available_monitors=["eDP-1"],
                                  mode=DisplayMode.SINGLE)

        assert not topology_changed(display, ["eDP-1", "HDMI-A-1"])
        assert topology_changed(display, ["HDMI-A-1"])

    def test_sync_returns_copy(self):
        """Test syncing leaves the original settings untouched."""
        settings = Settings(display=DisplaySettings(preferred_monitor="eDP-1", available_monitors=["eDP-1"]))

        updated = sync_available_monitors(settings, ["eDP-1", "DP-1"])

        assert updated.display.available_monitors == ["eDP-1", "DP-1"]
        assert updated.display.preferred_monitor == "eDP-1"
        assert settings.display.available_monitors == ["eDP-1"]


class TestInteractiveConfiguration:
    """Test the settings produced by the config command's choices."""

    def test_single_by_number(self):
        settings = configure_single(Settings(), ["eDP-1", "HDMI-A-1"], 2)

        assert settings.display.mode == DisplayMode.SINGLE
        assert settings.display.preferred_monitor == "HDMI-A-1"
        assert settings.display.available_monitors == ["HDMI-A-1"]

    def test_single_with_one_monitor_ignores_number(self):
        settings = configure_single(Settings(), ["eDP-1"], 7)

        assert settings.display.preferred_monitor == "eDP-1"

    def test_single_out_of_range(self):
        with pytest.raises(ValueError):
            configure_single(Settings(), ["eDP-1", "HDMI-A-1"], 3)

    def test_multiple(self):
        settings = configure_multiple(Settings(), ["eDP-1", "HDMI-A-1"], 2)

        assert settings.display.mode == DisplayMode.MULTIPLE
        assert settings.display.preferred_monitor == "HDMI-A-1"
        assert settings.display.available_monitors == ["eDP-1", "HDMI-A-1"]

    def test_multiple_out_of_range_uses_first(self):
        settings = configure_multiple(Settings(), ["eDP-1", "HDMI-A-1"], 0)

        assert settings.display.preferred_monitor == "eDP-1"

    def test_multiple_with_secondary_subset(self):
        """Test only the chosen secondary monitors are kept, main first."""
        settings = configure_multiple(Settings(), ["eDP-1", "HDMI-A-1", "DP-1"], 2, secondary=[3, 2, 9])

        assert settings.display.preferred_monitor == "HDMI-A-1"
        assert settings.display.available_monitors == ["HDMI-A-1", "DP-1"]

    def test_multiple_empty_secondary_keeps_all(self):
        settings = configure_multiple(Settings(), ["eDP-1", "HDMI-A-1"], 1, secondary=[])

        assert settings.display.available_monitors == ["eDP-1", "HDMI-A-1"]

    def test_parse_monitor_numbers(self):
        assert parse_monitor_numbers("1, 3,") == [1, 3]
        assert parse_monitor_numbers("") == []
        with pytest.raises(ValueError):
            parse_monitor_numbers("1,b")
