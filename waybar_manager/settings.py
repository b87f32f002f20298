"""Settings store and monitor-topology helpers.

Settings live in a small TOML file (``config.toml``) validated with
pydantic. The file is created with defaults on first use and always
written atomically.
"""

import logging
import os
import tempfile
import tomllib
from pathlib import Path
from typing import List, Optional, Sequence

import tomli_w
from pydantic import ValidationError

from .errors import ErrorCode, SettingsError
from .models import DisplayMode, DisplaySettings, Settings

logger = logging.getLogger(__name__)


class SettingsStore:
    """Load and save the persisted Settings record."""

    def __init__(self, settings_file: Path):
        """Initialize settings store.

        Args:
            settings_file: Path to config.toml
        """
        self.settings_file = settings_file

    def exists(self) -> bool:
        return self.settings_file.exists()

    def init(self) -> bool:
        """Create the settings file with defaults.

        Returns:
            True if the file was created, False if it already existed
        """
        if self.exists():
            return False
        self.save(Settings())
        logger.info("Configuration file created in: %s", self.settings_file)
        return True

    def load(self, create_missing: bool = True) -> Settings:
        """Load settings, creating the default file if missing.

        Args:
            create_missing: Write the default file when absent; otherwise
                just return defaults

        Raises:
            SettingsError: File unreadable or invalid
        """
        if not self.exists():
            if not create_missing:
                return Settings()
            logger.info("No configuration file was found, creating a new one")
            self.init()

        try:
            with self.settings_file.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise SettingsError(str(self.settings_file), f"invalid TOML: {e}")
        except UnicodeDecodeError as e:
            raise SettingsError(str(self.settings_file), f"not valid UTF-8: {e.reason} at byte {e.start}")
        except OSError as e:
            raise SettingsError(str(self.settings_file), str(e))

        try:
            return Settings.model_validate(data)
        except ValidationError as e:
            fields = ", ".join(".".join(str(loc) for loc in err["loc"]) for err in e.errors())
            raise SettingsError(str(self.settings_file), f"invalid values in {fields}")

    def save(self, settings: Settings) -> None:
        """Save settings atomically (temp file + rename).

        Raises:
            SettingsError: File could not be written
        """
        try:
            self.settings_file.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(
                dir=self.settings_file.parent,
                prefix=".config-",
                suffix=".toml",
            )

            try:
                with os.fdopen(fd, "wb") as f:
                    tomli_w.dump(settings.model_dump(mode="json"), f)
                    f.flush()
                    os.fsync(f.fileno())

                os.replace(temp_path, self.settings_file)

            except Exception:
                if Path(temp_path).exists():
                    os.unlink(temp_path)
                raise

        except OSError as e:
            raise SettingsError(str(self.settings_file), str(e), code=ErrorCode.SETTINGS_SAVE_FAILED)

        logger.debug("Settings saved to %s", self.settings_file)


def find_matches(configured: Sequence[str], connected: Sequence[str]) -> List[str]:
    """Monitors present in both lists, in connected order."""
    configured_set = set(configured)
    return [name for name in connected if name in configured_set]


def lists_match(list1: Sequence[str], list2: Sequence[str]) -> bool:
    """Same monitors regardless of order."""
    return len(list1) == len(list2) and set(list1) == set(list2)


def topology_changed(display: DisplaySettings, connected: Sequence[str]) -> bool:
    """Whether the persisted monitors disagree with the connected ones.

    In single mode only the preferred monitor matters; in multiple mode the
    whole list must match.
    """
    if display.mode == DisplayMode.SINGLE:
        return display.preferred_monitor not in connected
    return not lists_match(display.available_monitors, connected)


def sync_available_monitors(settings: Settings, connected: Sequence[str]) -> Settings:
    """Return a copy of settings with available_monitors set to connected."""
    display = settings.display.model_copy(update={"available_monitors": list(connected)})
    return settings.model_copy(update={"display": display})


def _pick(connected: Sequence[str], number: int) -> Optional[str]:
    if 1 <= number <= len(connected):
        return connected[number - 1]
    return None


def configure_single(settings: Settings, connected: Sequence[str], number: int = 1) -> Settings:
    """Single mode on the monitor numbered ``number`` (1-based).

    With one connected monitor it is used regardless of ``number``.

    Raises:
        ValueError: Number out of range
    """
    selected = connected[0] if len(connected) == 1 else _pick(connected, number)
    if selected is None:
        raise ValueError(f"Invalid monitor number: {number}")

    display = DisplaySettings(
        preferred_monitor=selected,
        available_monitors=[selected],
        mode=DisplayMode.SINGLE,
    )
    return settings.model_copy(update={"display": display})


def configure_multiple(
    settings: Settings,
    connected: Sequence[str],
    preferred_number: int,
    secondary: Optional[Sequence[int]] = None,
) -> Settings:
    """Multiple mode: every connected monitor gets a bar, the main one the full variant.

    Args:
        settings: Current settings
        connected: Connected monitor names in enumeration order
        preferred_number: 1-based number of the main monitor; out of range
            falls back to the first monitor
        secondary: 1-based numbers of the secondary monitors to keep in
            ``available_monitors``; None or empty keeps every monitor
    """
    preferred = _pick(connected, preferred_number)
    if preferred is None:
        logger.warning("Invalid monitor number %s, using the first one", preferred_number)
        preferred = connected[0]

    if secondary:
        available = [preferred]
        for number in secondary:
            name = _pick(connected, number)
            if name is None:
                logger.warning("Ignoring invalid monitor number %s", number)
            elif name not in available:
                available.append(name)
    else:
        available = list(connected)

    display = DisplaySettings(
        preferred_monitor=preferred,
        available_monitors=available,
        mode=DisplayMode.MULTIPLE,
    )
    return settings.model_copy(update={"display": display})


def parse_monitor_numbers(text: str) -> List[int]:
    """Parse ``"1, 3"`` into ``[1, 3]``.

    Raises:
        ValueError: An item is not a number
    """
    return [int(item) for item in text.replace(" ", "").split(",") if item]
