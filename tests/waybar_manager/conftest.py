"""Pytest configuration and shared fixtures for waybar_manager tests."""

import logging
import tempfile
import tomllib
from pathlib import Path
from typing import Callable, Generator, List, Optional, Sequence

import pytest

from waybar_manager.logging_config import LOGGER_NAME
from waybar_manager.models import DisplayMode, DisplaySettings, Settings, WindowManagerKind
from waybar_manager.orchestrator import Orchestrator
from waybar_manager.paths import Paths
from waybar_manager.settings import SettingsStore
from waybar_manager.window_manager import WindowManagerBackend


TEMPLATE_TEXT = """// Waybar template for Hyprland
[
  // TPL:FULL
  {
    "output": "CONFIGURED_FROM_SCRIPT",
    "layer": "top",
    "height": 30,
    "modules-left": ["hyprland/workspaces"],
    "modules-right": ["pulseaudio", "network", "clock"],
    "custom/docs": {"on-click": "xdg-open https://example.org/docs"}
  },
  /* TPL:SIMPLE */
  {
    "output": "CONFIGURED_FROM_SCRIPT",
    "layer": "top",
    "height": 24,
    "modules-left": ["hyprland/workspaces"]
  }
]
"""

TEMPLATE_WITHOUT_SIMPLE = """[
  // TPL:FULL
  {"output": "CONFIGURED_FROM_SCRIPT", "layer": "top"},
  {"output": "CONFIGURED_FROM_SCRIPT", "layer": "bottom"}
]
"""


class FakeBackend(WindowManagerBackend):
    """Backend reporting a fixed monitor list instead of calling a compositor."""

    def __init__(self, names: Sequence[str], kind: WindowManagerKind = WindowManagerKind.HYPRLAND):
        self.kind = kind
        self.command = ["fake-monitors"]
        self.names = list(names)
        self.enumerate_calls = 0

    def enumerate(self):
        self.enumerate_calls += 1
        return self.parse_monitors("\n".join(self.names))

    def extract_names(self, output: str) -> List[str]:
        return output.split()


class FakeLauncher:
    """In-memory Waybar launcher recording stop/spawn calls."""

    def __init__(self, fail_on: Sequence[str] = ()):
        self.fail_on = set(fail_on)
        self.stop_calls = 0
        self.spawned: List[Path] = []

    def stop(self) -> int:
        self.stop_calls += 1
        return 0

    def spawn(self, config_path: Path, style_path: Path):
        if any(name in config_path.name for name in self.fail_on):
            raise FileNotFoundError(2, "No such file or directory", "waybar")
        self.spawned.append(config_path)


class FakeNotifier:
    """Collects notifications instead of calling notify-send."""

    def __init__(self):
        self.sent: List[tuple] = []

    def __call__(self, summary: str, body: str) -> bool:
        self.sent.append((summary, body))
        return True


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Drop handlers installed by setup_logging so tests stay isolated."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def template_text() -> str:
    return TEMPLATE_TEXT


@pytest.fixture
def template_without_simple() -> str:
    return TEMPLATE_WITHOUT_SIMPLE


@pytest.fixture
def temp_paths() -> Generator[Paths, None, None]:
    """Create a temporary waybar directory and settings location.

    Yields:
        Paths with templates/ and the stylesheet already present
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        paths = Paths(
            waybar_dir=root / "config" / "waybar",
            settings_file=root / "data" / "omynix" / "waybar-manager" / "config.toml",
        )
        paths.templates_dir.mkdir(parents=True)
        paths.stylesheet.write_text("* { font-size: 12px; }\n")
        yield paths


@pytest.fixture
def write_template(temp_paths: Paths) -> Callable[..., Path]:
    """Write a template for a window manager kind (default: the sample template)."""

    def _write(text: str = TEMPLATE_TEXT, kind: WindowManagerKind = WindowManagerKind.HYPRLAND) -> Path:
        path = temp_paths.template_path(kind)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_settings(temp_paths: Paths) -> Callable[..., Settings]:
    """Persist display settings for the run under test."""

    def _write(
        preferred: str = "",
        available: Optional[Sequence[str]] = None,
        mode: DisplayMode = DisplayMode.MULTIPLE,
    ) -> Settings:
        settings = Settings(display=DisplaySettings(
            preferred_monitor=preferred,
            available_monitors=list(available or []),
            mode=mode,
        ))
        SettingsStore(temp_paths.settings_file).save(settings)
        return settings

    return _write


@pytest.fixture
def read_settings(temp_paths: Paths) -> Callable[[], dict]:
    def _read() -> dict:
        with temp_paths.settings_file.open("rb") as f:
            return tomllib.load(f)

    return _read


@pytest.fixture
def launcher() -> FakeLauncher:
    return FakeLauncher()


@pytest.fixture
def make_launcher() -> Callable[..., FakeLauncher]:
    return FakeLauncher


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_backend() -> Callable[..., FakeBackend]:
    def _make(names: Sequence[str], kind: WindowManagerKind = WindowManagerKind.HYPRLAND) -> FakeBackend:
        return FakeBackend(names, kind)

    return _make


@pytest.fixture
def make_orchestrator(
    temp_paths: Paths, launcher: FakeLauncher, notifier: FakeNotifier
) -> Callable[..., Orchestrator]:
    """Build an Orchestrator wired to fakes for the given connected monitors."""

    def _make(names: Sequence[str], confirm=None, kind: WindowManagerKind = WindowManagerKind.HYPRLAND, **kwargs) -> Orchestrator:
        backend = FakeBackend(names, kind)
        return Orchestrator(
            paths=temp_paths,
            detector=lambda: backend,
            confirm=confirm,
            launcher=kwargs.get("launcher", launcher),
            notifier=notifier,
        )

    return _make
