"""Window manager detection and monitor enumeration.

Each supported compositor has a backend that knows how to ask it for the
connected outputs. The rest of the package only sees the
WindowManagerBackend interface, so tests can substitute a fake.
"""

import logging
import os
import re
import subprocess
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional

import psutil

from .errors import DetectionError, EnumerationError, EmptyMonitorSetError
from .logging_config import log_subprocess_call
from .models import Monitor, WindowManagerKind

logger = logging.getLogger(__name__)


def is_process_running(process_name: str) -> bool:
    """Return True if a process with exactly this name is running."""
    for proc in psutil.process_iter(["name"]):
        try:
            if proc.info["name"] == process_name:
                return True
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return False


class WindowManagerBackend(ABC):
    """Monitor enumeration through one compositor's introspection tool."""

    kind: WindowManagerKind
    command: List[str]

    def enumerate(self) -> List[Monitor]:
        """Query the compositor for connected monitors, in its order.

        Raises:
            EnumerationError: Tool missing or failing, or no monitors reported
        """
        try:
            result = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            raise EnumerationError(self.kind.value, f"could not run '{' '.join(self.command)}': {e}")

        log_subprocess_call(self.command, result, logger)

        if result.returncode != 0:
            reason = (result.stderr or "").strip() or f"exit status {result.returncode}"
            raise EnumerationError(self.kind.value, f"'{' '.join(self.command)}' failed: {reason}")

        return self.parse_monitors(result.stdout)

    def parse_monitors(self, output: str) -> List[Monitor]:
        """Turn tool output into monitors, dropping repeated names.

        Raises:
            EmptyMonitorSetError: No monitor found in the output
        """
        monitors: List[Monitor] = []
        for name in self.extract_names(output):
            if any(m.name == name for m in monitors):
                logger.warning("Monitor %s reported twice by %s, ignoring repeat", name, self.kind.value)
                continue
            monitors.append(Monitor(name=name, position=len(monitors)))

        if not monitors:
            raise EmptyMonitorSetError(self.kind.value)

        logger.info("Monitors detected: %s", ", ".join(m.name for m in monitors))
        return monitors

    @abstractmethod
    def extract_names(self, output: str) -> List[str]:
        """Return monitor names found in the tool output, in order."""


class HyprlandBackend(WindowManagerBackend):
    """``hyprctl monitors``: one ``Monitor <name> (ID n):`` header per output."""

    kind = WindowManagerKind.HYPRLAND
    command = ["hyprctl", "monitors"]

    _HEADER = re.compile(r"^Monitor\s+(\S+)")

    def extract_names(self, output: str) -> List[str]:
        names = []
        for line in output.splitlines():
            match = self._HEADER.match(line)
            if match:
                names.append(match.group(1))
        return names


class NiriBackend(WindowManagerBackend):
    """``niri msg outputs``: ``Output "<description>" (<name>)`` per output."""

    kind = WindowManagerKind.NIRI
    command = ["niri", "msg", "outputs"]

    _HEADER = re.compile(r'^Output\s+"[^"]*"\s+\(([^)]+)\)')

    def extract_names(self, output: str) -> List[str]:
        names = []
        for line in output.splitlines():
            match = self._HEADER.match(line)
            if match:
                names.append(match.group(1))
        return names


class MangoBackend(WindowManagerBackend):
    """``mmsg -g``: the ``selmon`` line of each output starts with its name."""

    kind = WindowManagerKind.MANGO
    command = ["mmsg", "-g"]

    def extract_names(self, output: str) -> List[str]:
        names = []
        for line in output.splitlines():
            if "selmon" in line:
                fields = line.split()
                if fields:
                    names.append(fields[0])
        return names


BACKENDS: Dict[WindowManagerKind, type] = {
    WindowManagerKind.HYPRLAND: HyprlandBackend,
    WindowManagerKind.NIRI: NiriBackend,
    WindowManagerKind.MANGO: MangoBackend,
}


def detect_window_manager(
    environ: Optional[Mapping[str, str]] = None,
    process_running: Callable[[str], bool] = is_process_running,
) -> WindowManagerKind:
    """Identify the running compositor.

    Environment variables are checked first, then the process list.

    Raises:
        DetectionError: No supported compositor found
    """
    env = os.environ if environ is None else environ

    if env.get("HYPRLAND_INSTANCE_SIGNATURE"):
        kind = WindowManagerKind.HYPRLAND
    elif env.get("NIRI_SOCKET"):
        kind = WindowManagerKind.NIRI
    elif process_running("mango"):
        kind = WindowManagerKind.MANGO
    elif process_running("niri"):
        kind = WindowManagerKind.NIRI
    else:
        raise DetectionError()

    logger.info("Window manager detected: %s", kind.display_name)
    return kind


def get_backend(kind: WindowManagerKind) -> WindowManagerBackend:
    return BACKENDS[kind]()


def detect_backend() -> WindowManagerBackend:
    """Detect the running compositor and return its backend."""
    return get_backend(detect_window_manager())
