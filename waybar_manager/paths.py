"""Well-known locations: templates, generated output, stylesheet, settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .models import WindowManagerKind


APP_NAME = "waybar-manager"
VENDOR_DIR = "omynix"


def xdg_config_home() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")


def xdg_data_home() -> Path:
    return Path(os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share")


@dataclass(frozen=True)
class Paths:
    """Filesystem layout used by one run."""

    waybar_dir: Path
    settings_file: Path

    @classmethod
    def from_environment(cls) -> "Paths":
        """Resolve locations from XDG variables (defaults under $HOME)."""
        return cls(
            waybar_dir=xdg_config_home() / "waybar",
            settings_file=xdg_data_home() / VENDOR_DIR / APP_NAME / "config.toml",
        )

    @property
    def templates_dir(self) -> Path:
        return self.waybar_dir / "templates"

    @property
    def generated_dir(self) -> Path:
        return self.waybar_dir / "generated"

    @property
    def stylesheet(self) -> Path:
        return self.waybar_dir / "omynix_style.css"

    def template_path(self, kind: WindowManagerKind) -> Path:
        """Return ``templates/<kind>.jsonc``."""
        return self.templates_dir / f"{kind.value}.jsonc"
