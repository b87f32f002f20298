"""
Data models for Waybar Manager.

Pydantic models for everything that is parsed or persisted (monitors,
template variants, settings) plus plain dataclasses for the per-run
records produced by synthesis.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Placeholder every template variant carries in its "output" field
SENTINEL = "CONFIGURED_FROM_SCRIPT"
OUTPUT_FIELD = "output"


# Enumerations

class WindowManagerKind(str, Enum):
    """Supported compositors."""
    HYPRLAND = "hyprland"
    NIRI = "niri"
    MANGO = "mango"

    @property
    def display_name(self) -> str:
        return {"hyprland": "Hyprland", "niri": "Niri", "mango": "MangoWC"}[self.value]


class VariantName(str, Enum):
    """The two configuration bodies a template provides."""
    FULL = "full"
    SIMPLE = "simple"

    @property
    def marker(self) -> str:
        """In-document marker tag, e.g. ``TPL:FULL``."""
        return f"TPL:{self.value.upper()}"


class DisplayMode(str, Enum):
    """How many monitors get a bar."""
    SINGLE = "single"
    MULTIPLE = "multiple"


# Core entities

class Monitor(BaseModel):
    """A connected output as reported by the window manager.

    Immutable after creation (frozen).
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Connector identifier (eDP-1, HDMI-A-1, ...)")
    position: int = Field(0, ge=0, description="Enumeration order")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate monitor name is non-empty."""
        if not v or not v.strip():
            raise ValueError("Monitor name cannot be empty")
        return v.strip()


class Variant(BaseModel):
    """One named configuration body extracted from a template."""

    model_config = ConfigDict(frozen=True)

    name: VariantName
    body: Dict[str, Any] = Field(..., description="Waybar configuration object")


class TemplateDocument(BaseModel):
    """Parsed template: raw text plus exactly one variant per VariantName."""

    model_config = ConfigDict(frozen=True)

    raw_text: str
    variants: Dict[VariantName, Variant]

    @model_validator(mode="after")
    def validate_variants(self):
        """Every variant name must be present and keyed consistently."""
        missing = [name.value for name in VariantName if name not in self.variants]
        if missing:
            raise ValueError(f"Missing variants: {', '.join(missing)}")
        for key, variant in self.variants.items():
            if variant.name != key:
                raise ValueError(f"Variant keyed as {key.value} is named {variant.name.value}")
        return self

    def variant(self, name: VariantName) -> Variant:
        return self.variants[name]


class Assignment(BaseModel):
    """Pairing of a monitor with the variant it receives."""

    model_config = ConfigDict(frozen=True)

    monitor: Monitor
    variant: VariantName


class AssignmentPlan(BaseModel):
    """Result of the assignment policy for one enumeration snapshot."""

    model_config = ConfigDict(frozen=True)

    assignments: List[Assignment]
    preferred: str = ""
    fallback_used: bool = Field(False, description="Preferred monitor was absent")

    @model_validator(mode="after")
    def validate_single_full(self):
        """Exactly one monitor receives the full variant."""
        full = [a for a in self.assignments if a.variant == VariantName.FULL]
        if len(full) != 1:
            raise ValueError(f"Expected exactly one full assignment, got {len(full)}")
        return self

    @property
    def full_monitor(self) -> Monitor:
        return next(a.monitor for a in self.assignments if a.variant == VariantName.FULL)

    def variant_for(self, monitor_name: str) -> Optional[VariantName]:
        for assignment in self.assignments:
            if assignment.monitor.name == monitor_name:
                return assignment.variant
        return None


@dataclass(frozen=True)
class GeneratedConfig:
    """A synthesized configuration ready to be reconciled to disk."""

    kind: WindowManagerKind
    monitor: str
    variant: VariantName
    path: Path
    content: bytes

    @property
    def key(self) -> tuple:
        """Identity used for stale-output detection."""
        return (self.monitor, self.variant)


# Settings

class DisplaySettings(BaseModel):
    """Monitor preferences persisted between runs."""

    preferred_monitor: str = Field("", description="Monitor receiving the full variant")
    available_monitors: List[str] = Field(default_factory=list, description="Monitors known from the last sync")
    mode: DisplayMode = Field(DisplayMode.MULTIPLE, description="single or multiple")

    @field_validator("available_monitors")
    @classmethod
    def validate_available_monitors(cls, v: List[str]) -> List[str]:
        """Drop blanks and repeats, keeping order."""
        seen: List[str] = []
        for name in v:
            name = name.strip()
            if name and name not in seen:
                seen.append(name)
        return seen


class Settings(BaseModel):
    """Root of the settings file."""

    display: DisplaySettings = Field(default_factory=DisplaySettings)
