"""
Waybar Manager

Generates one Waybar configuration per connected monitor from a per-window-
manager template (Hyprland, Niri, Mango) and launches a bar on each.
"""

__version__ = "1.0.0"
