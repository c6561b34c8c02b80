from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
import re
import tomllib
from typing import Any, Mapping

HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}([0-9a-fA-F]{2})?$")


@dataclass(frozen=True)
class AnnotateSettings:
    """Defaults used when a component argument is left as ``None``."""

    break_count: int = 5
    placement_max_iterations: int = 200
    placement_step_px: float = 2.0
    placement_padding_px: float = 1.0
    font_family: str = "DejaVu Sans"
    font_size_px: float = 11.0
    expand_mult: float = 0.05
    expand_add: float = 0.0
    low_color: str = "#132B43"
    high_color: str = "#56B1F7"


DEFAULT_SETTINGS = AnnotateSettings()


def validate_settings(overrides: Mapping[str, Any] | None = None) -> AnnotateSettings:
    """Validate and merge overrides against the defaults."""

    raw: dict[str, Any] = asdict(DEFAULT_SETTINGS)
    if overrides:
        for key, value in overrides.items():
            if key not in raw:
                raise ValueError(f"Unknown setting: {key}")
            raw[key] = value

    for key in ("break_count", "placement_max_iterations"):
        if isinstance(raw[key], bool) or not isinstance(raw[key], int) or raw[key] <= 0:
            raise ValueError(f"Setting `{key}` must be a positive integer")

    for key in ("placement_step_px", "font_size_px"):
        if not _is_number(raw[key]) or float(raw[key]) <= 0:
            raise ValueError(f"Setting `{key}` must be a positive number")

    for key in ("placement_padding_px", "expand_mult", "expand_add"):
        if not _is_number(raw[key]) or float(raw[key]) < 0:
            raise ValueError(f"Setting `{key}` must be a non-negative number")

    for key in ("low_color", "high_color"):
        if not isinstance(raw[key], str) or not HEX_COLOR.match(raw[key]):
            raise ValueError(f"Setting `{key}` must be a hex color (#RRGGBB or #RRGGBBAA)")

    if not isinstance(raw["font_family"], str) or not raw["font_family"].strip():
        raise ValueError("Setting `font_family` must be a non-empty string")

    return AnnotateSettings(
        break_count=int(raw["break_count"]),
        placement_max_iterations=int(raw["placement_max_iterations"]),
        placement_step_px=float(raw["placement_step_px"]),
        placement_padding_px=float(raw["placement_padding_px"]),
        font_family=str(raw["font_family"]),
        font_size_px=float(raw["font_size_px"]),
        expand_mult=float(raw["expand_mult"]),
        expand_add=float(raw["expand_add"]),
        low_color=str(raw["low_color"]),
        high_color=str(raw["high_color"]),
    )


def load_settings(path: str | Path) -> AnnotateSettings:
    """Load settings from the ``[plot_annotate]`` table of a TOML file."""
    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"settings file not found: {settings_path}")
    with settings_path.open("rb") as f:
        raw = tomllib.load(f)
    table = raw.get("plot_annotate", {})
    if not isinstance(table, dict):
        raise ValueError("`plot_annotate` must be a TOML table")
    return validate_settings(table)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
