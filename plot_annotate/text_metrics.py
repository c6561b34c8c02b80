from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

from plot_annotate.settings import DEFAULT_SETTINGS, AnnotateSettings


LINE_HEIGHT = 1.2
FONT_FALLBACK_PATTERNS = (
    "dejavusans",
    "dejavu sans",
    "liberationsans",
    "helvetica",
    "arial",
)


def text_size(
    text: str,
    *,
    font_family: str | None = None,
    font_size_px: float | None = None,
    settings: AnnotateSettings | None = None,
) -> tuple[int, int]:
    """Pixel (width, height) of a possibly multi-line label."""
    cfg = settings or DEFAULT_SETTINGS
    font = _load_font(
        font_family=cfg.font_family if font_family is None else font_family,
        font_size_px=cfg.font_size_px if font_size_px is None else float(font_size_px),
    )
    _left, top, _right, bottom = font.getbbox("Ag")
    line_h = max(1, int(bottom - top))
    lines = text.split("\n") if text else [""]
    width = 0
    for line in lines:
        if not line:
            continue
        left, _top, right, _bottom = font.getbbox(line)
        width = max(width, int(right - left))
    height = line_h + int(round((len(lines) - 1) * line_h * LINE_HEIGHT))
    return (width, height)


@lru_cache(maxsize=64)
def _load_font(font_family: str, font_size_px: float) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(round(font_size_px)))
    font_path = _resolve_font_path(font_family)
    if font_path is None:
        return ImageFont.load_default()
    try:
        return ImageFont.truetype(str(font_path), size=size)
    except OSError:
        return ImageFont.load_default()


@lru_cache(maxsize=16)
def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.strip().lower()
    patterns = ((wanted,) if wanted else ()) + FONT_FALLBACK_PATTERNS

    font_dirs = [
        Path.home() / "Library" / "Fonts",
        Path("/Library/Fonts"),
        Path("/System/Library/Fonts"),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
        Path("C:/Windows/Fonts"),
    ]

    candidates: list[Path] = []
    for base in font_dirs:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(base.rglob(ext))

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            name = path.name.lower().replace(" ", "")
            if p in name:
                return path
    return None
