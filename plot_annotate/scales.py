from __future__ import annotations

from collections.abc import Iterable, Sequence
import math
import threading
from typing import Any, Literal

import numpy as np

from plot_annotate.errors import InvalidRange, ScaleFrozenError
from plot_annotate.model import AxisRange, from_numeric, to_numeric
from plot_annotate.settings import DEFAULT_SETTINGS, HEX_COLOR, AnnotateSettings


ScaleKind = Literal["numeric", "temporal", "categorical", "palette", "gradient"]
Transform = Literal["identity", "log10"]

# Okabe-Ito, colour-blind safe.
DEFAULT_PALETTE: tuple[str, ...] = (
    "#E69F00",
    "#56B4E9",
    "#009E73",
    "#F0E442",
    "#0072B2",
    "#D55E00",
    "#CC79A7",
    "#000000",
)
NA_COLOR = "#7F7F7F"
DISCRETE_EXPAND_ADD = 0.6


class Scale:
    """Base for every scale variant; holds the frozen flag set on publish."""

    kind: ScaleKind

    def __init__(self, aesthetic: str) -> None:
        self.aesthetic = aesthetic
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise ScaleFrozenError(f"{self.aesthetic} scale is published and read-only")


class _PositionScale(Scale):
    def __init__(self, aesthetic: str, pixel_range: tuple[float, float]) -> None:
        super().__init__(aesthetic)
        self._pixel_range = _coerce_pixel_range(pixel_range)

    @property
    def pixel_range(self) -> tuple[float, float]:
        return self._pixel_range

    def set_pixel_range(self, start: float, end: float) -> "_PositionScale":
        self._check_mutable()
        self._pixel_range = _coerce_pixel_range((start, end))
        return self

    def _continuous_limits(self) -> tuple[float, float]:
        raise NotImplementedError

    def _to_continuous(self, values: np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _map_continuous(self, values: np.ndarray) -> np.ndarray:
        lo, hi = self._continuous_limits()
        p0, p1 = self._pixel_range
        if hi == lo:
            return np.full(values.shape, 0.5 * (p0 + p1), dtype=np.float64)
        return p0 + (values - lo) * (p1 - p0) / (hi - lo)

    def _unmap_continuous(self, px: np.ndarray) -> np.ndarray:
        lo, hi = self._continuous_limits()
        p0, p1 = self._pixel_range
        if p1 == p0:
            raise InvalidRange(f"{self.aesthetic} pixel range is degenerate")
        return lo + (px - p0) * (hi - lo) / (p1 - p0)


class NumericScale(_PositionScale):
    kind: ScaleKind = "numeric"

    def __init__(
        self,
        domain: AxisRange,
        *,
        aesthetic: str = "x",
        pixel_range: tuple[float, float] = (0.0, 1.0),
        trans: Transform = "identity",
    ) -> None:
        super().__init__(aesthetic, pixel_range)
        domain.require_bounded("domain")
        if domain.kind != "numeric":
            raise InvalidRange(f"{aesthetic} numeric scale needs a numeric domain")
        if trans not in ("identity", "log10"):
            raise InvalidRange(f"unsupported transform: {trans!r}")
        if trans == "log10" and float(domain.vmin) <= 0:
            raise InvalidRange(f"log10 {aesthetic} scale needs a positive domain, got vmin={domain.vmin!r}")
        self._domain = domain
        self.trans: Transform = trans

    @property
    def domain(self) -> AxisRange:
        return self._domain

    def _continuous_limits(self) -> tuple[float, float]:
        lo, hi = self.domain.as_floats()
        if self.trans == "log10":
            return (math.log10(lo), math.log10(hi))
        return (lo, hi)

    def _to_continuous(self, values: np.ndarray) -> np.ndarray:
        if self.trans == "log10":
            with np.errstate(divide="ignore", invalid="ignore"):
                return np.log10(values)
        return values

    def map(self, values: Any) -> np.ndarray:
        arr = np.asarray(values, dtype=np.float64)
        return self._map_continuous(self._to_continuous(arr))

    def inverse(self, px: Any) -> np.ndarray:
        out = self._unmap_continuous(np.asarray(px, dtype=np.float64))
        if self.trans == "log10":
            return np.power(10.0, out)
        return out

    def __repr__(self) -> str:
        return f"NumericScale({self.aesthetic}, [{self.domain.vmin}, {self.domain.vmax}], trans={self.trans})"


class TemporalScale(_PositionScale):
    kind: ScaleKind = "temporal"

    def __init__(
        self,
        domain: AxisRange,
        *,
        aesthetic: str = "x",
        pixel_range: tuple[float, float] = (0.0, 1.0),
    ) -> None:
        super().__init__(aesthetic, pixel_range)
        domain.require_bounded("domain")
        if domain.kind != "temporal":
            raise InvalidRange(f"{aesthetic} temporal scale needs a date/datetime domain")
        self._domain = domain

    @property
    def domain(self) -> AxisRange:
        return self._domain

    def _continuous_limits(self) -> tuple[float, float]:
        return self.domain.as_floats()

    def map(self, values: Iterable[Any]) -> np.ndarray:
        arr = np.asarray([to_numeric(v) for v in values], dtype=np.float64)
        return self._map_continuous(arr)

    def inverse(self, px: Any) -> list[Any]:
        seconds = np.atleast_1d(self._unmap_continuous(np.asarray(px, dtype=np.float64)))
        return [from_numeric(float(s), self.domain.vmin) for s in seconds]

    def __repr__(self) -> str:
        return f"TemporalScale({self.aesthetic}, [{self.domain.vmin}, {self.domain.vmax}])"


class CategoricalScale(_PositionScale):
    """Discrete position scale: category ``i`` sits at position ``i + 1``."""

    kind: ScaleKind = "categorical"

    def __init__(
        self,
        categories: Sequence[str],
        *,
        aesthetic: str = "x",
        pixel_range: tuple[float, float] = (0.0, 1.0),
    ) -> None:
        super().__init__(aesthetic, pixel_range)
        self._categories = _unique_categories(categories, aesthetic)

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    def position(self, category: str) -> int:
        try:
            return self.categories.index(category) + 1
        except ValueError:
            raise InvalidRange(f"unknown {self.aesthetic} category: {category!r}") from None

    def _continuous_limits(self) -> tuple[float, float]:
        n = len(self.categories)
        if n == 0:
            return (0.0, 1.0)
        return (1.0 - DISCRETE_EXPAND_ADD, float(n) + DISCRETE_EXPAND_ADD)

    def map(self, categories: Iterable[str]) -> np.ndarray:
        arr = np.asarray([self.position(c) for c in categories], dtype=np.float64)
        return self._map_continuous(arr)

    def __repr__(self) -> str:
        return f"CategoricalScale({self.aesthetic}, {list(self.categories)!r})"


class PaletteScale(Scale):
    """Discrete colour scale."""

    kind: ScaleKind = "palette"

    def __init__(
        self,
        categories: Sequence[str],
        *,
        palette: Sequence[str] = DEFAULT_PALETTE,
        aesthetic: str = "color",
    ) -> None:
        super().__init__(aesthetic)
        self._categories = _unique_categories(categories, aesthetic)
        colors = tuple(_check_hex(c, "palette") for c in palette)
        if len(colors) < len(self.categories):
            raise InvalidRange(f"palette has {len(colors)} colours for {len(self.categories)} categories")
        self.palette = colors

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    def mapping(self) -> dict[str, str]:
        return dict(zip(self.categories, self.palette))

    def map(self, categories: Iterable[str]) -> list[str]:
        lookup = self.mapping()
        out: list[str] = []
        for c in categories:
            if c not in lookup:
                raise InvalidRange(f"unknown {self.aesthetic} category: {c!r}")
            out.append(lookup[c])
        return out

    def __repr__(self) -> str:
        return f"PaletteScale({self.aesthetic}, {list(self.categories)!r})"


class GradientScale(Scale):
    """Continuous colour scale interpolated linearly from ``low`` to ``high``."""

    kind: ScaleKind = "gradient"

    def __init__(
        self,
        domain: AxisRange,
        *,
        low: str | None = None,
        high: str | None = None,
        na_value: str = NA_COLOR,
        aesthetic: str = "color",
        settings: AnnotateSettings | None = None,
    ) -> None:
        super().__init__(aesthetic)
        domain.require_bounded("domain")
        if domain.kind != "numeric":
            raise InvalidRange(f"{aesthetic} gradient needs a numeric domain")
        cfg = settings or DEFAULT_SETTINGS
        self._domain = domain
        self.low = _check_hex(cfg.low_color if low is None else low, "low")
        self.high = _check_hex(cfg.high_color if high is None else high, "high")
        self.na_value = _check_hex(na_value, "na_value")

    @property
    def domain(self) -> AxisRange:
        return self._domain

    def map(self, values: Any) -> list[str]:
        arr = np.atleast_1d(np.asarray(values, dtype=np.float64))
        lo, hi = self.domain.as_floats()
        valid = np.isfinite(arr) & (arr >= lo) & (arr <= hi)
        t = np.zeros_like(arr) if hi == lo else (arr - lo) / (hi - lo)
        t = np.clip(np.where(valid, t, 0.0), 0.0, 1.0)
        c0 = np.asarray(_hex_to_rgba(self.low), dtype=np.float64)
        c1 = np.asarray(_hex_to_rgba(self.high), dtype=np.float64)
        rgba = np.rint(c0[None, :] + t[:, None] * (c1 - c0)[None, :]).astype(np.int32)
        return [
            _rgba_to_hex(tuple(int(v) for v in row)) if ok else self.na_value
            for row, ok in zip(rgba.tolist(), valid.tolist(), strict=True)
        ]

    def __repr__(self) -> str:
        return f"GradientScale({self.aesthetic}, [{self.domain.vmin}, {self.domain.vmax}], {self.low}->{self.high})"


PositionScale = NumericScale | TemporalScale | CategoricalScale
ColorScale = PaletteScale | GradientScale


class ScaleGroup:
    """Scales shared by reference across every plot of one comparison group.

    Construction completes before :meth:`publish`; render tasks call
    :meth:`wait_published` and then only read.
    """

    def __init__(self, x: PositionScale, y: PositionScale, color: ColorScale | None = None) -> None:
        self._x = x
        self._y = y
        self._color = color
        self._published = threading.Event()
        self._lock = threading.Lock()

    @property
    def x(self) -> PositionScale:
        return self._x

    @property
    def y(self) -> PositionScale:
        return self._y

    @property
    def color(self) -> ColorScale | None:
        return self._color

    @property
    def is_published(self) -> bool:
        return self._published.is_set()

    def scales(self) -> dict[str, Scale]:
        out: dict[str, Scale] = {"x": self._x, "y": self._y}
        if self._color is not None:
            out["color"] = self._color
        return out

    def with_pixel_ranges(
        self,
        *,
        x: tuple[float, float] | None = None,
        y: tuple[float, float] | None = None,
    ) -> "ScaleGroup":
        with self._lock:
            if self.is_published:
                raise ScaleFrozenError("scale group is published and read-only")
            if x is not None:
                self._x.set_pixel_range(*x)
            if y is not None:
                self._y.set_pixel_range(*y)
        return self

    def publish(self) -> "ScaleGroup":
        with self._lock:
            if self.is_published:
                return self
            for scale in self.scales().values():
                scale._freeze()
            self._published.set()
        return self

    def wait_published(self, timeout: float | None = None) -> bool:
        return self._published.wait(timeout)

    def domains(self) -> dict[str, Any]:
        """Comparable snapshot of every scale's domain."""
        out: dict[str, Any] = {}
        for name, scale in self.scales().items():
            if isinstance(scale, (CategoricalScale, PaletteScale)):
                out[name] = scale.categories
            else:
                out[name] = scale.domain
        return out


def _coerce_pixel_range(pixel_range: tuple[float, float]) -> tuple[float, float]:
    if len(pixel_range) != 2:
        raise InvalidRange(f"pixel_range must be (start, end), got {pixel_range!r}")
    start, end = float(pixel_range[0]), float(pixel_range[1])
    if not (math.isfinite(start) and math.isfinite(end)):
        raise InvalidRange("pixel_range must be finite")
    return (start, end)


def _unique_categories(categories: Sequence[str], aesthetic: str) -> tuple[str, ...]:
    out = tuple(categories)
    if len(set(out)) != len(out):
        raise InvalidRange(f"{aesthetic} categories must be unique: {list(out)!r}")
    return out


def _check_hex(color: str, name: str) -> str:
    if not isinstance(color, str) or not HEX_COLOR.match(color):
        raise InvalidRange(f"`{name}` must be a hex color (#RRGGBB or #RRGGBBAA), got {color!r}")
    return color.upper()


def _hex_to_rgba(color: str) -> tuple[int, int, int, int]:
    r = int(color[1:3], 16)
    g = int(color[3:5], 16)
    b = int(color[5:7], 16)
    a = int(color[7:9], 16) if len(color) == 9 else 255
    return (r, g, b, a)


def _rgba_to_hex(rgba: tuple[int, ...]) -> str:
    r, g, b, a = rgba
    if a == 255:
        return f"#{r:02X}{g:02X}{b:02X}"
    return f"#{r:02X}{g:02X}{b:02X}{a:02X}"
