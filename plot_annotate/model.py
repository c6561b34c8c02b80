from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
import math
import numbers
from typing import Any, Literal, TypeAlias

from plot_annotate.errors import InvalidPlacementRequest, InvalidRange
from plot_annotate.settings import DEFAULT_SETTINGS, AnnotateSettings


Bound: TypeAlias = float | date | datetime
HAlign = Literal["left", "center", "right"]
VAlign = Literal["top", "center", "bottom"]
Rect: TypeAlias = tuple[float, float, float, float]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_temporal(value: Any) -> bool:
    return isinstance(value, date)


def to_numeric(value: Any) -> float:
    """Numeric position of a data value; temporal values map to POSIX seconds (naive = UTC)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (value - _EPOCH).total_seconds()
    if isinstance(value, date):
        return (datetime(value.year, value.month, value.day, tzinfo=timezone.utc) - _EPOCH).total_seconds()
    return float(value)


def from_numeric(value: float, like: date) -> date:
    out = _EPOCH + timedelta(seconds=value)
    if isinstance(like, datetime):
        if like.tzinfo is None:
            return out.replace(tzinfo=None)
        return out.astimezone(like.tzinfo)
    return out.date()


def _is_inf(value: Any) -> bool:
    return isinstance(value, numbers.Real) and math.isinf(value)


def _check_bound(value: Any, name: str) -> None:
    if is_temporal(value):
        return
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidRange(f"{name} must be a number, date or datetime, got {value!r}")
    if math.isnan(value):
        raise InvalidRange(f"{name} must not be NaN")


def _is_aware(value: Any) -> bool:
    return isinstance(value, datetime) and value.utcoffset() is not None


@dataclass(frozen=True)
class Point:
    x: Any
    y: float
    category: str | None = None
    label: str | None = None


@dataclass(frozen=True)
class Break:
    position: Any
    label: str = ""


@dataclass(frozen=True)
class AxisRange:
    """Closed interval over a numeric or temporal domain.

    An infinite bound (``-inf`` for ``vmin``, ``+inf`` for ``vmax``) is the
    "extend to data extent" sentinel and is replaced by :meth:`resolve`.
    """

    vmin: Bound = -math.inf
    vmax: Bound = math.inf

    def __post_init__(self) -> None:
        _check_bound(self.vmin, "vmin")
        _check_bound(self.vmax, "vmax")
        if _is_inf(self.vmin) and self.vmin > 0:
            raise InvalidRange("vmin cannot be +inf")
        if _is_inf(self.vmax) and self.vmax < 0:
            raise InvalidRange("vmax cannot be -inf")
        lo_t = is_temporal(self.vmin)
        hi_t = is_temporal(self.vmax)
        if lo_t != hi_t and not (_is_inf(self.vmin) or _is_inf(self.vmax)):
            raise InvalidRange(f"vmin and vmax mix temporal and numeric values: {self.vmin!r}, {self.vmax!r}")
        if lo_t and hi_t and isinstance(self.vmin, datetime) != isinstance(self.vmax, datetime):
            raise InvalidRange("vmin and vmax mix date and datetime values")
        if lo_t and hi_t and _is_aware(self.vmin) != _is_aware(self.vmax):
            raise InvalidRange(
                f"vmin and vmax mix timezone-aware and naive datetimes: {self.vmin!r}, {self.vmax!r}"
            )
        if self.is_bounded and to_numeric(self.vmin) > to_numeric(self.vmax):
            raise InvalidRange(f"vmin ({self.vmin!r}) > vmax ({self.vmax!r})")

    @property
    def kind(self) -> Literal["numeric", "temporal"]:
        if is_temporal(self.vmin) or is_temporal(self.vmax):
            return "temporal"
        return "numeric"

    @property
    def is_bounded(self) -> bool:
        return not (_is_inf(self.vmin) or _is_inf(self.vmax))

    @property
    def span(self) -> float:
        """Width of the range in numeric units (seconds for temporal ranges)."""
        lo, hi = self.as_floats()
        return hi - lo

    def as_floats(self) -> tuple[float, float]:
        return (to_numeric(self.vmin), to_numeric(self.vmax))

    def require_bounded(self, name: str = "axis_range") -> "AxisRange":
        if not self.is_bounded:
            raise InvalidRange(f"{name} must be finite, got [{self.vmin!r}, {self.vmax!r}]")
        return self

    def contains(self, value: Any, *, tol: float = 0.0) -> bool:
        lo, hi = self.as_floats()
        v = to_numeric(value)
        return (lo - tol) <= v <= (hi + tol)

    def resolve(self, data_min: Bound, data_max: Bound) -> "AxisRange":
        """Replace sentinel bounds with the given data extent."""
        lo = data_min if _is_inf(self.vmin) else self.vmin
        hi = data_max if _is_inf(self.vmax) else self.vmax
        return AxisRange(lo, hi)

    def union(self, other: "AxisRange") -> "AxisRange":
        self.require_bounded()
        other.require_bounded("other")
        lo = self.vmin if to_numeric(self.vmin) <= to_numeric(other.vmin) else other.vmin
        hi = self.vmax if to_numeric(self.vmax) >= to_numeric(other.vmax) else other.vmax
        return AxisRange(lo, hi)

    def expand(
        self,
        mult: float | None = None,
        add: float | None = None,
        *,
        settings: AnnotateSettings | None = None,
    ) -> "AxisRange":
        """Pad both ends by ``mult * span + add`` (seconds for temporal ranges).

        Missing ``mult``/``add`` come from ``settings`` (or the defaults).
        """
        self.require_bounded()
        cfg = settings or DEFAULT_SETTINGS
        mult = cfg.expand_mult if mult is None else mult
        add = cfg.expand_add if add is None else add
        if mult < 0 or add < 0:
            raise InvalidRange("expand mult/add must be >= 0")
        lo, hi = self.as_floats()
        pad = (hi - lo) * mult + add
        return self._from_floats(lo - pad, hi + pad)

    def zoom(self, factor: float, *, anchor: Any = None) -> "AxisRange":
        """Scale the visible span by ``1 / factor`` about ``anchor`` (defaults to the centre)."""
        self.require_bounded()
        if not math.isfinite(factor) or factor <= 0:
            raise InvalidRange("zoom factor must be > 0")
        lo, hi = self.as_floats()
        center = 0.5 * (lo + hi) if anchor is None else to_numeric(anchor)
        if not lo <= center <= hi:
            raise InvalidRange(f"zoom anchor {anchor!r} outside range")
        new_lo = center - (center - lo) / factor
        new_hi = center + (hi - center) / factor
        return self._from_floats(new_lo, new_hi)

    def _from_floats(self, lo: float, hi: float) -> "AxisRange":
        if self.kind == "temporal":
            return AxisRange(from_numeric(lo, self.vmin), from_numeric(hi, self.vmax))
        return AxisRange(lo, hi)


UNIT_RANGE = AxisRange(0.0, 1.0)


@dataclass(frozen=True)
class Anchor:
    h: HAlign = "center"
    v: VAlign = "center"

    def __post_init__(self) -> None:
        if self.h not in ("left", "center", "right"):
            raise InvalidPlacementRequest(f"unknown horizontal anchor: {self.h!r}")
        if self.v not in ("top", "center", "bottom"):
            raise InvalidPlacementRequest(f"unknown vertical anchor: {self.v!r}")

    @classmethod
    def parse(cls, value: "Anchor | str | tuple[float, float]") -> "Anchor":
        """Accept an Anchor, a name such as ``"top-left"``, or ggplot ``(hjust, vjust)``."""
        if isinstance(value, Anchor):
            return value
        if isinstance(value, tuple):
            if len(value) != 2:
                raise InvalidPlacementRequest(f"anchor tuple must be (hjust, vjust), got {value!r}")
            hjust, vjust = value
            return cls(h=_just_to_name(hjust, ("left", "center", "right")), v=_just_to_name(vjust, ("bottom", "center", "top")))
        if not isinstance(value, str):
            raise InvalidPlacementRequest(f"unsupported anchor: {value!r}")
        parts = [p for p in value.strip().lower().replace("_", "-").replace(" ", "-").split("-") if p]
        if not parts or len(parts) > 2:
            raise InvalidPlacementRequest(f"unsupported anchor: {value!r}")
        h: str = "center"
        v: str = "center"
        for part in parts:
            if part in ("left", "right"):
                h = part
            elif part in ("top", "bottom"):
                v = part
            elif part not in ("center", "centre", "middle"):
                raise InvalidPlacementRequest(f"unsupported anchor: {value!r}")
        return cls(h=h, v=v)  # type: ignore[arg-type]

    def origin(self, x: float, y: float, width: float, height: float) -> tuple[float, float]:
        """Top-left corner of a ``width`` x ``height`` box anchored at ``(x, y)``; y grows downward."""
        if self.h == "left":
            x0 = x
        elif self.h == "right":
            x0 = x - width
        else:
            x0 = x - 0.5 * width
        if self.v == "top":
            y0 = y
        elif self.v == "bottom":
            y0 = y - height
        else:
            y0 = y - 0.5 * height
        return (x0, y0)


CENTER = Anchor()

_LABEL_BOX_MUTABLE = frozenset({"dx", "dy"})


@dataclass
class LabelBox:
    """Rendered rectangle of a text label anchored at ``(x, y)`` in pixel space.

    Only the resolved offset (``dx``, ``dy``) may change after construction.
    """

    text: str
    x: float
    y: float
    width: float
    height: float
    anchor: Anchor = CENTER
    dx: float = 0.0
    dy: float = 0.0
    _sealed: bool = field(default=False, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in ("x", "y", "width", "height", "dx", "dy"):
            if not math.isfinite(float(getattr(self, name))):
                raise InvalidPlacementRequest(f"label box {name} must be finite")
        if self.width < 0 or self.height < 0:
            raise InvalidPlacementRequest(f"label box size must be >= 0, got {self.width}x{self.height}")
        object.__setattr__(self, "anchor", Anchor.parse(self.anchor))
        object.__setattr__(self, "_sealed", True)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False) and name not in _LABEL_BOX_MUTABLE:
            raise AttributeError(f"LabelBox.{name} is read-only")
        object.__setattr__(self, name, value)

    def rect(self, dx: float | None = None, dy: float | None = None) -> Rect:
        """(x0, y0, x1, y1) of the box at the given offset (defaults to the resolved one)."""
        ox = self.dx if dx is None else dx
        oy = self.dy if dy is None else dy
        x0, y0 = self.anchor.origin(self.x + ox, self.y + oy, self.width, self.height)
        return (x0, y0, x0 + self.width, y0 + self.height)

    @property
    def displacement(self) -> float:
        return math.hypot(self.dx, self.dy)

    @property
    def area(self) -> float:
        return self.width * self.height

    def with_offset(self, dx: float, dy: float) -> "LabelBox":
        return replace(self, dx=float(dx), dy=float(dy))


def rects_overlap(a: Rect, b: Rect, padding: float = 0.0) -> bool:
    """Strict overlap test; touching edges do not overlap."""
    return not (
        a[2] + padding <= b[0]
        or b[2] + padding <= a[0]
        or a[3] + padding <= b[1]
        or b[3] + padding <= a[1]
    )


def _just_to_name(just: float, names: tuple[str, str, str]) -> str:
    try:
        j = float(just)
    except (TypeError, ValueError) as exc:
        raise InvalidPlacementRequest(f"justification must be numeric, got {just!r}") from exc
    if j == 0.0:
        return names[0]
    if j == 0.5:
        return names[1]
    if j == 1.0:
        return names[2]
    raise InvalidPlacementRequest(f"justification must be 0, 0.5 or 1, got {just!r}")
