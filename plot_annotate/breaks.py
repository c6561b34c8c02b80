from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import logging
import math
from typing import Any, Literal, Union

import numpy as np
import pandas as pd

from plot_annotate.errors import InvalidBreakRequest, InvalidRange
from plot_annotate.model import AxisRange, Break, to_numeric
from plot_annotate.scales import (
    CategoricalScale,
    GradientScale,
    NumericScale,
    PaletteScale,
    Scale,
    TemporalScale,
)
from plot_annotate.settings import DEFAULT_SETTINGS, AnnotateSettings


LOGGER = logging.getLogger(__name__)

TimeUnit = Literal["day", "week", "month", "year"]
LabelSpec = Union[Sequence[str], Callable[[Any], str], bool, None]

NICE_MULTIPLIERS = (1.0, 2.0, 5.0)

_FREQ_ALIASES: dict[str, str] = {
    "day": "D",
    "week": "W-MON",
    "month": "MS",
    "year": "YS",
}
_DEFAULT_DATE_FORMATS: dict[str, str] = {
    "day": "%Y-%m-%d",
    "week": "%Y-%m-%d",
    "month": "%b %Y",
    "year": "%Y",
}


def numeric_breaks(
    axis_range: AxisRange,
    n: int | None = None,
    *,
    labels: LabelSpec = None,
    settings: AnnotateSettings | None = None,
) -> list[Break]:
    """Human-friendly breaks inside ``axis_range`` with a 1/2/5 x 10^k step.

    The step is the one whose break count is closest to ``n``; ties go to the
    larger step. ``n`` defaults to ``settings.break_count``.
    """
    n = _check_count((settings or DEFAULT_SETTINGS).break_count if n is None else n)
    lo, hi = _numeric_bounds(axis_range)
    step: float | None = None
    if lo == hi:
        positions = np.asarray([lo], dtype=np.float64)
    else:
        step = nice_step(lo, hi, n)
        positions = _ticks_within_range(lo, hi, step)
        LOGGER.debug("numeric breaks [%s, %s] n=%d -> step %s (%d breaks)", lo, hi, n, step, positions.size)
    values = [float(v) for v in positions]
    return _attach_labels(values, format_ticks_for_axis(positions, step=step), labels)


def log_breaks(
    axis_range: AxisRange,
    n: int | None = None,
    *,
    labels: LabelSpec = None,
    settings: AnnotateSettings | None = None,
) -> list[Break]:
    """Powers of ten inside a positive range; narrow ranges fall back to linear breaks."""
    n = _check_count((settings or DEFAULT_SETTINGS).break_count if n is None else n)
    lo, hi = _numeric_bounds(axis_range)
    if lo <= 0:
        raise InvalidRange(f"log breaks need a positive range, got vmin={lo!r}")
    k0 = math.ceil(math.log10(lo) - 1e-12)
    k1 = math.floor(math.log10(hi) + 1e-12)
    if k1 - k0 + 1 < 2:
        return numeric_breaks(axis_range, n, labels=labels)
    stride = max(1, int(round((k1 - k0 + 1) / n)))
    values = [min(max(float(10.0**k), lo), hi) for k in range(k0, k1 + 1, stride)]
    defaults = format_ticks_for_axis(np.asarray(values, dtype=np.float64), step=values[0])
    return _attach_labels(values, defaults, labels)


def temporal_breaks(
    axis_range: AxisRange,
    unit: TimeUnit = "month",
    *,
    every: int = 1,
    date_format: str | None = None,
    labels: LabelSpec = None,
) -> list[Break]:
    """One break per ``every`` ``unit`` boundaries inside a temporal range."""
    if unit not in _FREQ_ALIASES:
        raise InvalidBreakRequest(f"unit must be one of {sorted(_FREQ_ALIASES)}, got {unit!r}")
    every = _check_count(every, name="every")
    axis_range.require_bounded()
    if axis_range.kind != "temporal":
        raise InvalidRange("temporal breaks need a date/datetime range")

    start = pd.Timestamp(axis_range.vmin).ceil("D")
    end = pd.Timestamp(axis_range.vmax)
    if start.tz is not None:
        end = end.tz_convert(start.tz)
    freq = _FREQ_ALIASES[unit] if every == 1 else f"{every}{_FREQ_ALIASES[unit]}"
    stamps = pd.date_range(start=start, end=end, freq=freq)

    fmt = date_format or _DEFAULT_DATE_FORMATS[unit]
    as_date = not isinstance(axis_range.vmin, datetime)
    values: list[date | datetime] = [ts.date() if as_date else ts.to_pydatetime() for ts in stamps]
    return _attach_labels(values, [ts.strftime(fmt) for ts in stamps], labels)


def categorical_breaks(
    categories: Sequence[str],
    *,
    order: Sequence[str] | None = None,
    labels: LabelSpec = None,
) -> list[Break]:
    """One break per category at 1-based discrete positions."""
    cats = list(categories)
    if len(set(cats)) != len(cats):
        raise InvalidBreakRequest(f"categories must be unique: {cats!r}")
    if order is not None:
        ordered = list(order)
        if sorted(map(str, ordered)) != sorted(map(str, cats)) or len(set(ordered)) != len(ordered):
            raise InvalidBreakRequest(f"order must be a permutation of the categories, got {ordered!r}")
        cats = ordered
    positions = list(range(1, len(cats) + 1))
    return _attach_labels(positions, [str(c) for c in cats], labels)


def explicit_breaks(axis_range: AxisRange, positions: Sequence[Any], *, labels: LabelSpec = None) -> list[Break]:
    """Caller-chosen positions, validated against ``axis_range``."""
    axis_range.require_bounded()
    values = list(positions)
    numeric = [to_numeric(v) for v in values]
    for prev, cur in zip(numeric, numeric[1:]):
        if cur <= prev:
            raise InvalidBreakRequest("positions must be strictly increasing")
    for v in values:
        if not axis_range.contains(v):
            raise InvalidBreakRequest(f"position {v!r} outside [{axis_range.vmin!r}, {axis_range.vmax!r}]")
    if axis_range.kind == "temporal":
        defaults = [v.isoformat() for v in values]
    else:
        defaults = format_ticks_for_axis(np.asarray(numeric, dtype=np.float64))
    return _attach_labels(values, defaults, labels)


def breaks_for_scale(
    scale: Scale,
    n: int | None = None,
    *,
    unit: TimeUnit | None = None,
    labels: LabelSpec = None,
    settings: AnnotateSettings | None = None,
    **kwargs: Any,
) -> list[Break]:
    """Axis or legend breaks for any scale variant.

    Gradient legends get numeric breaks over their domain; palette legends get
    one key per category.
    """
    if isinstance(scale, NumericScale):
        if scale.trans == "log10":
            return log_breaks(scale.domain, n, labels=labels, settings=settings)
        return numeric_breaks(scale.domain, n, labels=labels, settings=settings)
    if isinstance(scale, GradientScale):
        return numeric_breaks(scale.domain, n, labels=labels, settings=settings)
    if isinstance(scale, TemporalScale):
        return temporal_breaks(scale.domain, unit or auto_time_unit(scale.domain), labels=labels, **kwargs)
    if isinstance(scale, (CategoricalScale, PaletteScale)):
        return categorical_breaks(scale.categories, labels=labels, **kwargs)
    raise InvalidBreakRequest(f"no breaks for {type(scale).__name__}")


def auto_time_unit(axis_range: AxisRange) -> TimeUnit:
    days = axis_range.require_bounded().span / 86400.0
    if days > 3 * 365:
        return "year"
    if days > 60:
        return "month"
    if days > 14:
        return "week"
    return "day"


def nice_step(vmin: float, vmax: float, target: int) -> float:
    if vmax <= vmin:
        raise InvalidRange(f"vmin ({vmin}) must be < vmax ({vmax})")
    span = vmax - vmin
    if not math.isfinite(span):
        raise InvalidRange(f"range [{vmin}, {vmax}] is too wide for numeric breaks")
    exp = math.floor(math.log10(span / max(target - 1, 1)))
    scored: list[tuple[int, float, float]] = []
    for k in range(exp - 1, exp + 2):
        for mult in NICE_MULTIPLIERS:
            step = mult * 10.0**k
            count = _count_within(vmin, vmax, step)
            if count:
                scored.append((abs(count - target), -step, step))
    if not scored:
        raise InvalidRange(f"no break step fits [{vmin}, {vmax}]")
    return min(scored)[2]


def format_ticks_for_axis(ticks: np.ndarray, *, step: float | None = None) -> list[str]:
    """Labels for one axis; every tick shares one notation and one precision.

    Fixed notation uses the decimals of ``step`` (the spacing of the first two
    ticks when omitted). Axes whose largest tick is at least 1e6 or below 1e-6,
    or whose step is below 1e-4, switch to scientific notation as a whole.
    """
    if ticks.size == 0:
        return []
    values = np.asarray(ticks, dtype=np.float64)
    if step is None and values.size > 1:
        step = float(abs(values[1] - values[0]))
    if step is not None and not (math.isfinite(step) and step > 0):
        step = None
    if step is not None:
        values = np.where(np.abs(values) <= step * 1e-9, 0.0, values)

    finite = np.abs(values[np.isfinite(values)])
    peak = float(finite.max()) if finite.size else 0.0
    if peak != 0.0 and (peak >= 1e6 or peak < 1e-6 or (step is not None and step < 1e-4)):
        digits = _mantissa_digits(values)
        return [f"{v:.{digits}e}" if math.isfinite(v) else str(v) for v in values.tolist()]

    decimals = _decimals_from_step(step) if step is not None else 6
    return [_fixed_label(v, decimals) for v in values.tolist()]


def _fixed_label(value: float, decimals: int) -> str:
    if not math.isfinite(value):
        return str(value)
    quantum = Decimal(1).scaleb(-decimals)
    try:
        text = format(Decimal(repr(value)).quantize(quantum), "f")
    except InvalidOperation:
        text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return "0" if text == "-0" else text


def _mantissa_digits(values: np.ndarray, limit: int = 6) -> int:
    """Fewest mantissa decimals that keep every nonzero value exact in scientific notation."""
    nonzero = [abs(v) for v in values.tolist() if v != 0 and math.isfinite(v)]
    mantissas = [v / 10.0 ** math.floor(math.log10(v)) for v in nonzero]
    for digits in range(limit + 1):
        if all(math.isclose(round(m, digits), m, rel_tol=0.0, abs_tol=1e-9) for m in mantissas):
            return digits
    return limit


def _attach_labels(positions: Sequence[Any], defaults: Sequence[str], labels: LabelSpec) -> list[Break]:
    if labels is None or labels is True:
        texts = list(defaults)
    elif labels is False:
        texts = [""] * len(positions)
    elif callable(labels):
        texts = [str(labels(p)) for p in positions]
    elif isinstance(labels, (str, bytes)):
        raise InvalidBreakRequest("labels must be a sequence of strings, a callable or False, not a single string")
    else:
        texts = list(labels)
        if len(texts) != len(positions):
            raise InvalidBreakRequest(f"labels has {len(texts)} entries for {len(positions)} breaks")
        bad = [t for t in texts if not isinstance(t, str)]
        if bad:
            raise InvalidBreakRequest(f"labels must be strings, got {bad[0]!r}")
    return [Break(position=p, label=t) for p, t in zip(positions, texts, strict=True)]


def _check_count(n: Any, *, name: str = "n") -> int:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise InvalidBreakRequest(f"{name} must be an integer, got {n!r}")
    if n <= 0:
        raise InvalidBreakRequest(f"{name} must be > 0, got {n}")
    return int(n)


def _numeric_bounds(axis_range: AxisRange) -> tuple[float, float]:
    axis_range.require_bounded()
    if axis_range.kind != "numeric":
        raise InvalidRange("numeric breaks need a numeric range")
    return axis_range.as_floats()


def _count_within(vmin: float, vmax: float, step: float) -> int:
    first = math.ceil(vmin / step - 1e-9)
    last = math.floor(vmax / step + 1e-9)
    return max(0, last - first + 1)


def _ticks_within_range(vmin: float, vmax: float, step: float) -> np.ndarray:
    first = math.ceil(vmin / step - 1e-9)
    last = math.floor(vmax / step + 1e-9)
    ticks = np.arange(first, last + 1, dtype=np.float64) * step
    # Normalize floating-point drift so values like -4.44e-16 become 0.
    ticks = np.rint(ticks / step) * step
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return np.clip(ticks, vmin, vmax)


def _decimals_from_step(step: float, limit: int = 12) -> int:
    exponent = Decimal(repr(step)).normalize().as_tuple().exponent
    return min(limit, max(0, -int(exponent)))
