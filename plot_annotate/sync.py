from __future__ import annotations

from collections.abc import Sequence
import logging
import math
from typing import Any

from plot_annotate.errors import InvalidRange
from plot_annotate.model import UNIT_RANGE, AxisRange, Point, is_temporal, to_numeric
from plot_annotate.scales import (
    DEFAULT_PALETTE,
    CategoricalScale,
    NumericScale,
    PaletteScale,
    PositionScale,
    ScaleGroup,
    TemporalScale,
)
from plot_annotate.settings import AnnotateSettings


LOGGER = logging.getLogger(__name__)


def synchronize_scales(
    datasets: Sequence[Sequence[Point]],
    *,
    x_limits: AxisRange | None = None,
    y_limits: AxisRange | None = None,
    expand: tuple[float, float] | bool | None = None,
    category_order: Sequence[str] | None = None,
    palette: Sequence[str] = DEFAULT_PALETTE,
    settings: AnnotateSettings | None = None,
) -> ScaleGroup:
    """Build one shared set of scales covering every dataset in a comparison group.

    Each axis gets the union of the datasets' extents (string x values give a
    categorical axis), and point categories become a shared colour palette.
    ``x_limits``/``y_limits`` may use infinite bounds to extend to the data.
    ``expand=(mult, add)`` pads each continuous axis; ``expand=True`` takes the
    padding from ``settings``. With no data at all both axes fall back to
    ``[0, 1]``.
    """
    points = [p for dataset in datasets for p in dataset]

    x_values = [p.x for p in points if _usable(p.x)]
    y_values = [p.y for p in points if _usable(p.y)]
    if any(isinstance(v, str) for v in y_values):
        raise InvalidRange("y values must be numeric")

    x_scale = _position_scale(x_values, limits=x_limits, expand=expand, settings=settings, aesthetic="x")
    y_scale = _position_scale(y_values, limits=y_limits, expand=expand, settings=settings, aesthetic="y")

    observed = _ordered_unique(p.category for p in points if p.category is not None)
    color = None
    if observed:
        categories = _apply_order(observed, category_order, "category_order")
        color = PaletteScale(categories, palette=palette)

    group = ScaleGroup(x=x_scale, y=y_scale, color=color)
    LOGGER.debug("synchronized %d datasets: %s", len(datasets), group.domains())
    return group


def union_range(values: Sequence[Any], *, limits: AxisRange | None = None) -> AxisRange:
    """Closed range spanning ``values`` with ``limits`` applied; empty input gives ``[0, 1]``."""
    if not values:
        if limits is not None and limits.is_bounded:
            return limits
        return UNIT_RANGE
    temporal = [is_temporal(v) for v in values]
    if any(temporal) and not all(temporal):
        raise InvalidRange("x values mix temporal and numeric data")
    lo = min(values, key=to_numeric)
    hi = max(values, key=to_numeric)
    data = AxisRange(lo, hi)
    if limits is None:
        return data
    if limits.kind != data.kind and limits.is_bounded:
        raise InvalidRange(f"limits are {limits.kind} but data is {data.kind}")
    return limits.resolve(lo, hi)


def _position_scale(
    values: list[Any],
    *,
    limits: AxisRange | None,
    expand: tuple[float, float] | bool | None,
    settings: AnnotateSettings | None,
    aesthetic: str,
) -> PositionScale:
    strings = [isinstance(v, str) for v in values]
    if values and all(strings):
        if limits is not None:
            raise InvalidRange(f"{aesthetic}_limits cannot apply to a categorical axis")
        return CategoricalScale(_ordered_unique(values), aesthetic=aesthetic)
    if any(strings):
        raise InvalidRange(f"{aesthetic} values mix categorical and continuous data")

    domain = union_range(values, limits=limits)
    if expand is True and values:
        domain = domain.expand(settings=settings)
    elif expand not in (None, False) and values:
        mult, add = expand
        domain = domain.expand(mult, add)
    if domain.kind == "temporal":
        return TemporalScale(domain, aesthetic=aesthetic)
    return NumericScale(domain, aesthetic=aesthetic)


def _usable(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return True


def _ordered_unique(values: Any) -> list[Any]:
    seen: dict[Any, None] = {}
    for v in values:
        seen.setdefault(v, None)
    return list(seen)


def _apply_order(observed: list[str], order: Sequence[str] | None, name: str) -> list[str]:
    if order is None:
        return observed
    ordered = _ordered_unique(order)
    missing = [c for c in observed if c not in ordered]
    if missing:
        raise InvalidRange(f"{name} is missing categories: {missing!r}")
    return ordered
