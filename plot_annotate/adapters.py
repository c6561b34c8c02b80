from __future__ import annotations

from collections.abc import Sequence
import math
from typing import Any

import numpy as np
import pandas as pd

from plot_annotate.errors import PlotAnnotateError
from plot_annotate.model import Point, is_temporal


def points_from_xy(
    x: Sequence[Any],
    y: Sequence[Any],
    *,
    category: Sequence[Any] | None = None,
    label: Sequence[Any] | None = None,
) -> list[Point]:
    """Zip parallel columns into Points, dropping rows whose x or y is missing or non-finite."""
    xs = list(x)
    ys = list(y)
    if len(xs) != len(ys):
        raise PlotAnnotateError(f"x and y length mismatch: {len(xs)} != {len(ys)}")
    cats = _optional_column(category, len(xs), "category")
    labels = _optional_column(label, len(xs), "label")

    out: list[Point] = []
    for i, (xv, yv) in enumerate(zip(xs, ys, strict=True)):
        xv = _coerce_x(xv)
        yv = _coerce_y(yv, i)
        if xv is None or yv is None:
            continue
        out.append(
            Point(
                x=xv,
                y=yv,
                category=None if cats[i] is None else str(cats[i]),
                label=None if labels[i] is None else str(labels[i]),
            )
        )
    return out


def points_from_frame(
    frame: pd.DataFrame,
    *,
    x: str,
    y: str,
    category: str | None = None,
    label: str | None = None,
) -> list[Point]:
    if not isinstance(frame, pd.DataFrame):
        raise PlotAnnotateError("`frame` must be a pandas DataFrame")
    for name in (x, y, category, label):
        if name is not None and name not in frame.columns:
            raise PlotAnnotateError(f"column not found: {name}")

    xs = frame[x]
    if pd.api.types.is_datetime64_any_dtype(xs):
        x_values: list[Any] = [None if pd.isna(v) else v.to_pydatetime() for v in xs]
    else:
        x_values = xs.tolist()
    return points_from_xy(
        x_values,
        frame[y].tolist(),
        category=None if category is None else _nullable(frame[category]),
        label=None if label is None else _nullable(frame[label]),
    )


def _nullable(column: pd.Series) -> list[Any]:
    return [None if pd.isna(v) else v for v in column.tolist()]


def _optional_column(values: Sequence[Any] | None, size: int, name: str) -> list[Any]:
    if values is None:
        return [None] * size
    out = list(values)
    if len(out) != size:
        raise PlotAnnotateError(f"{name} length mismatch: {len(out)} != {size}")
    return out


def _coerce_x(value: Any) -> Any:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, str) or is_temporal(value):
        return value
    if isinstance(value, np.datetime64):
        return None if np.isnat(value) else pd.Timestamp(value).to_pydatetime()
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise PlotAnnotateError(f"unsupported x value: {value!r}") from exc
    return out if math.isfinite(out) else None


def _coerce_y(value: Any, index: int) -> float | None:
    if value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise PlotAnnotateError(f"y contains non-numeric value at index {index}: {value!r}") from exc
    return out if math.isfinite(out) else None
