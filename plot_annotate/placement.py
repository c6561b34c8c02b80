from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial
import logging
import math
from typing import Any

import numpy as np

from plot_annotate.errors import InvalidPlacementRequest
from plot_annotate.model import Anchor, LabelBox, Point, Rect, rects_overlap
from plot_annotate.scales import PositionScale
from plot_annotate.settings import DEFAULT_SETTINGS, AnnotateSettings
from plot_annotate.text_metrics import text_size


LOGGER = logging.getLogger(__name__)

TextMeasure = Callable[[str], tuple[float, float]]


@dataclass(frozen=True)
class PlacementResult:
    """Resolved label positions.

    ``residual_overlaps`` lists index pairs that still overlap; an empty list
    means every box found a free slot.
    """

    boxes: tuple[LabelBox, ...]
    residual_overlaps: tuple[tuple[int, int], ...]
    rings_searched: int

    @property
    def resolved(self) -> bool:
        return not self.residual_overlaps

    @property
    def unresolved_indices(self) -> tuple[int, ...]:
        return tuple(sorted({i for pair in self.residual_overlaps for i in pair}))

    @property
    def total_displacement(self) -> float:
        return float(sum(b.displacement for b in self.boxes))


def resolve_labels(
    boxes: Sequence[LabelBox],
    *,
    canvas: tuple[float, float],
    max_iterations: int | None = None,
    step_px: float | None = None,
    padding_px: float | None = None,
    max_displacement_px: float | None = None,
    settings: AnnotateSettings | None = None,
) -> PlacementResult:
    """Move labels off each other with a greedy nearest-free-slot search.

    Boxes are placed in input order. Each one tries offsets on square rings of
    radius ``ring * step_px`` around its anchor, nearest first, and keeps the
    first slot that is inside the canvas and clear of every box placed before
    it. At most ``max_iterations`` rings are searched per box; a box with no
    free slot stays at its anchor and its overlaps are reported. Arguments left
    as ``None`` come from ``settings``.
    """
    width, height = _check_canvas(canvas)
    cfg = settings or DEFAULT_SETTINGS
    max_iterations = cfg.placement_max_iterations if max_iterations is None else max_iterations
    step_px = cfg.placement_step_px if step_px is None else float(step_px)
    padding_px = cfg.placement_padding_px if padding_px is None else float(padding_px)
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, int) or max_iterations <= 0:
        raise InvalidPlacementRequest(f"max_iterations must be a positive integer, got {max_iterations!r}")
    if not math.isfinite(step_px) or step_px <= 0:
        raise InvalidPlacementRequest(f"step_px must be > 0, got {step_px}")
    if not math.isfinite(padding_px) or padding_px < 0:
        raise InvalidPlacementRequest(f"padding_px must be >= 0, got {padding_px}")
    if max_displacement_px is not None and not max_displacement_px >= 0:
        raise InvalidPlacementRequest(f"max_displacement_px must be >= 0, got {max_displacement_px}")

    placed = np.empty((0, 4), dtype=np.float64)
    resolved: list[LabelBox] = []
    rings_total = 0
    for box in boxes:
        base = np.asarray(box.rect(0.0, 0.0), dtype=np.float64)
        offset, rings = _find_free_slot(
            base,
            placed,
            width=width,
            height=height,
            max_rings=max_iterations,
            step=step_px,
            padding=padding_px,
            max_displacement=max_displacement_px,
        )
        rings_total += rings
        if offset is None:
            offset = (0.0, 0.0)
        moved = box.with_offset(*offset)
        resolved.append(moved)
        placed = np.vstack([placed, np.asarray(moved.rect(), dtype=np.float64)[None, :]])

    residual = tuple(overlapping_pairs([b.rect() for b in resolved]))
    if residual:
        LOGGER.warning(
            "label placement left %d overlapping pair(s) among %d labels after %d rings",
            len(residual),
            len(resolved),
            rings_total,
        )
    return PlacementResult(boxes=tuple(resolved), residual_overlaps=residual, rings_searched=rings_total)


def drop_overlapping(boxes: Sequence[LabelBox], *, padding_px: float = 0.0) -> list[int]:
    """Indices of boxes kept when each box that overlaps an earlier kept one is dropped."""
    if padding_px < 0:
        raise InvalidPlacementRequest(f"padding_px must be >= 0, got {padding_px}")
    kept: list[int] = []
    kept_rects: list[Rect] = []
    for i, box in enumerate(boxes):
        rect = box.rect()
        if any(rects_overlap(rect, other, padding_px) for other in kept_rects):
            continue
        kept.append(i)
        kept_rects.append(rect)
    return kept


def overlapping_pairs(rects: Sequence[Rect], padding: float = 0.0) -> list[tuple[int, int]]:
    if not rects:
        return []
    arr = np.asarray(rects, dtype=np.float64)
    hits = _overlap_matrix(arr, arr, padding)
    i_idx, j_idx = np.nonzero(np.triu(hits, k=1))
    return [(int(i), int(j)) for i, j in zip(i_idx.tolist(), j_idx.tolist(), strict=True)]


def label_boxes(
    points: Sequence[Point],
    x_scale: PositionScale,
    y_scale: PositionScale,
    *,
    anchor: Anchor | str | tuple[float, float] = "center",
    nudge: tuple[float, float] = (0.0, 0.0),
    font_family: str | None = None,
    font_size_px: float | None = None,
    measure: TextMeasure | None = None,
    settings: AnnotateSettings | None = None,
) -> list[LabelBox]:
    """LabelBoxes for every labelled point, in pixel space via the given scales.

    ``nudge`` shifts the anchor in pixels; unlabelled points are skipped.
    """
    anchor = Anchor.parse(anchor)
    if measure is None:
        measure = partial(text_size, font_family=font_family, font_size_px=font_size_px, settings=settings)

    labelled = [p for p in points if p.label]
    if not labelled:
        return []
    xs = _map_positions(x_scale, [p.x for p in labelled])
    ys = _map_positions(y_scale, [p.y for p in labelled])
    out: list[LabelBox] = []
    for p, px, py in zip(labelled, xs.tolist(), ys.tolist(), strict=True):
        w, h = measure(str(p.label))
        out.append(
            LabelBox(
                text=str(p.label),
                x=float(px) + float(nudge[0]),
                y=float(py) + float(nudge[1]),
                width=float(w),
                height=float(h),
                anchor=anchor,
            )
        )
    return out


def _find_free_slot(
    base: np.ndarray,
    placed: np.ndarray,
    *,
    width: float,
    height: float,
    max_rings: int,
    step: float,
    padding: float,
    max_displacement: float | None,
) -> tuple[tuple[float, float] | None, int]:
    box_w = base[2] - base[0]
    box_h = base[3] - base[1]
    check_x = box_w <= width
    check_y = box_h <= height
    reach = max(width, height) + max(box_w, box_h)

    for ring in range(0, max_rings + 1):
        radius = ring * step
        if ring > 0 and radius > reach:
            return (None, ring)
        if max_displacement is not None and radius > max_displacement:
            return (None, ring)
        offsets = _ring_offsets(ring) * step
        if max_displacement is not None:
            offsets = offsets[np.hypot(offsets[:, 0], offsets[:, 1]) <= max_displacement + 1e-9]
            if offsets.size == 0:
                continue
        cand = base[None, :] + np.concatenate([offsets, offsets], axis=1)
        ok = np.ones(cand.shape[0], dtype=bool)
        if check_x:
            ok &= (cand[:, 0] >= 0.0) & (cand[:, 2] <= width)
        if check_y:
            ok &= (cand[:, 1] >= 0.0) & (cand[:, 3] <= height)
        if placed.shape[0] > 0:
            ok &= ~np.any(_overlap_matrix(cand, placed, padding), axis=1)
        hits = np.flatnonzero(ok)
        if hits.size:
            dx, dy = offsets[hits[0]]
            return ((float(dx), float(dy)), ring)
    return (None, max_rings)


def _ring_offsets(ring: int) -> np.ndarray:
    """Integer offsets on the square ring at Chebyshev distance ``ring``, nearest first."""
    if ring == 0:
        return np.zeros((1, 2), dtype=np.float64)
    span = np.arange(-ring, ring + 1, dtype=np.float64)
    inner = span[1:-1]
    r = float(ring)
    offsets = np.concatenate(
        [
            np.stack([span, np.full_like(span, -r)], axis=1),
            np.stack([span, np.full_like(span, r)], axis=1),
            np.stack([np.full_like(inner, -r), inner], axis=1),
            np.stack([np.full_like(inner, r), inner], axis=1),
        ]
    )
    dist = np.hypot(offsets[:, 0], offsets[:, 1])
    order = np.lexsort((offsets[:, 0], offsets[:, 1], dist))
    return offsets[order]


def _overlap_matrix(a: np.ndarray, b: np.ndarray, padding: float) -> np.ndarray:
    a4 = a[:, None, :]
    b4 = b[None, :, :]
    apart = (
        (a4[..., 2] + padding <= b4[..., 0])
        | (b4[..., 2] + padding <= a4[..., 0])
        | (a4[..., 3] + padding <= b4[..., 1])
        | (b4[..., 3] + padding <= a4[..., 1])
    )
    return ~apart


def _map_positions(scale: PositionScale, values: list[Any]) -> np.ndarray:
    return np.asarray(scale.map(values), dtype=np.float64)


def _check_canvas(canvas: tuple[float, float]) -> tuple[float, float]:
    if len(canvas) != 2:
        raise InvalidPlacementRequest(f"canvas must be (width, height), got {canvas!r}")
    width, height = float(canvas[0]), float(canvas[1])
    if not (math.isfinite(width) and math.isfinite(height)) or width <= 0 or height <= 0:
        raise InvalidPlacementRequest(f"canvas must have positive size, got {canvas!r}")
    return (width, height)
