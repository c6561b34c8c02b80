from __future__ import annotations

import unittest

import numpy as np

from plot_annotate import (
    AxisRange,
    InvalidPlacementRequest,
    LabelBox,
    NumericScale,
    Point,
    drop_overlapping,
    label_boxes,
    resolve_labels,
    synchronize_scales,
)
from plot_annotate.model import Anchor, rects_overlap


def _box(x: float, y: float, w: float = 40.0, h: float = 14.0, text: str = "label") -> LabelBox:
    return LabelBox(text=text, x=x, y=y, width=w, height=h)


def _assert_no_overlaps(test: unittest.TestCase, boxes: tuple[LabelBox, ...]) -> None:
    rects = [b.rect() for b in boxes]
    for i in range(len(rects)):
        for j in range(i + 1, len(rects)):
            test.assertFalse(rects_overlap(rects[i], rects[j]), (i, j, rects[i], rects[j]))


class ResolveLabelsTests(unittest.TestCase):
    def test_free_label_stays_on_anchor(self) -> None:
        result = resolve_labels([_box(100.0, 100.0), _box(400.0, 300.0)], canvas=(800.0, 600.0))
        self.assertTrue(result.resolved)
        self.assertEqual(result.total_displacement, 0.0)

    def test_stacked_pair_is_separated(self) -> None:
        result = resolve_labels([_box(400.0, 300.0), _box(400.0, 300.0)], canvas=(800.0, 600.0))
        self.assertTrue(result.resolved)
        self.assertEqual((result.boxes[0].dx, result.boxes[0].dy), (0.0, 0.0))
        self.assertGreater(result.boxes[1].displacement, 0.0)
        _assert_no_overlaps(self, result.boxes)

    def test_inputs_are_not_mutated(self) -> None:
        boxes = [_box(400.0, 300.0), _box(400.0, 300.0)]
        resolve_labels(boxes, canvas=(800.0, 600.0))
        self.assertTrue(all((b.dx, b.dy) == (0.0, 0.0) for b in boxes))

    def test_sparse_labels_always_resolve(self) -> None:
        rng = np.random.default_rng(7)
        anchors = rng.uniform([0.0, 0.0], [800.0, 600.0], size=(60, 2))
        boxes = [_box(float(x), float(y), w=50.0, h=14.0) for x, y in anchors]
        self.assertLess(sum(b.area for b in boxes), 0.1 * 800.0 * 600.0)
        result = resolve_labels(boxes, canvas=(800.0, 600.0))
        self.assertTrue(result.resolved)
        self.assertEqual(result.residual_overlaps, ())
        _assert_no_overlaps(self, result.boxes)

    def test_sparse_labels_on_one_anchor_resolve(self) -> None:
        boxes = [_box(400.0, 300.0) for _ in range(40)]
        result = resolve_labels(boxes, canvas=(800.0, 600.0))
        self.assertTrue(result.resolved)
        _assert_no_overlaps(self, result.boxes)

    def test_labels_are_kept_on_canvas(self) -> None:
        result = resolve_labels([_box(5.0, 5.0)], canvas=(800.0, 600.0))
        x0, y0, x1, y1 = result.boxes[0].rect()
        self.assertGreaterEqual(x0, 0.0)
        self.assertGreaterEqual(y0, 0.0)

    def test_clustered_labels_report_residual_overlaps(self) -> None:
        anchors = [(400.0, 300.0), (405.0, 305.0), (410.0, 310.0), (415.0, 315.0), (420.0, 320.0)]
        boxes = [_box(x, y) for x, y in anchors]
        with self.assertLogs("plot_annotate.placement", level="WARNING") as logs:
            result = resolve_labels(boxes, canvas=(800.0, 600.0), max_displacement_px=5.0)
        self.assertFalse(result.resolved)
        self.assertTrue(result.residual_overlaps)
        self.assertIn(0, result.unresolved_indices)
        self.assertIn("overlapping", logs.output[0])

    def test_tight_ring_budget_terminates_with_partial_result(self) -> None:
        boxes = [_box(400.0, 300.0) for _ in range(5)]
        result = resolve_labels(boxes, canvas=(800.0, 600.0), max_iterations=2, step_px=2.0)
        self.assertFalse(result.resolved)
        self.assertEqual(len(result.boxes), 5)
        self.assertLessEqual(result.rings_searched, 5 * 3)

    def test_invalid_arguments(self) -> None:
        with self.assertRaisesRegex(InvalidPlacementRequest, "canvas"):
            resolve_labels([_box(1.0, 1.0)], canvas=(0.0, 600.0))
        with self.assertRaisesRegex(InvalidPlacementRequest, "max_iterations"):
            resolve_labels([_box(1.0, 1.0)], canvas=(800.0, 600.0), max_iterations=0)
        with self.assertRaisesRegex(InvalidPlacementRequest, "step_px"):
            resolve_labels([_box(1.0, 1.0)], canvas=(800.0, 600.0), step_px=0.0)

    def test_empty_input(self) -> None:
        result = resolve_labels([], canvas=(800.0, 600.0))
        self.assertTrue(result.resolved)
        self.assertEqual(result.boxes, ())


class DropOverlappingTests(unittest.TestCase):
    def test_later_overlapping_labels_are_dropped(self) -> None:
        boxes = [_box(100.0, 100.0), _box(110.0, 104.0), _box(300.0, 100.0), _box(305.0, 300.0)]
        self.assertEqual(drop_overlapping(boxes), [0, 2, 3])

    def test_padding_widens_the_check(self) -> None:
        boxes = [_box(100.0, 100.0), _box(141.0, 100.0)]
        self.assertEqual(drop_overlapping(boxes), [0, 1])
        self.assertEqual(drop_overlapping(boxes, padding_px=2.0), [0])


class LabelBoxBuilderTests(unittest.TestCase):
    def test_points_map_through_scales(self) -> None:
        x_scale = NumericScale(AxisRange(0.0, 10.0), pixel_range=(0.0, 100.0))
        y_scale = NumericScale(AxisRange(0.0, 10.0), aesthetic="y", pixel_range=(100.0, 0.0))
        points = [Point(2.0, 8.0, label="alpha"), Point(5.0, 5.0), Point(10.0, 0.0, label="b")]
        boxes = label_boxes(
            points,
            x_scale,
            y_scale,
            anchor="left",
            nudge=(3.0, 0.0),
            measure=lambda text: (6.0 * len(text), 10.0),
        )
        self.assertEqual([b.text for b in boxes], ["alpha", "b"])
        self.assertEqual((boxes[0].x, boxes[0].y), (23.0, 20.0))
        self.assertEqual(boxes[0].width, 30.0)
        self.assertEqual(boxes[0].anchor, Anchor(h="left", v="center"))

    def test_default_measure_uses_text_metrics(self) -> None:
        x_scale = NumericScale(AxisRange(0.0, 1.0), pixel_range=(0.0, 100.0))
        boxes = label_boxes([Point(0.5, 0.5, label="hello")], x_scale, x_scale)
        self.assertGreater(boxes[0].width, 0.0)
        self.assertGreater(boxes[0].height, 0.0)

    def test_pipeline_from_datasets_to_resolved_labels(self) -> None:
        datasets = [
            [Point(1.0, 1.0, category="a", label="first"), Point(1.05, 1.02, category="a", label="second")],
            [Point(2.0, 3.0, category="b", label="third")],
        ]
        group = synchronize_scales(datasets, expand=(0.05, 0.0))
        group.with_pixel_ranges(x=(0.0, 800.0), y=(600.0, 0.0)).publish()
        boxes = label_boxes(
            [p for d in datasets for p in d],
            group.x,
            group.y,
            measure=lambda text: (7.0 * len(text), 12.0),
        )
        result = resolve_labels(boxes, canvas=(800.0, 600.0))
        self.assertTrue(result.resolved)
        _assert_no_overlaps(self, result.boxes)


if __name__ == "__main__":
    unittest.main()
