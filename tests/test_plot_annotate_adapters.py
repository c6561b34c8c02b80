from __future__ import annotations

from datetime import datetime
import math
import unittest

import numpy as np
import pandas as pd

from plot_annotate import PlotAnnotateError, Point, points_from_frame, points_from_xy
from plot_annotate.text_metrics import text_size


class AdapterTests(unittest.TestCase):
    def test_points_from_xy_drops_non_finite_rows(self) -> None:
        points = points_from_xy([1, 2, 3, None], [1.0, math.nan, 3.0, 4.0], label=["a", "b", "c", "d"])
        self.assertEqual(points, [Point(1.0, 1.0, label="a"), Point(3.0, 3.0, label="c")])

    def test_points_from_xy_length_mismatch(self) -> None:
        with self.assertRaisesRegex(PlotAnnotateError, "length mismatch"):
            points_from_xy([1, 2], [1.0])
        with self.assertRaisesRegex(PlotAnnotateError, "category length mismatch"):
            points_from_xy([1, 2], [1.0, 2.0], category=["a"])

    def test_points_from_xy_rejects_non_numeric_y(self) -> None:
        with self.assertRaisesRegex(PlotAnnotateError, "index 1"):
            points_from_xy([1, 2], [1.0, "high"])

    def test_points_from_frame_with_datetime_column(self) -> None:
        frame = pd.DataFrame(
            {
                "when": pd.to_datetime(["2024-01-01", "2024-02-01", None]),
                "value": [1.5, np.nan, 3.0],
                "group": ["a", "b", None],
                "note": ["start", None, "end"],
            }
        )
        points = points_from_frame(frame, x="when", y="value", category="group", label="note")
        self.assertEqual(points, [Point(datetime(2024, 1, 1), 1.5, category="a", label="start")])

    def test_points_from_frame_missing_column(self) -> None:
        frame = pd.DataFrame({"x": [1.0], "y": [2.0]})
        with self.assertRaisesRegex(PlotAnnotateError, "column not found: z"):
            points_from_frame(frame, x="x", y="z")


class TextMetricsTests(unittest.TestCase):
    def test_longer_text_is_wider(self) -> None:
        short_w, short_h = text_size("ab", font_size_px=12.0)
        long_w, _ = text_size("abcdefgh", font_size_px=12.0)
        self.assertGreater(short_w, 0)
        self.assertGreater(short_h, 0)
        self.assertGreater(long_w, short_w)

    def test_multi_line_text_is_taller(self) -> None:
        _, one = text_size("line", font_size_px=12.0)
        _, two = text_size("line\nline", font_size_px=12.0)
        self.assertGreater(two, one)

    def test_empty_text_has_no_width(self) -> None:
        w, h = text_size("", font_size_px=12.0)
        self.assertEqual(w, 0)
        self.assertGreater(h, 0)


if __name__ == "__main__":
    unittest.main()
