from __future__ import annotations

from datetime import date
import math
import unittest

from plot_annotate import (
    AxisRange,
    CategoricalScale,
    InvalidRange,
    NumericScale,
    PaletteScale,
    Point,
    TemporalScale,
    synchronize_scales,
)


def _xs(*values: float) -> list[Point]:
    return [Point(x=v, y=float(i)) for i, v in enumerate(values)]


class ScaleSynchronizerTests(unittest.TestCase):
    def test_union_of_x_ranges(self) -> None:
        group = synchronize_scales([_xs(1, 3), _xs(2, 7)])
        self.assertIsInstance(group.x, NumericScale)
        self.assertEqual(group.x.domain, AxisRange(1, 7))
        self.assertEqual(group.y.domain, AxisRange(0.0, 1.0))

    def test_all_empty_datasets_give_unit_range(self) -> None:
        group = synchronize_scales([[], []])
        self.assertEqual(group.x.domain, AxisRange(0.0, 1.0))
        self.assertEqual(group.y.domain, AxisRange(0.0, 1.0))
        self.assertIsNone(group.color)

    def test_no_datasets_give_unit_range(self) -> None:
        group = synchronize_scales([], expand=(0.1, 0.0))
        self.assertEqual(group.x.domain, AxisRange(0.0, 1.0))

    def test_idempotent(self) -> None:
        datasets = [
            [Point(1, 5, category="a"), Point(4, -2, category="b")],
            [Point(-3, 8, category="c")],
        ]
        first = synchronize_scales(datasets)
        second = synchronize_scales(datasets)
        self.assertEqual(first.domains(), second.domains())

    def test_category_union_keeps_first_seen_order(self) -> None:
        group = synchronize_scales(
            [
                [Point(0, 0, category="a"), Point(1, 1, category="b")],
                [Point(2, 2, category="b"), Point(3, 3, category="c")],
            ]
        )
        self.assertIsInstance(group.color, PaletteScale)
        assert group.color is not None
        self.assertEqual(group.color.categories, ("a", "b", "c"))
        self.assertEqual(len(set(group.color.map(["a", "b", "c"]))), 3)

    def test_category_order_must_cover_observed(self) -> None:
        with self.assertRaisesRegex(InvalidRange, "missing categories"):
            synchronize_scales([[Point(0, 0, category="a"), Point(1, 1, category="b")]], category_order=["b"])

    def test_category_order_is_used(self) -> None:
        group = synchronize_scales([[Point(0, 0, category="a"), Point(1, 1, category="b")]], category_order=["b", "a"])
        assert group.color is not None
        self.assertEqual(group.color.categories, ("b", "a"))

    def test_partial_limits_extend_to_data(self) -> None:
        group = synchronize_scales([_xs(1, 3), _xs(2, 7)], x_limits=AxisRange(0, math.inf))
        self.assertEqual(group.x.domain, AxisRange(0, 7))

    def test_expand_pads_union(self) -> None:
        group = synchronize_scales([_xs(1, 3), _xs(2, 7)], expand=(0.1, 0.0))
        lo, hi = group.x.domain.as_floats()
        self.assertAlmostEqual(lo, 0.4)
        self.assertAlmostEqual(hi, 7.6)

    def test_non_finite_values_are_ignored(self) -> None:
        group = synchronize_scales([[Point(1.0, 2.0), Point(math.nan, 100.0), Point(5.0, math.inf)]])
        self.assertEqual(group.x.domain, AxisRange(1.0, 5.0))
        self.assertEqual(group.y.domain, AxisRange(2.0, 100.0))

    def test_temporal_x_gives_temporal_scale(self) -> None:
        group = synchronize_scales(
            [[Point(date(2024, 1, 5), 1.0)], [Point(date(2023, 12, 1), 2.0), Point(date(2024, 2, 1), 3.0)]]
        )
        self.assertIsInstance(group.x, TemporalScale)
        self.assertEqual(group.x.domain, AxisRange(date(2023, 12, 1), date(2024, 2, 1)))

    def test_mixed_temporal_and_numeric_x_is_rejected(self) -> None:
        with self.assertRaisesRegex(InvalidRange, "mix"):
            synchronize_scales([[Point(date(2024, 1, 5), 1.0)], [Point(3.0, 2.0)]])

    def test_string_x_gives_categorical_scale(self) -> None:
        group = synchronize_scales([[Point("low", 1.0), Point("high", 2.0)], [Point("mid", 3.0), Point("low", 0.5)]])
        self.assertIsInstance(group.x, CategoricalScale)
        self.assertEqual(group.x.categories, ("low", "high", "mid"))

    def test_scales_are_shared_by_reference(self) -> None:
        group = synchronize_scales([_xs(1, 3), _xs(2, 7)])
        left_plot = {"x": group.x, "y": group.y}
        right_plot = {"x": group.x, "y": group.y}
        group.x.set_pixel_range(0.0, 400.0)
        self.assertIs(left_plot["x"], right_plot["x"])
        self.assertEqual(right_plot["x"].pixel_range, (0.0, 400.0))


if __name__ == "__main__":
    unittest.main()
