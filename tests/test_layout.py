from __future__ import annotations

import itertools
import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from svgsprite.config import Padding
from svgsprite.layout import compute_layout
from svgsprite.shape import Shape


def _shape(name: str, width: float, height: float, align=None) -> Shape:
    shape = Shape.from_source(
        f"{name}.svg",
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}"/>',
    )
    shape.align = list((align or {"%s": 0.0}).items())
    return shape


class LayoutTests(unittest.TestCase):
    def test_three_shapes_horizontal(self) -> None:
        shapes = [_shape("a", 10, 10), _shape("b", 20, 20), _shape("c", 30, 30)]
        layout = compute_layout(shapes, Padding())
        self.assertEqual([(p.x, p.y) for p in layout.placements], [(0, 0), (10, 0), (30, 0)])
        self.assertEqual((layout.width, layout.height), (60, 30))

    def test_vertical_and_diagonal(self) -> None:
        shapes = [_shape("a", 10, 10), _shape("b", 20, 20)]
        vertical = compute_layout(shapes, Padding(), layout="vertical")
        self.assertEqual([(p.x, p.y) for p in vertical.placements], [(0, 0), (0, 10)])
        self.assertEqual((vertical.width, vertical.height), (20, 30))
        diagonal = compute_layout(shapes, Padding(), layout="diagonal")
        self.assertEqual([(p.x, p.y) for p in diagonal.placements], [(0, 0), (10, 10)])
        self.assertEqual((diagonal.width, diagonal.height), (30, 30))

    def test_alignment_weight_interpolates_cross_axis(self) -> None:
        shapes = [
            _shape("a", 10, 10, {"%s": 1.0}),
            _shape("b", 10, 20, {"%s": 0.5}),
            _shape("c", 10, 30),
        ]
        layout = compute_layout(shapes, Padding())
        self.assertEqual([p.y for p in layout.placements], [20, 5, 0])

    def test_multiple_templates_are_independent(self) -> None:
        shapes = [_shape("a", 10, 10, {"%s": 0.0, "%s-bottom": 1.0, "%s-top": 0.0}), _shape("b", 10, 30)]
        layout = compute_layout(shapes, Padding())
        self.assertEqual(len(layout.placements), 3)
        first, second, _ = layout.placements
        self.assertEqual(first.templates, ("%s", "%s-top"))
        self.assertEqual((first.x, first.y), (0, 0))
        self.assertEqual(second.templates, ("%s-bottom",))
        self.assertEqual((second.x, second.y), (10, 20))

    def test_padding_prevents_overlap(self) -> None:
        shapes = [_shape(f"s{i}", 5 + i * 3, 40 - i * 4, {"%s": (i % 3) / 2}) for i in range(6)]
        for mode in ("horizontal", "vertical", "diagonal"):
            layout = compute_layout(shapes, Padding(2, 3, 4, 5), layout=mode)
            offsets = [p.x if mode != "vertical" else p.y for p in layout.placements]
            self.assertEqual(offsets, sorted(offsets))
            for a, b in itertools.combinations(layout.placements, 2):
                self.assertFalse(a.overlaps(b), f"{mode}: {a.shape.id} overlaps {b.shape.id}")
            first = layout.placements[0]
            self.assertEqual((first.width, first.height), (5 + 8, 40 + 6))

    def test_precision_rounding(self) -> None:
        shapes = [_shape("a", 10.333, 10), _shape("b", 10, 20, {"%s": 0.333})]
        layout = compute_layout(shapes, Padding(), precision=2)
        self.assertEqual(layout.placements[1].x, 10.33)
        self.assertEqual(layout.placements[0].y, 0)
        self.assertEqual(compute_layout(shapes, Padding(), precision=-1).placements[1].x, 10.333)


if __name__ == "__main__":
    unittest.main()
