from __future__ import annotations

import logging
import os
import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from svgsprite.config import (
    CssModeOptions,
    Padding,
    SpriterConfig,
    StackModeOptions,
    SymbolModeOptions,
    ViewModeOptions,
    default_sort,
    expand_spacing,
    filter_modes,
)
from svgsprite.logging_config import VERBOSE, resolve_logger
from svgsprite.transforms import build_pipeline


class _Named:
    def __init__(self, shape_id: str) -> None:
        self.id = shape_id


class SpacingTests(unittest.TestCase):
    def test_css_style_expansion(self) -> None:
        self.assertEqual(expand_spacing([5]), Padding(5, 5, 5, 5))
        self.assertEqual(expand_spacing([5, 10]), Padding(5, 10, 5, 10))
        self.assertEqual(expand_spacing([5, 10, 15]), Padding(5, 10, 15, 10))
        self.assertEqual(expand_spacing([5, 10, 15, 20]), Padding(5, 10, 15, 20))

    def test_scalar_and_garbage_values(self) -> None:
        self.assertEqual(expand_spacing(3), Padding(3, 3, 3, 3))
        self.assertEqual(expand_spacing("4"), Padding(4, 4, 4, 4))
        self.assertEqual(expand_spacing(None), Padding(0, 0, 0, 0))
        self.assertEqual(expand_spacing("wide"), Padding(0, 0, 0, 0))
        self.assertEqual(expand_spacing([-5, 2]), Padding(0, 2, 0, 2))
        self.assertEqual(expand_spacing([]), Padding(0, 0, 0, 0))

    def test_padding_from_config(self) -> None:
        config = SpriterConfig.from_mapping({"shape": {"spacing": {"padding": [1, 2]}}})
        self.assertEqual(config.shape.padding, Padding(1, 2, 1, 2))


class ModeFilterTests(unittest.TestCase):
    def test_only_recognized_modes_survive(self) -> None:
        filtered = filter_modes({"css": True, "bar": {"mode": "symbol"}, "baz": "nonsense"})
        self.assertEqual(set(filtered), {"css", "bar"})
        self.assertEqual(filtered["css"], {"mode": "css"})
        self.assertEqual(filtered["bar"]["mode"], "symbol")

    def test_unknown_names_dropped_even_when_truthy(self) -> None:
        filtered = filter_modes({"foo": True, "other": {"mode": "sprite"}, "view": False})
        self.assertEqual(filtered, {})

    def test_typed_options(self) -> None:
        config = SpriterConfig.from_mapping(
            {
                "mode": {
                    "css": {"layout": "vertical", "bust": True},
                    "view": True,
                    "icons": {"mode": "symbol", "inline": True, "example": True},
                    "stack": True,
                }
            }
        )
        css = config.mode["css"]
        self.assertIsInstance(css, CssModeOptions)
        self.assertEqual(css.layout, "vertical")
        self.assertTrue(css.bust)
        self.assertEqual([t.format for t in css.render], ["css"])
        self.assertEqual(css.sprite, "svg/sprite.css.svg")
        self.assertEqual(css.dest, "css")

        view = config.mode["view"]
        self.assertIsInstance(view, ViewModeOptions)
        self.assertEqual(view.render, ())

        icons = config.mode["icons"]
        self.assertIsInstance(icons, SymbolModeOptions)
        self.assertTrue(icons.inline)
        self.assertEqual(icons.example.dest, "sprite.symbol.html")
        self.assertEqual(icons.dest, "symbol")

        self.assertIsInstance(config.mode["stack"], StackModeOptions)

    def test_unknown_layout_falls_back(self) -> None:
        config = SpriterConfig.from_mapping({"mode": {"css": {"layout": "packed"}}})
        self.assertEqual(config.mode["css"].layout, "horizontal")

    def test_non_text_templates_are_ignored(self) -> None:
        config = SpriterConfig.from_mapping(
            {
                "mode": {
                    "css": {"render": {"css": {"template": 5}}},
                    "defs": {"example": {"template": ["x"]}},
                }
            }
        )
        self.assertIsNone(config.mode["css"].render[0].template)
        self.assertEqual(config.mode["css"].render[0].dest, "sprite.css")
        self.assertIsNone(config.mode["defs"].example.template)


class TransformPipelineTests(unittest.TestCase):
    def test_default_pipeline(self) -> None:
        self.assertEqual(build_pipeline(None), [("svgo", {})])
        self.assertEqual(build_pipeline("svgo"), [("svgo", {})])

    def test_encodings(self) -> None:
        def fn(root):
            return root

        steps = build_pipeline(
            [
                "svgo",
                fn,
                {"svgo": True},
                {"svgo": {"removeTitle": True}},
                {"mine": fn},
                {"ignored": False},
                42,
            ]
        )
        self.assertEqual(
            steps,
            [
                ("svgo", {}),
                ("custom", fn),
                ("svgo", {}),
                ("svgo", {"removeTitle": True}),
                ("mine", fn),
            ],
        )

    def test_empty_list_disables_transforms(self) -> None:
        self.assertEqual(build_pipeline([]), [])


class SVGSettingsTests(unittest.TestCase):
    def test_defaults(self) -> None:
        svg = SpriterConfig.from_mapping({}).svg
        self.assertTrue(svg.xml_declaration)
        self.assertTrue(svg.doctype_declaration)
        self.assertTrue(svg.namespace_ids)
        self.assertTrue(svg.namespace_classnames)
        self.assertTrue(svg.dimension_attributes)
        self.assertEqual(svg.namespace_id_prefix, "")
        self.assertEqual(dict(svg.root_attributes), {})
        self.assertEqual(svg.precision, -1)
        self.assertEqual(svg.transform, ())

    def test_precision_coercion(self) -> None:
        def precision(value):
            return SpriterConfig.from_mapping({"svg": {"precision": value}}).svg.precision

        self.assertEqual(precision(2), 2)
        self.assertEqual(precision("3"), 3)
        self.assertEqual(precision(0), -1)
        self.assertEqual(precision(""), -1)
        self.assertEqual(precision("0"), 0)
        self.assertEqual(precision(-7), -1)
        self.assertEqual(precision("lots"), -1)
        self.assertEqual(precision(None), -1)

    def test_post_processing_transforms(self) -> None:
        def upper(text):
            return text

        single = SpriterConfig.from_mapping({"svg": {"transform": upper}}).svg
        self.assertEqual(single.transform, (upper,))
        mixed = SpriterConfig.from_mapping({"svg": {"transform": [upper, "nope", None]}}).svg
        self.assertEqual(mixed.transform, (upper,))
        bogus = SpriterConfig.from_mapping({"svg": {"transform": "nope"}}).svg
        self.assertEqual(bogus.transform, ())

    def test_flags_and_root_attributes(self) -> None:
        svg = SpriterConfig.from_mapping(
            {
                "svg": {
                    "xmlDeclaration": False,
                    "doctypeDeclaration": None,
                    "rootAttributes": {"class": "sprite", "data-n": 1},
                }
            }
        ).svg
        self.assertFalse(svg.xml_declaration)
        self.assertFalse(svg.doctype_declaration)
        self.assertEqual(dict(svg.root_attributes), {"class": "sprite", "data-n": "1"})


class GeneralOptionTests(unittest.TestCase):
    def test_dest_is_absolute(self) -> None:
        config = SpriterConfig.from_mapping({"dest": "out"})
        self.assertTrue(config.dest.is_absolute())
        self.assertEqual(config.dest, Path(os.path.abspath("out")))
        self.assertEqual(SpriterConfig.from_mapping({}).dest, Path(os.path.abspath(".")))

    def test_shape_dest(self) -> None:
        config = SpriterConfig.from_mapping({"dest": "out", "shape": {"dest": " shapes "}})
        self.assertEqual(config.shape.dest, Path(os.path.abspath("out/shapes")))
        self.assertIsNone(SpriterConfig.from_mapping({"shape": {"dest": ""}}).shape.dest)

    def test_default_sort(self) -> None:
        config = SpriterConfig.from_mapping({})
        self.assertIs(config.shape.sort, default_sort)
        self.assertEqual(default_sort(_Named("a"), _Named("b")), -1)
        self.assertEqual(default_sort(_Named("b"), _Named("a")), 1)
        self.assertEqual(default_sort(_Named("a"), _Named("a")), 0)

    def test_custom_sort_kept(self) -> None:
        def reverse(a, b):
            return default_sort(b, a)

        self.assertIs(SpriterConfig.from_mapping({"shape": {"sort": reverse}}).shape.sort, reverse)

    def test_variables_copied(self) -> None:
        variables = {"title": "Icons"}
        config = SpriterConfig.from_mapping({"variables": variables})
        variables["title"] = "changed"
        self.assertEqual(config.variables["title"], "Icons")


class LoggerTests(unittest.TestCase):
    def test_silent_by_default(self) -> None:
        log = resolve_logger(None)
        self.assertFalse(log.isEnabledFor(logging.CRITICAL))
        self.assertTrue(all(isinstance(h, logging.NullHandler) for h in log.handlers))

    def test_levels(self) -> None:
        self.assertEqual(resolve_logger("debug").level, logging.DEBUG)
        self.assertEqual(resolve_logger("verbose").level, VERBOSE)
        self.assertEqual(resolve_logger("info").level, logging.INFO)
        self.assertEqual(resolve_logger(True).level, logging.INFO)
        self.assertEqual(resolve_logger("shouty").level, logging.INFO)

    def test_existing_logger_passes_through(self) -> None:
        existing = logging.getLogger("svgsprite.tests")
        self.assertIs(resolve_logger(existing), existing)
        self.assertIs(SpriterConfig.from_mapping({"log": existing}).log, existing)


if __name__ == "__main__":
    unittest.main()
