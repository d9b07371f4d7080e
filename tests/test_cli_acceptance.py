from __future__ import annotations

import io
import json
import sys
import tempfile
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path
from unittest import mock

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from svgsprite import cli


def _square(size: int) -> str:
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}">'
        f'<rect width="{size}" height="{size}"/></svg>'
    )


class CLIAcceptanceTests(unittest.TestCase):
    def run_cli(self, argv: list[str]) -> tuple[int, str, str]:
        stdout = io.StringIO()
        stderr = io.StringIO()
        with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr):
            code = cli.main(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    def make_icons(self, td: str, **extra: str) -> Path:
        icons = Path(td) / "icons"
        icons.mkdir()
        (icons / "a.svg").write_text(_square(10), encoding="utf-8")
        (icons / "b.svg").write_text(_square(20), encoding="utf-8")
        for name, text in extra.items():
            (icons / f"{name}.svg").write_text(text, encoding="utf-8")
        return icons

    def test_requires_subcommand(self) -> None:
        code, _out, err = self.run_cli([])
        self.assertEqual(code, 2)
        self.assertIn("E_ARGS", err)
        self.assertIn("subcommand", err)

    def test_unknown_mode_is_usage_error(self) -> None:
        code, _out, err = self.run_cli(["compile", "x.svg", "--mode", "sprite"])
        self.assertEqual(code, 2)
        self.assertIn("error[E_ARGS]", err)

    def test_compile_writes_css_sprite(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            icons = self.make_icons(td)
            out = Path(td) / "out"
            code, stdout, err = self.run_cli(
                [
                    "compile",
                    str(icons / "*.svg"),
                    "--cwd",
                    str(icons),
                    "--dest",
                    str(out),
                    "--mode",
                    "css",
                ]
            )
            self.assertEqual(code, 0, err)
            self.assertEqual(err, "")
            self.assertIn("Wrote", stdout)

            sprite = out / "css" / "svg" / "sprite.css.svg"
            stylesheet = out / "css" / "sprite.css"
            self.assertTrue(sprite.exists())
            self.assertTrue(stylesheet.exists())
            root = ET.fromstring(sprite.read_text(encoding="utf-8"))
            self.assertEqual(root.get("viewBox"), "0 0 30 20")
            css = stylesheet.read_text(encoding="utf-8")
            self.assertIn(".svg-a {", css)
            self.assertIn(".svg-b {", css)

    def test_config_file_selects_modes(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            icons = self.make_icons(td)
            out = Path(td) / "out"
            config = Path(td) / "sprite.yaml"
            config.write_text(
                "mode:\n"
                "  css:\n"
                "    layout: vertical\n"
                "  symbol: true\n"
                "svg:\n"
                "  xmlDeclaration: false\n",
                encoding="utf-8",
            )
            code, _stdout, err = self.run_cli(
                [
                    "compile",
                    str(icons / "*.svg"),
                    "--cwd",
                    str(icons),
                    "-d",
                    str(out),
                    "-c",
                    str(config),
                ]
            )
            self.assertEqual(code, 0, err)
            css_sprite = (out / "css" / "svg" / "sprite.css.svg").read_text(encoding="utf-8")
            self.assertEqual(ET.fromstring(css_sprite).get("viewBox"), "0 0 20 30")
            symbol_sprite = (out / "symbol" / "svg" / "sprite.symbol.svg").read_text(encoding="utf-8")
            self.assertFalse(symbol_sprite.startswith("<?xml"))
            self.assertIn("<symbol", symbol_sprite)

    def test_missing_mode_is_usage_error(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            icons = self.make_icons(td)
            code, _out, err = self.run_cli(["compile", str(icons / "a.svg"), "--dest", td])
        self.assertEqual(code, 2)
        self.assertIn("no sprite mode configured", err)
        self.assertIn("hint:", err)

    def test_unreadable_config_reports_json(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            config = Path(td) / "bad.yaml"
            config.write_text("mode: [css\n", encoding="utf-8")
            code, _out, err = self.run_cli(
                ["--error-format", "json", "compile", "x.svg", "--config", str(config)]
            )
        self.assertEqual(code, 2)
        payload = json.loads(err.strip())
        self.assertFalse(payload["ok"])
        self.assertEqual(payload["code"], "E_CONFIG")

    def test_glob_without_matches(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            code, _out, err = self.run_cli(
                ["compile", str(Path(td) / "*.svg"), "--dest", td, "--mode", "css"]
            )
        self.assertEqual(code, 2)
        self.assertIn("E_IO_READ", err)

    def test_broken_shape_gives_partial_result(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            icons = self.make_icons(td, broken="<svg><g></svg>")
            out = Path(td) / "out"
            code, stdout, err = self.run_cli(
                [
                    "compile",
                    str(icons / "*.svg"),
                    "--cwd",
                    str(icons),
                    "--dest",
                    str(out),
                    "--mode",
                    "css",
                ]
            )
            self.assertEqual(code, 3)
            self.assertIn("error[E_SHAPE]", err)
            self.assertIn("[shape broken]", err)
            self.assertIn("Wrote", stdout)
            self.assertTrue((out / "css" / "sprite.css").exists())


if __name__ == "__main__":
    unittest.main()
