"""Command-line interface for compiling SVG files into sprites."""
from __future__ import annotations

import argparse
import glob
import json
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from .config import SPRITE_MODES
from .errors import SpriteError
from .spriter import SVGSpriter


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    shape: Optional[str] = None
    mode: Optional[str] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="svgsprite",
        description="Compile SVG files into css, view, defs, symbol and stack sprites.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    compile_parser = subparsers.add_parser("compile", help="Compile SVG files into sprites")
    compile_parser.add_argument("inputs", nargs="+", metavar="GLOB", help="Input .svg files or globs")
    compile_parser.add_argument("-d", "--dest", help="Output root directory")
    compile_parser.add_argument("-c", "--config", help="YAML or JSON configuration file")
    compile_parser.add_argument("--cwd", help="Base directory shape names are relative to")
    compile_parser.add_argument(
        "-m",
        "--mode",
        action="append",
        choices=SPRITE_MODES,
        help="Enable a sprite mode with default options (repeatable)",
    )
    compile_parser.add_argument("--log", choices=["info", "verbose", "debug"], help="Log level")

    return parser


def _load_config(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        raise CliError(
            "E_IO_READ",
            f"config file not found: {config_path}",
            exit_code=2,
            file=str(config_path),
        )
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CliError(
            "E_IO_READ",
            f"failed to read config file: {config_path}",
            hint=str(exc),
            exit_code=2,
            file=str(config_path),
        )
    except yaml.YAMLError as exc:
        raise CliError(
            "E_CONFIG",
            f"failed to parse config file: {config_path}",
            hint=str(exc),
            exit_code=2,
            file=str(config_path),
        )
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise CliError(
            "E_CONFIG",
            f"config file must contain a mapping: {config_path}",
            exit_code=2,
            file=str(config_path),
        )
    return data


def _resolve_inputs(patterns: List[str]) -> List[Path]:
    paths: List[Path] = []
    for pattern in patterns:
        matches = [Path(match) for match in glob.glob(pattern, recursive=True)]
        if not matches:
            raise CliError(
                "E_IO_READ",
                f"input glob matched no files: {pattern}",
                hint="Provide at least one existing .svg file.",
                exit_code=2,
            )
        paths.extend(sorted(m for m in matches if m.is_file()))
    return paths


def _read_shape(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_READ",
            f"failed to read input file: {path}",
            hint=str(exc),
            exit_code=2,
            file=str(path),
        )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, SpriteError):
        return CliError(
            exc.code,
            exc.message,
            exit_code=2 if exc.code == "E_META" else 1,
            shape=exc.shape,
            mode=exc.mode,
        )
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "shape": err.shape,
            "mode": err.mode,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    context = "".join(
        f" [{label} {value}]" for label, value in (("mode", err.mode), ("shape", err.shape)) if value
    )
    sys.stderr.write(f"error[{err.code}]: {err.message}{context}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _handle_compile(args: argparse.Namespace) -> int:
    config = _load_config(args.config)
    if args.dest:
        config["dest"] = args.dest
    if args.log:
        config["log"] = args.log
    if args.mode:
        modes = dict(config.get("mode") or {})
        for mode in args.mode:
            modes.setdefault(mode, True)
        config["mode"] = modes
    if not config.get("mode"):
        raise CliError(
            "E_ARGS",
            "no sprite mode configured",
            hint=f"Use --mode with one of: {', '.join(SPRITE_MODES)}.",
            exit_code=2,
        )

    base = Path(args.cwd) if args.cwd else Path.cwd()
    spriter = SVGSpriter(config)
    failures: List[CliError] = []
    for path in _resolve_inputs(args.inputs):
        name = os.path.relpath(path.resolve(), base.resolve())
        try:
            spriter.add(name, _read_shape(path))
        except SpriteError as exc:
            failures.append(_error_from_exception(exc))

    result = spriter.compile()
    for artifact in result:
        try:
            artifact.write()
        except OSError as exc:
            raise CliError(
                "E_IO_WRITE",
                f"failed to write output file: {artifact.dest_path}",
                hint=str(exc),
                exit_code=2,
                file=str(artifact.dest_path),
            )
        print(f"Wrote {artifact.dest_path}")

    failures.extend(_error_from_exception(err) for err in result.errors)
    for err in failures:
        _emit_error(err, error_format=args.error_format)
    if not failures:
        return 0
    return 3 if any(result.artifacts.values()) else 1


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint="Use: svgsprite compile FILES... --mode css",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("SVGSPRITE_DEBUG") == "1"
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "compile":
            return _handle_compile(args)

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint="Use: svgsprite compile FILES... --mode css",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint="Use: svgsprite compile FILES... --mode css",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
