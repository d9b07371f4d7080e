"""Resolution of raw sprite configuration into immutable settings."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, List, Mapping, Optional, Tuple, Union

from .logging_config import resolve_logger, verbose
from .metadata import AlignTable, MetaTable, load_alignment, load_meta
from .transforms import TransformStep, build_pipeline

SPRITE_MODES = ("css", "view", "defs", "symbol", "stack")
LAYOUTS = ("horizontal", "vertical", "diagonal")
STYLESHEET_FORMATS = {
    "css": "sprite.css",
    "scss": "_sprite.scss",
    "less": "_sprite.less",
}
DEFAULT_MAX_WORKERS = 4

SVG_DEFAULTS: Dict[str, Any] = {
    "doctypeDeclaration": True,
    "xmlDeclaration": True,
    "namespaceIDs": True,
    "namespaceIDPrefix": "",
    "namespaceClassnames": True,
    "dimensionAttributes": True,
    "rootAttributes": {},
    "precision": -1,
}


def default_sort(shape1: Any, shape2: Any) -> int:
    if shape1.id == shape2.id:
        return 0
    return 1 if shape1.id > shape2.id else -1


@dataclass(frozen=True)
class Padding:
    top: int = 0
    right: int = 0
    bottom: int = 0
    left: int = 0

    @property
    def horizontal(self) -> int:
        return self.left + self.right

    @property
    def vertical(self) -> int:
        return self.top + self.bottom


def _spacing_value(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        return max(0, int(float(value or 0)))
    except (TypeError, ValueError):
        return 0


def expand_spacing(value: Any) -> Padding:
    """Expand CSS-style 1/2/3/4 value shorthand into a full ``Padding``."""
    if not isinstance(value, (list, tuple)):
        spacing = _spacing_value(value)
        return Padding(spacing, spacing, spacing, spacing)

    values = [_spacing_value(v) for v in value]
    if not values:
        return Padding()
    if len(values) == 1:
        return Padding(values[0], values[0], values[0], values[0])
    if len(values) == 2:
        return Padding(values[0], values[1], values[0], values[1])
    if len(values) == 3:
        return Padding(values[0], values[1], values[2], values[1])
    return Padding(values[0], values[1], values[2], values[3])


@dataclass(frozen=True)
class ShapeSettings:
    dest: Optional[Path]
    padding: Padding
    sort: Callable[[Any, Any], int]
    transform: Tuple[TransformStep, ...]
    meta: MetaTable
    align: AlignTable
    id_separator: str = "--"
    id_whitespace: str = "_"
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SVGSettings:
    doctype_declaration: Union[bool, str] = True
    xml_declaration: Union[bool, str] = True
    namespace_ids: bool = True
    namespace_id_prefix: str = ""
    namespace_classnames: bool = True
    dimension_attributes: bool = True
    root_attributes: Mapping[str, str] = field(default_factory=dict)
    precision: int = -1
    transform: Tuple[Callable[[str], str], ...] = ()


@dataclass(frozen=True)
class RenderTarget:
    """One generated companion file (stylesheet or example page)."""

    format: str
    dest: str
    template: Optional[str] = None


@dataclass(frozen=True)
class ModeOptions:
    key: str
    mode: str
    dest: str
    sprite: str
    bust: bool = False
    raw: Mapping[str, Any] = field(default_factory=dict)

    positioned: ClassVar[bool] = False

    @classmethod
    def from_mapping(cls, key: str, options: Mapping[str, Any]) -> "ModeOptions":
        mode = options["mode"]
        base = dict(
            key=key,
            mode=mode,
            dest=str(options.get("dest") or mode),
            sprite=str(options.get("sprite") or f"svg/sprite.{mode}.svg"),
            bust=bool(options.get("bust", False)),
            raw=dict(options),
        )
        base.update(cls._extra_fields(options))
        return cls(**base)

    @classmethod
    def _extra_fields(cls, options: Mapping[str, Any]) -> Dict[str, Any]:
        return {}


def _template(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _render_targets(value: Any, defaults: Tuple[str, ...]) -> Tuple[RenderTarget, ...]:
    if not isinstance(value, Mapping):
        value = {fmt: True for fmt in defaults}
    targets: List[RenderTarget] = []
    for fmt, entry in value.items():
        if fmt not in STYLESHEET_FORMATS or not entry:
            continue
        if isinstance(entry, Mapping):
            targets.append(
                RenderTarget(
                    format=fmt,
                    dest=str(entry.get("dest") or STYLESHEET_FORMATS[fmt]),
                    template=_template(entry.get("template")),
                )
            )
        else:
            targets.append(RenderTarget(format=fmt, dest=STYLESHEET_FORMATS[fmt]))
    return tuple(targets)


def _example_target(value: Any, mode: str) -> Optional[RenderTarget]:
    if not value:
        return None
    default_dest = f"sprite.{mode}.html"
    if isinstance(value, Mapping):
        return RenderTarget(
            format="html",
            dest=str(value.get("dest") or default_dest),
            template=_template(value.get("template")),
        )
    return RenderTarget(format="html", dest=default_dest)


@dataclass(frozen=True)
class PositionedModeOptions(ModeOptions):
    layout: str = "horizontal"
    prefix: str = ".svg-%s"
    dimensions: Union[bool, str, None] = None
    render: Tuple[RenderTarget, ...] = ()

    positioned: ClassVar[bool] = True
    default_render: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def _extra_fields(cls, options: Mapping[str, Any]) -> Dict[str, Any]:
        layout = options.get("layout")
        dimensions = options.get("dimensions")
        if not isinstance(dimensions, (bool, str)):
            dimensions = None
        return dict(
            layout=layout if layout in LAYOUTS else "horizontal",
            prefix=str(options.get("prefix") or ".svg-%s"),
            dimensions=dimensions,
            render=_render_targets(options.get("render"), cls.default_render),
        )


@dataclass(frozen=True)
class CssModeOptions(PositionedModeOptions):
    default_render = ("css",)


@dataclass(frozen=True)
class ViewModeOptions(PositionedModeOptions):
    pass


@dataclass(frozen=True)
class DefsModeOptions(ModeOptions):
    example: Optional[RenderTarget] = None

    @classmethod
    def _extra_fields(cls, options: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(example=_example_target(options.get("example"), options["mode"]))


@dataclass(frozen=True)
class SymbolModeOptions(DefsModeOptions):
    inline: bool = False

    @classmethod
    def _extra_fields(cls, options: Mapping[str, Any]) -> Dict[str, Any]:
        fields = super()._extra_fields(options)
        fields["inline"] = bool(options.get("inline", False))
        return fields


@dataclass(frozen=True)
class StackModeOptions(ModeOptions):
    prefix: str = ".svg-%s"
    render: Tuple[RenderTarget, ...] = ()

    @classmethod
    def _extra_fields(cls, options: Mapping[str, Any]) -> Dict[str, Any]:
        return dict(
            prefix=str(options.get("prefix") or ".svg-%s"),
            render=_render_targets(options.get("render"), ("css",)),
        )


MODE_OPTION_TYPES = {
    "css": CssModeOptions,
    "view": ViewModeOptions,
    "defs": DefsModeOptions,
    "symbol": SymbolModeOptions,
    "stack": StackModeOptions,
}


def filter_modes(config: Optional[Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Keep only entries that resolve to one of the recognized sprite modes."""
    filtered: Dict[str, Dict[str, Any]] = {}
    if not isinstance(config, Mapping):
        return filtered
    for key, value in config.items():
        if isinstance(value, Mapping):
            options = dict(value)
        elif value is True:
            options = {}
        else:
            continue
        mode = options.get("mode") or key
        if mode in SPRITE_MODES:
            options["mode"] = mode
            filtered[key] = options
    return filtered


def _coerce_precision(value: Any) -> int:
    # Absent, empty and zero all mean unrounded output.
    if not value or isinstance(value, bool):
        return -1
    try:
        return max(-1, int(value))
    except (TypeError, ValueError):
        return -1


def _svg_transforms(value: Any) -> Tuple[Callable[[str], str], ...]:
    if callable(value):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(t for t in value if callable(t))
    return ()


def _declaration(value: Any) -> Union[bool, str]:
    if isinstance(value, str):
        return value if value.strip() else False
    return bool(value)


@dataclass(frozen=True)
class SpriterConfig:
    dest: Path
    log: logging.Logger
    shape: ShapeSettings
    svg: SVGSettings
    mode: Mapping[str, ModeOptions]
    variables: Mapping[str, Any]
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def from_mapping(cls, config: Optional[Mapping[str, Any]] = None) -> "SpriterConfig":
        config = dict(config or {})
        log = resolve_logger(config.get("log"))
        log.debug("Started logging")

        dest = Path(os.path.abspath(str(config.get("dest") or ".")))
        log.debug("Prepared general options")

        shape = _prepare_shape(config.get("shape"), dest, log)
        log.debug("Prepared `shape` options")

        svg = _prepare_svg(config.get("svg"))
        log.debug("Prepared `svg` options")

        mode = {
            key: MODE_OPTION_TYPES[options["mode"]].from_mapping(key, options)
            for key, options in filter_modes(config.get("mode")).items()
        }
        log.debug("Prepared `mode` options")

        variables = dict(config.get("variables") or {})
        log.debug("Prepared `variables` options")

        try:
            max_workers = max(1, int(config.get("max_workers") or DEFAULT_MAX_WORKERS))
        except (TypeError, ValueError):
            max_workers = DEFAULT_MAX_WORKERS

        verbose(log, "Initialized spriter configuration")
        return cls(
            dest=dest,
            log=log,
            shape=shape,
            svg=svg,
            mode=mode,
            variables=variables,
            max_workers=max_workers,
        )


def _prepare_shape(raw: Any, dest: Path, log: logging.Logger) -> ShapeSettings:
    shape = dict(raw) if isinstance(raw, Mapping) else {}

    meta = load_meta(shape.get("meta"), log)
    align = load_alignment(shape.get("align"), log)

    sort = shape.get("sort")
    if not callable(sort):
        sort = default_sort

    shape_dest = str(shape.get("dest") or "").strip()
    resolved_dest = Path(os.path.abspath(dest / shape_dest)) if shape_dest else None

    spacing = shape.get("spacing") or {}
    padding = expand_spacing(spacing.get("padding") if isinstance(spacing, Mapping) else 0)

    id_options = shape.get("id") if isinstance(shape.get("id"), Mapping) else {}
    separator = id_options.get("separator", "--")
    whitespace = id_options.get("whitespace", "_")

    known = {"meta", "align", "sort", "dest", "spacing", "transform", "id"}
    return ShapeSettings(
        dest=resolved_dest,
        padding=padding,
        sort=sort,
        transform=tuple(build_pipeline(shape.get("transform"))),
        meta=meta,
        align=align,
        id_separator=str(separator) if separator is not None else "--",
        id_whitespace=str(whitespace) if whitespace is not None else "_",
        extra={k: v for k, v in shape.items() if k not in known},
    )


def _prepare_svg(raw: Any) -> SVGSettings:
    svg = dict(SVG_DEFAULTS)
    if isinstance(raw, Mapping):
        svg.update(raw)
    root_attributes = svg.get("rootAttributes")
    if not isinstance(root_attributes, Mapping):
        root_attributes = {}
    return SVGSettings(
        doctype_declaration=_declaration(svg.get("doctypeDeclaration")),
        xml_declaration=_declaration(svg.get("xmlDeclaration")),
        namespace_ids=bool(svg.get("namespaceIDs")),
        namespace_id_prefix=str(svg.get("namespaceIDPrefix") or ""),
        namespace_classnames=bool(svg.get("namespaceClassnames")),
        dimension_attributes=bool(svg.get("dimensionAttributes")),
        root_attributes={str(k): str(v) for k, v in root_attributes.items()},
        precision=_coerce_precision(svg.get("precision")),
        transform=_svg_transforms(svg.get("transform")),
    )
