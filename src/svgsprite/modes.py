"""Sprite composition for the five output modes."""
from __future__ import annotations

import hashlib
import logging
import posixpath
import xml.etree.ElementTree as ET
from copy import deepcopy
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Type

from jinja2 import TemplateError

from .config import (
    DefsModeOptions,
    ModeOptions,
    PositionedModeOptions,
    RenderTarget,
    SpriterConfig,
    StackModeOptions,
    SymbolModeOptions,
)
from .errors import RenderError, ShapeError, SpriteError
from .layout import Placement, SpriteLayout, compute_layout
from .logging_config import verbose
from .markup import fmt, fmt_viewbox, q, serialize, with_declarations
from .namespace import namespace_ids
from .resources import load_template, render_template
from .result import Artifact
from .shape import Shape

STACK_STYLE = ":root>svg{display:none}:root>svg:target{display:inline}"


def _px(value: float, precision: int) -> str:
    text = fmt(value, precision)
    return text if text == "0" else f"{text}px"


def _bust(path: str, contents: str) -> str:
    digest = hashlib.sha1(contents.encode("utf-8")).hexdigest()[:8]
    stem, ext = posixpath.splitext(path)
    return f"{stem}-{digest}{ext}"


def _relative_url(target: str, source: str) -> str:
    return posixpath.relpath(target, posixpath.dirname(source) or ".")


def _element_ids(element: ET.Element) -> Set[str]:
    return {node.get("id") for node in element.iter() if node.get("id")}


class ModeRenderer:
    """Base renderer: one instance composes the output of one configured mode."""

    mode = ""
    stylesheet_template = ""

    def __init__(self, config: SpriterConfig, options: ModeOptions, log: logging.Logger) -> None:
        self.config = config
        self.options = options
        self.svg = config.svg
        self.precision = config.svg.precision
        self.log = log
        self.errors: List[SpriteError] = []

    # Shape elements -------------------------------------------------------

    def shape_element(self, shape: Shape) -> ET.Element:
        raise NotImplementedError

    def build_elements(self, shapes: Sequence[Shape]) -> List[Tuple[Shape, ET.Element]]:
        built = []
        for shape in shapes:
            try:
                built.append((shape, self.shape_element(shape)))
            except Exception as exc:
                self.errors.append(
                    ShapeError(
                        f"failed to render shape: {exc}", shape=shape.id, mode=self.options.key
                    )
                )
                self.log.error(
                    'Failed to render shape "%s" in mode "%s": %s', shape.id, self.options.key, exc
                )
        return built

    def rendered_shapes(self, shapes: Sequence[Shape]) -> List[Shape]:
        failed = {err.shape for err in self.errors}
        return [shape for shape in shapes if shape.id not in failed]

    # Documents ------------------------------------------------------------

    def sprite_root(
        self, width: Optional[float] = None, height: Optional[float] = None
    ) -> ET.Element:
        root = ET.Element(q("svg"))
        if width is not None and height is not None:
            root.set("viewBox", fmt_viewbox((0, 0, width, height), self.precision))
            if self.svg.dimension_attributes:
                root.set("width", fmt(width, self.precision))
                root.set("height", fmt(height, self.precision))
        for key, value in self.svg.root_attributes.items():
            root.set(key, value)
        return root

    def finalize(self, root: ET.Element, *, declarations: bool = True) -> str:
        try:
            body = serialize(root)
        except (TypeError, ValueError) as exc:
            raise RenderError(f"failed to serialize sprite: {exc}", mode=self.options.key) from exc
        text = body
        if declarations:
            text = with_declarations(body, self.svg.xml_declaration, self.svg.doctype_declaration)
        for transform in self.svg.transform:
            try:
                text = transform(text)
            except Exception as exc:
                raise RenderError(
                    f"sprite post-processing failed: {exc}", mode=self.options.key
                ) from exc
            if not isinstance(text, str):
                raise RenderError(
                    "sprite post-processing must return the sprite as text", mode=self.options.key
                )
        try:
            ET.fromstring(text)
        except ET.ParseError as exc:
            raise RenderError(
                f"composed sprite is not well-formed: {exc}", mode=self.options.key
            ) from exc
        return text

    def render_text(self, template: str, context: Dict[str, Any]) -> str:
        try:
            return render_template(template, context, self.config.variables)
        except TemplateError as exc:
            raise RenderError(f"failed to render template: {exc}", mode=self.options.key) from exc

    def artifact(self, path: str, contents: str) -> Artifact:
        return Artifact(path=path, dest_path=self.config.dest / path, contents=contents)

    def sprite_artifact(self, contents: str) -> Artifact:
        path = posixpath.join(self.options.dest, self.options.sprite)
        if self.options.bust:
            path = _bust(path, contents)
        return self.artifact(path, contents)

    def stylesheets(
        self,
        targets: Sequence[RenderTarget],
        sprite_path: str,
        shapes: List[Dict[str, Any]],
    ) -> Dict[str, Artifact]:
        artifacts = {}
        for target in targets:
            path = posixpath.join(self.options.dest, target.dest)
            contents = self.render_text(
                target.template or load_template(self.stylesheet_template),
                {
                    "mode": self.options.mode,
                    "key": self.options.key,
                    "format": target.format,
                    "sprite": _relative_url(sprite_path, path),
                    "shapes": shapes,
                },
            )
            artifacts[target.format] = self.artifact(path, contents)
        return artifacts

    def dimension_fields(self, selector: str, width: float, height: float) -> Dict[str, Any]:
        """Size entries of one stylesheet rule for the configured dimension style."""
        dimensions = getattr(self.options, "dimensions", None)
        if dimensions is None:
            dimensions = self.svg.dimension_attributes
        fields = {
            "width": _px(width, self.precision),
            "height": _px(height, self.precision),
            "dimensions": None,
            "dimensions_selector": None,
        }
        if isinstance(dimensions, str) and dimensions:
            fields["dimensions"] = "separate"
            fields["dimensions_selector"] = f"{selector}{dimensions}"
        elif dimensions is True:
            fields["dimensions"] = "inline"
        return fields

    def render(self, shapes: Sequence[Shape]) -> Dict[str, Artifact]:
        raise NotImplementedError


class PositionedRenderer(ModeRenderer):
    """Shared logic of the modes that address shapes by pixel position."""

    options: PositionedModeOptions
    stylesheet_template = "positioned.css"

    def shape_element(self, shape: Shape) -> ET.Element:
        width, height = shape.outer_size(self.config.shape.padding)
        return shape.to_element(
            "svg",
            {
                "width": fmt(width, self.precision),
                "height": fmt(height, self.precision),
                "viewBox": fmt_viewbox(shape.padded_viewbox(self.config.shape.padding)),
            },
        )

    def place(self, shapes: Sequence[Shape]) -> Tuple[SpriteLayout, ET.Element]:
        built = self.build_elements(shapes)
        elements = {shape.id: element for shape, element in built}
        layout = compute_layout(
            [shape for shape, _ in built],
            self.config.shape.padding,
            layout=self.options.layout,
            precision=self.precision,
        )
        root = self.sprite_root(layout.width, layout.height)
        taken = {shape.id for shape, _ in built}
        copies: Dict[str, int] = {}
        for placement in layout.placements:
            shape = placement.shape
            element = elements[shape.id]
            copies[shape.id] = copies.get(shape.id, 0) + 1
            first = copies[shape.id] == 1
            if not first:
                # Each further copy gets its own internal ids.
                element = deepcopy(element)
                element.attrib.pop("id", None)
                namespace_ids(
                    element, f"{shape.namespace or shape.id}{copies[shape.id]}", reserved=taken
                )
            self.decorate(root, placement, element, first=first)
            taken |= _element_ids(element)
            element.set("x", fmt(placement.x, self.precision))
            element.set("y", fmt(placement.y, self.precision))
            root.append(element)
        verbose(self.log, 'Laid out %d shapes for mode "%s"', len(layout.placements), self.options.key)
        return layout, root

    def decorate(self, root: ET.Element, placement: Placement, element: ET.Element, *, first: bool) -> None:
        if first:
            element.set("id", placement.shape.id)

    def stylesheet_shapes(self, layout: SpriteLayout) -> List[Dict[str, Any]]:
        entries = []
        for placement in layout.placements:
            position = f"{_px(-placement.x, self.precision)} {_px(-placement.y, self.precision)}"
            for template in placement.templates:
                selector = template.replace("%s", self.options.prefix.replace("%s", placement.shape.id))
                entry = {
                    "id": placement.shape.id,
                    "selector": selector,
                    "template": template,
                    "position": position,
                    "x": fmt(placement.x, self.precision),
                    "y": fmt(placement.y, self.precision),
                }
                entry.update(self.dimension_fields(selector, placement.width, placement.height))
                entries.append(entry)
        return entries

    def render(self, shapes: Sequence[Shape]) -> Dict[str, Artifact]:
        layout, root = self.place(shapes)
        sprite = self.sprite_artifact(self.finalize(root))
        artifacts = {"sprite": sprite}
        artifacts.update(
            self.stylesheets(self.options.render, sprite.path, self.stylesheet_shapes(layout))
        )
        return artifacts


class CssRenderer(PositionedRenderer):
    mode = "css"


class ViewRenderer(PositionedRenderer):
    mode = "view"

    def decorate(self, root: ET.Element, placement: Placement, element: ET.Element, *, first: bool) -> None:
        box = (placement.x, placement.y, placement.width, placement.height)
        for template in placement.templates:
            view_id = template.replace("%s", placement.shape.id)
            root.append(
                ET.Element(q("view"), {"id": view_id, "viewBox": fmt_viewbox(box, self.precision)})
            )


class DefsRenderer(ModeRenderer):
    mode = "defs"
    options: DefsModeOptions
    container = "defs"
    shape_tag = "svg"

    def shape_element(self, shape: Shape) -> ET.Element:
        attrs = {"id": shape.id, "viewBox": fmt_viewbox(shape.viewbox)}
        if self.shape_tag == "svg" and self.svg.dimension_attributes:
            attrs["width"] = fmt(shape.width, self.precision)
            attrs["height"] = fmt(shape.height, self.precision)
        return shape.to_element(self.shape_tag, attrs)

    def compose(self, shapes: Sequence[Shape]) -> ET.Element:
        root = self.sprite_root()
        parent = ET.SubElement(root, q(self.container)) if self.container else root
        for _shape, element in self.build_elements(shapes):
            parent.append(element)
        return root

    def render(self, shapes: Sequence[Shape]) -> Dict[str, Artifact]:
        root = self.compose(shapes)
        sprite = self.sprite_artifact(self.finalize(root, declarations=self.declarations))
        artifacts = {"sprite": sprite}
        if self.options.example is not None:
            artifacts["example"] = self.example(self.options.example, root, sprite, shapes)
        return artifacts

    @property
    def declarations(self) -> bool:
        return True

    def example(
        self, target: RenderTarget, root: ET.Element, sprite: Artifact, shapes: Sequence[Shape]
    ) -> Artifact:
        path = posixpath.join(self.options.dest, target.dest)
        inline = deepcopy(root)
        inline.set("style", "position:absolute;width:0;height:0;overflow:hidden")
        inline.set("aria-hidden", "true")
        contents = self.render_text(
            target.template or load_template("example.html"),
            {
                "mode": self.options.mode,
                "key": self.options.key,
                "title": self.config.variables.get("title") or f"{self.options.key} sprite",
                "sprite": _relative_url(sprite.path, path),
                "inline": serialize(inline),
                "shapes": [
                    {
                        "id": shape.id,
                        "base": shape.base,
                        "title": shape.title,
                        "description": shape.description,
                        "width": fmt(shape.width, self.precision),
                        "height": fmt(shape.height, self.precision),
                        "viewbox": fmt_viewbox(shape.viewbox),
                    }
                    for shape in self.rendered_shapes(shapes)
                ],
            },
        )
        return self.artifact(path, contents)


class SymbolRenderer(DefsRenderer):
    mode = "symbol"
    options: SymbolModeOptions
    container = ""
    shape_tag = "symbol"

    @property
    def declarations(self) -> bool:
        return not self.options.inline

    def compose(self, shapes: Sequence[Shape]) -> ET.Element:
        root = super().compose(shapes)
        if self.options.inline:
            root.set("style", "position:absolute;width:0;height:0")
            root.set("aria-hidden", "true")
        return root


class StackRenderer(ModeRenderer):
    mode = "stack"
    options: StackModeOptions
    stylesheet_template = "stack.css"

    def shape_element(self, shape: Shape) -> ET.Element:
        attrs = {"id": shape.id, "viewBox": fmt_viewbox(shape.viewbox)}
        if self.svg.dimension_attributes:
            attrs["width"] = fmt(shape.width, self.precision)
            attrs["height"] = fmt(shape.height, self.precision)
        return shape.to_element("svg", attrs)

    def stylesheet_shapes(self, shapes: Sequence[Shape]) -> List[Dict[str, Any]]:
        entries = []
        for shape in self.rendered_shapes(shapes):
            selector = self.options.prefix.replace("%s", shape.id)
            entry = {"id": shape.id, "selector": selector}
            entry.update(self.dimension_fields(selector, shape.width, shape.height))
            entries.append(entry)
        return entries

    def render(self, shapes: Sequence[Shape]) -> Dict[str, Artifact]:
        root = self.sprite_root()
        style = ET.SubElement(root, q("style"))
        style.text = STACK_STYLE
        for _shape, element in self.build_elements(shapes):
            root.append(element)
        sprite = self.sprite_artifact(self.finalize(root))
        artifacts = {"sprite": sprite}
        artifacts.update(
            self.stylesheets(self.options.render, sprite.path, self.stylesheet_shapes(shapes))
        )
        return artifacts


RENDERERS: Dict[str, Type[ModeRenderer]] = {
    "css": CssRenderer,
    "view": ViewRenderer,
    "defs": DefsRenderer,
    "symbol": SymbolRenderer,
    "stack": StackRenderer,
}


def renderer_for(config: SpriterConfig, options: ModeOptions, log: logging.Logger) -> ModeRenderer:
    return RENDERERS[options.mode](config, options, log)
