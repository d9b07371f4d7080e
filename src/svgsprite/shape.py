"""Shape documents: ingestion, dimensions and per-shape rewriting."""
from __future__ import annotations

import posixpath
import re
import xml.etree.ElementTree as ET
from copy import deepcopy
from fnmatch import fnmatchcase
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .config import Padding
from .errors import ShapeError
from .markup import (
    SVG_NS,
    fmt_viewbox,
    is_element,
    local_name,
    namespace_of,
    parse_length,
    parse_viewbox,
    q,
    qual,
    serialize,
)
from .metadata import AlignTable
from .namespace import namespace_classnames, namespace_ids

ViewBox = Tuple[float, float, float, float]

# Root attributes that describe the standalone document rather than its content.
_DOCUMENT_ATTRS = frozenset({"width", "height", "x", "y", "viewBox", "id", "version", "baseProfile"})


def shape_base(name: str) -> str:
    """Normalize a relative shape path: ``./icons\\arrow.svg`` -> ``icons/arrow``."""
    base = posixpath.normpath(str(name).replace("\\", "/")).lstrip("/")
    if base.lower().endswith(".svg"):
        base = base[: -len(".svg")]
    return base


def shape_id(base: str, separator: str = "--", whitespace: str = "_") -> str:
    return re.sub(r"\s+", whitespace, base).replace("/", separator)


def _lift_into_svg_namespace(root: ET.Element) -> None:
    for node in root.iter():
        if is_element(node) and namespace_of(node.tag) is None:
            node.tag = q(node.tag)


class Shape:
    """One input SVG document plus the state derived while building a sprite."""

    def __init__(
        self,
        name: str,
        root: ET.Element,
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
        id_separator: str = "--",
        id_whitespace: str = "_",
    ) -> None:
        self.name = name
        self.base = shape_base(name)
        self.id = shape_id(self.base, id_separator, id_whitespace)
        self.root = root
        self.title: Optional[str] = None
        self.description: Optional[str] = None
        self.namespace: Optional[str] = None
        self.align: List[Tuple[str, float]] = []
        self._explicit_size = (width, height)
        self.width, self.height, self.viewbox = self._measure(width, height)

    @classmethod
    def from_source(
        cls,
        name: str,
        source: Union[str, bytes],
        *,
        width: Optional[float] = None,
        height: Optional[float] = None,
        id_separator: str = "--",
        id_whitespace: str = "_",
    ) -> "Shape":
        base_id = shape_id(shape_base(name), id_separator, id_whitespace)
        try:
            root = ET.fromstring(source)
        except ET.ParseError as exc:
            line, column = getattr(exc, "position", (None, None))
            location = f" at line {line}, column {column}" if line is not None else ""
            raise ShapeError(f"failed to parse SVG document{location}", shape=base_id) from exc
        if local_name(root.tag) != "svg" or namespace_of(root.tag) not in (None, SVG_NS):
            raise ShapeError("document root is not an <svg> element", shape=base_id)
        if namespace_of(root.tag) is None:
            _lift_into_svg_namespace(root)
        return cls(
            name,
            root,
            width=width,
            height=height,
            id_separator=id_separator,
            id_whitespace=id_whitespace,
        )

    def copy(self) -> "Shape":
        clone = Shape.__new__(Shape)
        clone.__dict__.update(self.__dict__)
        clone.root = deepcopy(self.root)
        clone.align = list(self.align)
        return clone

    def _measure(
        self, width: Optional[float], height: Optional[float]
    ) -> Tuple[float, float, ViewBox]:
        viewbox = parse_viewbox(self.root.get("viewBox"))
        if width is None:
            width = parse_length(self.root.get("width"), None)
        if height is None:
            height = parse_length(self.root.get("height"), None)
        if width is None and viewbox is not None:
            width = viewbox[2]
        if height is None and viewbox is not None:
            height = viewbox[3]
        if width is None or height is None or width <= 0 or height <= 0:
            raise ShapeError(
                "cannot determine dimensions; provide width/height or a viewBox", shape=self.id
            )
        if viewbox is None:
            viewbox = (0.0, 0.0, float(width), float(height))
        return float(width), float(height), viewbox

    def refresh_dimensions(self) -> None:
        """Re-read dimensions after a transform, keeping sizes the ingestion supplied."""
        width, height = self._explicit_size
        try:
            self.width, self.height, self.viewbox = self._measure(width, height)
        except ShapeError:
            self.root.set("viewBox", fmt_viewbox(self.viewbox))

    def apply_namespace(
        self, token: str, *, ids: bool, classnames: bool, reserved: Iterable[str] = ()
    ) -> None:
        self.namespace = token
        if ids:
            namespace_ids(self.root, token, reserved)
        if classnames:
            namespace_classnames(self.root, token)

    def apply_meta(self, meta: Dict[str, Dict[str, Optional[str]]]) -> None:
        entry = meta.get(self.base)
        if not entry:
            return
        self.title = entry.get("title") or None
        self.description = entry.get("description") or None
        labels = []
        for local, text in (("desc", self.description), ("title", self.title)):
            if not text:
                continue
            for existing in [c for c in self.root if is_element(c) and c.tag == q(local)]:
                self.root.remove(existing)
            element = ET.Element(q(local), {"id": f"{self.id}-{local}"})
            element.text = str(text)
            self.root.insert(0, element)
            labels.insert(0, element.get("id"))
        if labels:
            self.root.set("aria-labelledby", " ".join(labels))

    def resolve_alignment(self, table: AlignTable) -> None:
        """Collect positioning templates; specific patterns override the wildcard."""
        resolved: Dict[str, float] = dict(table.get("*", {}))
        for pattern, templates in table.items():
            if pattern == "*":
                continue
            if fnmatchcase(self.base, pattern) or fnmatchcase(self.id, pattern):
                resolved.update(templates)
        if not resolved:
            resolved = {"%s": 0.0}
        self.align = list(resolved.items())

    def padded_viewbox(self, padding: Padding) -> ViewBox:
        vx, vy, vw, vh = self.viewbox
        sx = vw / self.width
        sy = vh / self.height
        return (
            vx - padding.left * sx,
            vy - padding.top * sy,
            vw + padding.horizontal * sx,
            vh + padding.vertical * sy,
        )

    def outer_size(self, padding: Padding) -> Tuple[float, float]:
        return self.width + padding.horizontal, self.height + padding.vertical

    def content(self) -> List[ET.Element]:
        return [deepcopy(child) for child in self.root if is_element(child)]

    def presentation_attributes(self) -> Dict[str, str]:
        attrs = {}
        for key, value in self.root.attrib.items():
            if key in _DOCUMENT_ATTRS or key == qual("http://www.w3.org/XML/1998/namespace", "space"):
                continue
            attrs[key] = value
        return attrs

    def to_element(self, tag: str = "svg", attrs: Optional[Dict[str, str]] = None) -> ET.Element:
        element = ET.Element(q(tag), self.presentation_attributes())
        for key, value in (attrs or {}).items():
            if value is not None:
                element.set(key, value)
        element.extend(self.content())
        return element

    def to_string(self) -> str:
        return serialize(deepcopy(self.root))

    def __repr__(self) -> str:
        return f"Shape(id={self.id!r}, width={self.width!r}, height={self.height!r})"
