"""Shape transform pipeline: step normalization and the transform variants."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .markup import SVG_NS, is_element, local_name, namespace_of

DEFAULT_SHAPE_TRANSFORM = ("svgo",)

TransformOptions = Union[Mapping[str, Any], Callable[..., Any]]
TransformStep = Tuple[str, TransformOptions]

EDITOR_NAMESPACES = frozenset(
    {
        "http://www.inkscape.org/namespaces/inkscape",
        "http://sodipodi.sourceforge.net/DTD/sodipodi-0.dtd",
        "http://www.bohemiancoding.com/sketch/ns",
        "http://ns.adobe.com/AdobeIllustrator/10.0/",
        "http://ns.adobe.com/AdobeSVGViewerExtensions/3.0/",
        "http://ns.adobe.com/Extensibility/1.0/",
        "http://ns.adobe.com/Graphs/1.0/",
        "http://ns.adobe.com/SaveForWeb/1.0/",
        "http://ns.adobe.com/Variables/1.0/",
        "http://ns.adobe.com/xap/1.0/",
        "http://purl.org/dc/elements/1.1/",
        "http://creativecommons.org/ns#",
        "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
        "http://www.serif.com/",
        "http://www.figma.com/figma/ns",
    }
)
CONTAINER_TAGS = frozenset({"g", "defs", "symbol", "marker", "mask", "pattern", "clipPath", "switch"})
TEXT_TAGS = frozenset({"text", "tspan", "textPath", "title", "desc", "style", "script"})


def build_pipeline(value: Any) -> List[TransformStep]:
    """Normalize configured transforms into ordered ``(name, options)`` pairs."""
    if isinstance(value, (list, tuple)):
        transforms: Sequence[Any] = value
    else:
        transforms = DEFAULT_SHAPE_TRANSFORM

    steps: List[TransformStep] = []
    for entry in transforms:
        if isinstance(entry, str):
            steps.append((entry, {}))
            continue
        if callable(entry):
            steps.append(("custom", entry))
            continue
        if not isinstance(entry, Mapping):
            continue
        for name, options in entry.items():
            if options is True:
                steps.append((str(name), {}))
                break
            if isinstance(options, Mapping) or callable(options):
                steps.append((str(name), options))
                break
    return steps


class ShapeTransform:
    """One pipeline step: takes a shape document and returns the transformed one."""

    name: str

    def apply(self, root: ET.Element) -> ET.Element:
        raise NotImplementedError


@dataclass
class CallableTransform(ShapeTransform):
    """Wraps a user function ``fn(root) -> Element | str | None``."""

    name: str
    func: Callable[[ET.Element], Any]

    def apply(self, root: ET.Element) -> ET.Element:
        result = self.func(root)
        if result is None:
            return root
        if isinstance(result, ET.Element):
            return result
        if isinstance(result, bytes):
            result = result.decode("utf-8")
        if isinstance(result, str):
            return ET.fromstring(result)
        raise TypeError(
            f'transform "{self.name}" returned {type(result).__name__}, expected an SVG document'
        )


@dataclass
class Optimizer(ShapeTransform):
    """Lightweight structural cleanup registered under the ``svgo`` name."""

    options: Dict[str, Any] = field(default_factory=dict)
    name: str = "svgo"

    DEFAULTS = {
        "removeMetadata": True,
        "removeEditorsNSData": True,
        "removeComments": True,
        "removeEmptyContainers": True,
        "removeTitle": False,
        "removeDesc": False,
        "collapseWhitespace": True,
    }

    def enabled(self, key: str) -> bool:
        return bool(self.options.get(key, self.DEFAULTS[key]))

    def apply(self, root: ET.Element) -> ET.Element:
        dropped = set()
        if self.enabled("removeMetadata"):
            dropped.add("metadata")
        if self.enabled("removeTitle"):
            dropped.add("title")
        if self.enabled("removeDesc"):
            dropped.add("desc")
        self._clean(root, dropped)
        return root

    def _clean(self, node: ET.Element, dropped: set) -> None:
        strip_editor = self.enabled("removeEditorsNSData")
        if strip_editor:
            for key in [k for k in node.attrib if namespace_of(k) in EDITOR_NAMESPACES]:
                del node.attrib[key]

        kept: List[ET.Element] = []
        for child in list(node):
            if not is_element(child):
                if not self.enabled("removeComments"):
                    kept.append(child)
                continue
            ns = namespace_of(child.tag)
            if strip_editor and ns in EDITOR_NAMESPACES:
                continue
            if ns == SVG_NS and local_name(child.tag) in dropped:
                continue
            self._clean(child, dropped)
            if self._is_empty_container(child):
                continue
            kept.append(child)
        tail_map = {id(c): c.tail for c in kept}
        node[:] = kept
        for child in kept:
            child.tail = tail_map[id(child)]

        if self.enabled("collapseWhitespace") and local_name(node.tag) not in TEXT_TAGS:
            if node.text is not None and not node.text.strip():
                node.text = None
            for child in node:
                if child.tail is not None and not child.tail.strip():
                    child.tail = None

    def _is_empty_container(self, node: ET.Element) -> bool:
        if not self.enabled("removeEmptyContainers"):
            return False
        if namespace_of(node.tag) != SVG_NS or local_name(node.tag) not in CONTAINER_TAGS:
            return False
        if len(node) or (node.text and node.text.strip()):
            return False
        # Referenced containers (e.g. an empty mask) must survive.
        return node.get("id") is None


def resolve_transform(
    step: TransformStep, log: Optional[logging.Logger] = None
) -> Optional[ShapeTransform]:
    name, options = step
    if callable(options):
        return CallableTransform(name=name, func=options)
    if name == "svgo":
        return Optimizer(options=dict(options))
    if log is not None:
        log.warning('Skipping unknown shape transform "%s"', name)
    return None


def resolve_pipeline(
    steps: Sequence[TransformStep], log: Optional[logging.Logger] = None
) -> List[ShapeTransform]:
    resolved = []
    for step in steps:
        transform = resolve_transform(step, log)
        if transform is not None:
            resolved.append(transform)
    return resolved


__all__ = [
    "build_pipeline",
    "resolve_pipeline",
    "resolve_transform",
    "ShapeTransform",
    "CallableTransform",
    "Optimizer",
]
