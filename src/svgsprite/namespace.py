"""Collision-free rewriting of ids and class names inside one shape document."""
from __future__ import annotations

import re
import string
import xml.etree.ElementTree as ET
from typing import Callable, Dict, Iterable, Set

from .markup import HREF_ATTRS, is_element, local_name

_URL_REF = re.compile(r"url\(\s*(['\"]?)#([^'\")\s]+)\1\s*\)")
_CSS_BLOCK = re.compile(r"\{[^{}]*\}")
_CSS_CLASS = re.compile(r"\.(-?[_a-zA-Z][_a-zA-Z0-9-]*)")
_CSS_ID = re.compile(r"#(-?[_a-zA-Z][_a-zA-Z0-9-]*)")
_ID_LIST_ATTRS = ("aria-labelledby", "aria-describedby", "aria-controls", "aria-owns")
_TIMING_ATTRS = ("begin", "end")


def namespace_token(index: int, prefix: str = "") -> str:
    """Alphabetic counter for a sorted position: 0 -> a, 25 -> z, 26 -> aa."""
    if index < 0:
        raise ValueError("namespace index must be non-negative")
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = string.ascii_lowercase[remainder] + letters
    return f"{prefix}{letters}"


def _rewrite_selectors(css: str, replace: Callable[[str], str]) -> str:
    """Apply ``replace`` to selector text only, leaving declaration blocks untouched."""
    out = []
    pos = 0
    for match in _CSS_BLOCK.finditer(css):
        out.append(replace(css[pos : match.start()]))
        out.append(match.group(0))
        pos = match.end()
    out.append(replace(css[pos:]))
    return "".join(out)


def _is_style(node: ET.Element) -> bool:
    return local_name(node.tag) == "style"


def _unique_id(candidate: str, taken: Set[str]) -> str:
    unique = candidate
    counter = 1
    while unique in taken:
        unique = f"{candidate}-{counter}"
        counter += 1
    return unique


def namespace_ids(
    root: ET.Element, token: str, reserved: Iterable[str] = ()
) -> Dict[str, str]:
    """
    Prefix every id in ``root`` with ``token`` and rewrite all references.

    References cover ``url(#id)`` in attributes and style sheets, ``href`` /
    ``xlink:href`` fragments, aria id lists, SMIL timing values and ``#id``
    selectors. A prefixed id that would clash with one of ``reserved`` (for
    example a shape id) gets a numeric suffix. Returns the applied
    ``{old: new}`` mapping.
    """
    mapping: Dict[str, str] = {}
    taken = set(reserved)
    for node in root.iter():
        if not is_element(node):
            continue
        node_id = node.get("id")
        if node_id and node_id not in mapping:
            mapping[node_id] = _unique_id(f"{token}-{node_id}", taken)
            taken.add(mapping[node_id])
    if not mapping:
        return mapping

    def _url(match: re.Match) -> str:
        quote, ref = match.group(1), match.group(2)
        if ref not in mapping:
            return match.group(0)
        return f"url({quote}#{mapping[ref]}{quote})"

    def _selector_ids(text: str) -> str:
        return _CSS_ID.sub(
            lambda m: f"#{mapping[m.group(1)]}" if m.group(1) in mapping else m.group(0), text
        )

    for node in root.iter():
        if not is_element(node):
            continue
        for key, value in list(node.attrib.items()):
            local = local_name(key)
            if key == "id" and value in mapping:
                node.set(key, mapping[value])
            elif key in HREF_ATTRS and value.startswith("#") and value[1:] in mapping:
                node.set(key, f"#{mapping[value[1:]]}")
            elif local in _ID_LIST_ATTRS:
                node.set(key, " ".join(mapping.get(part, part) for part in value.split()))
            elif local in _TIMING_ATTRS:
                node.set(key, re.sub(
                    r"(?<![\w.-])([_a-zA-Z][\w-]*)(?=\.)",
                    lambda m: mapping.get(m.group(1), m.group(1)),
                    value,
                ))
            elif "url(" in value:
                node.set(key, _URL_REF.sub(_url, value))
        if _is_style(node) and node.text:
            node.text = _rewrite_selectors(_URL_REF.sub(_url, node.text), _selector_ids)
    return mapping


def namespace_classnames(root: ET.Element, token: str) -> Dict[str, str]:
    """Prefix every class name with ``token`` in ``class`` attributes and style sheets."""
    mapping: Dict[str, str] = {}
    for node in root.iter():
        if not is_element(node):
            continue
        classes = node.get("class")
        if not classes:
            continue
        renamed = []
        for name in classes.split():
            mapping.setdefault(name, f"{token}-{name}")
            renamed.append(mapping[name])
        node.set("class", " ".join(renamed))

    if not mapping:
        return mapping

    def _selector_classes(text: str) -> str:
        return _CSS_CLASS.sub(
            lambda m: f".{mapping[m.group(1)]}" if m.group(1) in mapping else m.group(0), text
        )

    for node in root.iter():
        if is_element(node) and _is_style(node) and node.text:
            node.text = _rewrite_selectors(node.text, _selector_classes)
    return mapping
