"""ElementTree helpers shared by every stage of the sprite pipeline."""
from __future__ import annotations

import math
import re
import xml.etree.ElementTree as ET
from decimal import Decimal
from typing import Optional, Tuple

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'
DOCTYPE_DECLARATION = (
    '<!DOCTYPE svg PUBLIC "-//W3C//DTD SVG 1.1//EN" '
    '"http://www.w3.org/Graphics/SVG/1.1/DTD/svg11.dtd">'
)

HREF_ATTRS = ("href", f"{{{XLINK_NS}}}href")


def q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def qual(ns: str, local: str) -> str:
    return f"{{{ns}}}{local}"


def namespace_of(tag) -> Optional[str]:
    if not isinstance(tag, str):
        return None
    if tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


def local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def is_element(node: ET.Element) -> bool:
    # Comments and processing instructions carry a callable tag.
    return isinstance(node.tag, str)


def parse_length(value: Optional[str], default: Optional[float]) -> Optional[float]:
    if value is None:
        return default
    value = value.strip()
    if value.endswith("%"):
        return default
    match = re.match(r"^-?\d*\.?\d+(?:[eE][-+]?\d+)?", value)
    if match:
        return float(match.group(0))
    return default


def parse_viewbox(value: Optional[str]) -> Optional[Tuple[float, float, float, float]]:
    if not value:
        return None
    parts = [p for p in re.split(r"[\s,]+", value.strip()) if p]
    if len(parts) != 4:
        return None
    try:
        x, y, w, h = (float(p) for p in parts)
    except ValueError:
        return None
    if w <= 0 or h <= 0:
        return None
    return x, y, w, h


def round_to(value: float, precision: int) -> float:
    """Round a coordinate to ``precision`` fractional digits (-1 keeps it as is)."""
    if precision < 0:
        return float(value)
    return round(float(value), precision)


def fmt(value: float, precision: int = -1) -> str:
    value = round_to(value, precision)
    if value == 0:
        return "0"
    if math.isclose(value, round(value), rel_tol=0.0, abs_tol=1e-9):
        return str(int(round(value)))
    if precision >= 0:
        return f"{value:.{precision}f}".rstrip("0").rstrip(".")
    text = repr(value)
    if "e" in text:
        # CSS lengths have no exponent notation.
        text = format(Decimal(text), "f")
    return text


def fmt_viewbox(box: Tuple[float, float, float, float], precision: int = -1) -> str:
    return " ".join(fmt(v, precision) for v in box)


def serialize(element: ET.Element, *, indent: bool = False) -> str:
    if indent:
        ET.indent(element, space="  ")
    return ET.tostring(element, encoding="unicode")


def with_declarations(body: str, xml_declaration, doctype_declaration) -> str:
    """Prefix a serialized document with the configured declarations."""
    lines = []
    if xml_declaration:
        lines.append(xml_declaration if isinstance(xml_declaration, str) else XML_DECLARATION)
    if doctype_declaration:
        lines.append(
            doctype_declaration if isinstance(doctype_declaration, str) else DOCTYPE_DECLARATION
        )
    lines.append(body)
    return "\n".join(lines)
