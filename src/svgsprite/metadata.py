"""Loaders for the title/description and alignment side-files."""
from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .errors import MetadataError

DEFAULT_TEMPLATE = "%s"

MetaTable = Dict[str, Dict[str, Optional[str]]]
AlignTable = Dict[str, Dict[str, float]]


def default_alignment() -> AlignTable:
    return {"*": {DEFAULT_TEMPLATE: 0.0}}


def canonical_shape_key(key: str) -> str:
    """``icons/arrow.svg`` -> ``icons/arrow``."""
    key = str(key).replace("\\", "/")
    name = posixpath.basename(key)
    if name.endswith(".svg"):
        name = name[: -len(".svg")]
    return posixpath.join(posixpath.dirname(key), name)


def normalize_template(template: str) -> str:
    template = str(template)
    if not template:
        return DEFAULT_TEMPLATE
    if DEFAULT_TEMPLATE in template:
        return template
    return f"{DEFAULT_TEMPLATE}{template}"


def clamp_weight(value: Any) -> float:
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return 0.0
    if weight != weight:  # NaN
        return 0.0
    return max(0.0, min(1.0, weight))


def _read_side_file(source: Union[str, os.PathLike]) -> Optional[Any]:
    """Return the parsed document, or None when the file does not exist."""
    path = Path(os.path.abspath(os.fspath(source)))
    if not path.is_symlink() and not path.exists():
        return None

    target = path
    if path.is_symlink():
        target = Path(os.readlink(path))
        if not target.is_absolute():
            target = path.parent / target
        try:
            target.stat()
        except OSError as exc:
            raise MetadataError(
                f"side-file {path} links to {target}, which cannot be accessed: {exc}"
            ) from exc

    if not target.is_file():
        return {}
    try:
        text = target.read_text(encoding="utf-8")
    except OSError as exc:
        raise MetadataError(f"failed to read side-file {path}: {exc}") from exc
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise MetadataError(f"failed to parse side-file {path}: {exc}") from exc


def _side_document(source: Any, kind: str) -> Optional[Mapping[str, Any]]:
    if isinstance(source, Mapping):
        return source
    if not isinstance(source, (str, os.PathLike)) or not os.fspath(source):
        return None
    document = _read_side_file(source)
    if document is None:
        return None
    if not isinstance(document, Mapping):
        raise MetadataError(f"{kind} side-file {source} must contain a mapping at the top level")
    return document


def load_meta(source: Any, log: Optional[logging.Logger] = None) -> MetaTable:
    """Build the ``{base: {title, description}}`` lookup table."""
    document = _side_document(source, "meta")
    if document is None:
        return {}

    result: MetaTable = {}
    for key, value in document.items():
        if not isinstance(value, Mapping):
            continue
        result[canonical_shape_key(key)] = {
            "title": value.get("title"),
            "description": value.get("description"),
        }
    if log is not None:
        log.debug('Processed meta data "%s"', _describe(source))
    return result


def load_alignment(source: Any, log: Optional[logging.Logger] = None) -> AlignTable:
    """Build the ``{pattern: {template: weight}}`` alignment table."""
    alignment = default_alignment()
    document = _side_document(source, "alignment")
    if document is None:
        return alignment

    for key, value in document.items():
        if not isinstance(value, Mapping) or not value:
            continue
        entry = alignment.setdefault(canonical_shape_key(key), {})
        for template, weight in value.items():
            entry[normalize_template(template)] = clamp_weight(weight)
    if log is not None:
        log.debug('Processed alignment data "%s"', _describe(source))
    return alignment


def _describe(source: Any) -> str:
    if isinstance(source, Mapping):
        return "<inline>"
    return os.path.basename(os.fspath(source))
