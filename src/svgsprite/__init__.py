"""Public API for svgsprite."""
from .config import SpriterConfig
from .errors import (
    CompilationCancelled,
    CompilationError,
    MetadataError,
    RenderError,
    ShapeError,
    SpriteError,
)
from .result import Artifact, CompileResult
from .shape import Shape
from .spriter import SVGSpriter

__all__ = [
    "SVGSpriter",
    "SpriterConfig",
    "Shape",
    "Artifact",
    "CompileResult",
    "SpriteError",
    "MetadataError",
    "ShapeError",
    "RenderError",
    "CompilationCancelled",
    "CompilationError",
]
