"""Error types raised while assembling sprites."""
from __future__ import annotations

from typing import Optional


class SpriteError(ValueError):
    """Structured error with a stable code and optional shape/mode attribution."""

    code = "E_SPRITE"

    def __init__(
        self,
        message: str,
        *,
        shape: Optional[str] = None,
        mode: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.shape = shape
        self.mode = mode
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        context = []
        if self.mode:
            context.append(f'mode "{self.mode}"')
        if self.shape:
            context.append(f'shape "{self.shape}"')
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class MetadataError(SpriteError):
    """Raised when a meta or alignment side-file cannot be read or parsed."""

    code = "E_META"


class ShapeError(SpriteError):
    """Raised for failures scoped to a single shape."""

    code = "E_SHAPE"


class RenderError(SpriteError):
    """Raised when a mode's merged document cannot be composed."""

    code = "E_RENDER"


class CompilationCancelled(SpriteError):
    code = "E_CANCELLED"


class CompilationError(SpriteError):
    """Raised when no mode and no shape produced any output."""

    code = "E_COMPILE"
