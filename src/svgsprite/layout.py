"""Pixel layout for the position-addressed sprite modes (css, view)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .config import Padding
from .markup import round_to
from .shape import Shape


@dataclass
class Placement:
    """One positioned copy of a shape; ``x``/``y``/``width``/``height`` cover the padded box."""

    shape: Shape
    templates: Tuple[str, ...]
    weight: float
    x: float
    y: float
    width: float
    height: float

    def overlaps(self, other: "Placement") -> bool:
        return (
            self.x < other.x + other.width
            and other.x < self.x + self.width
            and self.y < other.y + other.height
            and other.y < self.y + self.height
        )


@dataclass
class SpriteLayout:
    placements: List[Placement]
    width: float
    height: float


def _alignment_groups(shape: Shape) -> List[Tuple[float, Tuple[str, ...]]]:
    # Templates sharing a weight share one placement.
    groups: Dict[float, List[str]] = {}
    for template, weight in shape.align or [("%s", 0.0)]:
        groups.setdefault(weight, []).append(template)
    return [(weight, tuple(templates)) for weight, templates in groups.items()]


def compute_layout(
    shapes: Sequence[Shape],
    padding: Padding,
    *,
    layout: str = "horizontal",
    precision: int = -1,
) -> SpriteLayout:
    """
    Stack ``shapes`` in the given (sorted) order.

    Each placement's offset along the stacking axis is the running extent of
    all earlier placements; the cross-axis offset interpolates between 0 and
    the free space left by the largest shape using the alignment weight.
    """
    items = []
    for shape in shapes:
        width, height = shape.outer_size(padding)
        for weight, templates in _alignment_groups(shape):
            items.append((shape, templates, weight, width, height))

    max_width = max((item[3] for item in items), default=0.0)
    max_height = max((item[4] for item in items), default=0.0)

    placements: List[Placement] = []
    running_x = 0.0
    running_y = 0.0
    for shape, templates, weight, width, height in items:
        if layout == "vertical":
            x = (max_width - width) * weight
            y = running_y
            running_y += height
        elif layout == "diagonal":
            x, y = running_x, running_y
            running_x += width
            running_y += height
        else:
            x = running_x
            y = (max_height - height) * weight
            running_x += width
        placements.append(
            Placement(
                shape=shape,
                templates=templates,
                weight=weight,
                x=round_to(x, precision),
                y=round_to(y, precision),
                width=width,
                height=height,
            )
        )

    if layout == "vertical":
        total = (max_width, running_y)
    elif layout == "diagonal":
        total = (running_x, running_y)
    else:
        total = (running_x, max_height)
    return SpriteLayout(placements=placements, width=total[0], height=total[1])
