"""Core data structures shared by the layout and viewport stages."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

EntityId = str


@dataclass(frozen=True)
class Point:
    """A 2D coordinate, used for both world and screen space."""

    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class Size:
    """Width/height pair for viewports and world planes."""

    width: float
    height: float


@dataclass(frozen=True)
class LayoutBounds:
    """World plane ``[0, width] x [0, height]`` the layout must fit in."""

    width: float
    height: float

    @property
    def center(self) -> Point:
        return Point(self.width / 2.0, self.height / 2.0)

    def contains_marker(self, position: Point, size: float, tol: float = 1e-6) -> bool:
        """Return ``True`` when a marker of diameter ``size`` at ``position`` fits."""

        half = size / 2.0
        return (
            _axis_contains(position.x, half, self.width, tol)
            and _axis_contains(position.y, half, self.height, tol)
        )


def _axis_contains(value: float, half: float, extent: float, tol: float) -> bool:
    if 2.0 * half >= extent:
        # Marker larger than the plane: the only admissible spot is the middle.
        return abs(value - extent / 2.0) <= tol
    return half - tol <= value <= extent - half + tol


@dataclass(frozen=True)
class WeightedEntity:
    """Entity supplied by upstream collaborators."""

    id: EntityId
    weight: float
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PositionedEntity:
    """Entity with its derived marker diameter and world-space centre."""

    id: EntityId
    size: float
    position: Point
    weight: float = 0.0
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def radius(self) -> float:
        return self.size / 2.0


class InteractionMode(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class ViewportState:
    """Immutable snapshot of the pan/zoom transform."""

    scale: float
    offset: Point
    viewport_size: Size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scale": self.scale,
            "offset": {"x": self.offset.x, "y": self.offset.y},
            "viewport_size": {
                "width": self.viewport_size.width,
                "height": self.viewport_size.height,
            },
        }
