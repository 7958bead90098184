"""Deterministic seeding strategies for the relaxation stage."""

from __future__ import annotations

import logging
import math
from typing import Dict, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np

from .geometry import GOLDEN_ANGLE, clamp_positions
from .types import EntityId, LayoutBounds, Point

logger = logging.getLogger(__name__)

Coord = Tuple[float, float]


class BaseSeeder(Protocol):
    """Protocol implemented by seeding strategies."""

    def seed(
        self,
        sizes: np.ndarray,
        bounds: LayoutBounds,
        ids: Optional[Sequence[EntityId]] = None,
    ) -> np.ndarray:
        """Return an ``(n, 2)`` array of initial marker centres."""


def _mean_size(sizes: np.ndarray) -> float:
    if sizes.size == 0:
        return 1.0
    return max(float(np.mean(sizes)), 1e-6)


def spiral_offsets(count: int, spacing: float) -> np.ndarray:
    """Golden-angle spiral offsets around the origin; index 0 sits at the origin."""

    idx = np.arange(count, dtype=float)
    radius = spacing * np.sqrt(idx)
    angle = idx * GOLDEN_ANGLE
    return np.stack([radius * np.cos(angle), radius * np.sin(angle)], axis=1)


class SpiralSeeder:
    """Seed the first entity at the centre and the rest on a sunflower spiral.

    Entities are expected to arrive ordered by priority (e.g. descending
    weight), so heavier markers end up closer to the middle of the plane.
    The per-step spacing is ``spread`` times the mean marker size.
    """

    def __init__(self, spread: float = 0.6) -> None:
        self.spread = spread

    def seed(
        self,
        sizes: np.ndarray,
        bounds: LayoutBounds,
        ids: Optional[Sequence[EntityId]] = None,
    ) -> np.ndarray:
        n = int(sizes.shape[0])
        if n == 0:
            return np.zeros((0, 2), dtype=float)
        spacing = self.spread * _mean_size(sizes)
        centre = bounds.center
        positions = spiral_offsets(n, spacing) + np.array([centre.x, centre.y])
        positions, _ = clamp_positions(positions, sizes, bounds)
        logger.info("Spiral-seeded %d markers with spacing=%.3f", n, spacing)
        return positions


class GridSeeder:
    """Seed markers on grid cells ordered by ring distance from the centre cell."""

    def __init__(self, spread: float = 0.6) -> None:
        self.spread = spread

    @staticmethod
    def _cells(count: int) -> Sequence[Tuple[int, int]]:
        rings = int(math.ceil((math.sqrt(count) - 1.0) / 2.0)) + 1
        cells = [
            (cx, cy)
            for cy in range(-rings, rings + 1)
            for cx in range(-rings, rings + 1)
        ]
        # Chebyshev ring first, then Euclidean distance, then angle: fully ordered.
        cells.sort(key=lambda c: (max(abs(c[0]), abs(c[1])), c[0] ** 2 + c[1] ** 2, math.atan2(c[1], c[0])))
        return cells[:count]

    def seed(
        self,
        sizes: np.ndarray,
        bounds: LayoutBounds,
        ids: Optional[Sequence[EntityId]] = None,
    ) -> np.ndarray:
        n = int(sizes.shape[0])
        if n == 0:
            return np.zeros((0, 2), dtype=float)
        pitch = 2.0 * self.spread * _mean_size(sizes)
        centre = bounds.center
        cells = np.asarray(self._cells(n), dtype=float)
        positions = cells * pitch + np.array([centre.x, centre.y])
        positions, _ = clamp_positions(positions, sizes, bounds)
        logger.info("Grid-seeded %d markers with pitch=%.3f", n, pitch)
        return positions


class WarmStartSeeder:
    """Keep previous positions for persisting ids; seed newcomers with ``fallback``.

    Newcomers take the fallback seed position of their own index, which keeps
    the result reproducible for a given ``(previous, ids, sizes, bounds)``.
    """

    def __init__(self, previous: Mapping[EntityId, Point], fallback: BaseSeeder) -> None:
        self.previous: Dict[EntityId, Coord] = {
            key: (float(p.x), float(p.y)) for key, p in previous.items()
        }
        self.fallback = fallback

    def seed(
        self,
        sizes: np.ndarray,
        bounds: LayoutBounds,
        ids: Optional[Sequence[EntityId]] = None,
    ) -> np.ndarray:
        base = self.fallback.seed(sizes, bounds, ids)
        if ids is None:
            return base
        reused = 0
        for index, entity_id in enumerate(ids):
            coord = self.previous.get(entity_id)
            if coord is not None and all(math.isfinite(v) for v in coord):
                base[index] = coord
                reused += 1
        positions, _ = clamp_positions(base, sizes, bounds)
        logger.info("Warm start reused %d of %d previous positions", reused, len(ids))
        return positions


def make_seeder(name: str, spread: float = 0.6) -> BaseSeeder:
    if name == "grid":
        return GridSeeder(spread)
    if name == "spiral":
        return SpiralSeeder(spread)
    raise ValueError(f"Unknown seeder '{name}'")
