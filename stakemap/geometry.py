"""Array helpers shared by the seeding, relaxation and reporting stages."""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np
from scipy.spatial import cKDTree

from .types import LayoutBounds

GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))


def _axis_limits(half: np.ndarray, extent: float) -> Tuple[np.ndarray, np.ndarray]:
    lo = half.copy()
    hi = extent - half
    # Markers wider than the plane collapse onto its middle line.
    too_big = lo > hi
    lo[too_big] = extent / 2.0
    hi[too_big] = extent / 2.0
    return lo, hi


def clamp_positions(
    positions: np.ndarray, sizes: np.ndarray, bounds: LayoutBounds
) -> Tuple[np.ndarray, np.ndarray]:
    """Clamp marker centres so each full marker lies inside ``bounds``.

    Returns the clamped ``(n, 2)`` array and a boolean ``(n, 2)`` mask of the
    coordinates that had to move.
    """

    half = np.asarray(sizes, dtype=float) / 2.0
    lo_x, hi_x = _axis_limits(half, float(bounds.width))
    lo_y, hi_y = _axis_limits(half, float(bounds.height))
    lo = np.stack([lo_x, lo_y], axis=1)
    hi = np.stack([hi_x, hi_y], axis=1)
    clamped = np.minimum(np.maximum(positions, lo), hi)
    return clamped, clamped != positions


def coincident_directions(i: np.ndarray, j: np.ndarray) -> np.ndarray:
    """Fixed unit directions used to split pairs sitting on the same spot.

    The direction depends only on the pair's indices, and is antisymmetric
    (``(i, j)`` and ``(j, i)`` point opposite ways), so coincident pairs are
    pushed apart without any randomness.
    """

    lo = np.minimum(i, j).astype(float)
    hi = np.maximum(i, j).astype(float)
    angle = GOLDEN_ANGLE * (lo + 1.0) + 0.5 * GOLDEN_ANGLE * hi
    sign = np.where(i < j, -1.0, 1.0)
    return np.stack([np.cos(angle), np.sin(angle)], axis=-1) * sign[..., None]


def neighbour_pairs(positions: np.ndarray, radius: float) -> np.ndarray:
    """Return index pairs ``(i, j)`` with ``i < j`` closer than ``radius``, sorted."""

    if positions.shape[0] < 2 or radius <= 0.0:
        return np.zeros((0, 2), dtype=np.intp)
    tree = cKDTree(positions)
    pairs = tree.query_pairs(r=radius, output_type="ndarray")
    if pairs.size == 0:
        return np.zeros((0, 2), dtype=np.intp)
    order = np.lexsort((pairs[:, 1], pairs[:, 0]))
    return pairs[order]


def max_overlap(positions: np.ndarray, sizes: np.ndarray, margin_factor: float) -> float:
    """Largest shortfall ``(s_i + s_j) * margin - d_ij`` over all pairs (0 if none)."""

    n = positions.shape[0]
    if n < 2:
        return 0.0
    reach = 2.0 * float(np.max(sizes)) * margin_factor
    pairs = neighbour_pairs(positions, reach)
    if pairs.shape[0] == 0:
        return 0.0
    delta = positions[pairs[:, 0]] - positions[pairs[:, 1]]
    dist = np.hypot(delta[:, 0], delta[:, 1])
    required = (sizes[pairs[:, 0]] + sizes[pairs[:, 1]]) * margin_factor
    return float(max(0.0, np.max(required - dist)))


def marker_bbox(positions: np.ndarray, sizes: np.ndarray) -> Tuple[float, float, float, float]:
    """Axis-aligned bounding box ``(min_x, min_y, max_x, max_y)`` of all circles."""

    half = np.asarray(sizes, dtype=float)[:, None] / 2.0
    lower = np.min(positions - half, axis=0)
    upper = np.max(positions + half, axis=0)
    return float(lower[0]), float(lower[1]), float(upper[0]), float(upper[1])
