"""Force-based relaxation removing marker overlaps inside the layout bounds.

Every call runs a fixed number of iterations; there is no early exit, so the
cost of a relayout is predictable: ``O(iterations * N^2)`` for the pairwise
repulsion. Above ``LayoutParams.bucketing_threshold`` markers the repulsion
only considers neighbours found through a k-d tree within
``neighbor_cutoff * max_size``; the force law and damping stay the same.

One iteration:

1. pairwise repulsion ``repulsion * (s_j + s_k) / d^2`` along the separating
   direction (coincident pairs use a fixed index-derived direction),
2. linear centering pull ``centering * mean_size * (centre - p) / half_diagonal``;
   at a corner of the bounds it is ``centering * mean_size`` whatever the
   bounds size,
3. ``v = (v + F) * damping`` with speed capped at ``max_step``, ``p += v``,
4. ``collision_passes`` contact projections separating pairs closer than
   ``(s_j + s_k) * margin_factor``, then clamping every marker into bounds.

After the last iteration up to ``settle_passes`` contact-and-clamp passes run
without forces, stopping at the first pass that finds no contact.

The repulsion accumulation reads only the previous iteration's positions and
is the only phase that could be computed in parallel.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np

from .config import LayoutParams, get_layout_params
from .geometry import clamp_positions, coincident_directions, max_overlap, neighbour_pairs
from .logging_utils import debug_log_call
from .types import LayoutBounds

logger = logging.getLogger(__name__)


@dataclass
class RelaxationResult:
    positions: np.ndarray
    iterations: int
    max_overlap: float
    bucketed: bool = False


def _pair_geometry(positions: np.ndarray, pairs: np.ndarray, floor: float):
    i, j = pairs[:, 0], pairs[:, 1]
    delta = positions[i] - positions[j]
    dist = np.hypot(delta[:, 0], delta[:, 1])
    coincident = dist < floor
    safe = np.where(coincident, 1.0, dist)
    unit = delta / safe[:, None]
    if np.any(coincident):
        unit[coincident] = coincident_directions(i[coincident], j[coincident])
        dist = np.where(coincident, floor, dist)
    return i, j, unit, dist


class _Relaxer:
    """Mutable integration state for one relaxation run."""

    def __init__(
        self,
        positions: np.ndarray,
        sizes: np.ndarray,
        bounds: LayoutBounds,
        params: LayoutParams,
    ) -> None:
        self.sizes = np.asarray(sizes, dtype=float)
        self.bounds = bounds
        self.params = params
        self.positions, _ = clamp_positions(np.array(positions, dtype=float), self.sizes, bounds)
        self.velocity = np.zeros_like(self.positions)
        self.centre = np.array([bounds.center.x, bounds.center.y])
        n = self.positions.shape[0]
        self.bucketed = n > params.bucketing_threshold
        max_size = float(self.sizes.max()) if n else 0.0
        self.cutoff = params.neighbor_cutoff * max_size
        mean_size = float(self.sizes.mean()) if n else 0.0
        half_diagonal = max(math.hypot(bounds.width / 2.0, bounds.height / 2.0), 1e-9)
        self.pull = params.centering * mean_size / half_diagonal
        self.contact_reach = 2.0 * max_size * params.margin_factor + params.overlap_tolerance
        self._all_pairs = None
        if not self.bucketed and n > 1:
            self._all_pairs = np.stack(np.triu_indices(n, k=1), axis=1)
        self.iterations = 0

    def _repulsion_pairs(self) -> np.ndarray:
        if self._all_pairs is not None:
            return self._all_pairs
        return neighbour_pairs(self.positions, self.cutoff)

    def _forces(self) -> np.ndarray:
        p = self.params
        forces = self.pull * (self.centre - self.positions)
        pairs = self._repulsion_pairs()
        if pairs.shape[0] == 0 or p.repulsion == 0.0:
            return forces
        i, j, unit, dist = _pair_geometry(self.positions, pairs, p.coincident_offset)
        magnitude = p.repulsion * (self.sizes[i] + self.sizes[j]) / (dist * dist)
        push = unit * magnitude[:, None]
        np.add.at(forces, i, push)
        np.add.at(forces, j, -push)
        return forces

    def _resolve_contacts(self, passes: int) -> bool:
        """Project overlapping pairs apart; return ``True`` if any pair was touching."""
        p = self.params
        touched = False
        for _ in range(passes):
            pairs = neighbour_pairs(self.positions, self.contact_reach)
            if pairs.shape[0] == 0:
                break
            i, j, unit, dist = _pair_geometry(self.positions, pairs, p.coincident_offset)
            target = (self.sizes[i] + self.sizes[j]) * p.margin_factor + p.overlap_tolerance
            shortfall = target - dist
            touching = shortfall > 0.5 * p.overlap_tolerance
            if not np.any(touching):
                break
            touched = True
            i, j = i[touching], j[touching]
            push = unit[touching] * (0.5 * shortfall[touching])[:, None]
            shift = np.zeros_like(self.positions)
            np.add.at(shift, i, push)
            np.add.at(shift, j, -push)
            self.positions = self.positions + shift
        return touched

    def step(self) -> None:
        p = self.params
        forces = self._forces()
        velocity = (self.velocity + forces) * p.damping
        speed = np.hypot(velocity[:, 0], velocity[:, 1])
        too_fast = speed > p.max_step
        if np.any(too_fast):
            velocity[too_fast] *= (p.max_step / speed[too_fast])[:, None]
        self.positions = self.positions + velocity
        self._resolve_contacts(p.collision_passes)
        self.positions, hit = clamp_positions(self.positions, self.sizes, self.bounds)
        velocity[hit] = 0.0
        self.velocity = velocity
        self.iterations += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Relaxation iteration %d: max_speed=%.4f",
                self.iterations,
                float(speed.max()) if speed.size else 0.0,
            )

    def settle(self) -> None:
        """Contact-only passes run once after the last iteration, until nothing touches."""
        for passes in range(self.params.settle_passes):
            if not self._resolve_contacts(1):
                logger.debug("Settled after %d pass(es)", passes)
                return
            self.positions, _ = clamp_positions(self.positions, self.sizes, self.bounds)
        logger.debug("Settle stopped at the %d pass cap", self.params.settle_passes)

    def result(self) -> RelaxationResult:
        overlap = max_overlap(self.positions, self.sizes, self.params.margin_factor)
        return RelaxationResult(
            positions=self.positions.copy(),
            iterations=self.iterations,
            max_overlap=overlap,
            bucketed=self.bucketed,
        )


def relax_chunked(
    positions: np.ndarray,
    sizes: np.ndarray,
    bounds: LayoutBounds,
    params: Optional[LayoutParams] = None,
    *,
    iterations: Optional[int] = None,
    chunk_size: int = 10,
) -> Iterator[RelaxationResult]:
    """Run the relaxation in chunks, yielding the intermediate result after each.

    Callers that need cancellation stop iterating; the last yielded result is
    always a consistent, clamped layout.
    """

    params = params or get_layout_params()
    total = params.iterations if iterations is None else int(iterations)
    chunk_size = max(1, int(chunk_size))
    relaxer = _Relaxer(positions, sizes, bounds, params)
    n = relaxer.positions.shape[0]
    logger.info(
        "Relaxing %d markers for %d iteration(s) (bucketed=%s)", n, total, relaxer.bucketed
    )
    if n == 0 or total <= 0:
        yield relaxer.result()
        return
    done = 0
    while done < total:
        for _ in range(min(chunk_size, total - done)):
            relaxer.step()
        done = relaxer.iterations
        if done >= total:
            relaxer.settle()
        yield relaxer.result()


@debug_log_call(logger, name="relax")
def relax(
    positions: np.ndarray,
    sizes: np.ndarray,
    bounds: LayoutBounds,
    params: Optional[LayoutParams] = None,
    *,
    iterations: Optional[int] = None,
) -> RelaxationResult:
    """Relax seeded marker centres into a non-overlapping, in-bounds layout."""

    params = params or get_layout_params()
    total = params.iterations if iterations is None else int(iterations)
    last = deque(
        relax_chunked(positions, sizes, bounds, params, iterations=total, chunk_size=max(total, 1)), maxlen=1
    )
    result = last[0]
    logger.info(
        "Relaxation finished after %d iteration(s) max_overlap=%.3e", result.iterations, result.max_overlap
    )
    return result
