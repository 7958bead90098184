"""Layout façade: sizing, seeding and relaxation of weighted entities."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from .config import LayoutParams, get_layout_params
from .geometry import max_overlap
from .logging_utils import apply_debug_logging
from .relax import relax
from .seeders import BaseSeeder, WarmStartSeeder, make_seeder
from .sizing import EntitySizer
from .types import EntityId, LayoutBounds, Point, PositionedEntity, WeightedEntity
from .validate import ensure_unique_ids, sanitize_weight, validate_layout_params

logger = logging.getLogger(__name__)


@dataclass
class LayoutReport:
    """Quality figures for a computed layout."""

    count: int
    max_overlap: float
    contained: bool
    outside: List[EntityId]

    @property
    def ok(self) -> bool:
        return self.contained and self.max_overlap <= 1e-9


def rank_entities(entities: Iterable[WeightedEntity]) -> List[WeightedEntity]:
    """Order entities by descending sanitized weight, ties broken by id."""

    return sorted(entities, key=lambda e: (-sanitize_weight(e.weight), e.id))


def layout_bounds_for(sizes: Sequence[float], params: Optional[LayoutParams] = None) -> LayoutBounds:
    """Return bounds whose area grows with the markers' total area.

    The plane is large enough that circles cover at most ``fill_ratio`` of it,
    keeps ``aspect_ratio`` and never shrinks below the minimum map size.
    """

    params = params or get_layout_params()
    values = np.asarray(list(sizes), dtype=float)
    marker_area = float(np.sum(math.pi * (values / 2.0) ** 2)) if values.size else 0.0
    area = marker_area / params.fill_ratio
    width = math.sqrt(area * params.aspect_ratio)
    height = width / params.aspect_ratio
    largest = float(values.max()) if values.size else 0.0
    width = max(width, params.min_width, largest)
    height = max(height, params.min_height, largest)
    return LayoutBounds(width=width, height=height)


def _make_seeder(params: LayoutParams, previous: Optional[Mapping[EntityId, Point]]) -> BaseSeeder:
    seeder = make_seeder(params.seeder, params.seed_spread)
    if previous:
        return WarmStartSeeder(previous, seeder)
    return seeder


def compute_layout(
    entities: Sequence[WeightedEntity],
    bounds: Optional[LayoutBounds] = None,
    params: Optional[LayoutParams] = None,
    *,
    previous: Optional[Mapping[EntityId, Point]] = None,
) -> List[PositionedEntity]:
    """Compute non-overlapping marker positions for ``entities``.

    Entities must arrive already filtered and ordered by priority (see
    :func:`rank_entities`); the first one is seeded at the centre. The result
    depends only on the arguments. ``previous`` opts into warm starting from
    earlier positions of persisting ids; by default every call recomputes the
    layout from scratch.
    """

    params = params or get_layout_params()
    validate_layout_params(params)
    if not entities:
        logger.info("No entities to lay out")
        return []
    ensure_unique_ids(entity.id for entity in entities)

    sizer = EntitySizer(params.sizing)
    sizes = sizer.sizes(entity.weight for entity in entities)
    if bounds is None:
        bounds = layout_bounds_for(sizes, params)
    logger.info(
        "Computing layout for %d entities in %.1fx%.1f bounds", len(entities), bounds.width, bounds.height
    )

    ids = [entity.id for entity in entities]
    seeded = _make_seeder(params, previous).seed(sizes, bounds, ids)
    result = relax(seeded, sizes, bounds, params)

    positioned: List[PositionedEntity] = []
    for index, entity in enumerate(entities):
        x, y = result.positions[index]
        positioned.append(
            PositionedEntity(
                id=entity.id,
                size=float(sizes[index]),
                position=Point(float(x), float(y)),
                weight=sanitize_weight(entity.weight),
                payload=entity.payload,
            )
        )
    if result.max_overlap > params.overlap_tolerance:
        logger.warning(
            "Layout left residual overlap %.3e; consider larger bounds or more iterations", result.max_overlap
        )
    return positioned


def positions_by_id(positioned: Iterable[PositionedEntity]) -> Dict[EntityId, Point]:
    return {entity.id: entity.position for entity in positioned}


def layout_report(
    positioned: Sequence[PositionedEntity],
    bounds: LayoutBounds,
    params: Optional[LayoutParams] = None,
) -> LayoutReport:
    params = params or get_layout_params()
    if not positioned:
        return LayoutReport(count=0, max_overlap=0.0, contained=True, outside=[])
    positions = np.array([e.position.as_tuple() for e in positioned], dtype=float)
    sizes = np.array([e.size for e in positioned], dtype=float)
    overlap = max_overlap(positions, sizes, params.margin_factor)
    outside = [e.id for e in positioned if not bounds.contains_marker(e.position, e.size)]
    return LayoutReport(count=len(positioned), max_overlap=overlap, contained=not outside, outside=outside)


apply_debug_logging(globals(), logger=logger)
