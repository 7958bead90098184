"""Configuration dataclasses and process-wide defaults."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field


@dataclass
class SizingParams:
    """Marker sizing knobs; sizes are diameters in world units."""

    min_size: float = 60.0
    max_size: float = 150.0
    base_size: float = 60.0
    growth_rate: float = 5.0
    growth: str = "sqrt"  # "sqrt" or "log"


@dataclass
class LayoutParams:
    """Options for seeding and relaxation."""

    sizing: SizingParams = field(default_factory=SizingParams)
    iterations: int = 50
    damping: float = 0.5
    repulsion: float = 400.0
    centering: float = 0.02  # corner pull as a fraction of the mean marker size
    margin_factor: float = 0.55
    collision_passes: int = 4
    settle_passes: int = 200  # cap; settling stops once nothing touches
    max_step: float = 40.0
    coincident_offset: float = 1e-3
    bucketing_threshold: int = 300
    neighbor_cutoff: float = 3.0
    seeder: str = "spiral"  # "spiral" or "grid"
    seed_spread: float = 0.6
    fill_ratio: float = 0.35
    aspect_ratio: float = 1.5
    min_width: float = 1800.0
    min_height: float = 1200.0
    overlap_tolerance: float = 1e-6


@dataclass
class ViewportConfig:
    """Options for the pan/zoom controller."""

    min_scale: float = 0.3
    max_scale: float = 3.0
    default_scale: float = 0.7
    zoom_step: float = 1.2
    fit_margin: float = 0.9
    click_threshold: float = 4.0
    wheel_sensitivity: float = 0.0015
    min_extent: float = 1.0


_LAYOUT_PARAMS = LayoutParams()


def get_layout_params() -> LayoutParams:
    return copy.deepcopy(_LAYOUT_PARAMS)


def set_layout_params(params: LayoutParams) -> None:
    from .validate import validate_layout_params

    validate_layout_params(params)
    global _LAYOUT_PARAMS
    _LAYOUT_PARAMS = copy.deepcopy(params)
