import math
import numbers
from typing import Iterable

from .config import LayoutParams, SizingParams, ViewportConfig


class ParamsError(ValueError):
    pass


def sanitize_weight(value: object) -> float:
    """Coerce ``value`` to a finite-or-+inf non-negative float; junk becomes 0."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        try:
            value = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 0.0
    try:
        weight = float(value)
    except OverflowError:
        # Integers beyond the float range.
        return math.inf if value > 0 else 0.0  # type: ignore[operator]
    if math.isnan(weight) or weight < 0.0:
        return 0.0
    return weight


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise ParamsError(message)


def _finite_positive(value: float) -> bool:
    return isinstance(value, numbers.Real) and math.isfinite(value) and value > 0


def validate_sizing_params(params: SizingParams) -> None:
    _require(params.growth in ('sqrt', 'log'), f'unknown growth function "{params.growth}"')
    _require(_finite_positive(params.min_size), 'min_size must be a positive number')
    _require(_finite_positive(params.max_size), 'max_size must be a positive number')
    _require(params.min_size <= params.max_size, 'min_size must not exceed max_size')
    _require(math.isfinite(params.base_size), 'base_size must be finite')
    _require(math.isfinite(params.growth_rate) and params.growth_rate >= 0, 'growth_rate must be >= 0')


def validate_layout_params(params: LayoutParams) -> None:
    validate_sizing_params(params.sizing)
    _require(isinstance(params.iterations, int) and params.iterations >= 0, 'iterations must be a non-negative int')
    _require(0.0 < params.damping < 1.0, 'damping must lie strictly between 0 and 1')
    _require(params.repulsion >= 0, 'repulsion must be >= 0')
    _require(params.centering >= 0, 'centering must be >= 0')
    _require(params.margin_factor >= 0, 'margin_factor must be >= 0')
    _require(isinstance(params.collision_passes, int) and params.collision_passes >= 0,
             'collision_passes must be a non-negative int')
    _require(isinstance(params.settle_passes, int) and params.settle_passes >= 0,
             'settle_passes must be a non-negative int')
    _require(_finite_positive(params.max_step), 'max_step must be a positive number')
    _require(_finite_positive(params.coincident_offset), 'coincident_offset must be a positive number')
    _require(params.bucketing_threshold >= 2, 'bucketing_threshold must be >= 2')
    _require(params.neighbor_cutoff >= 1.0, 'neighbor_cutoff must be >= 1')
    _require(params.seeder in ('spiral', 'grid'), f'unknown seeder "{params.seeder}"')
    _require(_finite_positive(params.seed_spread), 'seed_spread must be a positive number')
    _require(0.0 < params.fill_ratio <= 1.0, 'fill_ratio must lie in (0, 1]')
    _require(_finite_positive(params.aspect_ratio), 'aspect_ratio must be a positive number')
    _require(_finite_positive(params.min_width) and _finite_positive(params.min_height),
             'minimum bounds must be positive')
    _require(params.overlap_tolerance >= 0, 'overlap_tolerance must be >= 0')


def validate_viewport_config(config: ViewportConfig) -> None:
    _require(_finite_positive(config.min_scale), 'min_scale must be a positive number')
    _require(_finite_positive(config.max_scale), 'max_scale must be a positive number')
    _require(config.min_scale <= config.max_scale, 'min_scale must not exceed max_scale')
    _require(config.min_scale <= config.default_scale <= config.max_scale,
             'default_scale must lie within [min_scale, max_scale]')
    _require(_finite_positive(config.zoom_step) and config.zoom_step != 1.0, 'zoom_step must be positive and != 1')
    _require(_finite_positive(config.fit_margin), 'fit_margin must be a positive number')
    _require(config.click_threshold >= 0, 'click_threshold must be >= 0')
    _require(config.wheel_sensitivity >= 0, 'wheel_sensitivity must be >= 0')
    _require(_finite_positive(config.min_extent), 'min_extent must be a positive number')


def ensure_unique_ids(ids: Iterable[str]) -> None:
    seen = set()
    for entity_id in ids:
        if entity_id in seen:
            raise ParamsError(f'duplicate entity id "{entity_id}"')
        seen.add(entity_id)
