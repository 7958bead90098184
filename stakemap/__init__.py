from .types import (
    EntityId,
    InteractionMode,
    LayoutBounds,
    Point,
    PositionedEntity,
    Size,
    ViewportState,
    WeightedEntity,
)
from .config import (
    LayoutParams,
    SizingParams,
    ViewportConfig,
    get_layout_params,
    set_layout_params,
)
from .validate import ParamsError, validate_layout_params, validate_viewport_config
from .sizing import EntitySizer
from .seeders import BaseSeeder, GridSeeder, SpiralSeeder, WarmStartSeeder, make_seeder
from .relax import RelaxationResult, relax, relax_chunked
from .layout import (
    LayoutReport,
    compute_layout,
    layout_bounds_for,
    layout_report,
    positions_by_id,
    rank_entities,
)
from .viewport import ViewportController
from .stakers import StakeRecord, address_color, build_entities, member_positions, raffle_power

__all__ = [
    'EntityId',
    'InteractionMode',
    'LayoutBounds',
    'Point',
    'PositionedEntity',
    'Size',
    'ViewportState',
    'WeightedEntity',
    'LayoutParams',
    'SizingParams',
    'ViewportConfig',
    'get_layout_params',
    'set_layout_params',
    'ParamsError',
    'validate_layout_params',
    'validate_viewport_config',
    'EntitySizer',
    'BaseSeeder',
    'GridSeeder',
    'SpiralSeeder',
    'WarmStartSeeder',
    'make_seeder',
    'RelaxationResult',
    'relax',
    'relax_chunked',
    'LayoutReport',
    'compute_layout',
    'layout_bounds_for',
    'layout_report',
    'positions_by_id',
    'rank_entities',
    'ViewportController',
    'StakeRecord',
    'address_color',
    'build_entities',
    'member_positions',
    'raffle_power',
]
