import math

import pytest

from stakemap import (
    LayoutBounds,
    LayoutParams,
    ParamsError,
    Point,
    WeightedEntity,
    compute_layout,
    layout_bounds_for,
    layout_report,
    positions_by_id,
    rank_entities,
)


def _entities(weights):
    return [WeightedEntity(id=f"0x{index:04x}", weight=weight) for index, weight in enumerate(weights)]


def test_three_entity_example():
    entities = _entities([1, 100, 10_000])
    bounds = LayoutBounds(1000, 1000)
    params = LayoutParams(iterations=50)

    positioned = compute_layout(entities, bounds, params)

    sizes = [entity.size for entity in positioned]
    assert sizes[0] < sizes[1] < sizes[2]
    for i, a in enumerate(positioned):
        assert a.position.x - a.size / 2 >= -1e-9 and a.position.x + a.size / 2 <= 1000.0 + 1e-9
        assert a.position.y - a.size / 2 >= -1e-9 and a.position.y + a.size / 2 <= 1000.0 + 1e-9
        for b in positioned[i + 1:]:
            required = (a.size + b.size) * params.margin_factor
            assert a.position.distance_to(b.position) >= required - 1e-6

    report = layout_report(positioned, bounds, params)
    assert report.ok
    assert report.count == 3


def test_empty_input_returns_empty_list():
    assert compute_layout([], LayoutBounds(800, 600)) == []
    assert compute_layout([]) == []


def test_layout_is_deterministic():
    entities = rank_entities(_entities([5, 80, 3, 700, 12, 0, 45, 2_000]))

    first = compute_layout(entities)
    second = compute_layout(list(entities))

    assert first == second


def test_output_keeps_ids_order_and_payload():
    entities = [
        WeightedEntity(id="a", weight=10, payload={"color": "red"}),
        WeightedEntity(id="b", weight=1),
    ]

    positioned = compute_layout(entities, LayoutBounds(800, 800))

    assert [entity.id for entity in positioned] == ["a", "b"]
    assert positioned[0].payload == {"color": "red"}
    assert positioned[0].weight == 10


def test_invalid_weights_are_sanitized():
    entities = [
        WeightedEntity(id="nan", weight=float("nan")),
        WeightedEntity(id="neg", weight=-40),
        WeightedEntity(id="ok", weight=25),
    ]
    params = LayoutParams()

    positioned = compute_layout(entities, LayoutBounds(900, 900), params)

    by_id = {entity.id: entity for entity in positioned}
    assert by_id["nan"].weight == 0.0
    assert by_id["neg"].size == params.sizing.min_size
    assert all(math.isfinite(e.position.x) and math.isfinite(e.position.y) for e in positioned)


def test_duplicate_ids_are_rejected():
    entities = [WeightedEntity(id="x", weight=1), WeightedEntity(id="x", weight=2)]

    with pytest.raises(ParamsError):
        compute_layout(entities, LayoutBounds(500, 500))


def test_invalid_params_are_rejected():
    with pytest.raises(ParamsError):
        compute_layout(_entities([1]), LayoutBounds(500, 500), LayoutParams(damping=1.0))


def test_bounds_grow_with_entity_count():
    params = LayoutParams()
    small = layout_bounds_for([60.0] * 5, params)
    large = layout_bounds_for([150.0] * 400, params)

    assert small == LayoutBounds(params.min_width, params.min_height)
    assert large.width > small.width
    assert large.height > small.height
    assert large.width / large.height == pytest.approx(params.aspect_ratio)
    marker_area = 400 * math.pi * 75.0 ** 2
    assert marker_area / (large.width * large.height) == pytest.approx(params.fill_ratio)


def test_default_bounds_contain_many_entities():
    entities = rank_entities(_entities([i * 37 % 500 for i in range(60)]))
    params = LayoutParams()

    positioned = compute_layout(entities, params=params)
    bounds = layout_bounds_for([entity.size for entity in positioned], params)
    report = layout_report(positioned, bounds, params)

    assert report.contained
    assert report.max_overlap <= 0.6


def test_rank_entities_orders_by_weight_then_id():
    entities = [
        WeightedEntity(id="b", weight=5),
        WeightedEntity(id="a", weight=5),
        WeightedEntity(id="c", weight=float("nan")),
        WeightedEntity(id="d", weight=50),
    ]

    assert [entity.id for entity in rank_entities(entities)] == ["d", "a", "b", "c"]


def test_grid_seeder_layout():
    params = LayoutParams(seeder="grid")
    positioned = compute_layout(_entities([1, 2, 3, 4, 5, 6]), LayoutBounds(1000, 1000), params)

    report = layout_report(positioned, LayoutBounds(1000, 1000), params)
    assert report.contained
    assert report.max_overlap <= 0.6


def test_warm_start_from_previous_layout():
    bounds = LayoutBounds(1200, 1200)
    entities = _entities([10, 20, 30])
    first = compute_layout(entities, bounds)

    grown = entities + [WeightedEntity(id="new", weight=15)]
    previous = positions_by_id(first)
    warm = compute_layout(grown, bounds, previous=previous)
    again = compute_layout(grown, bounds, previous=previous)

    assert warm == again
    assert layout_report(warm, bounds).contained
    assert [entity.id for entity in warm] == [e.id for e in grown]


def test_layout_report_flags_outside_and_overlap():
    from stakemap import PositionedEntity

    positioned = [
        PositionedEntity(id="a", size=100, position=Point(40, 100)),
        PositionedEntity(id="b", size=100, position=Point(100, 100)),
    ]

    report = layout_report(positioned, LayoutBounds(300, 300))

    assert report.outside == ["a"]
    assert report.max_overlap == pytest.approx(110 - 60)
    assert not report.ok


def test_huge_integer_weight_saturates():
    entities = [WeightedEntity(id="a", weight=10 ** 400), WeightedEntity(id="b", weight=1)]
    params = LayoutParams()

    positioned = compute_layout(entities, LayoutBounds(800, 800), params)

    assert positioned[0].size == params.sizing.max_size
    assert positioned[0].weight == math.inf
    assert layout_report(positioned, LayoutBounds(800, 800), params).contained


@pytest.mark.parametrize("count", [150, 250, 301, 400])
def test_large_layouts_stay_separated_in_auto_bounds(count):
    entities = rank_entities(WeightedEntity(id=f"e{i}", weight=(i * 7919) % 5000) for i in range(count))
    params = LayoutParams()

    positioned = compute_layout(entities, params=params)
    bounds = layout_bounds_for([entity.size for entity in positioned], params)
    report = layout_report(positioned, bounds, params)

    assert report.contained
    assert report.max_overlap <= 0.6
