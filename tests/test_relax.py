import numpy as np
import pytest

from stakemap import LayoutBounds, LayoutParams, SpiralSeeder, relax, relax_chunked

# Residual overlap allowed after relaxation: 1% of the smallest marker.
_EPS = 0.6


def _pairwise_shortfall(positions: np.ndarray, sizes: np.ndarray, margin: float) -> float:
    worst = 0.0
    for i in range(len(sizes)):
        for j in range(i + 1, len(sizes)):
            dist = float(np.hypot(*(positions[i] - positions[j])))
            worst = max(worst, (sizes[i] + sizes[j]) * margin - dist)
    return worst


def _contained(positions: np.ndarray, sizes: np.ndarray, bounds: LayoutBounds) -> bool:
    half = sizes / 2.0
    tol = 1e-9
    return bool(
        np.all(positions[:, 0] - half >= -tol)
        and np.all(positions[:, 0] + half <= bounds.width + tol)
        and np.all(positions[:, 1] - half >= -tol)
        and np.all(positions[:, 1] + half <= bounds.height + tol)
    )


def test_relax_removes_overlap_from_spiral_seed():
    params = LayoutParams()
    bounds = LayoutBounds(1800, 1200)
    sizes = np.linspace(60.0, 150.0, 12)
    seeded = SpiralSeeder().seed(sizes, bounds)
    assert _pairwise_shortfall(seeded, sizes, params.margin_factor) > 0

    result = relax(seeded, sizes, bounds, params)

    assert result.iterations == params.iterations
    assert _pairwise_shortfall(result.positions, sizes, params.margin_factor) <= _EPS
    assert result.max_overlap <= _EPS
    assert _contained(result.positions, sizes, bounds)


def test_relax_splits_coincident_markers():
    bounds = LayoutBounds(1000, 1000)
    sizes = np.full(4, 60.0)
    stacked = np.full((4, 2), 500.0)

    result = relax(stacked, sizes, bounds, LayoutParams())

    assert np.all(np.isfinite(result.positions))
    assert _pairwise_shortfall(result.positions, sizes, 0.55) <= _EPS


def test_relax_is_deterministic():
    bounds = LayoutBounds(1200, 900)
    sizes = np.array([70.0, 90.0, 60.0, 120.0, 65.0, 100.0])
    seeded = SpiralSeeder().seed(sizes, bounds)

    first = relax(seeded, sizes, bounds, LayoutParams())
    second = relax(seeded.copy(), sizes.copy(), bounds, LayoutParams())

    assert np.array_equal(first.positions, second.positions)


def test_relax_keeps_markers_inside_tight_bounds():
    bounds = LayoutBounds(400, 400)
    sizes = np.full(10, 60.0)
    seeded = SpiralSeeder().seed(sizes, bounds)

    result = relax(seeded, sizes, bounds, LayoutParams())

    assert _contained(result.positions, sizes, bounds)


def test_relax_centres_marker_larger_than_bounds():
    bounds = LayoutBounds(100, 400)
    sizes = np.array([150.0])

    result = relax(np.array([[10.0, 10.0]]), sizes, bounds, LayoutParams())

    assert result.positions[0, 0] == pytest.approx(50.0)
    assert 75.0 <= result.positions[0, 1] <= 325.0


def test_relax_zero_iterations_only_clamps():
    bounds = LayoutBounds(500, 500)
    sizes = np.array([60.0, 60.0])
    start = np.array([[-100.0, 250.0], [250.0, 250.0]])

    result = relax(start, sizes, bounds, LayoutParams(), iterations=0)

    assert result.iterations == 0
    assert np.allclose(result.positions, [[30.0, 250.0], [250.0, 250.0]])


def test_chunked_relaxation_matches_single_call():
    params = LayoutParams(iterations=25)
    bounds = LayoutBounds(1000, 1000)
    sizes = np.array([60.0, 80.0, 100.0, 120.0])
    seeded = SpiralSeeder().seed(sizes, bounds)

    chunks = list(relax_chunked(seeded, sizes, bounds, params, chunk_size=10))
    single = relax(seeded, sizes, bounds, params)

    assert [chunk.iterations for chunk in chunks] == [10, 20, 25]
    assert np.array_equal(chunks[-1].positions, single.positions)


def test_chunked_relaxation_can_stop_early():
    params = LayoutParams(iterations=100)
    bounds = LayoutBounds(1000, 1000)
    sizes = np.full(5, 60.0)
    seeded = SpiralSeeder().seed(sizes, bounds)

    for chunk in relax_chunked(seeded, sizes, bounds, params, chunk_size=5):
        if chunk.iterations >= 15:
            break

    assert chunk.iterations == 15
    assert _contained(chunk.positions, sizes, bounds)


def test_bucketed_relaxation_for_large_inputs():
    params = LayoutParams(bucketing_threshold=10)
    bounds = LayoutBounds(2000, 2000)
    sizes = np.full(30, 60.0)
    seeded = SpiralSeeder().seed(sizes, bounds)

    result = relax(seeded, sizes, bounds, params)

    assert result.bucketed
    assert result.max_overlap <= _EPS
    assert _contained(result.positions, sizes, bounds)


def test_relax_empty_input():
    result = relax(np.zeros((0, 2)), np.zeros(0), LayoutBounds(10, 10), LayoutParams())

    assert result.positions.shape == (0, 2)
    assert result.max_overlap == 0.0


@pytest.mark.parametrize("extent", [1_000.0, 100_000.0])
def test_centering_pull_does_not_grow_with_bounds(extent):
    params = LayoutParams(iterations=1, repulsion=0.0, settle_passes=0)
    bounds = LayoutBounds(extent, extent)
    sizes = np.array([100.0])
    corner = np.array([[50.0, 50.0]])

    result = relax(corner, sizes, bounds, params)

    moved = float(np.hypot(*(result.positions[0] - corner[0])))
    assert 0.0 < moved <= params.centering * 100.0


@pytest.mark.parametrize("count", [150, 301, 400])
def test_default_bucketing_regime_removes_overlap(count):
    params = LayoutParams()
    sizes = np.linspace(60.0, 150.0, count)[::-1]
    area = float(np.sum(np.pi * (sizes / 2.0) ** 2)) / params.fill_ratio
    width = float(np.sqrt(area * params.aspect_ratio))
    bounds = LayoutBounds(width, width / params.aspect_ratio)

    result = relax(SpiralSeeder().seed(sizes, bounds), sizes, bounds, params)

    assert result.bucketed == (count > params.bucketing_threshold)
    assert result.max_overlap <= _EPS
    assert _contained(result.positions, sizes, bounds)
