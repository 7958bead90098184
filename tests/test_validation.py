import pytest

from stakemap import LayoutParams, SizingParams, ViewportConfig, ViewportController, get_layout_params, set_layout_params
from stakemap.validate import ParamsError, ensure_unique_ids, validate_layout_params, validate_viewport_config


def test_default_params_are_valid():
    validate_layout_params(LayoutParams())
    validate_viewport_config(ViewportConfig())


@pytest.mark.parametrize(
    'overrides, message_part',
    [
        ({'damping': 0.0}, 'damping'),
        ({'damping': 1.5}, 'damping'),
        ({'iterations': -1}, 'iterations'),
        ({'repulsion': -1.0}, 'repulsion'),
        ({'max_step': 0.0}, 'max_step'),
        ({'seeder': 'random'}, 'seeder'),
        ({'fill_ratio': 0.0}, 'fill_ratio'),
        ({'settle_passes': -2}, 'settle_passes'),
        ({'sizing': SizingParams(min_size=200, max_size=100)}, 'min_size'),
        ({'sizing': SizingParams(growth='cubic')}, 'growth'),
    ],
)
def test_layout_params_rejected(overrides, message_part):
    with pytest.raises(ParamsError) as exc:
        validate_layout_params(LayoutParams(**overrides))

    assert message_part in str(exc.value)


@pytest.mark.parametrize(
    'overrides, message_part',
    [
        ({'min_scale': 2.0, 'max_scale': 1.0}, 'min_scale'),
        ({'default_scale': 5.0}, 'default_scale'),
        ({'zoom_step': 1.0}, 'zoom_step'),
        ({'min_extent': 0.0}, 'min_extent'),
    ],
)
def test_viewport_config_rejected(overrides, message_part):
    with pytest.raises(ParamsError) as exc:
        ViewportController(config=ViewportConfig(**overrides))

    assert message_part in str(exc.value)


def test_duplicate_ids_rejected():
    ensure_unique_ids(['a', 'b'])
    with pytest.raises(ParamsError) as exc:
        ensure_unique_ids(['a', 'b', 'a'])

    assert '"a"' in str(exc.value)


def test_get_layout_params_returns_copy():
    params = get_layout_params()
    params.iterations = 3
    params.sizing.max_size = 999

    fresh = get_layout_params()
    assert fresh.iterations == LayoutParams().iterations
    assert fresh.sizing.max_size == SizingParams().max_size


def test_set_layout_params_validates_and_copies():
    original = get_layout_params()
    try:
        with pytest.raises(ParamsError):
            set_layout_params(LayoutParams(damping=2.0))
        assert get_layout_params() == original

        custom = LayoutParams(iterations=7)
        set_layout_params(custom)
        custom.iterations = 99
        assert get_layout_params().iterations == 7
    finally:
        set_layout_params(original)
