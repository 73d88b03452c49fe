import numpy as np
import pytest

from measurement_error_sims.run_power_calcs import (
    spearman_brown,
    attenuate_effect_size,
    calculate_sample_size,
    calculate_correlation_sample_size,
    correlation_power,
    run_ttest_power_grid,
    run_correlation_power_grid,
    run_reliability_power_grid,
    plot_power_analysis,
)


@pytest.mark.parametrize("reliability,expected", [(1.0, 0.70), (0.6, 0.42), (0.2, 0.14)])
def test_spearman_brown_reference_values(reliability, expected):
    assert round(spearman_brown(0.7, reliability, reliability), 2) == expected


def test_spearman_brown_rejects_bad_inputs():
    with pytest.raises(ValueError, match="r_true"):
        spearman_brown(1.5, 1, 1)
    with pytest.raises(ValueError, match="rxx"):
        spearman_brown(0.5, -0.1, 1)
    with pytest.raises(ValueError, match="ryy"):
        spearman_brown(0.5, 1, 1.2)


def test_attenuate_effect_size():
    assert attenuate_effect_size(0.8, 1.0) == pytest.approx(0.8)
    assert attenuate_effect_size(0.8, 0.25) == pytest.approx(0.4)


@pytest.mark.parametrize("d,test_type,expected", [
    (0.2, 'one-sample', 199),
    (0.5, 'two-sample', 64),
    (0.2, 'two-sample', 394),
])
def test_calculate_sample_size_known_values(d, test_type, expected):
    assert calculate_sample_size(d, test_type) == expected


def test_calculate_sample_size_rejects_bad_inputs():
    with pytest.raises(ValueError, match="power"):
        calculate_sample_size(0.5, power=1.2)
    with pytest.raises(ValueError, match="alpha"):
        calculate_sample_size(0.5, alpha=0)
    with pytest.raises(ValueError, match="test_type"):
        calculate_sample_size(0.5, test_type='paired-ish')
    with pytest.raises(ValueError, match="effect_size"):
        calculate_sample_size(0)


def test_calculate_correlation_sample_size_known_value():
    assert calculate_correlation_sample_size(0.3) == 85


def test_correlation_sample_size_reaches_power():
    n = calculate_correlation_sample_size(0.42)
    assert correlation_power(0.42, n) >= 0.8
    assert correlation_power(0.42, n - 1) < 0.8


def test_correlation_sample_size_rejects_bad_inputs():
    with pytest.raises(ValueError, match="r must be in"):
        calculate_correlation_sample_size(1.3)
    with pytest.raises(ValueError, match="power"):
        calculate_correlation_sample_size(0.3, power=0)
    with pytest.raises(ValueError):
        calculate_correlation_sample_size(0)


def test_ttest_grid():
    grid = run_ttest_power_grid()
    assert len(grid) == 10
    for _, subset in grid.groupby('test_type'):
        n = subset.sort_values('effect_size')['n_required'].to_numpy()
        assert (np.diff(n) < 0).all()

    one = grid[grid['test_type'] == 'one-sample'].set_index('effect_size')['n_required']
    two = grid[grid['test_type'] == 'two-sample'].set_index('effect_size')['n_required']
    assert (two > one).all()


def test_correlation_grid_grows_as_reliability_drops():
    grid = run_correlation_power_grid(0.7, [1.0, 0.8, 0.6, 0.4, 0.2])
    assert list(grid['r_observed'].round(2))[0] == 0.70
    assert (np.diff(grid['n_required'].to_numpy()) > 0).all()


def test_reliability_grid_matches_ttest_grid_when_perfectly_reliable():
    reliability = run_reliability_power_grid()
    perfect = reliability[reliability['reliability'] == 1.0].reset_index(drop=True)
    ttest = run_ttest_power_grid()

    assert list(perfect['n_required']) == list(ttest['n_required'])
    assert len(reliability) == 2 * 5 * 5


def test_plot_power_analysis(tmp_path):
    grid = run_reliability_power_grid(effect_sizes=[0.4, 0.8], reliabilities=[1.0, 0.5])
    save_path = tmp_path / 'power.png'
    fig = plot_power_analysis(grid, save_path=str(save_path))
    assert len(fig.axes) == 2
    assert save_path.exists()
