import numpy as np
import pandas as pd
import pytest

from measurement_error_sims.simulate_scores import MeasurementErrorSimulator
from measurement_error_sims.summarize_conditions import (
    summarize_conditions,
    derived_quantities,
    attenuation_table,
    GROUP_COLS,
)


def test_derived_quantities_high_variability_large_error():
    q = derived_quantities(true_mean=1, true_sd=1, error_sd=1)
    assert q['total_var'] == pytest.approx(2)
    assert q['total_sd'] == pytest.approx(1.414, abs=1e-3)
    assert q['d'] == pytest.approx(0.707, abs=1e-3)
    assert q['r'] == pytest.approx(0.5)


def test_derived_quantities_low_variability_large_error():
    q = derived_quantities(true_mean=1, true_sd=0.5, error_sd=1)
    assert q['total_var'] == pytest.approx(1.25)
    assert q['d'] == pytest.approx(0.894, abs=1e-3)
    assert q['r'] == pytest.approx(0.2)


def test_no_error_means_no_attenuation():
    q = derived_quantities(true_mean=1, true_sd=0.5, error_sd=0)
    assert q['r'] == 1
    assert q['d'] == pytest.approx(2)


@pytest.mark.parametrize("true_sd", [0.5, 1.0])
def test_more_error_lowers_r_and_d(true_sd):
    error_sds = [0.25, 0.5, 1.0, 2.0]
    quantities = [derived_quantities(1.0, true_sd, e) for e in error_sds]
    rs = [q['r'] for q in quantities]
    ds = [q['d'] for q in quantities]

    assert all(a > b for a, b in zip(rs, rs[1:]))
    assert all(a > b for a, b in zip(ds, ds[1:]))
    assert all(0 < r < 1 for r in rs)
    assert all(d < 1.0 / true_sd for d in ds)


def test_end_to_end_low_variability_small_error():
    simulator = MeasurementErrorSimulator(size=50, true_conditions=[(1.0, 0.5)], error_sds=[0.5])
    long_df = simulator.to_long_format(simulator.simulate(seed=42))
    summary = summarize_conditions(long_df)

    observed = summary[summary['score_type'] == 'observed'].iloc[0]
    assert observed['n'] == 50
    assert observed['d'] == pytest.approx(1.414, abs=1e-3)
    assert observed['r'] == pytest.approx(0.5)
    assert observed['panel'] == 'B'


def test_one_summary_per_group(summary_df):
    assert len(summary_df) == 16
    assert not summary_df.duplicated(subset=GROUP_COLS).any()
    assert (summary_df['n'] == 50).all()


def test_summary_moments_match_design(summary_df):
    # Canonicalized true scores and zero-mean errors pin the observed means
    np.testing.assert_allclose(summary_df['obs_mean'], summary_df['true_mean'], atol=1e-9)

    true_rows = summary_df[summary_df['score_type'] == 'true']
    np.testing.assert_allclose(true_rows['obs_sd'], true_rows['true_sd'], atol=1e-9)
    np.testing.assert_allclose(true_rows['sample_d'], true_rows['true_mean'] / true_rows['true_sd'])


def test_summary_is_order_independent(long_df, summary_df):
    shuffled = long_df.sample(frac=1, random_state=1)
    pd.testing.assert_frame_equal(summarize_conditions(shuffled), summary_df)


def test_degenerate_group_raises(long_df):
    lonely = long_df.iloc[[0]].copy()
    lonely['panel'] = 'Z'
    with pytest.raises(ValueError, match="fewer than 2"):
        summarize_conditions(pd.concat([long_df, lonely], ignore_index=True))


def test_missing_columns_raise(long_df):
    with pytest.raises(ValueError, match="missing columns"):
        summarize_conditions(long_df.drop(columns=['panel']))


def test_attenuation_table():
    table = attenuation_table()
    assert len(table) == 8
    assert sorted(table['panel'].unique()) == ['A', 'B', 'C', 'D']
    assert (table['d'] < table['true_d']).all()
    assert ((table['r'] > 0) & (table['r'] <= 1)).all()


def test_group_with_one_scored_member_raises(long_df):
    gappy = long_df.copy()
    group = gappy[(gappy['score_type'] == 'observed') & (gappy['panel'] == 'A') & (gappy['true_mean'] == 1.0)]
    assert len(group) == 50
    gappy.loc[group.index[1:], 'score'] = np.nan

    with pytest.raises(ValueError, match="49 missing values"):
        summarize_conditions(gappy)
