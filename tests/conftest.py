"""
Shared test configuration.

Puts the project root on sys.path so `measurement_error_sims` imports without
an install, and forces the non-interactive matplotlib backend.
"""

import os
import sys

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pandas as pd
import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from measurement_error_sims.simulate_scores import MeasurementErrorSimulator
from measurement_error_sims.summarize_conditions import summarize_conditions


@pytest.fixture
def sim_df():
    return MeasurementErrorSimulator(size=50).simulate(seed=42)


@pytest.fixture
def long_df(sim_df):
    return MeasurementErrorSimulator.to_long_format(sim_df)


@pytest.fixture
def summary_df(long_df):
    return summarize_conditions(long_df)


@pytest.fixture
def shrout_fleiss_wide():
    """6 targets rated by 4 judges (Shrout & Fleiss, 1979, Table 2)."""
    return pd.DataFrame(
        [[9, 2, 5, 8],
         [6, 1, 3, 2],
         [8, 4, 6, 8],
         [7, 1, 2, 6],
         [10, 5, 6, 9],
         [6, 2, 4, 7]],
        index=[f's{i}' for i in range(1, 7)],
        columns=[1, 2, 3, 4]
    )


@pytest.fixture
def trial_df():
    """Small trial-level dataset shaped like the ManyBabies 1 processed data."""
    rng = np.random.RandomState(0)
    rows = []
    for lab in ['babylab', 'infantlab']:
        for subid in ['s01', 's02', 's03', 's04', 's05']:
            ability = rng.normal(0, 1)
            for stimulus_num in [1, 2, 3, 4]:
                diff = ability + rng.normal(0, 0.5)
                # IDS and ADS trial of the same stimulus pair carry the same diff
                for trial_num in [2 * stimulus_num - 1, 2 * stimulus_num]:
                    rows.append({
                        'lab': lab,
                        'subid': subid,
                        'diff': diff,
                        'stimulus_num': stimulus_num,
                        'trial_num': trial_num,
                        'method': 'singlescreen' if lab == 'babylab' else 'hpp',
                        'age_group': '6-9 mo',
                    })
    return pd.DataFrame(rows)
