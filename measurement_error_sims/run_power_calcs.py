import pandas as pd
import numpy as np
from scipy import stats
from scipy.optimize import brentq
from statsmodels.stats.power import TTestPower, TTestIndPower
import matplotlib.pyplot as plt

from .constants import (ALPHA, POWER, EFFECT_SIZES, TEST_TYPES,
                        RELIABILITIES, TRUE_CORRELATION)

# =============================================================================
# 1. PARAMETER CHECKS
# =============================================================================

def _check_probability(name: str, value: float):
    if not 0 < value < 1:
        raise ValueError(f"{name} must be in (0, 1), got {value}")

def _check_reliability(name: str, value: float):
    if not 0 <= value <= 1:
        raise ValueError(f"{name} must be in [0, 1], got {value}")

def _check_correlation(name: str, value: float):
    if not -1 <= value <= 1:
        raise ValueError(f"{name} must be in [-1, 1], got {value}")

# =============================================================================
# 2. ATTENUATION
# =============================================================================

def spearman_brown(r_true: float, rxx: float, ryy: float) -> float:
    """
    Observed correlation implied by a true correlation and two reliabilities.

    r_obs = r_true * sqrt(rxx * ryy)
    """
    _check_correlation('r_true', r_true)
    _check_reliability('rxx', rxx)
    _check_reliability('ryy', ryy)
    return r_true * np.sqrt(rxx * ryy)

def attenuate_effect_size(d_true: float, reliability: float) -> float:
    """Observed Cohen's d when the outcome is measured with the given reliability."""
    _check_reliability('reliability', reliability)
    return d_true * np.sqrt(reliability)

# =============================================================================
# 3. SAMPLE SIZE CALCULATIONS
# =============================================================================

def calculate_sample_size(effect_size: float,
                          test_type: str = 'one-sample',
                          alpha: float = ALPHA,
                          power: float = POWER) -> int:
    """
    Minimum n for a two-sided t-test to reach the target power.

    Parameters:
    -----------
    effect_size : float
        Cohen's d
    test_type : str
        'one-sample' (also paired designs) or 'two-sample'
    alpha : float
        Significance level
    power : float
        Desired statistical power

    Returns:
    --------
    int : Required sample size (per group for 'two-sample')
    """
    _check_probability('alpha', alpha)
    _check_probability('power', power)
    if effect_size == 0 or not np.isfinite(effect_size):
        raise ValueError(f"effect_size must be finite and non-zero, got {effect_size}")

    if test_type == 'one-sample':
        analysis = TTestPower()
    elif test_type == 'two-sample':
        analysis = TTestIndPower()
    else:
        raise ValueError(f"test_type must be 'one-sample' or 'two-sample', got {test_type!r}")

    n = analysis.solve_power(
        effect_size=abs(effect_size),
        alpha=alpha,
        power=power,
        alternative='two-sided'
    )
    return int(np.ceil(n))

def correlation_power(r: float, n: float, alpha: float = ALPHA) -> float:
    """
    Power of a two-sided test of H0: rho = 0 at sample size n.

    Fisher-z approximation with the r / (2(n-1)) bias correction and the
    critical r taken from the t distribution with n-2 df.
    """
    _check_correlation('r', r)
    _check_probability('alpha', alpha)
    if n <= 3:
        raise ValueError(f"n must be > 3, got {n}")

    r = abs(r)
    t_crit = stats.t.ppf(1 - alpha/2, n - 2)
    r_crit = np.sqrt(t_crit**2 / (t_crit**2 + n - 2))

    z_r = np.arctanh(r) + r / (2 * (n - 1))
    z_crit = np.arctanh(r_crit)

    return (stats.norm.cdf((z_r - z_crit) * np.sqrt(n - 3)) +
            stats.norm.cdf((-z_r - z_crit) * np.sqrt(n - 3)))

def calculate_correlation_sample_size(r: float,
                                      alpha: float = ALPHA,
                                      power: float = POWER,
                                      max_n: float = 1e9) -> int:
    """Minimum n to detect a correlation of `r` with the target power."""
    _check_correlation('r', r)
    _check_probability('alpha', alpha)
    _check_probability('power', power)
    if r == 0 or abs(r) == 1:
        raise ValueError(f"r must be non-zero and strictly inside (-1, 1), got {r}")

    lower = 4 + 1e-10
    if correlation_power(r, lower, alpha) >= power:
        return int(np.ceil(lower))

    n = brentq(lambda x: correlation_power(r, x, alpha) - power, lower, max_n)
    return int(np.ceil(n))

# =============================================================================
# 4. POWER ANALYSIS GRIDS
# =============================================================================

def run_ttest_power_grid(effect_sizes: list = None,
                         test_types: list = None,
                         alpha: float = ALPHA,
                         power: float = POWER) -> pd.DataFrame:
    """Required n for every effect size x test type."""
    effect_sizes = effect_sizes if effect_sizes is not None else EFFECT_SIZES
    test_types = test_types if test_types is not None else TEST_TYPES

    results = []
    for test_type in test_types:
        for d in effect_sizes:
            results.append({
                'test_type': test_type,
                'effect_size': d,
                'alpha': alpha,
                'power': power,
                'n_required': calculate_sample_size(d, test_type, alpha, power)
            })

    return pd.DataFrame(results)

def run_correlation_power_grid(r_true: float = TRUE_CORRELATION,
                               reliabilities: list = None,
                               alpha: float = ALPHA,
                               power: float = POWER) -> pd.DataFrame:
    """
    Required n to detect a true correlation when both measures share a reliability.

    Each reliability is used for both rxx and ryy.
    """
    reliabilities = reliabilities if reliabilities is not None else RELIABILITIES

    results = []
    for reliability in reliabilities:
        r_obs = spearman_brown(r_true, reliability, reliability)
        results.append({
            'r_true': r_true,
            'reliability': reliability,
            'r_observed': r_obs,
            'alpha': alpha,
            'power': power,
            'n_required': calculate_correlation_sample_size(r_obs, alpha, power)
        })

    return pd.DataFrame(results)

def run_reliability_power_grid(effect_sizes: list = None,
                               reliabilities: list = None,
                               test_types: list = None,
                               alpha: float = ALPHA,
                               power: float = POWER) -> pd.DataFrame:
    """Required n for every true effect size x reliability x test type."""
    effect_sizes = effect_sizes if effect_sizes is not None else EFFECT_SIZES
    reliabilities = reliabilities if reliabilities is not None else RELIABILITIES
    test_types = test_types if test_types is not None else TEST_TYPES

    results = []
    for test_type in test_types:
        for reliability in reliabilities:
            for d in effect_sizes:
                d_obs = attenuate_effect_size(d, reliability)
                results.append({
                    'test_type': test_type,
                    'reliability': reliability,
                    'effect_size': d,
                    'effect_size_observed': d_obs,
                    'alpha': alpha,
                    'power': power,
                    'n_required': calculate_sample_size(d_obs, test_type, alpha, power)
                })

    return pd.DataFrame(results)

# =============================================================================
# 5. REPORTING AND VISUALIZATION
# =============================================================================

def print_power_tables(ttest_df: pd.DataFrame,
                       correlation_df: pd.DataFrame,
                       reliability_df: pd.DataFrame = None):
    """Print the sample size tables in a manuscript-friendly layout."""
    power = ttest_df['power'].iloc[0]
    alpha = ttest_df['alpha'].iloc[0]

    print(f"=== Required sample sizes (power = {power}, α = {alpha}, two-sided) ===")
    wide = ttest_df.pivot_table(values='n_required', index='effect_size',
                                columns='test_type', aggfunc='first')
    print(wide.to_string())

    print(f"\n=== Correlation sample sizes (r_true = {correlation_df['r_true'].iloc[0]}) ===")
    print(correlation_df[['reliability', 'r_observed', 'n_required']].round(2).to_string(index=False))

    if reliability_df is not None:
        for test_type, subset in reliability_df.groupby('test_type'):
            print(f"\n=== {test_type} t-test: n by true d and reliability ===")
            wide = subset.pivot_table(values='n_required', index='reliability',
                                      columns='effect_size', aggfunc='first')
            print(wide.sort_index(ascending=False).to_string())

def plot_power_analysis(reliability_df: pd.DataFrame, save_path=None):
    """
    Required sample size against true effect size, one line per reliability.
    """
    test_types = list(reliability_df['test_type'].unique())
    fig, axes = plt.subplots(1, len(test_types), figsize=(6 * len(test_types), 4.5), squeeze=False)
    fig.suptitle('Sample Size Needed Under Measurement Error', fontsize=14, fontweight='bold')

    for ax, test_type in zip(axes[0], test_types):
        subset = reliability_df[reliability_df['test_type'] == test_type]
        for reliability in sorted(subset['reliability'].unique(), reverse=True):
            line = subset[subset['reliability'] == reliability].sort_values('effect_size')
            ax.plot(line['effect_size'], line['n_required'], 'o-',
                    label=f'reliability={reliability}', alpha=0.8)

        ax.set_yscale('log')
        ax.set_xlabel("True Effect Size (Cohen's d)")
        ax.set_ylabel('Required Sample Size')
        ax.set_title(f'{test_type} t-test')
        ax.legend(fontsize='small')
        ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Plot saved to: {save_path}")

    return fig
