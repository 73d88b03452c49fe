import pandas as pd
import numpy as np
from typing import Dict

from .constants import TRUE_SCORE_CONDITIONS, ERROR_SDS
from .simulate_scores import true_variability_label, error_label, assign_panel

GROUP_COLS = ['score_type', 'true_variability', 'error_sd', 'true_sd',
              'true_mean', 'panel', 'error_label']

# =============================================================================
# 1. DERIVED QUANTITIES
# =============================================================================

def derived_quantities(true_mean: float, true_sd: float, error_sd: float) -> Dict[str, float]:
    """
    Attenuated effect size and reliability ratio for one condition.

    total_var = error_sd² + true_sd², d = true_mean / sqrt(total_var),
    r = true_sd² / total_var.
    """
    if not true_sd > 0:
        raise ValueError(f"true_sd must be > 0, got {true_sd}")
    if error_sd < 0:
        raise ValueError(f"error_sd must be >= 0, got {error_sd}")

    total_var = error_sd**2 + true_sd**2
    total_sd = np.sqrt(total_var)

    return {
        'total_var': total_var,
        'total_sd': total_sd,
        'd': true_mean / total_sd,
        'r': true_sd**2 / total_var,
    }

# =============================================================================
# 2. AGGREGATION
# =============================================================================

def summarize_conditions(long_df: pd.DataFrame, group_cols: list = None) -> pd.DataFrame:
    """
    Collapse long-format scores to one summary row per condition.

    Parameters:
    -----------
    long_df : pd.DataFrame
        Output of MeasurementErrorSimulator.to_long_format(); needs a `score`
        column plus every grouping column
    group_cols : list
        Grouping keys (default: GROUP_COLS)

    Returns:
    --------
    pd.DataFrame : One row per group with n, obs_mean, obs_sd (ddof=1),
        sample_d, total_var, total_sd, d and r, sorted by the group keys
    """
    group_cols = list(group_cols) if group_cols is not None else list(GROUP_COLS)

    required = set(group_cols) | {'score', 'true_mean', 'true_sd', 'error_sd'}
    missing = required - set(long_df.columns)
    if missing:
        raise ValueError(f"long_df is missing columns: {sorted(missing)}")

    missing_scores = long_df['score'].isna()
    if missing_scores.any():
        raise ValueError(f"score has {int(missing_scores.sum())} missing values; drop or impute them first")

    summary = long_df.groupby(group_cols, dropna=False).agg(
        n=('score', 'count'),
        obs_mean=('score', 'mean'),
        obs_sd=('score', lambda x: np.std(x, ddof=1) if len(x) > 1 else np.nan)
    ).reset_index()

    degenerate = summary[summary['n'] < 2]
    if len(degenerate) > 0:
        keys = degenerate[group_cols].to_dict('records')
        raise ValueError(
            f"Sample sd is undefined for groups with fewer than 2 members: {keys}"
        )

    summary['sample_d'] = summary['obs_mean'] / summary['obs_sd']

    derived = pd.DataFrame([
        derived_quantities(row.true_mean, row.true_sd, row.error_sd)
        for row in summary.itertuples(index=False)
    ])
    summary = pd.concat([summary, derived], axis=1)

    return summary.sort_values(group_cols).reset_index(drop=True)

def attenuation_table(true_conditions: list = None, error_sds: list = None) -> pd.DataFrame:
    """Analytic d and r for every true-score x error condition (no sampling)."""
    true_conditions = true_conditions if true_conditions is not None else TRUE_SCORE_CONDITIONS
    error_sds = error_sds if error_sds is not None else ERROR_SDS

    rows = []
    for error_sd in error_sds:
        for true_mean, true_sd in true_conditions:
            row = {
                'panel': assign_panel(error_sd, true_sd),
                'true_variability': true_variability_label(true_sd),
                'error_label': error_label(error_sd),
                'true_mean': true_mean,
                'true_sd': true_sd,
                'error_sd': error_sd,
                'true_d': true_mean / true_sd,
            }
            row.update(derived_quantities(true_mean, true_sd, error_sd))
            rows.append(row)

    return pd.DataFrame(rows).sort_values(['panel', 'true_mean']).reset_index(drop=True)

def print_summary(summary_df: pd.DataFrame, score_type: str = 'observed'):
    """Pretty print the condition summaries for one score type."""
    subset = summary_df[summary_df['score_type'] == score_type]
    display_cols = ['panel', 'error_label', 'true_variability', 'true_mean',
                    'obs_mean', 'obs_sd', 'sample_d', 'd', 'r']

    print(f"=== Condition summaries ({score_type} scores) ===")
    print(subset[display_cols].round(3).to_string(index=False))
