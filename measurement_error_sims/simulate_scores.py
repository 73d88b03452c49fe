import pandas as pd
import numpy as np
from scipy import stats

from .constants import (SEED, SAMPLE_SIZE, TRUE_SCORE_CONDITIONS, ERROR_SDS,
                        TRUE_VARIABILITY_LABELS, ERROR_LABELS, PANEL_LABELS)

# =============================================================================
# 1. CANONICALIZED SAMPLING
# =============================================================================

def canonicalize_draws(raw: np.ndarray, mean: float, sd: float) -> np.ndarray:
    """
    Adjust raw standard-normal draws so their empirical moments hit the target.

    Two steps:
      1. Quantile matching: each draw is replaced by the normal quantile at
         (rank - 0.5) / n, so the sample has the shape of a "perfect" normal
         sample while keeping the random order of the raw draws.
      2. Moment pinning: the result is centred and scaled so the empirical
         mean equals `mean` and the sample sd (ddof=1) equals `sd`, up to
         floating point error (< 1e-9).

    Individual draws are biased by this; only the aggregate is faithful.

    Parameters:
    -----------
    raw : np.ndarray
        Raw draws (any continuous distribution, only their ranks are used)
    mean : float
        Target mean
    sd : float
        Target sample standard deviation

    Returns:
    --------
    np.ndarray : Adjusted draws, same order as `raw`
    """
    n = len(raw)
    ranks = stats.rankdata(raw, method='ordinal')
    quantiles = stats.norm.ppf((ranks - 0.5) / n)

    z = (quantiles - quantiles.mean()) / np.std(quantiles, ddof=1)
    return mean + sd * z

def canonical_normal(n: int, mean: float = 0.0, sd: float = 1.0,
                     method: str = 'quantile') -> np.ndarray:
    """
    Draw `n` near-normal values with mean `mean` and sd `sd`.

    method='quantile' applies canonicalize_draws(); method='raw' returns naive
    independent draws. Uses the global numpy generator, so seed it first.
    """
    if not isinstance(n, (int, np.integer)) or n < 2:
        raise ValueError(f"n must be an integer >= 2, got {n!r}")
    if not sd > 0:
        raise ValueError(f"sd must be > 0, got {sd}")

    raw = np.random.normal(0, 1, size=n)

    if method == 'quantile':
        return canonicalize_draws(raw, mean, sd)
    elif method == 'raw':
        return mean + sd * raw
    else:
        raise ValueError(f"method must be 'quantile' or 'raw', got {method!r}")

# =============================================================================
# 2. CONDITION LABELS
# =============================================================================

def true_variability_label(true_sd: float) -> str:
    try:
        return TRUE_VARIABILITY_LABELS[true_sd]
    except KeyError:
        raise ValueError(f"No variability label for true_sd={true_sd}") from None

def error_label(error_sd: float) -> str:
    try:
        return ERROR_LABELS[error_sd]
    except KeyError:
        raise ValueError(f"No error label for error_sd={error_sd}") from None

def assign_panel(error_sd: float, true_sd: float) -> str:
    """Panel letter (A-D) for an (error_sd, true_sd) pair."""
    try:
        return PANEL_LABELS[(error_sd, true_sd)]
    except KeyError:
        raise ValueError(f"No panel for error_sd={error_sd}, true_sd={true_sd}") from None

# =============================================================================
# 3. ERROR RECYCLING
# =============================================================================

def recycle_errors(errors: np.ndarray, n_targets: int, target_length: int) -> np.ndarray:
    """
    Repeat one error sequence across `n_targets` equally sized conditions.

    Subject i of every condition receives errors[i]. The sequence must be
    exactly as long as each condition, otherwise the alignment is off.
    """
    if len(errors) != target_length:
        raise ValueError(
            f"Error sequence has {len(errors)} draws but each true-score "
            f"condition has {target_length} subjects; cannot recycle"
        )
    return np.tile(errors, n_targets)

# =============================================================================
# 4. SIMULATOR
# =============================================================================

class MeasurementErrorSimulator:
    """
    Simulates infant-study scores as true score + measurement error.

    Parameters:
        size (int): Subjects per true-score condition.
        true_conditions (list): (mean, sd) pairs for the true scores.
        error_sds (list): Standard deviations of the measurement error.
        method (str): 'quantile' (canonicalized) or 'raw' sampling.
        verbose (bool): Print a short description of what was simulated.
    """

    def __init__(self,
                 size: int = SAMPLE_SIZE,
                 true_conditions: list = None,
                 error_sds: list = None,
                 method: str = 'quantile',
                 verbose: bool = False):

        self.size = size
        self.true_conditions = list(true_conditions) if true_conditions is not None else list(TRUE_SCORE_CONDITIONS)
        self.error_sds = list(error_sds) if error_sds is not None else list(ERROR_SDS)
        self.method = method
        self.verbose = verbose

        if not self.true_conditions:
            raise ValueError("true_conditions must contain at least one (mean, sd) pair")
        if not self.error_sds:
            raise ValueError("error_sds must contain at least one sd")

    def simulate_true_scores(self) -> pd.DataFrame:
        rows = []
        for true_mean, true_sd in self.true_conditions:
            scores = canonical_normal(self.size, true_mean, true_sd, method=self.method)
            rows.append(pd.DataFrame({
                'id': np.arange(1, self.size + 1),
                'true_mean': true_mean,
                'true_sd': true_sd,
                'score_true': scores,
                'true_variability': true_variability_label(true_sd),
                'true_d': true_mean / true_sd,
            }))
        return pd.concat(rows, ignore_index=True)

    def simulate_errors(self) -> dict:
        """One shuffled error sequence per error sd."""
        errors = {}
        for error_sd in self.error_sds:
            draws = canonical_normal(self.size, 0.0, error_sd, method=self.method)
            errors[error_sd] = np.random.permutation(draws)
        return errors

    def simulate(self, seed: int = SEED) -> pd.DataFrame:
        """
        Run one seeded simulation.

        Returns:
        --------
        pd.DataFrame : One row per subject per error level with columns
            id, true_mean, true_sd, score_true, true_variability, true_d,
            error_sd, error_label, error, score_observed, panel
        """
        np.random.seed(seed)

        true_df = self.simulate_true_scores()
        errors = self.simulate_errors()

        frames = []
        for error_sd, draws in errors.items():
            observed = true_df.copy()
            observed['error_sd'] = error_sd
            observed['error_label'] = error_label(error_sd)
            observed['error'] = recycle_errors(draws, len(self.true_conditions), self.size)
            observed['score_observed'] = observed['score_true'] + observed['error']
            observed['panel'] = [assign_panel(error_sd, sd) for sd in observed['true_sd']]
            frames.append(observed)

        sim_df = pd.concat(frames, ignore_index=True)

        if self.verbose:
            print(f"Simulated {len(sim_df)} observed records:")
            print(f"  - True-score conditions: {len(self.true_conditions)}")
            print(f"  - Error conditions: {len(self.error_sds)}")
            print(f"  - Subjects per group: {self.size}")

        return sim_df

    @staticmethod
    def to_long_format(sim_df: pd.DataFrame) -> pd.DataFrame:
        """Two rows per subject per error level: the true and the observed score."""
        id_cols = ['id', 'true_mean', 'true_sd', 'true_variability', 'true_d',
                   'error_sd', 'error_label', 'panel']
        long_df = sim_df.melt(
            id_vars=id_cols,
            value_vars=['score_true', 'score_observed'],
            var_name='score_type',
            value_name='score'
        )
        long_df['score_type'] = long_df['score_type'].map({'score_true': 'true',
                                                            'score_observed': 'observed'})
        return long_df
