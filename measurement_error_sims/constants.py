"""
Constants and configuration for the measurement-error simulations.

Everything the analysis needs is hard-coded here: simulation design,
power-analysis grids, the reliability dataset location and figure settings.
Standard deviations are on the latent score scale (true-score sd of 1.0 is
"high" variability, error sd of 1.0 is "large" error).
"""

# =============================================================================
# SIMULATION DESIGN
# =============================================================================

SEED = 42
SAMPLE_SIZE = 50

# (mean, sd) pairs for the true scores
TRUE_SCORE_CONDITIONS = [
    (0.5, 0.5),
    (0.5, 1.0),
    (1.0, 0.5),
    (1.0, 1.0),
]

ERROR_SDS = [0.5, 1.0]

TRUE_VARIABILITY_LABELS = {0.5: 'low', 1.0: 'high'}
ERROR_LABELS = {0.5: 'small', 1.0: 'large'}

# Keyed by (error_sd, true_sd)
PANEL_LABELS = {
    (0.5, 1.0): 'A',
    (0.5, 0.5): 'B',
    (1.0, 1.0): 'C',
    (1.0, 0.5): 'D',
}

# =============================================================================
# POWER ANALYSIS
# =============================================================================

EFFECT_SIZES = [0.2, 0.4, 0.6, 0.8, 1.0]
TEST_TYPES = ['one-sample', 'two-sample']
ALPHA = 0.05
POWER = 0.80

RELIABILITIES = [1.0, 0.8, 0.6, 0.4, 0.2]
TRUE_CORRELATION = 0.7

# =============================================================================
# RELIABILITY DATASET (ManyBabies 1, trial-level processed data)
# =============================================================================

DATA_URL = ('https://raw.githubusercontent.com/manybabies/mb1-analysis-public/'
            'master/processed_data/03_data_trial_main.csv')
DATA_CACHE_PATH = 'data/03_data_trial_main.csv'

REQUIRED_DATA_COLS = {'lab', 'subid', 'diff', 'stimulus_num', 'trial_num',
                      'method', 'age_group'}

# =============================================================================
# FIGURES
# =============================================================================

FIGURE_PATH = 'figures/simulation.png'
FIGURE_SIZE = (8.5, 5)
FIGURE_DPI = 300

TRUE_MEAN_COLORS = {0.5: '#1f77b4', 1.0: '#ff7f0e'}
