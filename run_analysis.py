"""
Run the full measurement-error analysis.

Simulates the infant-study scores, summarizes each condition, writes the
explanatory figure, prints the power tables and estimates the reliability of
the ManyBabies 1 IDS preference measure. All settings live in
measurement_error_sims/constants.py.
"""

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from measurement_error_sims import constants
from measurement_error_sims.simulate_scores import MeasurementErrorSimulator
from measurement_error_sims.summarize_conditions import summarize_conditions, print_summary
from measurement_error_sims.plot_simulation import plot_simulation
from measurement_error_sims.run_power_calcs import (
    run_ttest_power_grid,
    run_correlation_power_grid,
    run_reliability_power_grid,
    print_power_tables
)
from measurement_error_sims.reliability import ReliabilityData, AnalyzeReliability

# =============================================================================
# 1. SIMULATION
# =============================================================================

def run_simulation(seed=constants.SEED, save_path=constants.FIGURE_PATH):
    simulator = MeasurementErrorSimulator(
        size=constants.SAMPLE_SIZE,
        true_conditions=constants.TRUE_SCORE_CONDITIONS,
        error_sds=constants.ERROR_SDS,
        verbose=True
    )
    sim_df = simulator.simulate(seed=seed)
    long_df = simulator.to_long_format(sim_df)
    summary_df = summarize_conditions(long_df)

    print_summary(summary_df, score_type='true')
    print()
    print_summary(summary_df, score_type='observed')

    fig = plot_simulation(long_df, summary_df, save_path=save_path)
    plt.close(fig)

    return summary_df

# =============================================================================
# 2. POWER TABLES
# =============================================================================

def run_power_tables():
    ttest_df = run_ttest_power_grid(constants.EFFECT_SIZES, constants.TEST_TYPES)
    correlation_df = run_correlation_power_grid(constants.TRUE_CORRELATION, constants.RELIABILITIES)
    reliability_df = run_reliability_power_grid(constants.EFFECT_SIZES, constants.RELIABILITIES,
                                                constants.TEST_TYPES)
    print_power_tables(ttest_df, correlation_df, reliability_df)
    return ttest_df, correlation_df, reliability_df

# =============================================================================
# 3. RELIABILITY
# =============================================================================

def run_reliability():
    data = ReliabilityData(constants.DATA_URL, constants.DATA_CACHE_PATH, verbose=True)
    df_wide = data.load_wide_df()

    analyzer = AnalyzeReliability(df_wide)
    icc_df = analyzer.calculate_icc()
    analyzer.print_results(icc_df)
    print()
    print(analyzer.format_write_up(icc_df))

    return icc_df

if __name__ == '__main__':
    run_simulation()
    print()
    run_power_tables()
    print()
    run_reliability()
