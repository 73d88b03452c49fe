"""
Measurement Error Simulations

This package simulates hypothetical infant-study datasets to show how
measurement error and true-score variability jointly shrink observed effect
sizes, tabulates the sample sizes needed for 80% power across effect sizes and
reliabilities, and estimates ICC-based reliability on a multi-lab dataset.

Main Components:
- MeasurementErrorSimulator: Seeded true score + measurement error simulation
- summarize_conditions: Per-condition observed mean/sd, Cohen's d and reliability ratio
- plot_simulation: Faceted figure of true vs observed score distributions
- Power calculation functions: t-test and correlation sample sizes, Spearman-Brown attenuation
- ReliabilityData / AnalyzeReliability: Long-to-wide reshaping, ICC and Cronbach's alpha
"""

from .simulate_scores import (
    MeasurementErrorSimulator,
    canonical_normal,
    canonicalize_draws,
    assign_panel,
    recycle_errors
)
from .summarize_conditions import (
    summarize_conditions,
    derived_quantities,
    attenuation_table
)
from .plot_simulation import plot_simulation
from .run_power_calcs import (
    spearman_brown,
    attenuate_effect_size,
    calculate_sample_size,
    calculate_correlation_sample_size,
    run_ttest_power_grid,
    run_correlation_power_grid,
    run_reliability_power_grid,
    plot_power_analysis
)
from .reliability import ReliabilityData, AnalyzeReliability

__version__ = "0.1.0"

__all__ = [
    "MeasurementErrorSimulator",
    "canonical_normal",
    "canonicalize_draws",
    "assign_panel",
    "recycle_errors",
    "summarize_conditions",
    "derived_quantities",
    "attenuation_table",
    "plot_simulation",
    "spearman_brown",
    "attenuate_effect_size",
    "calculate_sample_size",
    "calculate_correlation_sample_size",
    "run_ttest_power_grid",
    "run_correlation_power_grid",
    "run_reliability_power_grid",
    "plot_power_analysis",
    "ReliabilityData",
    "AnalyzeReliability"
]
