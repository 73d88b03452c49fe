import os
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from .constants import FIGURE_SIZE, FIGURE_DPI, TRUE_MEAN_COLORS

PANEL_ORDER = ['A', 'B', 'C', 'D']

def _panel_title(panel: str, panel_rows: pd.DataFrame) -> str:
    first = panel_rows.iloc[0]
    return f"{panel}: {first['error_label']} error, {first['true_variability']} variability"

def plot_simulation(long_df: pd.DataFrame,
                    summary_df: pd.DataFrame,
                    save_path=None,
                    figsize=FIGURE_SIZE,
                    dpi=FIGURE_DPI):
    """
    Faceted figure of true vs observed score distributions.

    One panel per (error sd, true sd) condition. Dashed lines are true scores,
    solid lines observed scores, coloured by true mean. Each panel is
    annotated with the attenuated d and the reliability ratio r.

    Parameters:
    -----------
    long_df : pd.DataFrame
        Long-format scores (score_type, score, panel, true_mean, ...)
    summary_df : pd.DataFrame
        Output of summarize_conditions()
    save_path : str, optional
        Where to write the image
    """
    sns.set_style('whitegrid')
    fig, axes = plt.subplots(2, 2, figsize=figsize, sharex=True, sharey=True)

    observed_summary = summary_df[summary_df['score_type'] == 'observed']

    for ax, panel in zip(axes.flat, PANEL_ORDER):
        panel_rows = long_df[long_df['panel'] == panel]
        if len(panel_rows) == 0:
            ax.set_visible(False)
            continue

        for true_mean in sorted(panel_rows['true_mean'].unique()):
            color = TRUE_MEAN_COLORS.get(true_mean)
            condition = panel_rows[panel_rows['true_mean'] == true_mean]

            sns.kdeplot(condition.loc[condition['score_type'] == 'true', 'score'],
                        ax=ax, color=color, linestyle='--', linewidth=1)
            sns.kdeplot(condition.loc[condition['score_type'] == 'observed', 'score'],
                        ax=ax, color=color, linewidth=1.5, label=f'mean = {true_mean}')

        annotations = []
        for row in observed_summary[observed_summary['panel'] == panel].sort_values('true_mean').itertuples():
            annotations.append(f"μ={row.true_mean}: d = {row.d:.2f}")
        r = observed_summary.loc[observed_summary['panel'] == panel, 'r']
        if len(r) > 0:
            annotations.append(f"r = {r.iloc[0]:.2f}")

        ax.text(0.02, 0.95, '\n'.join(annotations), transform=ax.transAxes,
                fontsize=7, va='top', ha='left',
                bbox=dict(boxstyle='round', facecolor='white', alpha=0.8))
        ax.set_title(_panel_title(panel, panel_rows), fontsize=9)
        ax.set_xlabel('Score')
        ax.set_ylabel('Density')

    handles, labels = axes.flat[0].get_legend_handles_labels()
    if handles:
        fig.legend(handles, labels, loc='lower center', ncol=len(labels), fontsize=8, frameon=False)

    plt.tight_layout(rect=(0, 0.05, 1, 1))

    if save_path:
        directory = os.path.dirname(save_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        plt.savefig(save_path, dpi=dpi)
        print(f"Plot saved to: {save_path}")

    return fig
