import os
import warnings
import pandas as pd
import numpy as np
import pingouin as pg

from .constants import DATA_URL, DATA_CACHE_PATH, REQUIRED_DATA_COLS

# =============================================================================
# 1. DATA LOADING AND RESHAPING
# =============================================================================

class ReliabilityData:
    def __init__(self,
                 data_url: str = DATA_URL,
                 cache_path: str = DATA_CACHE_PATH,
                 subject_cols: tuple = ('lab', 'subid'),
                 item_col: str = 'stimulus_num',
                 value_col: str = 'diff',
                 verbose: bool = False):
        self.data_url = data_url
        self.cache_path = cache_path
        self.subject_cols = list(subject_cols)
        self.item_col = item_col
        self.value_col = value_col
        self.verbose = verbose

    def load_wide_df(self, method: str = None, age_group: str = None) -> pd.DataFrame:
        df_long = self.prepare_long(self.load_long_file(), method=method, age_group=age_group)
        return self.reshape_long_to_wide(df_long)

    def load_long_file(self) -> pd.DataFrame:
        """
        Read the trial-level dataset, preferring the local snapshot.

        The remote file is downloaded once and written to `cache_path` so later
        runs read exactly the same data.
        """
        if self.cache_path and os.path.exists(self.cache_path):
            if self.verbose:
                print(f"Reading cached data: {self.cache_path}")
            df = pd.read_csv(self.cache_path)
        else:
            if self.verbose:
                print(f"Downloading data: {self.data_url}")
            df = pd.read_csv(self.data_url)
            if self.cache_path:
                directory = os.path.dirname(self.cache_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                df.to_csv(self.cache_path, index=False)
                if self.verbose:
                    print(f"Cached data to: {self.cache_path}")

        if not REQUIRED_DATA_COLS.issubset(df.columns):
            raise ValueError(f"Dataset must include columns: {sorted(REQUIRED_DATA_COLS)}")

        if self.verbose:
            print(f"  - Rows: {len(df)}, labs: {df['lab'].nunique()}")

        return df

    def prepare_long(self, df: pd.DataFrame, method: str = None, age_group: str = None) -> pd.DataFrame:
        """
        Build (subject_id, item, value) records.

        subject_id concatenates the subject_cols (lab + subid by default),
        since subids are only unique within a lab.
        Rows with a missing value are dropped.
        """
        df_long = df.copy()
        df_long['subject_id'] = df_long[self.subject_cols].astype(str).agg(''.join, axis=1)

        if method is not None:
            df_long = df_long[df_long['method'] == method]
        if age_group is not None:
            df_long = df_long[df_long['age_group'] == age_group]

        n_before = len(df_long)
        df_long = df_long.dropna(subset=[self.value_col])
        if self.verbose:
            print(f"  - Dropped {n_before - len(df_long)} rows with missing {self.value_col}")

        return df_long[['subject_id', self.item_col, self.value_col]].reset_index(drop=True)

    def reshape_long_to_wide(self, df_long: pd.DataFrame) -> pd.DataFrame:
        """
        Subjects x items matrix of values.

        Each (subject, item) pair may carry at most one value; repeated rows
        with the same value (one per trial of a stimulus pair) collapse to one.
        Subjects missing any item are dropped.
        """
        df_long = df_long.drop_duplicates(subset=['subject_id', self.item_col, self.value_col])
        duplicated = df_long.duplicated(subset=['subject_id', self.item_col], keep=False)
        if duplicated.any():
            pairs = df_long.loc[duplicated, ['subject_id', self.item_col]].drop_duplicates()
            raise ValueError(
                f"{len(pairs)} (subject, item) pairs have more than one {self.value_col} value, "
                f"e.g. {pairs.iloc[0].tolist()}"
            )

        df_wide = df_long.pivot(index='subject_id', columns=self.item_col, values=self.value_col)
        df_wide.columns.name = None

        incomplete = df_wide.isna().any(axis=1)
        if incomplete.any():
            warnings.warn(f"Dropping {int(incomplete.sum())} of {len(df_wide)} subjects "
                          f"with missing items")
            df_wide = df_wide[~incomplete]

        return df_wide

    def wide_to_long(self, df_wide: pd.DataFrame) -> pd.DataFrame:
        df_long = df_wide.rename_axis('subject_id').reset_index().melt(
            id_vars='subject_id',
            var_name=self.item_col,
            value_name=self.value_col
        )
        return df_long.dropna(subset=[self.value_col]).reset_index(drop=True)

# =============================================================================
# 2. ICC AND INTERNAL CONSISTENCY
# =============================================================================

# pingouin reports 95% intervals only
CI_LEVEL = 95

ICC_TYPES = ['ICC1', 'ICC2', 'ICC3', 'ICC1k', 'ICC2k', 'ICC3k']

class AnalyzeReliability:
    def __init__(self, df_wide: pd.DataFrame):
        """
        Reliability of a subjects x items score matrix.

        Parameters:
        -----------
        df_wide : pd.DataFrame
            One row per subject, one column per item, no missing cells
        """
        if df_wide.isna().any().any():
            raise ValueError("df_wide must not contain missing values")
        if df_wide.shape[0] < 2 or df_wide.shape[1] < 2:
            raise ValueError(f"Need at least 2 subjects and 2 items, got shape {df_wide.shape}")

        self.df_wide = df_wide

    def _check_variance(self):
        """Between-subject and residual variance must be non-zero for the ICC F ratios."""
        x = self.df_wide.to_numpy(dtype=float)
        row_means = x.mean(axis=1, keepdims=True)
        col_means = x.mean(axis=0, keepdims=True)
        residuals = x - row_means - col_means + x.mean()

        if np.allclose(row_means, row_means.mean()):
            raise ValueError("Subjects have identical mean scores; ICC is undefined")
        if np.allclose(residuals, 0):
            raise ValueError("Residual variance is zero; ICC is undefined")

    def to_long(self) -> pd.DataFrame:
        return self.df_wide.rename_axis('subject_id').reset_index().melt(
            id_vars='subject_id',
            var_name='item',
            value_name='value'
        )

    def calculate_icc(self) -> pd.DataFrame:
        """
        Shrout & Fleiss intraclass correlations via pingouin.intraclass_corr.

        Returns:
        --------
        pd.DataFrame : One row per ICC type (ICC1, ICC2, ICC3, ICC1k, ICC2k,
            ICC3k) with icc, F, df1, df2, p_value, lower_bound, upper_bound
        """
        self._check_variance()
        n, k = self.df_wide.shape

        icc = pg.intraclass_corr(data=self.to_long(), targets='subject_id',
                                 raters='item', ratings='value')
        ci_col = [c for c in icc.columns if c.startswith('CI')][0]
        bounds = np.vstack(icc[ci_col].to_numpy())

        # pingouin always returns the six forms in ICC1, ICC2, ICC3, ICC1k, ICC2k, ICC3k order
        icc_df = pd.DataFrame({
            'type': ICC_TYPES,
            'description': icc['Description'].to_numpy(),
            'icc': icc['ICC'].to_numpy(dtype=float),
            'F': icc['F'].to_numpy(dtype=float),
            'df1': icc['df1'].to_numpy(),
            'df2': icc['df2'].to_numpy(),
            'p_value': icc['pval'].to_numpy(dtype=float),
            'lower_bound': bounds[:, 0].astype(float),
            'upper_bound': bounds[:, 1].astype(float),
        })
        icc_df['n_subjects'] = n
        icc_df['n_items'] = k
        return icc_df

    def cronbach_alpha(self) -> float:
        """Internal consistency across items (equals ICC3k on complete data)."""
        if self.df_wide.sum(axis=1).var(ddof=1) == 0:
            raise ValueError("Total score variance is zero; alpha is undefined")
        alpha, _ = pg.cronbach_alpha(data=self.df_wide)
        return float(alpha)


    def print_results(self, icc_df: pd.DataFrame):
        """Pretty print the ICC table"""
        ci = CI_LEVEL
        print("=== Intraclass Correlation Coefficients ===")
        print(f"Subjects: {icc_df['n_subjects'].iloc[0]}, items: {icc_df['n_items'].iloc[0]}")
        print("=" * 60)

        display = icc_df[['type', 'icc', 'F', 'df1', 'df2', 'p_value', 'lower_bound', 'upper_bound']].copy()
        display = display.rename(columns={'lower_bound': f'{ci}% CI lower', 'upper_bound': f'{ci}% CI upper'})
        print(display.round(3).to_string(index=False))
        print(f"\nCronbach's alpha: {self.cronbach_alpha():.3f}")

    def format_write_up(self, icc_df: pd.DataFrame, icc_type: str = 'ICC2k',
                        measure: str = 'infant-directed speech preference') -> str:
        """One sentence reporting an ICC for a manuscript."""
        row = icc_df[icc_df['type'] == icc_type]
        if len(row) == 0:
            raise ValueError(f"icc_type must be one of {icc_df['type'].tolist()}, got {icc_type!r}")
        row = row.iloc[0]
        ci = CI_LEVEL

        return (f"Reliability of the {measure} measure across {row['n_items']} items "
                f"for {row['n_subjects']} infants was {icc_type} = {row['icc']:.2f}, "
                f"{ci}% CI [{row['lower_bound']:.2f}, {row['upper_bound']:.2f}].")

    def export_latex_table(self, icc_df: pd.DataFrame, output_file=None,
                           caption="Intraclass correlation coefficients", label="tab:icc",
                           decimal_places=2):
        """
        Export the ICC table to LaTeX.

        Returns:
        --------
        str
            LaTeX table code
        """
        ci = CI_LEVEL

        latex_lines = []
        latex_lines.append("\\begin{table}[htbp]")
        latex_lines.append("\\centering")
        latex_lines.append(f"\\caption{{{caption}}}")
        latex_lines.append(f"\\label{{{label}}}")
        latex_lines.append("\\begin{tabular}{lcccc}")
        latex_lines.append("\\toprule")
        latex_lines.append(f"Type & ICC & F & p & {ci}\\% CI \\\\")
        latex_lines.append("\\midrule")

        for _, row in icc_df.iterrows():
            icc = f"{row['icc']:.{decimal_places}f}"
            f_stat = f"{row['F']:.{decimal_places}f}"
            p_val = f"{row['p_value']:.3f}" if row['p_value'] >= 0.001 else "< .001"
            ci_str = f"[{row['lower_bound']:.{decimal_places}f}, {row['upper_bound']:.{decimal_places}f}]"
            latex_lines.append(f"{row['type']} & {icc} & {f_stat} & {p_val} & {ci_str} \\\\")

        latex_lines.append("\\bottomrule")
        latex_lines.append("\\end{tabular}")
        latex_lines.append("\\end{table}")

        latex_code = "\n".join(latex_lines)

        if output_file:
            with open(output_file, 'w') as f:
                f.write(latex_code)
            print(f"LaTeX table saved to: {output_file}")

        return latex_code
