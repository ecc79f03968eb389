"""
Diagnostic plots for DENTIST QC results
"""

import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from typing import Optional, List, Tuple, Dict

from ..utils.data_types import DentistResults
from ..utils.stats import genomic_inflation_from_chisq, zscore_cutoff


def DENTIST_Report(results: DentistResults,
                   plot_types: List[str] = ["zscores", "qq", "rsq"],
                   output_prefix: str = "DENTIST_results",
                   pvalue_threshold: Optional[float] = None,
                   dpi: int = 300,
                   figsize: Tuple[int, int] = (6, 6),
                   verbose: bool = True,
                   save_plots: bool = True) -> Dict:
    """Generate DENTIST QC visualisation report

    Args:
        results: DentistResults from DENTIST
        plot_types: Plots to generate ["zscores", "qq", "rsq"]
        output_prefix: Prefix for output files
        pvalue_threshold: Outlier threshold, defaults to the run's threshold
        dpi: Plot resolution
        figsize: Figure size (width, height)
        verbose: Print progress information
        save_plots: Save plots to files

    Returns:
        Dictionary with plot objects, summary statistics and files created
    """
    if not isinstance(results, DentistResults):
        raise ValueError("Results must be DentistResults")

    if verbose:
        print("Generating DENTIST visualization report...")

    if pvalue_threshold is None:
        pvalue_threshold = results.pvalue_threshold

    report = {
        'plots': {},
        'summary': calculate_dentist_summary(results, pvalue_threshold),
        'files_created': []
    }

    builders = {
        'zscores': lambda: create_zscore_scatter(results, pvalue_threshold, figsize=figsize),
        'qq': lambda: create_qq_plot(results, figsize=figsize),
        'rsq': lambda: create_rsq_histogram(results, figsize=(figsize[0] + 2, figsize[1] - 2)),
    }

    for plot_type in plot_types:
        if plot_type not in builders:
            raise ValueError(f"Unknown plot type: {plot_type}")
        fig = builders[plot_type]()
        report['plots'][plot_type] = fig
        if save_plots:
            filename = f"{output_prefix}_{plot_type}.png"
            fig.savefig(filename, dpi=dpi, bbox_inches='tight')
            report['files_created'].append(filename)
            if verbose:
                print(f"   Saved {filename}")
            plt.close(fig)

    return report


def create_zscore_scatter(results: DentistResults,
                          pvalue_threshold: float = 5.0369e-8,
                          title: str = "Observed vs imputed z-scores",
                          figsize: Tuple[int, int] = (6, 6)) -> plt.Figure:
    """Scatter of observed against imputed z-scores, outliers highlighted"""
    fig, ax = plt.subplots(figsize=figsize)

    outliers = results.outliers(pvalue_threshold)
    ax.scatter(results.imputed_z[~outliers], results.zscores[~outliers],
               s=6, alpha=0.6, edgecolors='none', color='#4C72B0', label='Passed QC')
    if outliers.any():
        ax.scatter(results.imputed_z[outliers], results.zscores[outliers],
                   s=14, alpha=0.9, edgecolors='none', color='#C44E52',
                   label=f'Outlier (n={int(outliers.sum())})')

    lims = [min(results.imputed_z.min(initial=0.0), results.zscores.min(initial=0.0)),
            max(results.imputed_z.max(initial=0.0), results.zscores.max(initial=0.0))]
    ax.plot(lims, lims, 'k--', alpha=0.5, linewidth=1)

    ax.set_xlabel('Imputed z-score')
    ax.set_ylabel('Observed z-score')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend()

    plt.tight_layout()
    return fig


def create_qq_plot(results: DentistResults,
                   title: str = "Q-Q Plot of DENTIST statistics",
                   figsize: Tuple[int, int] = (6, 6)) -> plt.Figure:
    """Q-Q plot of the outlier test p-values"""
    fig, ax = plt.subplots(figsize=figsize)

    pvalues = results.outlier_pvalue
    valid_pvals = pvalues[(pvalues > 0) & (pvalues <= 1) & ~np.isnan(pvalues)]

    if len(valid_pvals) == 0:
        ax.text(0.5, 0.5, 'No valid p-values for Q-Q plot',
                ha='center', va='center', transform=ax.transAxes)
        ax.set_title(title)
        return fig

    observed_pvals = np.sort(valid_pvals)
    n = len(observed_pvals)
    expected_pvals = np.arange(1, n + 1) / (n + 1)

    obs_log = -np.log10(observed_pvals)
    exp_log = -np.log10(expected_pvals)

    ax.scatter(exp_log, obs_log, alpha=0.6, s=4, edgecolors='none')

    max_val = max(np.max(exp_log), np.max(obs_log))
    ax.plot([0, max_val], [0, max_val], 'r--', alpha=0.8, label='Null hypothesis')

    lambda_gc = genomic_inflation_from_chisq(results.outlier_stat)

    ax.set_xlabel(r'Expected $-\log_{10}(P)$')
    ax.set_ylabel(r'Observed $-\log_{10}(P)$')
    ax.set_title(f'{title}\nλ = {lambda_gc:.3f}')
    ax.grid(True, alpha=0.3)
    ax.legend()

    plt.tight_layout()
    return fig


def create_rsq_histogram(results: DentistResults,
                         title: str = "Imputation r²",
                         figsize: Tuple[int, int] = (8, 4)) -> plt.Figure:
    """Distribution of imputation r² over markers that were imputed"""
    fig, ax = plt.subplots(figsize=figsize)

    imputed = results.rsq[results.rsq > 0]
    if imputed.size == 0:
        ax.text(0.5, 0.5, 'No imputed markers',
                ha='center', va='center', transform=ax.transAxes)
    else:
        sns.histplot(imputed, bins=min(50, max(5, imputed.size // 5)), ax=ax, color='#55A868')
        ax.axvline(np.median(imputed), color='k', linestyle='--', alpha=0.7,
                   label=f'median = {np.median(imputed):.3f}')
        ax.legend()

    ax.set_xlabel('r²')
    ax.set_ylabel('Markers')
    ax.set_title(title)

    plt.tight_layout()
    return fig


def calculate_dentist_summary(results: DentistResults, pvalue_threshold: float) -> Dict:
    """Summary counts and statistics for a DENTIST run"""
    outliers = results.outliers(pvalue_threshold)
    survived_all = results.iter_id == results.n_iter if results.n_iter > 0 else np.zeros(results.n_markers, dtype=bool)
    return {
        'n_markers': results.n_markers,
        'n_iter': results.n_iter,
        'n_outliers': int(outliers.sum()),
        'n_survived_all_rounds': int(survived_all.sum()),
        'n_duplicates': int(results.is_duplicate.sum()),
        'n_significant_group': int(results.grouping.sum()),
        'zscore_cutoff': zscore_cutoff(pvalue_threshold),
        'lambda_gc': genomic_inflation_from_chisq(results.outlier_stat),
        'max_abs_adjusted_z': float(np.max(np.abs(results.z_adjusted))) if results.n_markers else 0.0,
    }
