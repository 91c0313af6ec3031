"""
Best-Subset Selection Module
============================

Exhaustive search over predictor combinations, keeping the lowest residual
sum of squares model for every subset size.

Functions:
    - best_subset_selection: Exhaustive search with per-size fit criteria
    - plot_selection_criteria: Adjusted R², BIC and Cp against subset size
    - print_selection_summary: Console table of the best model per size
"""

import logging
from itertools import combinations
from math import comb
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import statsmodels.api as sm

from .preprocessing import build_design_matrix

logger = logging.getLogger(__name__)


def _fit_rss(y: pd.Series, X: pd.DataFrame) -> Tuple[float, Any]:
    results = sm.OLS(y, X).fit()
    return float(results.ssr), results


def best_subset_selection(
    df: pd.DataFrame,
    response: str,
    candidates: Sequence[str],
    max_size: Optional[int] = None
) -> Dict[str, Any]:
    """
    Find the minimum-RSS predictor subset for each subset size.

    Every combination of each size is fitted by OLS. An exact RSS tie keeps
    the combination encountered first. Sizes beyond the number of
    candidates are not evaluated.

    Args:
        df: Observations
        response: Response column
        candidates: Candidate predictor columns
        max_size: Largest subset size (default: number of candidates)

    Returns:
        Dictionary with the per-size summary DataFrame (predictors, rss,
        r2, adj_r2, bic, cp) and the preferred size under each criterion

    Raises:
        ValueError: On an empty candidate set, unknown columns or a
            response listed among the candidates
    """
    candidates = list(candidates)
    if not candidates:
        raise ValueError("Best-subset selection needs at least one candidate predictor")
    if response in candidates:
        raise ValueError(f"Response '{response}' cannot be a candidate predictor")
    missing = [c for c in candidates + [response] if c not in df.columns]
    if missing:
        raise ValueError(f"Columns not found in data: {missing}")

    n_candidates = len(candidates)
    max_size = n_candidates if max_size is None else min(max_size, n_candidates)
    if max_size < 1:
        raise ValueError(f"max_size must be at least 1, got {max_size}")

    logger.info("=" * 60)
    logger.info("STARTING BEST-SUBSET SELECTION")
    logger.info("=" * 60)
    logger.info(f"Response: {response}")
    logger.info(f"Candidates ({n_candidates}): {candidates}")
    logger.info(f"Subsets to fit: {sum(comb(n_candidates, k) for k in range(1, max_size + 1))}")

    y = df[response].astype(float)
    n = len(y)

    # Mallows' Cp is scaled by the error variance of the full candidate model
    _, full_results = _fit_rss(y, build_design_matrix(df, candidates))
    sigma2_full = float(full_results.mse_resid)

    rows = []
    n_evaluated = 0
    for size in range(1, max_size + 1):
        best_rss = np.inf
        best_subset = None
        best_results = None

        for subset in combinations(candidates, size):
            rss, results = _fit_rss(y, build_design_matrix(df, subset))
            n_evaluated += 1
            if rss < best_rss:
                best_rss, best_subset, best_results = rss, subset, results

        n_params = int(best_results.df_model) + 1
        rows.append({
            'size': size,
            'predictors': list(best_subset),
            'rss': best_rss,
            'r2': float(best_results.rsquared),
            'adj_r2': float(best_results.rsquared_adj),
            'bic': float(best_results.bic),
            'cp': best_rss / sigma2_full + 2 * n_params - n,
        })
        logger.info(f"  size {size}: {list(best_subset)} (RSS={best_rss:.4f})")

    summary = pd.DataFrame(rows).set_index('size')

    best_size = {
        'adj_r2': int(summary['adj_r2'].idxmax()),
        'bic': int(summary['bic'].idxmin()),
        'cp': int(summary['cp'].idxmin()),
    }

    logger.info(f"Preferred size by adjusted R²: {best_size['adj_r2']}, "
                f"BIC: {best_size['bic']}, Cp: {best_size['cp']}")

    return {
        'response': response,
        'candidates': candidates,
        'n_observations': n,
        'n_models_evaluated': n_evaluated,
        'summary': summary,
        'best_size': best_size,
    }


def best_predictors(selection: Dict[str, Any], size: int) -> List[str]:
    """Predictors of the best subset of the given size."""
    summary = selection['summary']
    if size not in summary.index:
        raise ValueError(f"No subset of size {size} was evaluated (max {summary.index.max()})")
    return list(summary.loc[size, 'predictors'])


def plot_selection_criteria(
    selection: Dict[str, Any],
    figsize: Tuple[int, int] = (15, 4),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot adjusted R², BIC and Mallows' Cp against subset size.

    Args:
        selection: Result of best_subset_selection
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    summary = selection['summary']
    criteria = [
        ('adj_r2', 'Adjusted R²', summary['adj_r2'].idxmax()),
        ('bic', 'BIC', summary['bic'].idxmin()),
        ('cp', "Mallows' Cp", summary['cp'].idxmin()),
    ]

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    for ax, (col, label, best) in zip(axes, criteria):
        ax.plot(summary.index, summary[col], marker='o', linewidth=1.5)
        ax.scatter([best], [summary.loc[best, col]], color='red', s=80, zorder=5,
                   label=f'Best: {best} variables')
        ax.set_xlabel('Number of predictors')
        ax.set_ylabel(label)
        ax.set_title(label, fontsize=12, fontweight='bold')
        ax.set_xticks(summary.index)
        ax.legend(fontsize=8)

    plt.suptitle(f"Best-Subset Selection - {selection['response']}",
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Selection criteria plot saved to {save_path}")

    return fig


def print_selection_summary(selection: Dict[str, Any]) -> None:
    """
    Print the best model of each size.

    Args:
        selection: Result of best_subset_selection
    """
    summary = selection['summary']

    print("\n" + "=" * 70)
    print(f"BEST-SUBSET SELECTION - {selection['response']}")
    print("=" * 70)
    print(f"{'Size':<6} {'RSS':<10} {'Adj R²':<10} {'BIC':<10} {'Cp':<10} Predictors")
    print("-" * 70)

    for size, row in summary.iterrows():
        print(f"{size:<6} {row['rss']:<10.4f} {row['adj_r2']:<10.4f} "
              f"{row['bic']:<10.3f} {row['cp']:<10.3f} {', '.join(row['predictors'])}")

    print("-" * 70)
    for criterion, size in selection['best_size'].items():
        print(f"  • Best by {criterion}: {size} variables ({', '.join(summary.loc[size, 'predictors'])})")
    print(f"  • Models evaluated: {selection['n_models_evaluated']}")
    print("=" * 70 + "\n")
