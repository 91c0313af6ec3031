"""
Regression Diagnostics Module
=============================

Influence measures, residual normality and the four-panel diagnostic plot
for fitted linear models.

Features:
    - Leverage (hat matrix diagonal), Cook's distance, standardized residuals
    - Advisory flags: Cook's distance > 4/n, leverage > 2p/n
    - Shapiro-Wilk normality test on residuals
    - Residuals vs Fitted, Normal Q-Q, Scale-Location, Residuals vs Leverage
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats
from statsmodels.graphics.gofplots import ProbPlot

from .model import LinearModel

logger = logging.getLogger(__name__)

plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")


def compute_influence(model: LinearModel) -> pd.DataFrame:
    """
    Per-observation influence measures.

    Flags are advisory only; removing an observation is a separate,
    explicit decision.

    Args:
        model: Fitted model

    Returns:
        DataFrame indexed by observation with fitted, residual,
        std_residual, leverage, cooks_distance, high_leverage and
        influential columns
    """
    model._check_fitted()
    res = model.results_
    influence = res.get_influence()

    n = int(res.nobs)
    n_params = len(res.params)

    table = pd.DataFrame({
        'fitted': res.fittedvalues,
        'residual': res.resid,
        'std_residual': influence.resid_studentized_internal,
        'leverage': influence.hat_matrix_diag,
        'cooks_distance': influence.cooks_distance[0],
    }, index=res.fittedvalues.index)

    table['high_leverage'] = table['leverage'] > 2 * n_params / n
    table['influential'] = table['cooks_distance'] > 4 / n

    return table


def most_influential(model: LinearModel) -> str:
    """Label of the observation with the largest Cook's distance."""
    return compute_influence(model)['cooks_distance'].idxmax()


def normality_test(model: LinearModel, alpha: float = 0.05) -> Dict[str, Any]:
    """
    Shapiro-Wilk test on the residuals (H0: residuals are normal).

    Args:
        model: Fitted model
        alpha: Significance level

    Returns:
        Dictionary with statistic, p_value and is_normal
    """
    model._check_fitted()
    statistic, p_value = stats.shapiro(model.results_.resid)

    return {
        'test': 'Shapiro-Wilk',
        'statistic': float(statistic),
        'p_value': float(p_value),
        'is_normal': bool(p_value > alpha),
    }


def plot_diagnostics(
    model: LinearModel,
    n_labels: int = 3,
    figsize: Tuple[int, int] = (14, 11),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Four-panel residual diagnostic plot.

    The n_labels observations with the largest Cook's distance are
    annotated on every panel.

    Args:
        model: Fitted model
        n_labels: Number of observations to annotate
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    table = compute_influence(model)
    n_params = len(model.results_.params)
    labelled = table['cooks_distance'].nlargest(n_labels).index

    fig, axes = plt.subplots(2, 2, figsize=figsize)

    def annotate(ax, x_col, y_values):
        for label in labelled:
            ax.annotate(label, (table.loc[label, x_col], y_values[label]),
                        fontsize=8, xytext=(4, 4), textcoords='offset points')

    # Residuals vs Fitted
    ax = axes[0, 0]
    ax.scatter(table['fitted'], table['residual'], alpha=0.7)
    ax.axhline(y=0, color='red', linestyle='--', linewidth=1)
    sns.regplot(x=table['fitted'], y=table['residual'], lowess=True, scatter=False,
                ax=ax, line_kws={'color': 'gray', 'linewidth': 1})
    annotate(ax, 'fitted', table['residual'])
    ax.set_xlabel('Fitted values')
    ax.set_ylabel('Residuals')
    ax.set_title('Residuals vs Fitted', fontsize=12, fontweight='bold')

    # Normal Q-Q
    ax = axes[0, 1]
    ProbPlot(table['std_residual']).qqplot(line='45', ax=ax, alpha=0.7)
    ax.set_title('Normal Q-Q', fontsize=12, fontweight='bold')

    # Scale-Location
    ax = axes[1, 0]
    scale = np.sqrt(np.abs(table['std_residual']))
    ax.scatter(table['fitted'], scale, alpha=0.7)
    sns.regplot(x=table['fitted'], y=scale, lowess=True, scatter=False,
                ax=ax, line_kws={'color': 'gray', 'linewidth': 1})
    annotate(ax, 'fitted', scale)
    ax.set_xlabel('Fitted values')
    ax.set_ylabel('√|Standardized residuals|')
    ax.set_title('Scale-Location', fontsize=12, fontweight='bold')

    # Residuals vs Leverage with Cook's distance contours
    ax = axes[1, 1]
    ax.scatter(table['leverage'], table['std_residual'], alpha=0.7)
    ax.axhline(y=0, color='gray', linestyle=':', linewidth=1)
    h = np.linspace(0.001, max(table['leverage'].max(), 0.05) * 1.1, 100)
    for level in (0.5, 1.0):
        bound = np.sqrt(level * n_params * (1 - h) / h)
        ax.plot(h, bound, 'r--', linewidth=0.8, alpha=0.7)
        ax.plot(h, -bound, 'r--', linewidth=0.8, alpha=0.7,
                label=f"Cook's distance = {level}" if level == 0.5 else None)
    ymax = np.abs(table['std_residual']).max() * 1.3
    ax.set_ylim(-ymax, ymax)
    annotate(ax, 'leverage', table['std_residual'])
    ax.set_xlabel('Leverage')
    ax.set_ylabel('Standardized residuals')
    ax.set_title('Residuals vs Leverage', fontsize=12, fontweight='bold')
    ax.legend(fontsize=8, loc='lower left')

    plt.suptitle(f'Regression Diagnostics - {model.name}', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Diagnostic plots saved to {save_path}")

    return fig


def diagnose_model(
    model: LinearModel,
    output_dir: Optional[str] = None,
    alpha: float = 0.05
) -> Dict[str, Any]:
    """
    Run influence and normality diagnostics on a fitted model.

    Args:
        model: Fitted model
        output_dir: Directory for the diagnostic figure (optional)
        alpha: Significance level of the normality test

    Returns:
        Dictionary with the influence table, flagged labels, the most
        influential observation, the normality test and the figure name
    """
    table = compute_influence(model)
    normality = normality_test(model, alpha=alpha)

    result = {
        'model': model.name,
        'influence': table,
        'influential': table.index[table['influential']].tolist(),
        'high_leverage': table.index[table['high_leverage']].tolist(),
        'most_influential': table['cooks_distance'].idxmax(),
        'max_cooks_distance': float(table['cooks_distance'].max()),
        'normality': normality,
        'figure': None,
    }

    logger.info(f"Diagnostics for {model.name}:")
    logger.info(f"  Most influential: {result['most_influential']} "
                f"(Cook's D = {result['max_cooks_distance']:.3f})")
    if result['influential']:
        logger.warning(f"  Cook's distance above 4/n: {result['influential']}")
    logger.info(f"  Shapiro-Wilk W={normality['statistic']:.4f}, p={normality['p_value']:.4f}")

    if output_dir:
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        filename = f"diagnostics_{model.name}.png"
        plot_diagnostics(model, save_path=str(output_dir / filename))
        plt.close('all')
        result['figure'] = filename

    return result


def print_diagnostics_report(result: Dict[str, Any], top: int = 5) -> None:
    """
    Print the most influential observations and the normality test.

    Args:
        result: Result of diagnose_model
        top: Number of observations listed
    """
    table = result['influence'].sort_values('cooks_distance', ascending=False).head(top)
    normality = result['normality']

    print("\n" + "=" * 70)
    print(f"DIAGNOSTICS - {result['model']}")
    print("=" * 70)
    print(f"{'Observation':<22} {'Leverage':<10} {'Cook D':<10} {'Std. resid':<10}")
    print("-" * 70)

    for label, row in table.iterrows():
        marker = " *" if row['influential'] else ""
        print(f"{label:<22} {row['leverage']:<10.3f} {row['cooks_distance']:<10.3f} "
              f"{row['std_residual']:<10.3f}{marker}")

    print("-" * 70)
    print(f"  • {normality['test']}: W={normality['statistic']:.4f}, p={normality['p_value']:.4f} "
          f"({'normal' if normality['is_normal'] else 'non-normal'} residuals)")
    print("=" * 70 + "\n")
