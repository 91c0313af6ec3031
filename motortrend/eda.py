"""
Exploratory Data Analysis (EDA) Module
======================================

Descriptive plots and statistics surfacing candidate relationships between
fuel economy, transmission type and the other car attributes.

Functions:
    - plot_box_plots: Response by transmission, cylinders and engine shape
    - plot_correlation_matrix: Correlation heatmap
    - plot_pair_grid: Pairwise scatter matrix coloured by transmission
    - plot_distributions: Histograms and normality checks
    - compare_groups: Per-group statistics and Welch t-test
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from scipy import stats

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

FIELD_LABELS = {
    'gp100m': 'gp100m (gal/100 mi)',
    'wthp': 'wthp (wt/hp)',
}


def plot_box_plots(
    df: pd.DataFrame,
    response: str = 'mpg',
    by: Sequence[str] = ('am', 'cyl', 'vs'),
    figsize: Tuple[int, int] = (15, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Box plots of the response for each grouping field.

    Args:
        df: Tidy DataFrame
        response: Column plotted on the y axis
        by: Grouping columns, one panel each
        figsize: Figure size
        save_path: Path to save the figure (optional)

    Returns:
        Matplotlib Figure object
    """
    by = list(by)
    fig, axes = plt.subplots(1, len(by), figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for ax, col in zip(axes, by):
        sns.boxplot(data=df, x=col, y=response, hue=col, legend=False, ax=ax)
        sns.stripplot(data=df, x=col, y=response, color='black', size=4, alpha=0.6, ax=ax)
        ax.set_title(f'{response} by {col}', fontsize=12, fontweight='bold')

    plt.suptitle(f'{response} Distribution by Group', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Box plots saved to {save_path}")

    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    responses: Sequence[str] = ('mpg', 'gp100m'),
    method: str = 'pearson',
    figsize: Tuple[int, int] = (11, 9),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Correlation heatmap of the numeric fields with the responses first.

    Derived fields carry their definition on the axis labels. The
    returned matrix keeps the plain column names.

    Args:
        df: Tidy DataFrame
        responses: Response columns moved to the top-left corner
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    numeric = df.select_dtypes(include=[np.number])
    leading = [col for col in responses if col in numeric.columns]
    order = leading + [col for col in numeric.columns if col not in leading]
    corr_matrix = numeric[order].corr(method=method)

    labels = [FIELD_LABELS.get(col, col) for col in order]

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.2f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        xticklabels=labels,
        yticklabels=labels,
        ax=ax,
        vmin=-1,
        vmax=1
    )

    # Separate the response block from the predictors
    if leading:
        ax.axhline(len(leading), color='black', linewidth=1.5)
        ax.axvline(len(leading), color='black', linewidth=1.5)

    ax.set_title(f'Correlation with {" and ".join(leading) or "fields"} ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def plot_pair_grid(
    df: pd.DataFrame,
    columns: Sequence[str] = ('mpg', 'gp100m', 'wt', 'hp', 'wthp', 'disp'),
    hue: Optional[str] = 'am',
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Pairwise scatter matrix of selected columns.

    Args:
        df: Tidy DataFrame
        columns: Columns in the grid
        hue: Column used to colour points (optional)
        save_path: Path to save the figure (optional)

    Returns:
        Matplotlib Figure object
    """
    cols = list(columns) + ([hue] if hue else [])
    grid = sns.pairplot(df[cols], hue=hue, corner=True, diag_kind='kde',
                        plot_kws={'alpha': 0.7, 's': 30})
    grid.figure.suptitle('Pairwise Relationships', fontsize=14, fontweight='bold', y=1.01)

    if save_path:
        grid.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Pair grid saved to {save_path}")

    return grid.figure


def plot_distributions(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    figsize: Tuple[int, int] = (14, 10),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Create distribution plots (histogram + KDE) for numerical columns.

    Args:
        df: DataFrame with numerical data
        columns: Columns to plot (default: all numeric)
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    if columns is None:
        columns = df.select_dtypes(include=[np.number]).columns.tolist()

    n_cols = len(columns)
    n_rows = (n_cols + 2) // 3

    fig, axes = plt.subplots(n_rows, 3, figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for idx, col in enumerate(columns):
        ax = axes[idx]

        sns.histplot(df[col], kde=True, ax=ax, bins=10, alpha=0.7)

        mean_val = df[col].mean()
        median_val = df[col].median()
        ax.axvline(mean_val, color='red', linestyle='--', label=f'Mean: {mean_val:.2f}')
        ax.axvline(median_val, color='green', linestyle='--', label=f'Median: {median_val:.2f}')

        # Shapiro-Wilk suits the small sample
        _, p_value = stats.shapiro(df[col].dropna())
        normality = "Normal" if p_value > 0.05 else "Non-Normal"

        ax.set_title(f'{col} ({normality}, p={p_value:.3f})', fontsize=10, fontweight='bold')
        ax.legend(fontsize=7)

    # Hide unused subplots
    for idx in range(len(columns), len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle('Distribution Analysis', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Distribution plots saved to {save_path}")

    return fig


def compare_groups(
    df: pd.DataFrame,
    response: str = 'mpg',
    group: str = 'am'
) -> Dict[str, Any]:
    """
    Compare the response between the two levels of a grouping field.

    This is the uncontrolled comparison: it ignores every other
    difference between the groups.

    Args:
        df: Tidy DataFrame
        response: Numeric column compared
        group: Two-level grouping column

    Returns:
        Dictionary with per-group statistics and the Welch t-test

    Raises:
        ValueError: If the group column doesn't have exactly two levels
    """
    levels = [level for level in pd.unique(df[group]) if pd.notna(level)]
    if isinstance(df[group].dtype, pd.CategoricalDtype):
        levels = [level for level in df[group].cat.categories if level in levels]
    if len(levels) != 2:
        raise ValueError(f"'{group}' must have exactly two levels, found {levels}")

    samples = [df.loc[df[group] == level, response].astype(float) for level in levels]
    t_stat, p_value = stats.ttest_ind(samples[0], samples[1], equal_var=False)

    by_group = {
        str(level): {
            'n': int(sample.count()),
            'mean': float(sample.mean()),
            'std': float(sample.std()),
            'median': float(sample.median()),
        }
        for level, sample in zip(levels, samples)
    }

    result = {
        'response': response,
        'group': group,
        'levels': [str(level) for level in levels],
        'by_group': by_group,
        'mean_difference': float(samples[1].mean() - samples[0].mean()),
        't_statistic': float(t_stat),
        'p_value': float(p_value),
    }

    logger.info(
        f"{response} by {group}: {levels[1]} - {levels[0]} = {result['mean_difference']:.3f} "
        f"(Welch t={t_stat:.3f}, p={p_value:.4f})"
    )
    return result


def generate_eda_report(
    df: pd.DataFrame,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate a complete EDA report with all visualizations.

    Args:
        df: Tidy DataFrame to analyze
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "data_shape": df.shape,
        "columns": list(df.columns),
        "figures": [],
        "correlation_matrix": None,
        "statistics": {}
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    # 1. Box plots by group
    logger.info("Creating box plots by transmission, cylinders and engine shape...")
    plot_box_plots(df, response='mpg', save_path=str(output_dir / "01_mpg_box_plots.png"))
    report["figures"].append("01_mpg_box_plots.png")

    # 2. Correlation matrix
    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df,
        save_path=str(output_dir / "02_correlation_matrix.png")
    )
    report["figures"].append("02_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    # 3. Pair grid
    logger.info("Plotting pairwise relationships...")
    plot_pair_grid(df, save_path=str(output_dir / "03_pair_grid.png"))
    report["figures"].append("03_pair_grid.png")

    # 4. Distributions of the two response representations
    logger.info("Plotting distributions...")
    plot_distributions(
        df,
        columns=['mpg', 'gp100m', 'wt', 'hp', 'wthp', 'disp'],
        figsize=(14, 8),
        save_path=str(output_dir / "04_distributions.png")
    )
    report["figures"].append("04_distributions.png")

    # 5. Naive transmission comparison
    logger.info("Comparing fuel economy between transmission types...")
    report["transmission_comparison"] = compare_groups(df, response='mpg', group='am')
    report["transmission_comparison_gp100m"] = compare_groups(df, response='gp100m', group='am')

    for col in df.select_dtypes(include=[np.number]).columns:
        report["statistics"][col] = {
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "max": float(df[col].max()),
            "skew": float(df[col].skew()),
        }

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def strong_correlations(
    corr_matrix: pd.DataFrame,
    threshold: float = 0.7
) -> List[Dict[str, Any]]:
    """Pairs of columns with |r| at or above threshold, strongest first."""
    pairs = []
    for i in range(len(corr_matrix.columns)):
        for j in range(i + 1, len(corr_matrix.columns)):
            corr_val = corr_matrix.iloc[i, j]
            if abs(corr_val) >= threshold:
                pairs.append({
                    "col1": corr_matrix.columns[i],
                    "col2": corr_matrix.columns[j],
                    "correlation": float(corr_val)
                })
    return sorted(pairs, key=lambda x: abs(x["correlation"]), reverse=True)


def print_correlation_insights(corr_matrix: pd.DataFrame, threshold: float = 0.7) -> None:
    """
    Print insights about strongly correlated variables.

    Args:
        corr_matrix: Correlation matrix DataFrame
        threshold: Correlation threshold for "strong" correlation
    """
    print("\n" + "=" * 50)
    print("CORRELATION INSIGHTS")
    print("=" * 50)

    strong_corr = strong_correlations(corr_matrix, threshold)

    if strong_corr:
        print(f"\nStrong correlations (|r| >= {threshold}):")
        for item in strong_corr:
            direction = "positive" if item["correlation"] > 0 else "negative"
            print(f"  • {item['col1']} ↔ {item['col2']}: {item['correlation']:.3f} ({direction})")

        print("\nInterpretation:")
        print("  - Many predictors move together (engine size, power, weight)")
        print("  - Expect collinearity; subset selection guards against redundant terms")
    else:
        print(f"\nNo strong correlations found (|r| >= {threshold})")

    print("=" * 50 + "\n")


def print_group_comparison(comparison: Dict[str, Any]) -> None:
    """
    Print the per-group statistics and the t-test.

    Args:
        comparison: Result of compare_groups
    """
    print("\n" + "=" * 50)
    print(f"{comparison['response'].upper()} BY {comparison['group'].upper()}")
    print("=" * 50)
    print(f"{'Group':<12} {'n':<5} {'Mean':<10} {'Std':<10} {'Median':<10}")
    print("-" * 50)
    for level, s in comparison['by_group'].items():
        print(f"{level:<12} {s['n']:<5} {s['mean']:<10.3f} {s['std']:<10.3f} {s['median']:<10.3f}")
    print("-" * 50)
    print(f"  • Difference ({comparison['levels'][1]} - {comparison['levels'][0]}): "
          f"{comparison['mean_difference']:.3f}")
    print(f"  • Welch t = {comparison['t_statistic']:.3f}, p = {comparison['p_value']:.4f}")
    print("=" * 50 + "\n")
