"""
Cross-Dataset Validation Module
===============================

Scores fitted candidate models on the independent Auto MPG table.

Features:
    - RMSE and MAE on the response scale, RMSE back-transformed to mpg
    - Ranking of candidates by out-of-sample RMSE (no refitting)
    - Actual vs Predicted plots per candidate
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import mean_squared_error, mean_absolute_error

from .model import LinearModel

logger = logging.getLogger(__name__)


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root-mean-squared error."""
    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


def validate_models(
    models: Dict[str, LinearModel],
    validation_df: pd.DataFrame
) -> pd.DataFrame:
    """
    Score each fitted model on held-out observations.

    Args:
        models: Mapping of name to fitted model
        validation_df: Held-out observations in the fitting schema

    Returns:
        DataFrame indexed by model name, sorted by ascending RMSE, with
        rmse, mae, rmse_mpg, n_fit and n_validation columns

    Raises:
        ValueError: If a model's predictors or response are absent from
            the validation data
    """
    if not models:
        raise ValueError("No models to validate")

    rows = []
    for name, model in models.items():
        missing = [c for c in model.predictors + [model.response] if c not in validation_df.columns]
        if missing:
            raise ValueError(f"Model '{name}' needs columns absent from validation data: {missing}")

        y_true = validation_df[model.response].to_numpy(dtype=float)
        y_pred = model.predict(validation_df)

        row = {
            'model': name,
            'formula': model.formula,
            'rmse': rmse(y_true, y_pred),
            'mae': float(mean_absolute_error(y_true, y_pred)),
            'n_fit': model.training_info['n_observations'],
            'n_validation': len(y_true),
        }

        # gp100m predictions are also scored on the mpg scale
        if model.response == 'gp100m' and 'mpg' in validation_df.columns:
            row['rmse_mpg'] = rmse(validation_df['mpg'].to_numpy(dtype=float), 100 / y_pred)

        rows.append(row)
        logger.info(f"  {name}: RMSE={row['rmse']:.4f} ({model.formula}, fit on {row['n_fit']})")

    return pd.DataFrame(rows).set_index('model').sort_values('rmse')


def plot_validation_predictions(
    models: Dict[str, LinearModel],
    validation_df: pd.DataFrame,
    figsize: Tuple[int, int] = (15, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Actual vs predicted response on the validation data, one panel per model.

    Args:
        models: Mapping of name to fitted model
        validation_df: Held-out observations
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    n_models = len(models)
    fig, axes = plt.subplots(1, n_models, figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for ax, (name, model) in zip(axes, models.items()):
        y_true = validation_df[model.response].to_numpy(dtype=float)
        y_pred = model.predict(validation_df)

        ax.scatter(y_true, y_pred, alpha=0.4, s=15)

        lims = [min(y_true.min(), y_pred.min()), max(y_true.max(), y_pred.max())]
        ax.plot(lims, lims, 'r--', linewidth=1.5, label='Perfect prediction')

        ax.set_xlabel(f'Actual {model.response}')
        ax.set_ylabel(f'Predicted {model.response}')
        ax.set_title(f'{name}\nRMSE = {rmse(y_true, y_pred):.4f}', fontsize=11, fontweight='bold')
        ax.legend(loc='upper left', fontsize=8)

    plt.suptitle('Validation: Actual vs Predicted', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Validation plot saved to {save_path}")

    return fig


def plot_fit_vs_validation(
    fit_df: pd.DataFrame,
    validation_df: pd.DataFrame,
    x: str = 'wt',
    y: str = 'gp100m',
    figsize: Tuple[int, int] = (9, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Overlay the fitting and validation observations on two fields.

    Args:
        fit_df: Observations used for fitting
        validation_df: Held-out observations
        x: Field on the x axis
        y: Field on the y axis
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.scatterplot(x=validation_df[x], y=validation_df[y], alpha=0.35, s=20,
                    label=f'Validation ({len(validation_df)})', ax=ax)
    sns.scatterplot(x=fit_df[x], y=fit_df[y], color='red', s=45,
                    label=f'Fitting ({len(fit_df)})', ax=ax)

    ax.set_title(f'{y} vs {x}: fitting and validation data', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Dataset overlay saved to {save_path}")

    return fig


def evaluate_on_validation(
    models: Dict[str, LinearModel],
    validation_df: pd.DataFrame,
    fit_df: Optional[pd.DataFrame] = None,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Run cross-dataset validation and generate its figures.

    Args:
        models: Mapping of name to fitted model
        validation_df: Held-out observations
        fit_df: Fitting observations for the overlay plot (optional)
        output_dir: Directory for figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary with the ranking table, the selected model name and figures
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING CROSS-DATASET VALIDATION")
    logger.info("=" * 60)
    logger.info(f"Validation observations: {len(validation_df)}")

    ranking = validate_models(models, validation_df)

    figures: List[str] = []
    plot_validation_predictions(
        models, validation_df,
        save_path=str(output_dir / "validation_actual_vs_predicted.png")
    )
    figures.append("validation_actual_vs_predicted.png")

    if fit_df is not None:
        plot_fit_vs_validation(
            fit_df, validation_df,
            save_path=str(output_dir / "validation_overlay.png")
        )
        figures.append("validation_overlay.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    selected = ranking.index[0]

    logger.info("=" * 60)
    logger.info("VALIDATION COMPLETE")
    logger.info(f"  Selected model: {selected} (RMSE={ranking.loc[selected, 'rmse']:.4f})")
    logger.info("=" * 60)

    return {
        'ranking': ranking,
        'selected': selected,
        'figures': figures,
    }


def print_validation_report(ranking: pd.DataFrame) -> None:
    """
    Print the validation ranking to console.

    Args:
        ranking: Result of validate_models
    """
    print("\n" + "=" * 70)
    print("CROSS-DATASET VALIDATION")
    print("=" * 70)
    print(f"{'Model':<18} {'RMSE':<10} {'MAE':<10} {'RMSE (mpg)':<12} {'Fit n':<7} Formula")
    print("-" * 70)

    for name, row in ranking.iterrows():
        rmse_mpg = row.get('rmse_mpg', np.nan)
        print(f"{name:<18} {row['rmse']:<10.4f} {row['mae']:<10.4f} {rmse_mpg:<12.3f} "
              f"{int(row['n_fit']):<7} {row['formula']}")

    print("-" * 70)
    print(f"  ✓ Lowest out-of-sample RMSE: {ranking.index[0]}")
    print("=" * 70 + "\n")
