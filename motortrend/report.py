"""
Report Module
=============

Tests the transmission effect on the final model and renders the
narrative Markdown report.

Functions:
    - assess_transmission_effect: Final model plus transmission, hypothesis decision
    - build_report: Markdown text with prose, tables and figure links
    - write_report: Save the report to disk
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence
from datetime import datetime

import pandas as pd

from .model import LinearModel

logger = logging.getLogger(__name__)


def assess_transmission_effect(
    df: pd.DataFrame,
    response: str,
    base_predictors: Sequence[str],
    alpha: float = 0.05,
    term: str = 'am'
) -> Dict[str, Any]:
    """
    Add transmission type to a model and test its coefficient.

    H0: after controlling for the base predictors, transmission type has
    no effect on the response.

    Args:
        df: Observations the final model was fitted on
        response: Response column
        base_predictors: Predictors of the final model
        alpha: Significance level
        term: Transmission column

    Returns:
        Dictionary with the coefficient, its inference and the decision
    """
    predictors = [p for p in base_predictors if p != term] + [term]
    model = LinearModel(response, predictors, name='_'.join(predictors)).fit(df)

    coefs = model.coefficient_table(alpha=alpha)
    # Categorical transmission is dummy coded, e.g. am_manual
    coef_name = next(name for name in coefs.index if name == term or name.startswith(f"{term}_"))
    row = coefs.loc[coef_name]

    reject = bool(row['p_value'] < alpha)
    result = {
        'formula': model.formula,
        'term': coef_name,
        'estimate': float(row['estimate']),
        'std_error': float(row['std_error']),
        't_value': float(row['t_value']),
        'p_value': float(row['p_value']),
        'ci_lower': float(row['ci_lower']),
        'ci_upper': float(row['ci_upper']),
        'alpha': alpha,
        'reject_null': reject,
        'n_observations': model.training_info['n_observations'],
        'model': model,
    }

    logger.info(
        f"Transmission effect ({coef_name}) in {model.formula}: "
        f"{row['estimate']:.4f} ± {row['std_error']:.4f}, p={row['p_value']:.4f} -> "
        f"{'reject' if reject else 'fail to reject'} H0 at alpha={alpha}"
    )
    return result


def _table(df: pd.DataFrame, floatfmt: str = '.4f') -> str:
    return df.to_markdown(floatfmt=floatfmt)


def _figure(path: str, caption: str) -> str:
    return f"![{caption}]({path})\n"


def hypothesis_statement(effect: Dict[str, Any], controls: Sequence[str]) -> str:
    """One-paragraph conclusion on the transmission effect."""
    controls_text = ' and '.join(f"`{c}`" for c in controls)
    direction = "fewer" if effect['estimate'] < 0 else "more"

    if effect['reject_null']:
        decision = (
            f"The p-value ({effect['p_value']:.4f}) is below α = {effect['alpha']}, so we reject "
            f"the null hypothesis: transmission type has a statistically significant effect on "
            f"fuel consumption after controlling for {controls_text}."
        )
    else:
        decision = (
            f"The p-value ({effect['p_value']:.4f}) exceeds α = {effect['alpha']}, so we fail to "
            f"reject the null hypothesis: after controlling for {controls_text}, there is no "
            f"statistically significant difference in fuel consumption between manual and "
            f"automatic transmissions."
        )

    return (
        f"Adding transmission type to the final model, a manual transmission is associated with "
        f"{abs(effect['estimate']):.3f} {direction} gallons per 100 miles "
        f"(95% CI {effect['ci_lower']:.3f} to {effect['ci_upper']:.3f}). {decision}"
    )


def build_report(results: Dict[str, Any], figures_rel: str = "figures") -> str:
    """
    Render the analysis as a Markdown document.

    Args:
        results: Pipeline results with eda, selection, models, diagnostics,
            validation and transmission entries
        figures_rel: Figure directory relative to the report

    Returns:
        Markdown text
    """
    eda = results['eda']
    selection = results['selection']
    models = results['models']
    diagnostics = results['diagnostics']
    validation = results['validation']
    effect = results['transmission']
    final_name = results['final_model']
    final_model = models[final_name]
    outliers: List[str] = results.get('outliers', [])

    lines: List[str] = []
    add = lines.append

    add("# Manual vs Automatic Transmission: Fuel Economy\n")
    add(f"_Generated {datetime.now().strftime('%Y-%m-%d %H:%M')}_\n")

    add("## Summary\n")
    add(hypothesis_statement(effect, final_model.predictors) + "\n")

    # Data
    add("## Data\n")
    add(f"The Motor Trend road tests of {results['n_observations']} 1973-74 automobiles. "
        "`vs` and `am` are relabelled as engine shape (V / straight) and transmission "
        "(automatic / manual). Two fields are derived: `gp100m = 100 / mpg`, fuel "
        "consumption in gallons per 100 miles, which relates more linearly to weight "
        "than mpg does, and `wthp = wt / hp`, the weight-to-power ratio.\n")

    # Exploration
    comparison = eda['transmission_comparison']
    auto, manual = comparison['levels']
    add("## Exploration\n")
    add(f"Without any controls, manual cars average {comparison['by_group'][manual]['mean']:.2f} mpg "
        f"against {comparison['by_group'][auto]['mean']:.2f} mpg for automatics "
        f"(difference {comparison['mean_difference']:.2f} mpg, Welch t = "
        f"{comparison['t_statistic']:.2f}, p = {comparison['p_value']:.4f}). "
        "Manual cars in this sample are also markedly lighter, so weight confounds "
        "the naive comparison.\n")
    add(_table(pd.DataFrame(comparison['by_group']).T, floatfmt='.3f') + "\n")
    add(_figure(f"{figures_rel}/01_mpg_box_plots.png", "mpg by group"))
    add(_figure(f"{figures_rel}/02_correlation_matrix.png", "Correlation matrix"))
    add(_figure(f"{figures_rel}/03_pair_grid.png", "Pairwise relationships"))

    # Selection
    summary = selection['summary'].copy()
    summary['predictors'] = summary['predictors'].apply(', '.join)
    best = selection['best_size']
    add("## Variable Selection\n")
    add(f"Exhaustive best-subset search of `{selection['response']}` over "
        f"{len(selection['candidates'])} candidates ({selection['n_models_evaluated']} models). "
        f"BIC prefers {best['bic']} variables, adjusted R² {best['adj_r2']} and "
        f"Mallows' Cp {best['cp']}.\n")
    add(_table(summary) + "\n")
    add(_figure(f"{figures_rel}/selection_criteria.png", "Selection criteria"))

    # Candidate models
    add("## Candidate Models\n")
    fit_rows = {name: model.fit_statistics() for name, model in models.items()}
    fit_table = pd.DataFrame(fit_rows).T[
        ['n_observations', 'r2', 'adj_r2', 'residual_std_error', 'bic']
    ].copy()
    fit_table.insert(0, 'formula', [models[name].formula for name in fit_table.index])
    add(_table(fit_table) + "\n")

    # Diagnostics
    add("## Diagnostics\n")
    for name, diag in diagnostics.items():
        normality = diag['normality']
        add(f"### {name}\n")
        add(f"Largest Cook's distance: **{diag['most_influential']}** "
            f"({diag['max_cooks_distance']:.3f}). Shapiro-Wilk W = {normality['statistic']:.4f}, "
            f"p = {normality['p_value']:.4f} "
            f"({'no evidence against' if normality['is_normal'] else 'evidence against'} "
            "normal residuals).\n")
        if diag.get('figure'):
            add(_figure(f"{figures_rel}/{diag['figure']}", f"Diagnostics {name}"))

    if outliers:
        add("## Outlier Handling\n")
        add(f"Removed by explicit decision: {', '.join(f'**{o}**' for o in outliers)}. "
            "The observation dominates the influence measures of the weight-to-power model "
            "and its published fuel economy is out of line with the comparable heavy luxury "
            "sedans in the sample. No automatic outlier rule is applied.\n")
        comparisons = results.get('outlier_comparison')
        if comparisons is not None:
            add(_table(comparisons) + "\n")

    # Validation
    ranking = validation['ranking']
    add("## Validation\n")
    add(f"Each candidate predicts `{final_model.response}` for "
        f"{int(ranking['n_validation'].iloc[0])} cars of the independent Auto MPG "
        "dataset (weights rescaled to 1000 lbs). No refitting takes place. "
        f"**{validation['selected']}** has the lowest RMSE.\n")
    add(_table(ranking) + "\n")
    for figure in validation.get('figures', []):
        add(_figure(f"{figures_rel}/{figure}", figure))

    # Final model and conclusion
    add("## Final Model\n")
    add(f"`{final_model.formula}` fitted on {final_model.training_info['n_observations']} cars.\n")
    add(_table(final_model.coefficient_table()) + "\n")

    add("## Transmission Effect\n")
    add(f"`{effect['formula']}` on {effect['n_observations']} cars.\n")
    add(_table(effect['model'].coefficient_table()) + "\n")
    add(hypothesis_statement(effect, final_model.predictors) + "\n")

    return "\n".join(lines)


def write_report(text: str, output_path: str = "reports/report.md") -> str:
    """
    Save the report.

    Args:
        text: Markdown text
        output_path: Destination file

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w') as f:
        f.write(text)

    logger.info(f"Report saved to {output_path}")
    return str(output_path)


def print_transmission_effect(effect: Dict[str, Any], controls: Optional[Sequence[str]] = None) -> None:
    """
    Print the transmission test to console.

    Args:
        effect: Result of assess_transmission_effect
        controls: Predictors controlled for
    """
    print("\n" + "=" * 70)
    print("TRANSMISSION EFFECT")
    print("=" * 70)
    print(f"Model: {effect['formula']} (n={effect['n_observations']})")
    print(f"  • {effect['term']}: {effect['estimate']:.4f} (SE {effect['std_error']:.4f})")
    print(f"  • t = {effect['t_value']:.3f}, p = {effect['p_value']:.4f}")
    print(f"  • 95% CI: [{effect['ci_lower']:.4f}, {effect['ci_upper']:.4f}]")
    if controls:
        print("\n" + hypothesis_statement(effect, controls))
    print("=" * 70 + "\n")
