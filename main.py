#!/usr/bin/env python3
"""
Motor Trend Fuel Economy Analysis - Main Pipeline
=================================================

Is a manual transmission better for fuel economy than an automatic?

Phases:
    1. EDA - Exploratory Data Analysis
    2. Selection - Exhaustive best-subset selection
    3. Fitting - Candidate OLS models, diagnostics and outlier handling
    4. Validation - Out-of-sample RMSE on the Auto MPG dataset
    5. Report - Transmission hypothesis test and Markdown report

Usage:
    # Run complete pipeline
    python main.py

    # Run specific phase
    python main.py --phase select

    # Run with custom config
    python main.py --config config/config.yaml

    # Replace data/raw/auto_mpg.csv with a fresh download (the only network access)
    python main.py --refresh-validation
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import pandas as pd

from motortrend.data_loader import load_config, load_mtcars, load_validation_data, print_data_summary
from motortrend.fetch import download_auto_mpg
from motortrend.preprocessing import (
    tidy_mtcars, prepare_validation_data, remove_observations, candidate_predictors
)
from motortrend.eda import generate_eda_report, print_correlation_insights, print_group_comparison
from motortrend.selection import best_subset_selection, plot_selection_criteria, print_selection_summary
from motortrend.model import LinearModel, fit_candidate_models, print_model_summary
from motortrend.diagnostics import diagnose_model, print_diagnostics_report
from motortrend.evaluation import evaluate_on_validation, print_validation_report
from motortrend.report import (
    assess_transmission_effect, build_report, write_report, print_transmission_effect
)

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'analysis_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def load_tidy_data(config: Dict[str, Any]) -> pd.DataFrame:
    """Load and tidy the Motor Trend table."""
    print("\n📊 Loading data...")
    df = load_mtcars(config['data']['mtcars_path'])
    print_data_summary(df)
    return tidy_mtcars(df)


def run_eda(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 1: Exploratory Data Analysis.

    Args:
        df: Tidy data
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 1: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config['output']['figures_path']
    report = generate_eda_report(df, output_dir=output_dir, show_plots=False)

    print_correlation_insights(pd.DataFrame(report["correlation_matrix"]))
    print_group_comparison(report["transmission_comparison"])

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_selection(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 2: Best-Subset Selection.

    Args:
        df: Tidy data
        config: Configuration dictionary

    Returns:
        Selection result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 2: BEST-SUBSET SELECTION")
    print("=" * 70)

    analysis = config['analysis']
    response = analysis['response']
    candidates = candidate_predictors(df, response, exclude=analysis.get('exclude', []))

    selection = best_subset_selection(
        df, response, candidates, max_size=analysis.get('max_subset_size')
    )

    figures_dir = Path(config['output']['figures_path'])
    figures_dir.mkdir(parents=True, exist_ok=True)
    plot_selection_criteria(selection, save_path=str(figures_dir / "selection_criteria.png"))

    print_selection_summary(selection)

    return selection


def run_fitting(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 3: Candidate Models and Diagnostics.

    Args:
        df: Tidy data
        config: Configuration dictionary

    Returns:
        Dictionary with fitted models, diagnostics and the outlier comparison
    """
    print("\n" + "=" * 70)
    print("PHASE 3: MODEL FITTING & DIAGNOSTICS")
    print("=" * 70)

    response = config['analysis']['response']
    outliers = config.get('outliers', {}).get('remove', [])
    alpha = config['analysis'].get('significance_level', 0.05)

    models = fit_candidate_models(
        df,
        config['models'],
        response=response,
        outliers=outliers
    )

    diagnostics = {}
    for name, model in models.items():
        print_model_summary(model)
        diagnostics[name] = diagnose_model(
            model, output_dir=config['output']['figures_path'], alpha=alpha
        )
        print_diagnostics_report(diagnostics[name])

    # Adjusted R² of every spec fitted both with and without the outliers
    comparison = None
    if outliers:
        trimmed = remove_observations(df, outliers)
        rows = {}
        for name, spec in config['models'].items():
            if not spec.get('remove_outliers', False):
                continue
            full = LinearModel(response, spec['predictors']).fit(df)
            rows[name] = {
                'adj_r2_all': full.fit_statistics()['adj_r2'],
                'adj_r2_trimmed': models[name].fit_statistics()['adj_r2'],
                'n_all': len(df),
                'n_trimmed': len(trimmed),
            }
        comparison = pd.DataFrame(rows).T if rows else None

    return {
        'models': models,
        'diagnostics': diagnostics,
        'outliers': outliers,
        'outlier_comparison': comparison,
    }


def run_validation(
    models: Dict[str, LinearModel],
    df: pd.DataFrame,
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 4: Cross-Dataset Validation.

    Args:
        models: Fitted candidate models
        df: Tidy data used for fitting
        config: Configuration dictionary

    Returns:
        Validation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 4: CROSS-DATASET VALIDATION")
    print("=" * 70)

    raw = load_validation_data(config['data']['validation_path'])
    validation_df = prepare_validation_data(raw)

    names = config.get('validation', {}).get('models', list(models))
    result = evaluate_on_validation(
        {name: models[name] for name in names},
        validation_df,
        fit_df=df,
        output_dir=config['output']['figures_path']
    )

    print_validation_report(result['ranking'])

    return result


def run_report(results: Dict[str, Any], df: pd.DataFrame, config: Dict[str, Any]) -> str:
    """
    Execute Phase 5: Transmission Effect and Report.

    Args:
        results: Results of the previous phases
        df: Tidy data
        config: Configuration dictionary

    Returns:
        Path to the written report
    """
    print("\n" + "=" * 70)
    print("PHASE 5: TRANSMISSION EFFECT & REPORT")
    print("=" * 70)

    final_name = config.get('final_model') or results['validation']['selected']
    final_model = results['models'][final_name]
    if final_name != results['validation']['selected']:
        logger.warning(
            f"Configured final model {final_name} differs from the validation winner "
            f"{results['validation']['selected']}"
        )

    fit_df = df.loc[final_model.training_info['observations']]
    effect = assess_transmission_effect(
        fit_df,
        final_model.response,
        final_model.predictors,
        alpha=config['analysis'].get('significance_level', 0.05)
    )
    print_transmission_effect(effect, controls=final_model.predictors)

    results['transmission'] = effect
    results['final_model'] = final_name

    report_path = Path(config['output']['report_path'])
    figures_rel = Path(os.path.relpath(config['output']['figures_path'], report_path.parent)).as_posix()

    return write_report(build_report(results, figures_rel=figures_rel), str(report_path))


def run_full_pipeline(
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute the complete 5-phase pipeline.

    Args:
        config_path: Path to configuration file
        log_level: Overrides the configured log level

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("MOTOR TREND FUEL ECONOMY ANALYSIS")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    df = load_tidy_data(config)

    results: Dict[str, Any] = {
        'config': config,
        'n_observations': len(df),
    }

    # Phase 1: EDA
    results['eda'] = run_eda(df, config)

    # Phase 2: Selection
    results['selection'] = run_selection(df, config)

    # Phase 3: Fitting & diagnostics
    results.update(run_fitting(df, config))

    # Phase 4: Validation
    results['validation'] = run_validation(results['models'], df, config)

    # Phase 5: Report
    results['report_path'] = run_report(results, df, config)

    effect = results['transmission']
    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Input data: {df.shape[0]} cars")
    print(f"  • Final model: {results['models'][results['final_model']].formula}")
    print(f"  • Transmission p-value: {effect['p_value']:.4f} "
          f"({'significant' if effect['reject_null'] else 'not significant'})")
    print(f"  • Report: {results['report_path']}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the pipeline.

    Args:
        phase: Phase to run ('eda', 'select', 'fit', 'validate', 'report')
        config_path: Path to configuration file
        log_level: Overrides the configured log level

    Returns:
        Phase result dictionary
    """
    if phase == 'report':
        # The report needs every earlier phase
        return run_full_pipeline(config_path, log_level)

    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    df = load_tidy_data(config)

    if phase == 'eda':
        return run_eda(df, config)

    elif phase == 'select':
        return run_selection(df, config)

    elif phase == 'fit':
        return run_fitting(df, config)

    elif phase == 'validate':
        fitted = run_fitting(df, config)
        return run_validation(fitted['models'], df, config)

    else:
        raise ValueError(f"Unknown phase: {phase}. Choose from: eda, select, fit, validate, report")


def refresh_validation_data(config_path: str, log_level: Optional[str] = None) -> str:
    """Replace the bundled Auto MPG table with a fresh copy from its source."""
    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    data_config = config['data']
    df = download_auto_mpg(data_config['validation_url'], output_path=data_config['validation_path'])
    print(f"\n✓ Refreshed {data_config['validation_path']}: {len(df)} records")
    return data_config['validation_path']


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Motor Trend fuel economy analysis: manual vs automatic transmission",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --phase select
  python main.py --config config/custom.yaml
  python main.py --refresh-validation
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['eda', 'select', 'fit', 'validate', 'report', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--refresh-validation',
        action='store_true',
        help='Re-download the bundled Auto MPG table from its source URL and exit'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)

    log_level = "DEBUG" if args.verbose else None

    try:
        if args.refresh_validation:
            refresh_validation_data(args.config, log_level)
        elif args.phase == 'all':
            run_full_pipeline(args.config, log_level)
        else:
            run_single_phase(args.phase, args.config, log_level)

        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
