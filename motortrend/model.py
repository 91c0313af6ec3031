"""
Linear Model Module
===================

Ordinary least squares fitting with statsmodels.

Features:
    - Named candidate models over an explicit predictor list
    - Coefficient table (estimate, standard error, t, p, 95% CI)
    - Aggregate fit statistics (R², adjusted R², residual standard error, F)
    - Point prediction on any frame carrying the predictors
"""

import logging
from typing import Dict, Any, List, Optional, Sequence
from datetime import datetime

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .preprocessing import build_design_matrix, remove_observations

logger = logging.getLogger(__name__)


class LinearModel:
    """
    OLS regression of one response on an explicit list of predictors.

    Wraps a statsmodels results object, which stays available as
    ``results_`` for influence diagnostics.
    """

    def __init__(
        self,
        response: str,
        predictors: Sequence[str],
        name: Optional[str] = None
    ):
        """
        Args:
            response: Response column
            predictors: Predictor columns (categoricals are dummy coded)
            name: Label used in logs and reports
        """
        if not predictors:
            raise ValueError("A linear model needs at least one predictor")
        if response in predictors:
            raise ValueError(f"Response '{response}' cannot also be a predictor")

        self.response = response
        self.predictors = list(predictors)
        self.name = name or f"{response} ~ {' + '.join(self.predictors)}"

        self.results_ = None
        self.design_columns_: Optional[List[str]] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    @property
    def formula(self) -> str:
        return f"{self.response} ~ {' + '.join(self.predictors)}"

    def fit(self, df: pd.DataFrame) -> 'LinearModel':
        """
        Fit the model on the given observations.

        Args:
            df: Observations carrying the response and predictors

        Returns:
            Self for method chaining
        """
        if self.response not in df.columns:
            raise ValueError(f"Response '{self.response}' not found in data")

        X = build_design_matrix(df, self.predictors)
        y = df[self.response].astype(float)

        self.results_ = sm.OLS(y, X).fit()
        self.design_columns_ = list(X.columns)
        self.training_info = {
            'n_observations': int(self.results_.nobs),
            'observations': list(df.index),
            'fitted_at': datetime.now().isoformat(),
        }
        self._is_fitted = True

        logger.info(
            f"Fitted {self.name}: {self.formula} on {int(self.results_.nobs)} observations "
            f"(R²={self.results_.rsquared:.4f}, adj R²={self.results_.rsquared_adj:.4f})"
        )

        return self

    def _check_fitted(self) -> None:
        if not self._is_fitted:
            raise ValueError("Model must be fitted before use. Call fit() first.")

    def predict(self, df: pd.DataFrame) -> np.ndarray:
        """
        Predict the response for new observations.

        Args:
            df: Observations carrying the predictors

        Returns:
            Predictions array of shape (n_samples,)
        """
        self._check_fitted()
        X = build_design_matrix(df, self.predictors, columns=self.design_columns_)
        return np.asarray(self.results_.predict(X))

    def coefficient_table(self, alpha: float = 0.05) -> pd.DataFrame:
        """
        Coefficient estimates with inference.

        Args:
            alpha: Significance level of the confidence interval

        Returns:
            DataFrame indexed by term
        """
        self._check_fitted()
        res = self.results_
        conf_int = res.conf_int(alpha=alpha)

        return pd.DataFrame({
            'estimate': res.params,
            'std_error': res.bse,
            't_value': res.tvalues,
            'p_value': res.pvalues,
            'ci_lower': conf_int[0],
            'ci_upper': conf_int[1],
        })

    def fit_statistics(self) -> Dict[str, float]:
        """Aggregate goodness-of-fit statistics."""
        self._check_fitted()
        res = self.results_

        return {
            'n_observations': int(res.nobs),
            'r2': float(res.rsquared),
            'adj_r2': float(res.rsquared_adj),
            'residual_std_error': float(np.sqrt(res.mse_resid)),
            'f_statistic': float(res.fvalue),
            'f_pvalue': float(res.f_pvalue),
            'aic': float(res.aic),
            'bic': float(res.bic),
            'rss': float(res.ssr),
            'df_residual': int(res.df_resid),
        }


def fit_candidate_models(
    df: pd.DataFrame,
    specs: Dict[str, Dict[str, Any]],
    response: str,
    outliers: Sequence[str] = ()
) -> Dict[str, LinearModel]:
    """
    Fit every configured candidate model.

    Specs with remove_outliers set are fitted on the data minus the single
    labelled outlier.

    Args:
        df: Tidy observations
        specs: Mapping of model name to {'predictors': [...], 'remove_outliers': bool}
        response: Response column
        outliers: Label dropped for specs with remove_outliers set

    Returns:
        Mapping of model name to fitted LinearModel

    Raises:
        ValueError: If a spec removes outliers and outliers doesn't hold
            exactly one label
    """
    trimmed_specs = [name for name, spec in specs.items() if spec.get('remove_outliers', False)]
    if trimmed_specs and len(outliers) != 1:
        raise ValueError(
            f"Specs {trimmed_specs} remove outliers, which needs exactly one outlier label; "
            f"got {list(outliers)}"
        )

    logger.info("=" * 60)
    logger.info("FITTING CANDIDATE MODELS")
    logger.info("=" * 60)

    trimmed = remove_observations(df, outliers) if trimmed_specs else None
    models = {}

    for name, spec in specs.items():
        data = trimmed if spec.get('remove_outliers', False) else df
        models[name] = LinearModel(response, spec['predictors'], name=name).fit(data)

    return models


def print_model_summary(model: LinearModel) -> None:
    """
    Print coefficients and fit statistics of a fitted model.

    Args:
        model: Fitted model instance
    """
    stats = model.fit_statistics()
    coefs = model.coefficient_table()

    print("\n" + "=" * 70)
    print(f"MODEL: {model.name}")
    print("=" * 70)
    print(f"Formula: {model.formula}")
    print(f"Observations: {stats['n_observations']}")
    print(f"\n{'Term':<14} {'Estimate':<12} {'Std. Error':<12} {'t value':<10} {'Pr(>|t|)':<10}")
    print("-" * 70)

    for term, row in coefs.iterrows():
        print(f"{term:<14} {row['estimate']:<12.5f} {row['std_error']:<12.5f} "
              f"{row['t_value']:<10.3f} {row['p_value']:<10.4g}")

    print("-" * 70)
    print(f"  • Residual standard error: {stats['residual_std_error']:.4f} on {stats['df_residual']} df")
    print(f"  • R²: {stats['r2']:.4f}, adjusted R²: {stats['adj_r2']:.4f}")
    print(f"  • F-statistic: {stats['f_statistic']:.2f} (p-value: {stats['f_pvalue']:.4g})")
    print("=" * 70 + "\n")
