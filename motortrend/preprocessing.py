"""
Preprocessing Module
====================

Tidies the Motor Trend table and maps the validation table onto its schema.

Features:
    - Coded categorical fields replaced by labelled categories
    - Derived fuel consumption (gallons per 100 miles) and weight-to-power ratio
    - Field mapping and unit rescaling of the Auto MPG table
    - Design matrix construction with treatment-coded dummies
"""

import logging
from typing import Dict, List, Optional, Sequence

import pandas as pd
import statsmodels.api as sm

logger = logging.getLogger(__name__)

# Level order matters: the first level is the dummy-coding baseline
CATEGORY_LABELS: Dict[str, Dict[int, str]] = {
    'vs': {0: 'V', 1: 'straight'},
    'am': {0: 'automatic', 1: 'manual'},
}

VALIDATION_FIELD_MAP = {
    'name': 'model',
    'mpg': 'mpg',
    'cylinders': 'cyl',
    'displacement': 'disp',
    'horsepower': 'hp',
    'weight': 'wt',
}

# Auto MPG reports weight in lbs, mtcars in 1000 lbs
VALIDATION_RESCALE = {'wt': 1 / 1000}


def add_derived_features(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add gallons per 100 miles and the weight-to-power ratio.

    Args:
        df: DataFrame with mpg, wt and hp columns

    Returns:
        Copy of df with gp100m and wthp columns

    Raises:
        ValueError: If mpg or hp contain zero values
    """
    for col in ('mpg', 'hp'):
        if (df[col] == 0).any():
            zero_rows = df.index[df[col] == 0].tolist()
            raise ValueError(f"Cannot derive features: zero {col} for {zero_rows}")

    df = df.copy()
    df['gp100m'] = 100 / df['mpg']
    df['wthp'] = df['wt'] / df['hp']
    return df


def tidy_mtcars(df: pd.DataFrame) -> pd.DataFrame:
    """
    Label coded fields and add derived features.

    vs becomes V/straight and am becomes automatic/manual, both as
    categoricals with the coded-0 level first.

    Args:
        df: Raw mtcars DataFrame

    Returns:
        Tidy DataFrame

    Raises:
        ValueError: If a coded field holds an unknown code
    """
    df = df.copy()

    for col, labels in CATEGORY_LABELS.items():
        unknown = set(df[col].unique()) - set(labels)
        if unknown:
            raise ValueError(f"Unknown codes in '{col}': {sorted(unknown)}")
        df[col] = pd.Categorical(
            df[col].map(labels),
            categories=list(labels.values()),
            ordered=True
        )

    df = add_derived_features(df)

    logger.info(
        f"Tidied data: {len(df)} cars, "
        f"{int((df['am'] == 'manual').sum())} manual / {int((df['am'] == 'automatic').sum())} automatic"
    )
    return df


def prepare_validation_data(raw: pd.DataFrame) -> pd.DataFrame:
    """
    Map the Auto MPG table onto the mtcars schema.

    Args:
        raw: Auto MPG table with its original field names

    Returns:
        DataFrame indexed by car name with mpg, cyl, disp, hp, wt,
        gp100m and wthp columns
    """
    df = raw[list(VALIDATION_FIELD_MAP)].rename(columns=VALIDATION_FIELD_MAP)

    n_before = len(df)
    df = df.dropna(subset=['hp']).copy()
    if len(df) < n_before:
        logger.info(f"Dropped {n_before - len(df)} validation rows with unknown horsepower")

    for col, factor in VALIDATION_RESCALE.items():
        df[col] = df[col] * factor

    df = df.set_index('model')
    df = add_derived_features(df)

    logger.info(f"Validation data prepared: {len(df)} cars")
    return df


def remove_observations(df: pd.DataFrame, labels: Sequence[str]) -> pd.DataFrame:
    """
    Drop the named observations.

    Args:
        df: DataFrame indexed by car label
        labels: Labels to remove

    Returns:
        Copy of df without the labels

    Raises:
        ValueError: If a label isn't present
    """
    missing = [label for label in labels if label not in df.index]
    if missing:
        raise ValueError(f"Cannot remove unknown observations: {missing}")

    logger.info(f"Removing {len(labels)} observation(s): {list(labels)}")
    return df.drop(index=list(labels))


def candidate_predictors(
    df: pd.DataFrame,
    response: str,
    exclude: Optional[Sequence[str]] = None
) -> List[str]:
    """Every column except the response and the excluded fields."""
    exclude = set(exclude or [])
    return [col for col in df.columns if col != response and col not in exclude]


def build_design_matrix(
    df: pd.DataFrame,
    predictors: Sequence[str],
    columns: Optional[Sequence[str]] = None
) -> pd.DataFrame:
    """
    Build an OLS design matrix with an intercept.

    Categorical predictors are treatment coded against their first level,
    so am becomes am_manual.

    Args:
        df: Source DataFrame
        predictors: Predictor columns
        columns: Fitted column layout to reindex onto (for prediction)

    Returns:
        Float DataFrame with a leading const column

    Raises:
        ValueError: If a predictor is missing from df
    """
    missing = [p for p in predictors if p not in df.columns]
    if missing:
        raise ValueError(f"Predictors not found in data: {missing}")

    X = pd.get_dummies(df[list(predictors)], drop_first=True, dtype=float)
    X = sm.add_constant(X.astype(float), has_constant='add')

    if columns is not None:
        absent = [c for c in columns if c not in X.columns]
        if absent:
            raise ValueError(f"Design columns not reproducible from data: {absent}")
        X = X[list(columns)]

    return X
