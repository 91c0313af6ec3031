"""
Data Loader Module
==================

Handles configuration loading, CSV ingestion and schema checks for the
Motor Trend dataset and the independent Auto MPG validation table.

Functions:
    - load_config: Load YAML configuration file
    - load_mtcars: Load the bundled 32-car Motor Trend table
    - load_validation_data: Load the bundled Auto MPG table
    - validate_schema: Abort on missing or non-numeric fields
    - get_data_summary: Generate basic statistics
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Sequence

import pandas as pd
import numpy as np
import yaml

from .fetch import AUTO_MPG_COLUMNS

logger = logging.getLogger(__name__)

MTCARS_COLUMNS = [
    'mpg', 'cyl', 'disp', 'hp', 'drat', 'wt', 'qsec', 'vs', 'am', 'gear', 'carb'
]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    logger.info(f"Loaded configuration from {config_path}")
    return config


def validate_schema(
    df: pd.DataFrame,
    required: Sequence[str],
    numeric: Optional[Sequence[str]] = None,
    name: str = "dataset"
) -> None:
    """
    Check that a table carries the fields the analysis depends on.

    Args:
        df: DataFrame to check
        required: Columns that must be present
        numeric: Columns that must be numeric and complete (default: required)
        name: Dataset name used in error messages

    Raises:
        ValueError: On missing columns, non-numeric columns or missing values
    """
    missing = [col for col in required if col not in df.columns]
    if missing:
        raise ValueError(f"{name}: missing columns {missing}. Found: {list(df.columns)}")

    numeric = list(required if numeric is None else numeric)
    non_numeric = [col for col in numeric if not pd.api.types.is_numeric_dtype(df[col])]
    if non_numeric:
        raise ValueError(f"{name}: non-numeric columns {non_numeric}")

    null_counts = df[numeric].isnull().sum()
    if null_counts.sum() > 0:
        raise ValueError(
            f"{name}: missing values in {null_counts[null_counts > 0].to_dict()}"
        )


def load_mtcars(file_path: str = "data/raw/mtcars.csv") -> pd.DataFrame:
    """
    Load the Motor Trend road test table.

    The car label becomes the index so that observations can be referred
    to (and removed) by name.

    Args:
        file_path: Path to the CSV file

    Returns:
        DataFrame with 11 numeric columns indexed by car model

    Raises:
        FileNotFoundError: If data file doesn't exist
        ValueError: If the table doesn't match the expected schema
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path, index_col=0)
    df.index.name = 'model'
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    validate_schema(df, MTCARS_COLUMNS, name="mtcars")

    if df.index.has_duplicates:
        raise ValueError(f"mtcars: duplicate car labels {df.index[df.index.duplicated()].tolist()}")

    return df[MTCARS_COLUMNS]


def load_validation_data(file_path: str = "data/raw/auto_mpg.csv") -> pd.DataFrame:
    """
    Load the bundled Auto MPG table used for out-of-sample validation.

    Args:
        file_path: Path to the CSV file

    Returns:
        Raw DataFrame with the original Auto MPG field names

    Raises:
        FileNotFoundError: If the data file doesn't exist
        ValueError: If the table doesn't match the expected schema
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Validation data not found: {file_path}")

    df = pd.read_csv(file_path)
    logger.info(f"Loaded validation data from {file_path}: {df.shape[0]} rows")

    validate_schema(
        df, AUTO_MPG_COLUMNS,
        numeric=['mpg', 'cylinders', 'displacement', 'weight'],
        name="auto_mpg"
    )
    return df


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for the dataset.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary containing summary statistics
    """
    summary = {
        "shape": df.shape,
        "columns": list(df.columns),
        "dtypes": df.dtypes.astype(str).to_dict(),
        "statistics": {}
    }

    for col in df.select_dtypes(include=[np.number]).columns:
        summary["statistics"][col] = {
            "count": int(df[col].count()),
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "50%": float(df[col].quantile(0.50)),
            "max": float(df[col].max()),
        }

    return summary


def print_data_summary(df: pd.DataFrame, title: str = "DATASET SUMMARY") -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
        title: Heading printed above the summary
    """
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print("\nColumn Information:")
    print("-" * 40)

    for col in df.columns:
        non_null = df[col].count()
        print(f"  {col}: {df[col].dtype} | {non_null} non-null")

    print("\nBasic Statistics:")
    print("-" * 40)
    print(df.describe().round(3).to_string())
    print("=" * 60 + "\n")
