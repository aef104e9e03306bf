"""
Data I/O and validation for development datasets.

The development dataset is a pandas DataFrame with one binary outcome column
and numeric or categorical predictor columns. It is read once and treated as
immutable for the lifetime of a simulation.
"""

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from evpi_ml.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


def read_dataset_file(filepath: str | Path) -> pd.DataFrame:
    """
    Read a development dataset (CSV or Parquet), chosen by file extension.

    Args:
        filepath: Path to .csv or .parquet file

    Returns:
        Loaded DataFrame

    Raises:
        FileNotFoundError: If filepath does not exist
        ValueError: If the extension is not supported
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    suffix = filepath.suffix.lower()
    logger.info(f"Reading dataset: {filepath}")
    if suffix == ".csv":
        df = pd.read_csv(filepath)
    elif suffix in (".parquet", ".pq"):
        df = pd.read_parquet(filepath, engine="pyarrow")
    else:
        raise ValueError(f"Unsupported file format '{suffix}' (expected .csv or .parquet)")

    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")
    return df


def coerce_binary_outcome(values: pd.Series) -> pd.Series:
    """
    Coerce an outcome column to integer 0/1.

    Accepts booleans and numeric values that are exactly 0 or 1.

    Raises:
        InvalidInputError: If any value is missing or not in {0, 1}
    """
    if values.isna().any():
        raise InvalidInputError(
            f"Outcome column '{values.name}' has {int(values.isna().sum())} missing values"
        )

    if values.dtype == bool:
        return values.astype(int)

    numeric = pd.to_numeric(values, errors="coerce")
    bad = numeric.isna() | ~numeric.isin([0, 1])
    if bad.any():
        examples = list(pd.unique(values[bad]))[:5]
        raise InvalidInputError(
            f"Outcome column '{values.name}' must contain only 0/1 values; "
            f"found {examples}"
        )
    return numeric.astype(int)


def validate_dataset(
    data: pd.DataFrame,
    outcome: str,
    predictors: list[str] | None = None,
) -> pd.DataFrame:
    """
    Check the development dataset preconditions.

    - non-empty
    - outcome column present, binary, with both classes observed
    - every predictor column present

    Args:
        data: Development dataset
        outcome: Outcome column name
        predictors: Predictor column names (optional)

    Returns:
        A copy of ``data`` with the outcome coerced to int 0/1

    Raises:
        InvalidInputError: On any violated precondition
    """
    if data is None or len(data) == 0:
        raise InvalidInputError("Dataset is empty")

    if outcome not in data.columns:
        raise InvalidInputError(f"Outcome column '{outcome}' not found in dataset")

    missing = [c for c in (predictors or []) if c not in data.columns]
    if missing:
        raise InvalidInputError(f"Predictor columns not found in dataset: {missing}")

    if outcome in (predictors or []):
        raise InvalidInputError(f"Outcome column '{outcome}' cannot also be a predictor")

    out = data.copy()
    out[outcome] = coerce_binary_outcome(out[outcome])

    n_distinct = out[outcome].nunique()
    if n_distinct < 2:
        raise InvalidInputError(
            f"Outcome column '{outcome}' has {n_distinct} distinct value(s); need both 0 and 1"
        )

    return out


def select_complete_cases(data: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """
    Drop rows with a missing value in any of ``columns``.

    Args:
        data: Input DataFrame
        columns: Columns that must be non-missing

    Returns:
        Filtered DataFrame with a fresh RangeIndex
    """
    mask = data[columns].notna().all(axis=1)
    n_dropped = int((~mask).sum())
    if n_dropped:
        logger.info(f"Dropped {n_dropped:,} incomplete rows ({n_dropped / len(data):.1%})")
    return data.loc[mask].reset_index(drop=True)


def outcome_prevalence(data: pd.DataFrame, outcome: str) -> float:
    """Observed prevalence of the outcome."""
    return float(np.mean(data[outcome].to_numpy(dtype=float)))
