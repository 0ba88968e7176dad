"""Data loader for the clinical-outcomes spreadsheet.

Reads the observations sheet, normalizes column names, coerces numeric
fields, derives the response-rate category and the intervention-minus-control
difference columns, and drops rows that cannot be classified.
"""

from __future__ import annotations

import logging
import math
import re
import zipfile
from pathlib import Path

import numpy as np
import pandas as pd

from orrstrata.analysis.config import CATEGORY_ORDER, config
from orrstrata.analysis.errors import DataLoadError, DataValidationError

logger = logging.getLogger(__name__)

RESPONSE_RATE_COLUMN = "response_rate_intervention"
TREATMENT_TYPE_COLUMN = "treatment_type"
CATEGORY_COLUMN = "response_rate_category"

# Source columns, in output order
NUMERIC_COLUMNS = [
    RESPONSE_RATE_COLUMN,
    "os_intervention_months",
    "pfs_intervention",
    "os_control_months",
    "pfs_control",
]
REQUIRED_COLUMNS = [*NUMERIC_COLUMNS, TREATMENT_TYPE_COLUMN]

CATEGORY_DTYPE = pd.CategoricalDtype(categories=CATEGORY_ORDER, ordered=True)


def normalize_column_name(name: object) -> str:
    """Normalize a spreadsheet header to lowercase underscore form.

    Args:
        name: Raw header value (may be non-string, e.g. an int header)

    Returns:
        Normalized column name

    Examples:
        >>> normalize_column_name("  Response Rate (Intervention) ")
        'response_rate_intervention'
        >>> normalize_column_name("OS-Control Months")
        'os_control_months'

    """
    text = str(name).strip().lower()
    text = re.sub(r"[^0-9a-z]+", "_", text)
    return text.strip("_")


def classify_response_rate(value: object) -> str | None:
    """Assign a response-rate percentage to its display category.

    Boundary values land in the upper bucket (10 -> "10-20").

    Args:
        value: Response rate in percent

    Returns:
        One of "<10", "10-20", "20-30", "30+", or None when the value is
        missing, not a number, or infinite

    """
    if value is None or isinstance(value, bool):
        return None
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(rate):
        return None

    if rate < 10:
        return "<10"
    elif rate < 20:
        return "10-20"
    elif rate < 30:
        return "20-30"
    else:
        return "30+"


def _check_required_columns(df: pd.DataFrame) -> None:
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise DataValidationError(
            f"Source table is missing required columns: {', '.join(missing)} "
            f"(found: {', '.join(map(str, df.columns))})"
        )


def clean_observations(raw_df: pd.DataFrame) -> pd.DataFrame:
    """Build the cleaned observations table from a raw sheet.

    Args:
        raw_df: Sheet contents as read from the spreadsheet

    Returns:
        DataFrame with the six source columns, ``response_rate_category``
        (ordered categorical), ``os_difference`` and ``pfs_difference``;
        rows without a classifiable response rate are dropped

    Raises:
        DataValidationError: If any required column is missing

    """
    df = raw_df.rename(columns=normalize_column_name)
    if df.columns.duplicated().any():
        duplicated = sorted(set(df.columns[df.columns.duplicated()]))
        raise DataValidationError(
            f"Column names collide after normalization: {', '.join(duplicated)}"
        )
    _check_required_columns(df)

    df = df[REQUIRED_COLUMNS].copy()
    for col in NUMERIC_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce").astype(float)
    # "inf" text cells coerce to infinity; treat them as missing
    df[NUMERIC_COLUMNS] = df[NUMERIC_COLUMNS].replace([np.inf, -np.inf], np.nan)

    treatment = df[TREATMENT_TYPE_COLUMN]
    treatment = treatment.where(treatment.isna(), treatment.astype(str).str.strip())
    df[TREATMENT_TYPE_COLUMN] = treatment.replace("", np.nan)

    categories = df[RESPONSE_RATE_COLUMN].map(classify_response_rate)
    keep = categories.notna()
    n_dropped = int((~keep).sum())
    if n_dropped:
        logger.info(f"Dropping {n_dropped} rows without a classifiable response rate")

    df = df[keep].copy()
    df[CATEGORY_COLUMN] = categories[keep].astype(CATEGORY_DTYPE)
    df["os_difference"] = df["os_intervention_months"] - df["os_control_months"]
    df["pfs_difference"] = df["pfs_intervention"] - df["pfs_control"]

    return df.reset_index(drop=True)


def load_observations(path: Path | str, sheet_name: str | None = None) -> pd.DataFrame:
    """Load and clean the observations sheet of a spreadsheet.

    Args:
        path: Path to the .xlsx workbook
        sheet_name: Sheet to read (default: ``source.sheet_name`` from config)

    Returns:
        Cleaned observations DataFrame (see ``clean_observations``)

    Raises:
        DataLoadError: If the file or sheet cannot be read
        DataValidationError: If required columns are missing

    """
    path = Path(path)
    sheet = sheet_name or config.sheet_name

    if not path.is_file():
        raise DataLoadError(f"Spreadsheet not found: {path}")

    try:
        raw_df = pd.read_excel(path, sheet_name=sheet, engine="openpyxl")
    except ValueError as e:
        # pandas reports an unknown sheet as ValueError("Worksheet named ... not found")
        raise DataLoadError(f"Cannot read sheet '{sheet}' from {path}: {e}") from e
    except (OSError, zipfile.BadZipFile) as e:
        raise DataLoadError(f"Cannot read spreadsheet {path}: {e}") from e

    logger.info(f"Loaded {len(raw_df)} rows from {path.name}[{sheet}]")
    df = clean_observations(raw_df)
    logger.info(f"Cleaned observations: {len(df)} rows retained")
    return df


def present_categories(df: pd.DataFrame) -> list[str]:
    """Categories that occur in the cleaned table, in display order."""
    observed = set(df[CATEGORY_COLUMN].dropna().astype(str))
    return [cat for cat in config.category_order if cat in observed]
