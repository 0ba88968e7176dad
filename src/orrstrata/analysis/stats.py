"""Statistical analysis functions.

Provides the rank-based omnibus test, grouped descriptive statistics and
simple least-squares trend fits used across figures and tables.
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
from scipy import stats
from statsmodels.regression.linear_model import OLS
from statsmodels.tools import add_constant

from orrstrata.analysis.config import config
from orrstrata.analysis.errors import InsufficientDataError

logger = logging.getLogger(__name__)


def kruskal_wallis(*groups: pd.Series | np.ndarray) -> tuple[float, float]:
    """Perform Kruskal-Wallis H test (non-parametric one-way ANOVA).

    Missing values are dropped and empty groups are ignored. When fewer than
    two groups carry data, or every value is identical, the statistic is
    undefined and (nan, nan) is returned.

    Args:
        *groups: Variable number of sample groups to compare

    Returns:
        Tuple of (H statistic, p-value)
        - H = 0 when all groups have identical rank sums
        - p < 0.05 indicates at least one group differs

    """
    groups_arrays = [np.asarray(g, dtype=float) for g in groups]
    groups_arrays = [g[~np.isnan(g)] for g in groups_arrays]
    groups_arrays = [g for g in groups_arrays if len(g) > 0]

    if len(groups_arrays) < config.min_groups_kruskal:
        logger.warning(
            f"Kruskal-Wallis test called with {len(groups_arrays)} non-empty groups. "
            "Returning NaN."
        )
        return float("nan"), float("nan")

    pooled = np.concatenate(groups_arrays)
    if np.all(pooled == pooled[0]):
        logger.warning("Kruskal-Wallis test called with all-identical values. Returning NaN.")
        return float("nan"), float("nan")

    statistic, pvalue = stats.kruskal(*groups_arrays)
    return float(statistic), float(pvalue)


def grouped_summary(
    values: pd.Series, groups: pd.Series, order: list[str], method: str | None = None
) -> pd.DataFrame:
    """Compute median, quartiles and range of ``values`` per group.

    Args:
        values: Numeric values (NaN ignored)
        groups: Group label for each value, aligned with ``values``
        order: Groups to report, in output order
        method: Quantile interpolation (default: config ``quantile_method``)

    Returns:
        DataFrame indexed by group with columns n, median, p25, p75, min, max.
        Groups without values have n = 0 and NaN statistics.

    """
    method = method or config.quantile_method
    rows = []
    for group in order:
        subset = values[groups == group].dropna()
        if len(subset) == 0:
            rows.append(
                {
                    "group": group,
                    "n": 0,
                    "median": np.nan,
                    "p25": np.nan,
                    "p75": np.nan,
                    "min": np.nan,
                    "max": np.nan,
                }
            )
            continue

        rows.append(
            {
                "group": group,
                "n": int(len(subset)),
                "median": float(subset.median()),
                "p25": float(subset.quantile(0.25, interpolation=method)),
                "p75": float(subset.quantile(0.75, interpolation=method)),
                "min": float(subset.min()),
                "max": float(subset.max()),
            }
        )

    columns = ["group", "n", "median", "p25", "p75", "min", "max"]
    return pd.DataFrame(rows, columns=columns).set_index("group")


def ols_regression(x: pd.Series | np.ndarray, y: pd.Series | np.ndarray) -> dict[str, float]:
    """Perform Ordinary Least Squares regression.

    Fits y = slope * x + intercept using OLS on complete (x, y) pairs and
    returns diagnostics.

    Args:
        x: Independent variable
        y: Dependent variable

    Returns:
        Dictionary with keys:
            - slope: Regression coefficient
            - intercept: Y-intercept
            - r_squared: Coefficient of determination
            - p_value: P-value for slope significance
            - std_err: Standard error of slope estimate
            - n: Number of complete pairs used

    Raises:
        InsufficientDataError: With fewer than the configured minimum pairs
            or fewer than two distinct x values

    """
    x_array = np.asarray(x, dtype=float)
    y_array = np.asarray(y, dtype=float)
    mask = ~(np.isnan(x_array) | np.isnan(y_array))
    x_array, y_array = x_array[mask], y_array[mask]

    min_n = config.min_sample_regression
    if len(x_array) < min_n:
        raise InsufficientDataError(
            f"OLS needs at least {min_n} complete pairs, got {len(x_array)}"
        )
    if len(np.unique(x_array)) < 2:
        raise InsufficientDataError("OLS needs at least 2 distinct x values")

    # Add constant term for intercept
    x_with_const = add_constant(x_array, has_constant="add")

    model = OLS(y_array, x_with_const).fit()

    return {
        "slope": float(model.params[1]),
        "intercept": float(model.params[0]),
        "r_squared": float(model.rsquared),
        "p_value": float(model.pvalues[1]),
        "std_err": float(model.bse[1]),
        "n": int(len(x_array)),
    }
