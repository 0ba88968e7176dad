"""Outcome versus intervention response rate, stratified by treatment type.

Scatter coloured by treatment type with an independent OLS trend line per
group, each labelled with its fitted equation.
"""

from __future__ import annotations

import logging

import altair as alt
import pandas as pd

from orrstrata.analysis.errors import InsufficientDataError
from orrstrata.analysis.figures import OVERALL_LABEL, ReportStyle
from orrstrata.analysis.loader import RESPONSE_RATE_COLUMN, TREATMENT_TYPE_COLUMN
from orrstrata.analysis.outcomes import Outcome
from orrstrata.analysis.stats import ols_regression

logger = logging.getLogger(__name__)

TREND_COLUMNS = [
    "group",
    "slope",
    "intercept",
    "r_squared",
    "n",
    "x_min",
    "x_max",
    "y_at_min",
    "y_at_max",
    "equation",
]


def equation_label(slope: float, intercept: float, r_squared: float) -> str:
    """Format a fitted line as ``y = 0.12x + 3.40 (R² = 0.21)``.

    Examples:
        >>> equation_label(0.123, -3.4, 0.2049)
        'y = 0.12x - 3.40 (R² = 0.20)'

    """
    sign = "-" if intercept < 0 else "+"
    return f"y = {slope:.2f}x {sign} {abs(intercept):.2f} (R² = {r_squared:.2f})"


def response_regression_data(df: pd.DataFrame, outcome: Outcome) -> pd.DataFrame:
    """Complete (rate, outcome) pairs with their treatment type."""
    return pd.DataFrame(
        {
            "rate": df[RESPONSE_RATE_COLUMN],
            "value": outcome.values(df),
            "treatment_type": df[TREATMENT_TYPE_COLUMN],
        }
    ).dropna(subset=["rate", "value"])


def fit_trend_lines(
    df: pd.DataFrame, outcome: Outcome, include_overall: bool = True
) -> pd.DataFrame:
    """Fit one OLS trend line per treatment type.

    Groups with too few complete pairs (or a single distinct response
    rate) are omitted rather than failing the whole figure.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome on the y axis
        include_overall: Also fit a pooled line labelled "Overall"

    Returns:
        DataFrame with one row per fitted line (see TREND_COLUMNS)

    """
    pairs = response_regression_data(df, outcome)
    groups = sorted(pairs["treatment_type"].dropna().unique())

    subsets = [(group, pairs[pairs["treatment_type"] == group]) for group in groups]
    if include_overall:
        subsets.append((OVERALL_LABEL, pairs))

    rows = []
    for group, subset in subsets:
        try:
            fit = ols_regression(subset["rate"], subset["value"])
        except InsufficientDataError as e:
            logger.warning(f"{outcome.slug}: no trend line for '{group}': {e}")
            continue

        x_min, x_max = float(subset["rate"].min()), float(subset["rate"].max())
        rows.append(
            {
                "group": group,
                "slope": fit["slope"],
                "intercept": fit["intercept"],
                "r_squared": fit["r_squared"],
                "n": fit["n"],
                "x_min": x_min,
                "x_max": x_max,
                "y_at_min": fit["intercept"] + fit["slope"] * x_min,
                "y_at_max": fit["intercept"] + fit["slope"] * x_max,
                "equation": equation_label(fit["slope"], fit["intercept"], fit["r_squared"]),
            }
        )

    return pd.DataFrame(rows, columns=TREND_COLUMNS)


def response_regression_chart(
    df: pd.DataFrame, outcome: Outcome, style: ReportStyle, include_overall: bool = True
) -> alt.LayerChart:
    """Build the stratified scatter/regression chart for one outcome.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome on the y axis
        style: Colours, labels and dimensions
        include_overall: Draw the pooled "Overall" trend line

    Returns:
        Layered Altair chart

    """
    pairs = response_regression_data(df, outcome).dropna(subset=["treatment_type"])
    trends = fit_trend_lines(df, outcome, include_overall=include_overall)

    keys = sorted(pairs["treatment_type"].unique())
    if include_overall:
        keys.append(OVERALL_LABEL)
    domain, range_ = style.treatment_scale(keys)
    color = alt.Color(
        "treatment_type:N",
        title=style.treatment_label,
        scale=alt.Scale(domain=domain, range=range_),
    )

    points = (
        alt.Chart(pairs)
        .mark_circle(size=40, opacity=0.7)
        .encode(
            x=alt.X("rate:Q", title=style.response_rate_label),
            y=alt.Y("value:Q", title=outcome.label),
            color=color,
            tooltip=[
                alt.Tooltip("treatment_type:N", title=style.treatment_label),
                alt.Tooltip("rate:Q", title="Response rate", format=".1f"),
                alt.Tooltip("value:Q", title=outcome.label, format=".2f"),
            ],
        )
    )

    # Two endpoints per fitted line
    segment_columns = ["treatment_type", "rate", "value"]
    segments = pd.concat(
        [
            trends[["group", "x_min", "y_at_min"]].set_axis(segment_columns, axis=1),
            trends[["group", "x_max", "y_at_max"]].set_axis(segment_columns, axis=1),
        ],
        ignore_index=True,
    )
    lines = (
        alt.Chart(segments)
        .mark_line(strokeWidth=2)
        .encode(
            x="rate:Q",
            y="value:Q",
            color=color,
            detail="treatment_type:N",
            strokeDash=alt.condition(
                alt.datum.treatment_type == OVERALL_LABEL,
                alt.value([5, 5]),
                alt.value([1, 0]),
            ),
        )
    )

    labels = trends.rename(
        columns={"group": "treatment_type", "x_max": "rate", "y_at_max": "value"}
    )[["treatment_type", "rate", "value", "equation"]]
    equations = (
        alt.Chart(labels)
        .mark_text(align="left", dx=6, fontSize=10)
        .encode(x="rate:Q", y="value:Q", text="equation:N", color=color)
    )

    return alt.layer(points, lines, equations).properties(
        title=f"{outcome.label} vs intervention response rate",
        width=style.width,
        height=style.height,
    )
