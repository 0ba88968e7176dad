"""Outcome by response-rate category.

Box summaries with jittered points per category, a reference rule at the
dataset-wide median, per-category median labels and the Kruskal-Wallis
p-value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import altair as alt
import numpy as np
import pandas as pd

from orrstrata.analysis.figures import ReportStyle
from orrstrata.analysis.loader import CATEGORY_COLUMN, present_categories
from orrstrata.analysis.outcomes import Outcome
from orrstrata.analysis.stats import kruskal_wallis


@dataclass
class CategoryComparison:
    """Kruskal-Wallis test and medians of an outcome across categories.

    Attributes:
        outcome: Outcome compared
        categories: Categories present in the table, in display order
        medians: Median outcome per category (NaN when all values missing)
        overall_median: Median over all non-missing values
        statistic: Kruskal-Wallis H (NaN when undefined)
        p_value: Kruskal-Wallis p-value (NaN when undefined)

    """

    outcome: Outcome
    categories: list[str]
    medians: dict[str, float]
    overall_median: float
    statistic: float
    p_value: float

    @property
    def p_label(self) -> str:
        """P-value rounded to 2 decimals, or "n/a"."""
        if math.isnan(self.p_value):
            return "p = n/a"
        return f"p = {self.p_value:.2f}"

    @property
    def overall_median_label(self) -> str:
        """Display label for the dataset-wide median."""
        if math.isnan(self.overall_median):
            return "n/a"
        return f"{self.overall_median:.1f}"

    def median_label(self, category: str) -> str:
        """Display label for a category median."""
        value = self.medians.get(category, float("nan"))
        if math.isnan(value):
            return "n/a"
        return f"{value:.1f}"


def compare_categories(df: pd.DataFrame, outcome: Outcome) -> CategoryComparison:
    """Run the Kruskal-Wallis test of an outcome across response-rate categories.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to compare

    Returns:
        CategoryComparison with medians and test results

    """
    categories = present_categories(df)
    values = outcome.values(df)

    groups = [values[df[CATEGORY_COLUMN] == cat] for cat in categories]
    statistic, p_value = kruskal_wallis(*groups)

    medians = {}
    for cat, group in zip(categories, groups):
        group = group.dropna()
        medians[cat] = float(group.median()) if len(group) > 0 else float("nan")

    non_missing = values.dropna()
    overall_median = float(non_missing.median()) if len(non_missing) > 0 else float("nan")

    return CategoryComparison(
        outcome=outcome,
        categories=categories,
        medians=medians,
        overall_median=overall_median,
        statistic=statistic,
        p_value=p_value,
    )


def _jitter(n: int, width: float, seed: int) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.uniform(-width / 2, width / 2, size=n)


def category_comparison_data(
    df: pd.DataFrame, outcome: Outcome, style: ReportStyle
) -> pd.DataFrame:
    """Point-level chart data: category, outcome value and jitter offset."""
    data = pd.DataFrame(
        {
            "category": df[CATEGORY_COLUMN].astype(str),
            "value": outcome.values(df),
        }
    ).dropna()
    data["jitter"] = _jitter(len(data), style.jitter_width, style.jitter_seed)
    return data.reset_index(drop=True)


def category_comparison_chart(
    df: pd.DataFrame,
    outcome: Outcome,
    style: ReportStyle,
    comparison: CategoryComparison | None = None,
) -> alt.LayerChart:
    """Build the grouped-comparison chart for one outcome.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to plot
        style: Colours, labels and dimensions
        comparison: Precomputed ``compare_categories`` result (computed
            here when omitted)

    Returns:
        Layered Altair chart

    """
    if comparison is None:
        comparison = compare_categories(df, outcome)
    data = category_comparison_data(df, outcome, style)
    order = comparison.categories

    domain, range_ = style.category_scale()
    x = alt.X(
        "category:N", title=style.category_label, sort=order, scale=alt.Scale(domain=order)
    )
    y_title = outcome.label
    color = alt.Color(
        "category:N",
        title=style.category_label,
        scale=alt.Scale(domain=domain, range=range_),
        legend=None,
    )

    boxplot = (
        alt.Chart(data)
        .mark_boxplot(extent="min-max", size=40, opacity=0.35, outliers=False)
        .encode(x=x, y=alt.Y("value:Q", title=y_title), color=color)
    )

    points = (
        alt.Chart(data)
        .mark_circle(size=35, opacity=0.7)
        .encode(
            x=x,
            xOffset=alt.XOffset("jitter:Q", scale=alt.Scale(domain=[-1, 1])),
            y=alt.Y("value:Q", title=y_title),
            color=color,
            tooltip=[
                alt.Tooltip("category:N", title="Category"),
                alt.Tooltip("value:Q", title=y_title, format=".2f"),
            ],
        )
    )

    layers = [boxplot, points]

    # Reference line at the dataset-wide median
    if not math.isnan(comparison.overall_median):
        rule_data = pd.DataFrame({"y": [comparison.overall_median]})
        layers.append(
            alt.Chart(rule_data).mark_rule(color="gray", strokeDash=[5, 5]).encode(y="y:Q")
        )

    labels = pd.DataFrame(
        {
            "category": order,
            "label": [f"Median: {comparison.median_label(cat)}" for cat in order],
        }
    )
    layers.append(
        alt.Chart(labels)
        .mark_text(baseline="top", fontSize=11, color="#333333")
        .encode(x=x, y=alt.value(4), text="label:N")
    )

    return alt.layer(*layers).properties(
        title=alt.TitleParams(
            text=f"{outcome.label} by response-rate category",
            subtitle=[f"Kruskal-Wallis {comparison.p_label}"],
        ),
        width=style.width,
        height=style.height,
    )
