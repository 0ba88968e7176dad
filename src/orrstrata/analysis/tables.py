"""Summary table generation.

Generates the per-category summary table for an outcome as a DataFrame and
renders it to markdown and LaTeX for the report document.
"""

from __future__ import annotations

import math

import pandas as pd

from orrstrata.analysis.loader import CATEGORY_COLUMN, present_categories
from orrstrata.analysis.outcomes import Outcome
from orrstrata.analysis.stats import grouped_summary

SUMMARY_COLUMNS = ["Category", "N", "Median", "P25", "P75", "Min", "Max"]


def summary_table(df: pd.DataFrame, outcome: Outcome) -> pd.DataFrame:
    """Build the grouped summary table for one outcome.

    One row per response-rate category present in the table, in display
    order. Missing outcome values are ignored; a category whose values are
    all missing keeps its row with N = 0 and NaN statistics.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to summarize

    Returns:
        DataFrame with columns Category, N, Median, P25, P75, Min, Max

    """
    summary = grouped_summary(
        outcome.values(df), df[CATEGORY_COLUMN], present_categories(df)
    ).reset_index()

    table = summary.rename(
        columns={
            "group": "Category",
            "n": "N",
            "median": "Median",
            "p25": "P25",
            "p75": "P75",
            "min": "Min",
            "max": "Max",
        }
    )
    return table[SUMMARY_COLUMNS]


def _fmt(value: float, digits: int = 2) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "n/a"
    return f"{value:.{digits}f}"


def _latex_escape(text: str) -> str:
    return text.replace("%", r"\%").replace("<", r"$<$").replace("&", r"\&")


def format_summary_table(table: pd.DataFrame, outcome: Outcome) -> tuple[str, str]:
    """Render a summary table to markdown and LaTeX.

    Args:
        table: Output of ``summary_table``
        outcome: Outcome the table describes (used for the caption)

    Returns:
        Tuple of (markdown_table, latex_table)

    """
    title = f"{outcome.label} by response-rate category"

    md_lines = [f"**{title}**", ""]
    md_lines.append("| Category | N | Median | P25 | P75 | Min | Max |")
    md_lines.append("|----------|---|--------|-----|-----|-----|-----|")
    for _, row in table.iterrows():
        md_lines.append(
            f"| {row['Category']} | {int(row['N'])} | {_fmt(row['Median'])} | "
            f"{_fmt(row['P25'])} | {_fmt(row['P75'])} | {_fmt(row['Min'])} | "
            f"{_fmt(row['Max'])} |"
        )
    markdown = "\n".join(md_lines)

    latex_lines = [
        r"\begin{table}[htbp]",
        r"\centering",
        f"\\caption{{{_latex_escape(title)}}}",
        f"\\label{{tab:summary_{outcome.slug}}}",
        r"\begin{tabular}{lrrrrrr}",
        r"\toprule",
        r"Category & N & Median & P25 & P75 & Min & Max \\",
        r"\midrule",
    ]
    for _, row in table.iterrows():
        latex_lines.append(
            f"{_latex_escape(str(row['Category']))} & {int(row['N'])} & "
            f"{_fmt(row['Median'])} & {_fmt(row['P25'])} & {_fmt(row['P75'])} & "
            f"{_fmt(row['Min'])} & {_fmt(row['Max'])} \\\\"
        )
    latex_lines.extend(
        [
            r"\bottomrule",
            r"\end{tabular}",
            r"\end{table}",
        ]
    )
    latex = "\n".join(latex_lines)

    return markdown, latex
