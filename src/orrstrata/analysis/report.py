"""Report assembly.

Runs the same analysis pipeline for every outcome and composes the
resulting figures, tables and model reports into one markdown document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path

import altair as alt
import pandas as pd
from statsmodels.regression.linear_model import RegressionResultsWrapper

from orrstrata.analysis.config import config
from orrstrata.analysis.errors import InsufficientDataError
from orrstrata.analysis.figures import ReportStyle, default_style
from orrstrata.analysis.figures.category_comparison import (
    CategoryComparison,
    category_comparison_chart,
    category_comparison_data,
    compare_categories,
)
from orrstrata.analysis.figures.response_regression import (
    response_regression_chart,
    response_regression_data,
)
from orrstrata.analysis.figures.spec_builder import save_figure
from orrstrata.analysis.models import (
    GroupModel,
    fit_additive_model,
    fit_group_models,
    fit_interaction_model,
    format_model_report,
    interaction_p_value,
)
from orrstrata.analysis.outcomes import Outcome
from orrstrata.analysis.tables import format_summary_table, summary_table

logger = logging.getLogger(__name__)


@dataclass
class OutcomeReport:
    """All artifacts produced for one outcome.

    Attributes:
        outcome: Outcome the section describes
        comparison: Kruskal-Wallis results behind the comparison chart
        comparison_chart: Grouped-comparison figure
        summary: Grouped summary table
        regression_chart: Stratified scatter/regression figure
        group_models: Model 1, keyed by treatment type
        interaction_model: Model 2, or None when it could not be fitted
        additive_model: Model 3, or None when it could not be fitted
        errors: Model-level failure messages keyed by model name
        figure_data: Point-level data behind each figure, keyed by figure kind

    """

    outcome: Outcome
    comparison: CategoryComparison
    comparison_chart: alt.LayerChart
    summary: pd.DataFrame
    regression_chart: alt.LayerChart
    group_models: dict[str, GroupModel]
    interaction_model: RegressionResultsWrapper | None = None
    additive_model: RegressionResultsWrapper | None = None
    errors: dict[str, str] = field(default_factory=dict)
    figure_data: dict[str, pd.DataFrame] = field(default_factory=dict)


def build_outcome_report(
    df: pd.DataFrame, outcome: Outcome, style: ReportStyle | None = None
) -> OutcomeReport:
    """Run the full analysis pipeline for one outcome.

    Statistical degeneracy in a model is recorded on the report instead of
    aborting the other artifacts.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to analyse
        style: Rendering style (default: from config.yaml)

    Returns:
        OutcomeReport for the outcome

    """
    style = style or default_style()
    logger.info(f"Building report section for {outcome.slug}")

    comparison = compare_categories(df, outcome)
    report = OutcomeReport(
        outcome=outcome,
        comparison=comparison,
        comparison_chart=category_comparison_chart(df, outcome, style, comparison),
        summary=summary_table(df, outcome),
        regression_chart=response_regression_chart(df, outcome, style),
        group_models=fit_group_models(df, outcome),
        figure_data={
            "comparison": category_comparison_data(df, outcome, style),
            "regression": response_regression_data(df, outcome),
        },
    )

    try:
        report.interaction_model = fit_interaction_model(df, outcome)
    except InsufficientDataError as e:
        logger.warning(f"{outcome.slug}: interaction model not fitted: {e}")
        report.errors["interaction"] = str(e)

    try:
        report.additive_model = fit_additive_model(df, outcome)
    except InsufficientDataError as e:
        logger.warning(f"{outcome.slug}: additive model not fitted: {e}")
        report.errors["additive"] = str(e)

    return report


def build_report(
    df: pd.DataFrame,
    outcomes: list[Outcome] | None = None,
    style: ReportStyle | None = None,
) -> list[OutcomeReport]:
    """Build report sections for each outcome (default: all four)."""
    style = style or default_style()
    return [build_outcome_report(df, outcome, style) for outcome in outcomes or list(Outcome)]


def _section_markdown(report: OutcomeReport, figure_names: dict[str, str]) -> list[str]:
    outcome = report.outcome
    lines = [f"## {outcome.label}", ""]

    lines.append(f"### {outcome.label} by response-rate category")
    lines.append("")
    lines.append(f"![{outcome.label} by category]({figure_names['comparison']})")
    lines.append("")
    lines.append(
        f"Kruskal-Wallis {report.comparison.p_label}; "
        f"overall median {report.comparison.overall_median_label}."
    )
    lines.append("")

    markdown, _ = format_summary_table(report.summary, outcome)
    lines.extend([markdown, ""])

    lines.append(f"### {outcome.label} vs response rate by treatment type")
    lines.append("")
    lines.append(f"![{outcome.label} vs response rate]({figure_names['regression']})")
    lines.append("")

    lines.append("### Model 1: per treatment type")
    lines.append("")
    for label, group_model in report.group_models.items():
        heading = f"{label} (n = {group_model.n_obs})"
        if group_model.ok:
            lines.append(format_model_report(heading, group_model.result))
        else:
            lines.append(f"**{heading}**: not fitted: {group_model.error}")
        lines.append("")

    lines.append("### Model 2: response rate × treatment type interaction")
    lines.append("")
    if report.interaction_model is not None:
        lines.append(format_model_report("Interaction model", report.interaction_model))
        lines.append("")
        p_value = interaction_p_value(report.interaction_model)
        verdict = "differs" if p_value < config.alpha else "does not differ significantly"
        lines.append(f"The slope {verdict} by treatment type (interaction p = {p_value:.3f}).")
    else:
        lines.append(f"Not fitted: {report.errors['interaction']}")
    lines.append("")

    lines.append("### Model 3: response rate adjusted for treatment type")
    lines.append("")
    if report.additive_model is not None:
        lines.append(format_model_report("Additive model", report.additive_model))
    else:
        lines.append(f"Not fitted: {report.errors['additive']}")
    lines.append("")

    return lines


def write_report(
    reports: list[OutcomeReport],
    output_dir: Path,
    render: bool = True,
    title: str = "Response rate and survival outcomes",
) -> Path:
    """Write figures, LaTeX tables and the markdown document.

    Args:
        reports: Sections from ``build_report``
        output_dir: Output directory (figures/ and tables/ are created below it)
        render: Whether to render figures to PNG
        title: Document title

    Returns:
        Path of the written ``report.md``

    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    tables_dir = output_dir / "tables"
    tables_dir.mkdir(parents=True, exist_ok=True)

    lines = [
        f"# {title}",
        "",
        f"Generated {date.today().isoformat()} "
        f"(pipeline {config.pipeline_version}, config {config.config_version}).",
        "",
    ]

    for report in reports:
        slug = report.outcome.slug
        figure_names = {}
        for kind, chart in (
            ("comparison", report.comparison_chart),
            ("regression", report.regression_chart),
        ):
            name = f"{slug}_{kind}"
            written = save_figure(
                chart, name, figures_dir, data=report.figure_data.get(kind), render=render
            )
            # Link the rendered image when rendering succeeded
            shown = next((p for p in written if p.suffix == ".png"), written[0])
            figure_names[kind] = f"figures/{shown.name}"

        _, latex = format_summary_table(report.summary, report.outcome)
        (tables_dir / f"{slug}_summary.tex").write_text(latex, encoding="utf-8")
        report.summary.to_csv(tables_dir / f"{slug}_summary.csv", index=False)

        lines.extend(_section_markdown(report, figure_names))

    report_path = output_dir / "report.md"
    report_path.write_text("\n".join(lines), encoding="utf-8")
    logger.info(f"Report written to {report_path}")
    return report_path
