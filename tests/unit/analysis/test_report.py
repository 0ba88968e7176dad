"""Integration tests for report assembly."""

from unittest.mock import patch

import pandas as pd
import pytest

from orrstrata.analysis.outcomes import Outcome
from orrstrata.analysis.report import build_outcome_report, build_report, write_report


def test_build_report_all_outcomes(observations_df):
    """Test one section per outcome, six artifacts each."""
    reports = build_report(observations_df)

    assert [r.outcome for r in reports] == list(Outcome)
    for report in reports:
        assert report.comparison_chart is not None
        assert isinstance(report.summary, pd.DataFrame)
        assert report.regression_chart is not None
        assert set(report.group_models) == {"Combination", "Single"}
        assert report.interaction_model is not None
        assert report.additive_model is not None
        assert report.errors == {}


def test_build_report_subset(observations_df):
    """Test a chosen subset of outcomes is honoured."""
    reports = build_report(observations_df, [Outcome.PFS_DIFFERENCE])

    assert len(reports) == 1
    assert reports[0].outcome is Outcome.PFS_DIFFERENCE


def test_build_report_does_not_mutate_table(observations_df):
    """Test analysis functions leave the cleaned table untouched."""
    before = observations_df.copy()

    build_report(observations_df)

    pd.testing.assert_frame_equal(observations_df, before)


def test_kruskal_wallis_runs_once_per_outcome(observations_df):
    """Test the comparison chart reuses the section's Kruskal-Wallis result."""
    from orrstrata.analysis.figures import category_comparison

    with patch.object(
        category_comparison, "kruskal_wallis", wraps=category_comparison.kruskal_wallis
    ) as kruskal:
        build_outcome_report(observations_df, Outcome.OS)

    assert kruskal.call_count == 1


def test_degenerate_models_do_not_abort(observations_factory):
    """Test model failures are recorded per artifact instead of raising."""
    df = observations_factory(
        [
            (5.0, 10.0, 8.0, "Single"),
            (15.0, 12.0, 8.0, "Single"),
            (35.0, 16.0, 8.0, "Single"),
        ]
    )

    report = build_outcome_report(df, Outcome.OS)

    assert report.group_models["Single"].ok
    assert report.interaction_model is None
    assert report.additive_model is None
    assert set(report.errors) == {"interaction", "additive"}


def test_single_observation_type_skips_interaction(single_observation_group_df):
    """Test an unidentifiable interaction is reported instead of a slope verdict."""
    report = build_outcome_report(single_observation_group_df, Outcome.OS)

    assert report.interaction_model is None
    assert "interaction" in report.errors
    assert report.additive_model is not None


def test_write_report(tmp_path, observations_df):
    """Test the document embeds all sixteen artifacts for four outcomes."""
    reports = build_report(observations_df)

    report_path = write_report(reports, tmp_path, render=False)

    text = report_path.read_text(encoding="utf-8")
    assert report_path == tmp_path / "report.md"
    assert text.count("\n## ") == 4
    assert text.count("### Model 1") == 4
    assert text.count("### Model 2") == 4
    assert text.count("### Model 3") == 4
    assert text.count("| Category | N | Median |") == 4
    assert text.count("](figures/") == 8

    for outcome in Outcome:
        assert (tmp_path / "figures" / f"{outcome.slug}_comparison.vl.json").exists()
        assert (tmp_path / "figures" / f"{outcome.slug}_regression.vl.json").exists()
        assert (tmp_path / "figures" / f"{outcome.slug}_comparison.csv").exists()
        assert (tmp_path / "figures" / f"{outcome.slug}_regression.csv").exists()
        assert (tmp_path / "tables" / f"{outcome.slug}_summary.tex").exists()
        assert (tmp_path / "tables" / f"{outcome.slug}_summary.csv").exists()


def test_write_report_notes_failed_models(tmp_path, single_observation_group_df):
    """Test a failed per-group fit is noted in the document."""
    reports = build_report(single_observation_group_df, [Outcome.OS])

    text = write_report(reports, tmp_path, render=False).read_text(encoding="utf-8")

    assert "**Combination (n = 1)**: not fitted:" in text


@pytest.mark.parametrize("outcome", list(Outcome))
def test_load_to_report(workbook_path, outcome):
    """Test the pipeline from workbook to report section."""
    from orrstrata.analysis.loader import load_observations

    df = load_observations(workbook_path)
    report = build_outcome_report(df, outcome)

    assert list(report.summary["Category"]) == ["<10", "10-20", "20-30", "30+"]
