"""Unit tests for the regression models."""

import numpy as np
import pytest

from orrstrata.analysis.errors import InsufficientDataError
from orrstrata.analysis.models import (
    coefficient_table,
    fit_additive_model,
    fit_group_model,
    fit_group_models,
    fit_interaction_model,
    format_model_report,
    interaction_p_value,
)
from orrstrata.analysis.outcomes import Outcome


class TestGroupModels:
    """Tests for Model 1 (per treatment type)."""

    def test_one_model_per_treatment_type(self, observations_df):
        """Test exactly one model per distinct treatment type, keyed by label."""
        models = fit_group_models(observations_df, Outcome.OS)

        assert list(models) == ["Combination", "Single"]
        assert all(m.ok for m in models.values())
        assert models["Single"].label == "Single"

    def test_group_model_statistics(self, diverging_slopes_df):
        """Test coefficients, standard errors, t/p statistics and R² are exposed."""
        models = fit_group_models(diverging_slopes_df, Outcome.OS)

        single = models["Single"].result
        combination = models["Combination"].result

        assert single.params["rate"] == pytest.approx(0.5, abs=0.05)
        assert combination.params["rate"] == pytest.approx(-0.5, abs=0.05)
        assert single.bse["rate"] > 0
        assert single.pvalues["rate"] < 0.001
        assert np.isfinite(single.tvalues["rate"])
        assert single.rsquared > 0.9
        assert models["Single"].n_obs == 20

    def test_single_observation_group_fails_alone(self, single_observation_group_df):
        """Test a group with one observation fails without aborting the others."""
        models = fit_group_models(single_observation_group_df, Outcome.OS)

        assert len(models) == 2
        assert models["Single"].ok
        assert not models["Combination"].ok
        assert models["Combination"].result is None
        assert models["Combination"].n_obs == 1
        assert "at least 2" in models["Combination"].error

    def test_fit_group_model_raises(self, single_observation_group_df):
        """Test the single-group fit reports insufficient data explicitly."""
        with pytest.raises(InsufficientDataError):
            fit_group_model(single_observation_group_df, Outcome.OS, "Combination")

    def test_group_with_all_missing_outcome(self, observations_factory):
        """Test a group present in the table but without outcome values still gets an entry."""
        df = observations_factory(
            [
                (5.0, 10.0, 8.0, "Single"),
                (15.0, 12.0, 8.0, "Single"),
                (25.0, 15.0, 8.0, "Single"),
                (22.0, np.nan, 8.0, "Combination"),
            ]
        )

        models = fit_group_models(df, Outcome.OS)

        assert set(models) == {"Single", "Combination"}
        assert models["Combination"].n_obs == 0
        assert not models["Combination"].ok


class TestInteractionModel:
    """Tests for Model 2 (rate × treatment type)."""

    def test_equal_slopes_not_significant(self, equal_slopes_df):
        """Test identical within-group slopes give a non-significant interaction."""
        result = fit_interaction_model(equal_slopes_df, Outcome.OS)

        assert interaction_p_value(result) > 0.5

    def test_diverging_slopes_significant(self, diverging_slopes_df):
        """Test opposite within-group slopes give a significant interaction."""
        result = fit_interaction_model(diverging_slopes_df, Outcome.OS)

        assert interaction_p_value(result) < 0.001

    def test_interaction_terms(self, observations_df):
        """Test the model carries main effects and the interaction term."""
        result = fit_interaction_model(observations_df, Outcome.PFS)
        terms = list(result.params.index)

        assert "Intercept" in terms
        assert "rate" in terms
        assert any(t.startswith("C(treatment_type)") for t in terms)
        assert any(t.startswith("rate:C(treatment_type)") for t in terms)
        assert result.nobs == observations_df["pfs_intervention"].notna().sum()

    def test_single_treatment_type(self, observations_factory):
        """Test one treatment type cannot support an interaction model."""
        df = observations_factory(
            [
                (5.0, 10.0, 8.0, "Single"),
                (15.0, 12.0, 8.0, "Single"),
                (25.0, 15.0, 8.0, "Single"),
            ]
        )

        with pytest.raises(InsufficientDataError):
            fit_interaction_model(df, Outcome.OS)

    def test_single_observation_type_raises(self, single_observation_group_df):
        """Test a type with one observation cannot carry its own slope."""
        with pytest.raises(InsufficientDataError, match="Combination"):
            fit_interaction_model(single_observation_group_df, Outcome.OS)

    def test_single_rate_type_raises(self, observations_factory):
        """Test a type observed at one response rate only is rejected."""
        rows = [(float(r), 10.0 + 0.2 * r, 8.0, "Single") for r in range(5, 55, 5)]
        rows += [(20.0, 12.0, 8.0, "Combination"), (20.0, 14.0, 8.0, "Combination")]

        with pytest.raises(InsufficientDataError, match="distinct response rates"):
            fit_interaction_model(observations_factory(rows), Outcome.OS)

    def test_interaction_p_value_requires_term(self, observations_df):
        """Test asking an additive model for an interaction p-value fails."""
        result = fit_additive_model(observations_df, Outcome.OS)

        with pytest.raises(KeyError):
            interaction_p_value(result)


class TestAdditiveModel:
    """Tests for Model 3 (rate + treatment type)."""

    def test_additive_terms(self, observations_df):
        """Test the model has no interaction term."""
        result = fit_additive_model(observations_df, Outcome.OS_DIFFERENCE)
        terms = list(result.params.index)

        assert "rate" in terms
        assert not any(":" in t for t in terms)
        assert len(terms) == 3

    def test_recovers_group_offset(self, equal_slopes_df):
        """Test the type offset is recovered and the rate slope matches the per-group fits."""
        result = fit_additive_model(equal_slopes_df, Outcome.OS)
        single = fit_group_model(equal_slopes_df, Outcome.OS, "Single")

        assert result.params["C(treatment_type)[T.Single]"] == pytest.approx(-4.0)
        assert result.params["rate"] == pytest.approx(single.params["rate"])

    def test_too_few_observations(self, observations_factory):
        """Test no residual degrees of freedom is reported as insufficient data."""
        df = observations_factory(
            [
                (5.0, 10.0, 8.0, "Single"),
                (15.0, 12.0, 8.0, "Combination"),
                (25.0, 15.0, 8.0, "Single"),
            ]
        )

        with pytest.raises(InsufficientDataError):
            fit_additive_model(df, Outcome.OS)


def test_coefficient_table(diverging_slopes_df):
    """Test one row per term with estimate, error, t and p."""
    result = fit_interaction_model(diverging_slopes_df, Outcome.OS)

    table = coefficient_table(result)

    assert list(table.columns) == ["Term", "Estimate", "Std. Error", "t", "p"]
    assert len(table) == 4


def test_format_model_report(diverging_slopes_df):
    """Test the markdown report carries the coefficient table and fit statistics."""
    result = fit_additive_model(diverging_slopes_df, Outcome.OS)

    text = format_model_report("Additive model", result)

    assert text.startswith("**Additive model**")
    assert "| Term | Estimate | Std. Error | t | p |" in text
    assert "| rate |" in text
    assert "N = 40" in text
    assert "adjusted R²" in text
