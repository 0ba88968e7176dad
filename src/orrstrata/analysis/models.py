"""Linear regression models of an outcome on the intervention response rate.

Model 1 fits ``outcome ~ rate`` separately within each treatment type.
Model 2 fits ``outcome ~ rate * type`` across all observations, testing
whether the slope differs by treatment type. Model 3 fits the additive
``outcome ~ rate + type`` model.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import pandas as pd
import statsmodels.formula.api as smf
from statsmodels.regression.linear_model import RegressionResultsWrapper

from orrstrata.analysis.config import config
from orrstrata.analysis.errors import InsufficientDataError
from orrstrata.analysis.loader import RESPONSE_RATE_COLUMN, TREATMENT_TYPE_COLUMN
from orrstrata.analysis.outcomes import Outcome

logger = logging.getLogger(__name__)


@dataclass
class GroupModel:
    """Model 1 result for a single treatment-type group.

    Attributes:
        label: Treatment type the model was fitted on
        n_obs: Complete (rate, outcome) observations in the group
        result: Fitted statsmodels results, or None when the fit failed
        error: Reason the fit failed, or None

    """

    label: str
    n_obs: int
    result: RegressionResultsWrapper | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the group was fitted."""
        return self.result is not None


def _model_frame(df: pd.DataFrame, outcome: Outcome) -> pd.DataFrame:
    """Complete cases of (outcome, rate, treatment type) under fixed names."""
    frame = pd.DataFrame(
        {
            "outcome": outcome.values(df),
            "rate": df[RESPONSE_RATE_COLUMN],
            "treatment_type": df[TREATMENT_TYPE_COLUMN],
        }
    )
    return frame.dropna().reset_index(drop=True)


def _check_whole_sample(frame: pd.DataFrame, n_params: int, model_name: str) -> None:
    n_types = frame["treatment_type"].nunique()
    if n_types < 2:
        raise InsufficientDataError(
            f"{model_name} needs at least 2 treatment types, got {n_types}"
        )
    if len(frame) <= n_params:
        raise InsufficientDataError(
            f"{model_name} needs more than {n_params} complete observations, got {len(frame)}"
        )


def _check_per_type_slopes(frame: pd.DataFrame, model_name: str) -> None:
    min_n = config.min_sample_regression
    for group, subset in frame.groupby("treatment_type"):
        if len(subset) < min_n or subset["rate"].nunique() < 2:
            raise InsufficientDataError(
                f"{model_name} cannot estimate a slope for '{group}': "
                f"{len(subset)} complete observations, "
                f"{subset['rate'].nunique()} distinct response rates"
            )


def _check_full_rank(result: RegressionResultsWrapper, model_name: str) -> None:
    n_params = len(result.params)
    if result.model.rank < n_params:
        raise InsufficientDataError(
            f"{model_name} design matrix has rank {result.model.rank} "
            f"for {n_params} parameters; coefficients are not identifiable"
        )


def fit_group_model(
    df: pd.DataFrame, outcome: Outcome, group: str
) -> RegressionResultsWrapper:
    """Fit ``outcome ~ rate`` within one treatment-type group.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to model
        group: Treatment type to select

    Returns:
        Fitted OLS results

    Raises:
        InsufficientDataError: If the group has fewer complete observations
            than the configured minimum

    """
    frame = _model_frame(df, outcome)
    subset = frame[frame["treatment_type"] == group]

    min_n = config.min_sample_regression
    if len(subset) < min_n:
        raise InsufficientDataError(
            f"Group '{group}' has {len(subset)} complete observations; "
            f"at least {min_n} are required"
        )
    if subset["rate"].nunique() < 2:
        raise InsufficientDataError(
            f"Group '{group}' has a single distinct response rate; slope is undetermined"
        )

    return smf.ols("outcome ~ rate", data=subset).fit()


def fit_group_models(df: pd.DataFrame, outcome: Outcome) -> dict[str, GroupModel]:
    """Fit Model 1 in every treatment-type group.

    A group that cannot be fitted is returned with ``error`` set and does
    not affect the other groups.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to model

    Returns:
        Dictionary mapping treatment type to its GroupModel, in sorted
        label order, one entry per distinct treatment type in the table

    """
    groups = sorted(df[TREATMENT_TYPE_COLUMN].dropna().unique())
    frame = _model_frame(df, outcome)

    models = {}
    for group in groups:
        n_obs = int((frame["treatment_type"] == group).sum())
        try:
            result = fit_group_model(df, outcome, group)
        except InsufficientDataError as e:
            logger.warning(f"{outcome.slug}: per-group model skipped: {e}")
            models[group] = GroupModel(label=group, n_obs=n_obs, error=str(e))
            continue
        models[group] = GroupModel(label=group, n_obs=n_obs, result=result)

    return models


def fit_interaction_model(df: pd.DataFrame, outcome: Outcome) -> RegressionResultsWrapper:
    """Fit Model 2: ``outcome ~ rate + type + rate:type``.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to model

    Returns:
        Fitted OLS results; the ``rate:C(treatment_type)[...]`` term tests
        whether the slope differs by treatment type

    Raises:
        InsufficientDataError: With fewer than two treatment types, no
            residual degrees of freedom, or a treatment type whose own
            slope cannot be estimated

    """
    frame = _model_frame(df, outcome)
    n_types = frame["treatment_type"].nunique()
    _check_whole_sample(frame, 2 * n_types, "Interaction model")
    _check_per_type_slopes(frame, "Interaction model")
    result = smf.ols("outcome ~ rate * C(treatment_type)", data=frame).fit()
    _check_full_rank(result, "Interaction model")
    return result


def fit_additive_model(df: pd.DataFrame, outcome: Outcome) -> RegressionResultsWrapper:
    """Fit Model 3: ``outcome ~ rate + type``.

    Args:
        df: Cleaned observations DataFrame
        outcome: Outcome to model

    Returns:
        Fitted OLS results

    Raises:
        InsufficientDataError: With fewer than two treatment types or no
            residual degrees of freedom

    """
    frame = _model_frame(df, outcome)
    n_types = frame["treatment_type"].nunique()
    _check_whole_sample(frame, 1 + n_types, "Additive model")
    result = smf.ols("outcome ~ rate + C(treatment_type)", data=frame).fit()
    _check_full_rank(result, "Additive model")
    return result


def interaction_p_value(result: RegressionResultsWrapper) -> float:
    """P-value of the rate-by-type interaction term.

    With more than two treatment types the smallest interaction p-value is
    returned.
    """
    terms = [name for name in result.pvalues.index if name.startswith("rate:")]
    if not terms:
        raise KeyError("Model has no rate:treatment_type interaction term")
    return float(result.pvalues[terms].min())


def coefficient_table(result: RegressionResultsWrapper) -> pd.DataFrame:
    """Coefficient estimates of a fitted model, one row per term."""
    return pd.DataFrame(
        {
            "Term": result.params.index,
            "Estimate": result.params.values,
            "Std. Error": result.bse.values,
            "t": result.tvalues.values,
            "p": result.pvalues.values,
        }
    )


def _fmt(value: float, digits: int = 3) -> str:
    if value is None or math.isnan(value):
        return "n/a"
    return f"{value:.{digits}f}"


def _fmt_p(value: float) -> str:
    if value is None or math.isnan(value):
        return "n/a"
    if value < 0.001:
        return "<0.001"
    return f"{value:.3f}"


def format_model_report(title: str, result: RegressionResultsWrapper) -> str:
    """Render a fitted model as a markdown coefficient table with fit statistics.

    Args:
        title: Heading for the report block
        result: Fitted OLS results

    Returns:
        Markdown text

    """
    lines = [f"**{title}**", ""]
    lines.append("| Term | Estimate | Std. Error | t | p |")
    lines.append("|------|----------|------------|---|---|")
    for _, row in coefficient_table(result).iterrows():
        lines.append(
            f"| {row['Term']} | {_fmt(row['Estimate'])} | {_fmt(row['Std. Error'])} | "
            f"{_fmt(row['t'])} | {_fmt_p(row['p'])} |"
        )
    lines.append("")
    lines.append(
        f"N = {int(result.nobs)}, R² = {_fmt(result.rsquared)}, "
        f"adjusted R² = {_fmt(result.rsquared_adj)}, "
        f"F-test p = {_fmt_p(float(result.f_pvalue))}"
    )
    return "\n".join(lines)
