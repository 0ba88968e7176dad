"""Analysis pipeline for the response-rate outcome report.

This module provides data loading, statistical analysis, figure generation,
table generation and regression modelling for the four survival outcomes.
"""

from orrstrata.analysis.errors import (
    AnalysisError,
    DataLoadError,
    DataValidationError,
    InsufficientDataError,
)
from orrstrata.analysis.loader import clean_observations, load_observations
from orrstrata.analysis.outcomes import Outcome
from orrstrata.analysis.report import build_outcome_report, build_report, write_report

__all__ = [
    "AnalysisError",
    "DataLoadError",
    "DataValidationError",
    "InsufficientDataError",
    "Outcome",
    "build_outcome_report",
    "build_report",
    "clean_observations",
    "load_observations",
    "write_report",
]
