"""Exceptions raised by the analysis pipeline."""


class AnalysisError(Exception):
    """Base class for analysis pipeline failures."""

    pass


class DataLoadError(AnalysisError):
    """Raised when the source spreadsheet or sheet cannot be read."""

    pass


class DataValidationError(AnalysisError, ValueError):
    """Raised when the source table is missing required columns."""

    pass


class InsufficientDataError(AnalysisError, ValueError):
    """Raised when a subgroup has too few observations for a determinate fit."""

    pass
