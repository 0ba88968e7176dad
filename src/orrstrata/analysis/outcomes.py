"""Outcome selectors for the four reported endpoints."""

from __future__ import annotations

from enum import Enum

import pandas as pd

from orrstrata.analysis.config import config


class Outcome(Enum):
    """Outcome measures analysed against the intervention response rate.

    Each member maps to exactly one column of the cleaned observations
    table, so analysis functions never look columns up by free-form name.
    """

    OS = "os"
    OS_DIFFERENCE = "os_difference"
    PFS = "pfs"
    PFS_DIFFERENCE = "pfs_difference"

    @property
    def column(self) -> str:
        """Column of the cleaned table holding this outcome."""
        return _COLUMNS[self]

    @property
    def slug(self) -> str:
        """Short identifier used in artifact file names."""
        return self.value

    @property
    def label(self) -> str:
        """Axis/table label, taken from config.yaml when present."""
        return config.get("labels", "outcomes", self.value, default=_DEFAULT_LABELS[self])

    def values(self, df: pd.DataFrame) -> pd.Series:
        """Return this outcome's column from the cleaned table."""
        return df[self.column]

    @classmethod
    def from_string(cls, value: str) -> Outcome:
        """Create Outcome from its slug (case-insensitive)."""
        return cls(value.strip().lower())


_COLUMNS = {
    Outcome.OS: "os_intervention_months",
    Outcome.OS_DIFFERENCE: "os_difference",
    Outcome.PFS: "pfs_intervention",
    Outcome.PFS_DIFFERENCE: "pfs_difference",
}

_DEFAULT_LABELS = {
    Outcome.OS: "Overall survival (months)",
    Outcome.OS_DIFFERENCE: "OS difference vs control (months)",
    Outcome.PFS: "Progression-free survival (months)",
    Outcome.PFS_DIFFERENCE: "PFS difference vs control (months)",
}
