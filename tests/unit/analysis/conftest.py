"""Shared fixtures for analysis tests."""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

# Spreadsheet headers as they appear before normalization
RAW_HEADERS = {
    "rate": "Response Rate Intervention",
    "os_i": "OS Intervention (Months)",
    "pfs_i": "PFS Intervention",
    "os_c": "OS Control Months",
    "pfs_c": "PFS-Control",
    "type": "Treatment Type",
}


@pytest.fixture(scope="function", autouse=True)
def clear_patches():
    """Clear all mock patches between tests to prevent pollution."""
    yield
    patch.stopall()


@pytest.fixture
def raw_sheet_df():
    """Raw "og" sheet contents (~40 rows) with messy headers and values.

    Covers both treatment types, all four response-rate categories,
    non-numeric placeholders, missing rates and an unrelated column.
    """
    rng = np.random.default_rng(42)
    rows = []

    # One rate per bucket plus the bucket boundaries, then random rates
    fixed_rates = [5.0, 15.0, 25.0, 45.0, 10.0, 20.0, 30.0]
    for i in range(36):
        treatment = "Single" if i % 2 == 0 else "Combination"
        rate = fixed_rates[i] if i < len(fixed_rates) else float(rng.uniform(2, 60))
        os_int = 8 + 0.2 * rate + float(rng.normal(0, 2))
        os_ctl = 8 + float(rng.normal(0, 2))
        pfs_int = 4 + 0.1 * rate + float(rng.normal(0, 1))
        pfs_ctl = 4 + float(rng.normal(0, 1))
        rows.append(
            {
                "Study": f"NCT{1000 + i}",
                RAW_HEADERS["rate"]: round(rate, 1),
                RAW_HEADERS["os_i"]: round(os_int, 1),
                RAW_HEADERS["pfs_i"]: round(pfs_int, 1),
                RAW_HEADERS["os_c"]: round(os_ctl, 1),
                RAW_HEADERS["pfs_c"]: round(pfs_ctl, 1),
                RAW_HEADERS["type"]: f" {treatment} " if i % 5 == 0 else treatment,
            }
        )

    # Placeholders seen in real sheets
    rows[3][RAW_HEADERS["os_i"]] = "NR"
    rows[4][RAW_HEADERS["pfs_c"]] = "-"
    rows.append(
        {
            "Study": "NCT2000",
            RAW_HEADERS["rate"]: "n/a",
            RAW_HEADERS["os_i"]: 10.0,
            RAW_HEADERS["pfs_i"]: 5.0,
            RAW_HEADERS["os_c"]: 9.0,
            RAW_HEADERS["pfs_c"]: 4.0,
            RAW_HEADERS["type"]: "Single",
        }
    )
    rows.append(
        {
            "Study": "NCT2001",
            RAW_HEADERS["rate"]: None,
            RAW_HEADERS["os_i"]: 12.0,
            RAW_HEADERS["pfs_i"]: 6.0,
            RAW_HEADERS["os_c"]: 11.0,
            RAW_HEADERS["pfs_c"]: 5.0,
            RAW_HEADERS["type"]: "Combination",
        }
    )

    return pd.DataFrame(rows)


@pytest.fixture
def observations_df(raw_sheet_df):
    """Cleaned observations built from raw_sheet_df."""
    from orrstrata.analysis.loader import clean_observations

    return clean_observations(raw_sheet_df)


@pytest.fixture
def workbook_path(tmp_path, raw_sheet_df):
    """Workbook with the raw sheet under the expected sheet name."""
    path = tmp_path / "outcomes.xlsx"
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        raw_sheet_df.to_excel(writer, sheet_name="og", index=False)
        pd.DataFrame({"note": ["unrelated sheet"]}).to_excel(
            writer, sheet_name="notes", index=False
        )
    return path


def make_observations(rows):
    """Build a cleaned observations table from (rate, os, os_ctl, type) tuples.

    PFS columns mirror OS so either outcome can be exercised.
    """
    from orrstrata.analysis.loader import clean_observations

    raw = pd.DataFrame(
        [
            {
                "response_rate_intervention": rate,
                "os_intervention_months": os_int,
                "pfs_intervention": os_int,
                "os_control_months": os_ctl,
                "pfs_control": os_ctl,
                "treatment_type": treatment,
            }
            for rate, os_int, os_ctl, treatment in rows
        ]
    )
    return clean_observations(raw)


@pytest.fixture
def equal_slopes_df():
    """Two treatment types with identical (flat) slopes and residuals.

    Within each group the outcome does not depend on the response rate and
    the groups differ only by a constant offset, so the interaction
    coefficient is exactly zero.
    """
    rng = np.random.default_rng(7)
    rates = np.linspace(5, 55, 20)
    noise = rng.normal(0, 1.5, size=len(rates))

    rows = []
    for rate, e in zip(rates, noise):
        rows.append((rate, 10.0 + e, 8.0, "Single"))
        rows.append((rate, 14.0 + e, 8.0, "Combination"))
    return make_observations(rows)


@pytest.fixture
def diverging_slopes_df():
    """Two treatment types with opposite slopes."""
    rng = np.random.default_rng(11)
    rates = np.linspace(5, 55, 20)

    rows = []
    for rate in rates:
        rows.append((rate, 5.0 + 0.5 * rate + rng.normal(0, 0.5), 8.0, "Single"))
        rows.append((rate, 35.0 - 0.5 * rate + rng.normal(0, 0.5), 8.0, "Combination"))
    return make_observations(rows)


@pytest.fixture
def single_observation_group_df():
    """Combination arm has only one observation."""
    rows = [
        (5.0, 10.0, 8.0, "Single"),
        (15.0, 12.0, 8.5, "Single"),
        (25.0, 15.0, 9.0, "Single"),
        (35.0, 16.0, 9.5, "Single"),
        (45.0, 19.0, 10.0, "Single"),
        (22.0, 14.0, 9.0, "Combination"),
    ]
    return make_observations(rows)


@pytest.fixture
def observations_factory():
    """Factory building cleaned observations from (rate, os, os_ctl, type) tuples."""
    return make_observations
