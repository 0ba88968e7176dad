"""Analysis configuration.

Parameters live in ``config.yaml`` next to this module. The file is read once,
validated section by section, and exposed through the ``config`` singleton.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from orrstrata.analysis.errors import AnalysisError

CONFIG_PATH = Path(__file__).parent / "config.yaml"

QuantileMethod = Literal["linear", "lower", "higher", "midpoint", "nearest"]


class StatisticalSettings(BaseModel):
    """Thresholds and methods for the statistical tests."""

    alpha: float = Field(default=0.05, gt=0.0, lt=1.0)
    quantile_method: QuantileMethod = "linear"
    min_regression: int = Field(default=2, ge=2)
    min_kruskal_groups: int = Field(default=2, ge=2)
    jitter_seed: int = 42


class FigureSettings(BaseModel):
    """Chart dimensions and export resolution."""

    width: int = Field(default=400, gt=0)
    height: int = Field(default=300, gt=0)
    jitter_width: float = Field(default=0.6, gt=0.0, le=1.0)
    png_dpi: int = Field(default=300, gt=0)


class AnalysisSettings(BaseModel):
    """Validated view of config.yaml."""

    sheet_name: str = "og"
    category_order: list[str] = Field(default_factory=lambda: ["<10", "10-20", "20-30", "30+"])
    statistical: StatisticalSettings = Field(default_factory=StatisticalSettings)
    figures: FigureSettings = Field(default_factory=FigureSettings)
    pipeline_version: str = "1.0.0"
    config_version: str = "1.0.0"

    @field_validator("category_order")
    @classmethod
    def _unique_categories(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError(f"duplicate categories in order: {v}")
        return v

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> AnalysisSettings:
        """Map the nested YAML layout onto the settings model."""
        stats_raw = raw.get("statistical", {})
        min_samples = stats_raw.get("min_samples", {})
        figures_raw = raw.get("figures", {})
        versions = raw.get("reproducibility", {})

        fields: dict[str, Any] = {
            "statistical": {
                k: v
                for k, v in {
                    "alpha": stats_raw.get("alpha"),
                    "quantile_method": stats_raw.get("quantile_method"),
                    "min_regression": min_samples.get("regression"),
                    "min_kruskal_groups": min_samples.get("kruskal_groups"),
                    "jitter_seed": stats_raw.get("jitter_seed"),
                }.items()
                if v is not None
            },
            "figures": {
                k: v
                for k, v in {
                    "width": figures_raw.get("default_width"),
                    "height": figures_raw.get("default_height"),
                    "jitter_width": figures_raw.get("jitter_width"),
                    "png_dpi": figures_raw.get("dpi", {}).get("png"),
                }.items()
                if v is not None
            },
        }
        if "sheet_name" in raw.get("source", {}):
            fields["sheet_name"] = raw["source"]["sheet_name"]
        if "order" in raw.get("categories", {}):
            fields["category_order"] = raw["categories"]["order"]
        for key in ("pipeline_version", "config_version"):
            if key in versions:
                fields[key] = str(versions[key])
        return cls(**fields)


class AnalysisConfig:
    """Analysis configuration singleton."""

    _instance: AnalysisConfig | None = None
    _raw: dict[str, Any] | None = None
    _settings: AnalysisSettings | None = None

    def __new__(cls) -> AnalysisConfig:
        """Return the shared instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Read and validate config.yaml on first use."""
        if self._settings is not None:
            return
        with open(CONFIG_PATH, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        try:
            settings = AnalysisSettings.from_raw(raw)
        except ValidationError as e:
            raise AnalysisError(f"Invalid analysis configuration in {CONFIG_PATH}: {e}") from e
        type(self)._raw = raw
        type(self)._settings = settings

    @property
    def settings(self) -> AnalysisSettings:
        """Validated settings."""
        return self._settings

    def get(self, *keys: str, default: Any = None) -> Any:
        """Look up a raw value by its nested key path.

        Used for free-form sections (colours, labels) that are not part of
        the validated settings.

        Examples:
            >>> config.get("colors", "treatment_types", "Single")
            '#4C78A8'
            >>> config.get("labels", "missing", default="n/a")
            'n/a'

        """
        value: Any = self._raw
        for key in keys:
            if not isinstance(value, dict) or key not in value:
                return default
            value = value[key]
        return value

    @property
    def alpha(self) -> float:
        """Significance level used when describing model results."""
        return self.settings.statistical.alpha

    @property
    def quantile_method(self) -> str:
        """Interpolation method for the 25th and 75th percentiles."""
        return self.settings.statistical.quantile_method

    @property
    def min_sample_regression(self) -> int:
        """Fewest complete (rate, outcome) pairs an OLS fit accepts."""
        return self.settings.statistical.min_regression

    @property
    def min_groups_kruskal(self) -> int:
        """Fewest non-empty categories for a defined Kruskal-Wallis test."""
        return self.settings.statistical.min_kruskal_groups

    @property
    def jitter_seed(self) -> int:
        """Random seed for point jitter offsets."""
        return self.settings.statistical.jitter_seed

    @property
    def sheet_name(self) -> str:
        """Spreadsheet sheet holding the observations."""
        return self.settings.sheet_name

    @property
    def category_order(self) -> list[str]:
        """Display order of the response-rate categories."""
        return list(self.settings.category_order)

    @property
    def png_dpi_scale(self) -> float:
        """Renderer scale factor for PNG export (Vega renders at 100 DPI)."""
        return self.settings.figures.png_dpi / 100.0

    @property
    def figure_width(self) -> int:
        """Default chart width in pixels."""
        return self.settings.figures.width

    @property
    def figure_height(self) -> int:
        """Default chart height in pixels."""
        return self.settings.figures.height

    @property
    def jitter_width(self) -> float:
        """Horizontal spread of jittered points, in band units."""
        return self.settings.figures.jitter_width

    @property
    def pipeline_version(self) -> str:
        """Analysis pipeline version."""
        return self.settings.pipeline_version

    @property
    def config_version(self) -> str:
        """Configuration file version."""
        return self.settings.config_version


config = AnalysisConfig()

CATEGORY_ORDER = config.category_order
