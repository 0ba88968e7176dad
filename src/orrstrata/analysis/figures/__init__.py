"""Figure generation for the outcome report.

Each figure module builds Altair charts (Vega-Lite specifications). Colours
and labels are carried by a ``ReportStyle`` passed into every chart
function rather than read from module-level tables.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from orrstrata.analysis.config import config

# Fallback palette for keys without a configured colour
_DYNAMIC_PALETTE = [
    "#4C78A8",  # Blue
    "#E45756",  # Red
    "#72B7B2",  # Teal
    "#F58518",  # Orange
    "#54A24B",  # Green
    "#B279A2",  # Purple
    "#FF9DA6",  # Pink
    "#9D755D",  # Brown
    "#BAB0AC",  # Gray
    "#EECA3B",  # Yellow
]

OVERALL_LABEL = "Overall"


class ReportStyle(BaseModel):
    """Colours, labels and dimensions used when rendering charts."""

    category_order: list[str] = Field(..., min_length=1)
    category_colors: dict[str, str] = Field(default_factory=dict)
    treatment_colors: dict[str, str] = Field(default_factory=dict)
    response_rate_label: str = "Intervention response rate (%)"
    category_label: str = "Response-rate category"
    treatment_label: str = "Treatment type"
    width: int = Field(default=400, gt=0)
    height: int = Field(default=300, gt=0)
    jitter_width: float = Field(default=0.6, gt=0.0, le=1.0)
    jitter_seed: int = 42

    @field_validator("category_colors", "treatment_colors")
    @classmethod
    def validate_hex_colors(cls, v: dict[str, str]) -> dict[str, str]:
        """Validate colours are #RRGGBB hex codes."""
        for key, color in v.items():
            if not (color.startswith("#") and len(color) == 7):
                raise ValueError(f"Invalid colour for '{key}': {color}")
        return v

    @classmethod
    def from_config(cls) -> ReportStyle:
        """Build the style described by config.yaml."""
        return cls(
            category_order=config.category_order,
            category_colors=config.get("colors", "categories", default={}),
            treatment_colors=config.get("colors", "treatment_types", default={}),
            response_rate_label=config.get(
                "labels", "response_rate", default="Intervention response rate (%)"
            ),
            category_label=config.get("labels", "category", default="Response-rate category"),
            treatment_label=config.get("labels", "treatment_type", default="Treatment type"),
            width=config.figure_width,
            height=config.figure_height,
            jitter_width=config.jitter_width,
            jitter_seed=config.jitter_seed,
        )

    def color(self, mapping: dict[str, str], key: str) -> str:
        """Get colour for a key, falling back to the dynamic palette.

        Args:
            mapping: Configured colours for the category of keys
            key: Key to colour

        Returns:
            Hex color code

        """
        if key in mapping:
            return mapping[key]
        # Deterministic across processes (unlike hash())
        index = sum(key.encode("utf-8")) % len(_DYNAMIC_PALETTE)
        return _DYNAMIC_PALETTE[index]

    def category_scale(self) -> tuple[list[str], list[str]]:
        """Colour scale domain and range for response-rate categories."""
        domain = list(self.category_order)
        return domain, [self.color(self.category_colors, key) for key in domain]

    def treatment_scale(self, keys: list[str]) -> tuple[list[str], list[str]]:
        """Colour scale domain and range for treatment types.

        Args:
            keys: Treatment types to include, in legend order

        Returns:
            Tuple of (domain, range) for alt.Scale()

        """
        domain = list(keys)
        return domain, [self.color(self.treatment_colors, key) for key in domain]


def default_style() -> ReportStyle:
    """Style built from config.yaml."""
    return ReportStyle.from_config()


__all__ = [
    "OVERALL_LABEL",
    "ReportStyle",
    "default_style",
]
