"""Chart theming and export.

Every figure is exported as its Vega-Lite spec plus the data behind it, so
it can be re-rendered or restyled without re-running the analysis. Raster
output needs the optional ``vl-convert-python`` renderer.
"""

from __future__ import annotations

import logging
from pathlib import Path

import altair as alt
import pandas as pd

from orrstrata.analysis.config import config

logger = logging.getLogger(__name__)

PUBLICATION_THEME = "publication"


@alt.theme.register(PUBLICATION_THEME, enable=False)
def _publication_theme() -> alt.theme.ThemeConfig:
    axis = {"labelFontSize": 11, "titleFontSize": 12, "gridColor": "#e6e6e6"}
    return {
        "config": {
            "font": "serif",
            "axis": axis,
            "axisX": {"labelAngle": 0},
            "legend": {"labelFontSize": 11, "titleFontSize": 12, "orient": "right"},
            "title": {"fontSize": 14, "subtitleFontSize": 11, "anchor": "start"},
            "view": {
                "stroke": None,
                "continuousWidth": config.figure_width,
                "continuousHeight": config.figure_height,
            },
        }
    }


def apply_publication_theme() -> None:
    """Enable the publication theme for charts built afterwards."""
    alt.theme.enable(PUBLICATION_THEME)


def _chart_data(chart: alt.TopLevelMixin) -> pd.DataFrame | None:
    data = getattr(chart, "data", None)
    return data if isinstance(data, pd.DataFrame) else None


def _render(chart: alt.TopLevelMixin, path: Path) -> bool:
    options = {"scale_factor": config.png_dpi_scale} if path.suffix == ".png" else {}
    try:
        chart.save(str(path), **options)
    except Exception as e:
        # Renderer missing or failing: the spec is already on disk
        logger.warning(f"Could not render {path.name}: {e}")
        return False
    return True


def save_figure(
    chart: alt.TopLevelMixin,
    name: str,
    output_dir: Path,
    data: pd.DataFrame | None = None,
    render: bool = True,
    formats: list[str] | None = None,
) -> list[Path]:
    """Write a chart as ``<name>.vl.json``, its data as CSV, and optional images.

    Args:
        chart: Altair chart
        name: File stem
        output_dir: Directory to write into (created if missing)
        data: Data to export as CSV; defaults to the chart's top-level data
        render: Whether to render images at all
        formats: Image formats to render (default: png)

    Returns:
        Paths actually written, spec first

    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    spec_path = output_dir / f"{name}.vl.json"
    chart.save(str(spec_path))
    written = [spec_path]

    data = data if data is not None else _chart_data(chart)
    if data is not None:
        csv_path = output_dir / f"{name}.csv"
        data.to_csv(csv_path, index=False)
        written.append(csv_path)

    if render:
        for fmt in formats or ["png"]:
            image_path = output_dir / f"{name}.{fmt}"
            if _render(chart, image_path):
                written.append(image_path)

    logger.info(f"Saved {name}: {', '.join(p.name for p in written)}")
    return written
