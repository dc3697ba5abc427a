"""
Chart description and rendering module for plotfactory.

This module provides an immutable chart description model, theme and
legend settings, a matplotlib/seaborn renderer, and presentation templates.
"""

from .chart_renderer import SUPPORTED_FORMATS, ChartRenderer
from .chart_spec import (
    Annotation,
    AxisScale,
    ChartSpec,
    ColorScale,
    Facet,
    Labels,
    Layer,
    LayerType,
)
from .chart_templates import (
    RankedBarChartConfig,
    RankedBarChartTemplate,
    lump_counts,
)
from .themes import LegendConfig, ThemeConfig, theme_preset

__all__ = [
    # Description model
    "ChartSpec",
    "Layer",
    "LayerType",
    "ColorScale",
    "AxisScale",
    "Labels",
    "Facet",
    "Annotation",
    # Themes
    "ThemeConfig",
    "LegendConfig",
    "theme_preset",
    # Rendering
    "ChartRenderer",
    "SUPPORTED_FORMATS",
    # Templates
    "RankedBarChartTemplate",
    "RankedBarChartConfig",
    "lump_counts",
]
