"""
plotfactory: automated exploratory charts with matplotlib and seaborn.

Load a Dataset, build charts with the plot factories (one per category
label, or in batches), customize legends, themes and annotations on the
returned ChartSpec, and render or save them with ChartRenderer.
"""

from .automation import (
    BatchResult,
    GeneratedChart,
    boxplot_for_category,
    line_for_category,
    plot_all_categories,
    plot_column_pairs,
    plot_each,
    scatter_for_category,
    scatter_plot,
)
from .config import PlotFactoryConfig, load_config
from .data_sources import ColumnKind, ColumnSchema, Dataset
from .exceptions import (
    ChartGenerationError,
    ChartValidationError,
    ColumnTypeError,
    ConfigError,
    DatasetError,
    FlagTypeError,
    UnknownCategoryError,
    UnknownColumnError,
)
from .visualization import (
    Annotation,
    ChartRenderer,
    ChartSpec,
    LegendConfig,
    RankedBarChartTemplate,
    ThemeConfig,
    theme_preset,
)

__version__ = "0.1.0"

__all__ = [
    "Dataset",
    "ColumnKind",
    "ColumnSchema",
    "PlotFactoryConfig",
    "load_config",
    "ChartSpec",
    "ChartRenderer",
    "Annotation",
    "ThemeConfig",
    "LegendConfig",
    "theme_preset",
    "RankedBarChartTemplate",
    "GeneratedChart",
    "scatter_for_category",
    "boxplot_for_category",
    "line_for_category",
    "scatter_plot",
    "BatchResult",
    "plot_each",
    "plot_all_categories",
    "plot_column_pairs",
    "ChartGenerationError",
    "ChartValidationError",
    "UnknownColumnError",
    "UnknownCategoryError",
    "ColumnTypeError",
    "FlagTypeError",
    "DatasetError",
    "ConfigError",
]
