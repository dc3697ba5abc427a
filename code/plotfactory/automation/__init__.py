"""
Automation module for plotfactory.

This module provides plot factories that validate their arguments and
build one chart per category, plus helpers that run them over many
labels or column pairs.
"""

from .batch import BatchResult, plot_all_categories, plot_column_pairs, plot_each
from .plot_factories import (
    GeneratedChart,
    boxplot_for_category,
    line_for_category,
    scatter_for_category,
    scatter_plot,
)
from .validation import (
    ensure_categorical,
    ensure_category,
    ensure_continuous,
    ensure_flag,
    ensure_image_format,
    ensure_unique_slugs,
    ensure_numeric,
    slugify,
)

__all__ = [
    # Factories
    "GeneratedChart",
    "scatter_for_category",
    "boxplot_for_category",
    "line_for_category",
    "scatter_plot",
    # Batches
    "BatchResult",
    "plot_each",
    "plot_all_categories",
    "plot_column_pairs",
    # Guards
    "ensure_flag",
    "ensure_numeric",
    "ensure_continuous",
    "ensure_categorical",
    "ensure_category",
    "ensure_image_format",
    "ensure_unique_slugs",
    "slugify",
]
