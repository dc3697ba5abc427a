"""
Batch helpers that call a plot factory once per label or column pair.

Iterations are isolated: a chart that fails validation is recorded in the
result and the batch carries on with the next label, unless ``fail_fast``
is set. Only ChartGenerationError is isolated; any other exception is a
bug and propagates.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..config import PlotFactoryConfig, load_config
from ..data_sources import Dataset
from ..exceptions import ChartGenerationError
from .plot_factories import GeneratedChart, scatter_for_category, scatter_plot
from .validation import ensure_flag, ensure_unique_slugs

logger = logging.getLogger(__name__)

PlotFactory = Callable[..., GeneratedChart]


@dataclass
class BatchResult:
    """Charts produced by a batch, keyed by label (or column pair)."""

    charts: Dict[Any, GeneratedChart] = field(default_factory=dict)
    failures: Dict[Any, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def saved_paths(self) -> List[Path]:
        return [chart.output_path for chart in self.charts.values() if chart.output_path]

    def __len__(self) -> int:
        return len(self.charts)

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "charts": {str(key): chart.to_dict() for key, chart in self.charts.items()},
            "failures": {str(key): error for key, error in self.failures.items()},
        }


def plot_each(
    labels: Iterable[Any],
    factory: PlotFactory = scatter_for_category,
    fail_fast: Optional[bool] = None,
    config: Optional[PlotFactoryConfig] = None,
    **kwargs: Any,
) -> BatchResult:
    """
    Call ``factory(label=label, **kwargs)`` once per label.

    Args:
        labels: Category labels to plot
        factory: Plot factory accepting a ``label`` keyword
        fail_fast: Re-raise the first failure instead of recording it
            (config.fail_fast if omitted)
        config: Settings, also passed on to the factory
        **kwargs: Passed to every factory call

    Returns:
        BatchResult with one chart per successful label

    Raises:
        ChartValidationError: With save=True, if distinct labels map to the
            same file name (nothing is rendered)
    """
    labels = list(labels)
    if kwargs.get("save"):
        ensure_unique_slugs(labels)

    calls = ((label, _bind(factory, label=label, **kwargs)) for label in labels)
    return _run(calls, fail_fast, config)


def plot_all_categories(
    dataset: Dataset,
    category_column: str,
    factory: PlotFactory = scatter_for_category,
    fail_fast: Optional[bool] = None,
    config: Optional[PlotFactoryConfig] = None,
    **kwargs: Any,
) -> BatchResult:
    """One chart per distinct value of ``category_column``."""
    labels = dataset.categories(category_column)
    logger.info("Plotting %d categories of '%s'", len(labels), category_column)
    return plot_each(
        labels,
        factory,
        fail_fast=fail_fast,
        config=config,
        dataset=dataset,
        category_column=category_column,
        **kwargs,
    )


def plot_column_pairs(
    dataset: Dataset,
    x_columns: Sequence[str],
    y_columns: Sequence[str],
    factory: PlotFactory = scatter_plot,
    fail_fast: Optional[bool] = None,
    config: Optional[PlotFactoryConfig] = None,
    **kwargs: Any,
) -> BatchResult:
    """
    One chart per (x, y) combination of the given columns.

    Pairs where x and y are the same column are skipped. When saving, pairs
    whose file names would collide are rejected before any chart is built.
    """
    pairs = [(x, y) for x in x_columns for y in y_columns if x != y]
    if kwargs.get("save"):
        ensure_unique_slugs(f"{y}_by_{x}" for x, y in pairs)

    calls = (
        ((x, y), _bind(factory, dataset=dataset, x=x, y=y, **kwargs))
        for x, y in pairs
    )
    return _run(calls, fail_fast, config)


def _bind(factory: PlotFactory, **kwargs: Any) -> Callable[[Optional[PlotFactoryConfig]], GeneratedChart]:
    def call(config: Optional[PlotFactoryConfig]) -> GeneratedChart:
        if config is not None:
            return factory(config=config, **kwargs)
        return factory(**kwargs)

    return call


def _run(
    calls: Iterable[Tuple[Any, Callable[[Optional[PlotFactoryConfig]], GeneratedChart]]],
    fail_fast: Optional[bool],
    config: Optional[PlotFactoryConfig],
) -> BatchResult:
    if fail_fast is None:
        fail_fast = (config or load_config()).fail_fast
    ensure_flag(fail_fast, "fail_fast")

    result = BatchResult()
    for key, call in calls:
        try:
            result.charts[key] = call(config)
        except ChartGenerationError as e:
            if fail_fast:
                raise
            logger.warning("Chart for %r failed: %s", key, e)
            result.failures[key] = str(e)

    logger.info(
        "Batch finished: %d chart(s), %d failure(s), %d file(s) written",
        len(result.charts),
        len(result.failures),
        len(result.saved_paths),
    )
    return result
