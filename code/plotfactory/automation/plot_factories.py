"""
Plot factories for exploratory charts.

Each factory validates its arguments first (category label present,
columns of the right kind, flags boolean), then builds a ChartSpec and,
when asked to, saves it to ``<output_dir>/<label>.<format>``. A failed
validation never writes a file.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from ..config import PlotFactoryConfig, load_config
from ..data_sources import Dataset
from ..visualization import (
    ChartRenderer,
    ChartSpec,
    Facet,
    Labels,
    Layer,
    LayerType,
    ThemeConfig,
)
from .validation import (
    ensure_categorical,
    ensure_category,
    ensure_continuous,
    ensure_flag,
    ensure_image_format,
    ensure_numeric,
    slugify,
)

logger = logging.getLogger(__name__)


@dataclass
class GeneratedChart:
    """Result of a plot factory call."""

    spec: ChartSpec
    label: Optional[str] = None
    output_path: Optional[Path] = None
    generation_time_ms: float = 0.0
    data_summary: dict = field(default_factory=dict)

    @property
    def saved(self) -> bool:
        return self.output_path is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "label": self.label,
            "chart": self.spec.to_dict(),
            "output_path": str(self.output_path) if self.output_path else None,
            "generation_time_ms": self.generation_time_ms,
            "data_summary": self.data_summary,
        }


def scatter_for_category(
    dataset: Dataset,
    category_column: str,
    label: Any,
    x: str,
    y: str,
    color: Optional[str] = None,
    *,
    save: bool = False,
    output_dir: Optional[Union[str, Path]] = None,
    image_format: Optional[str] = None,
    theme: Optional[ThemeConfig] = None,
    renderer: Optional[ChartRenderer] = None,
    config: Optional[PlotFactoryConfig] = None,
) -> GeneratedChart:
    """
    Scatter plot of two numeric columns for the rows of one category.

    Args:
        dataset: Source data
        category_column: Column holding the category labels
        label: Category to plot
        x: Numeric column for the x axis
        y: Numeric column for the y axis
        color: Optional column mapped to point color
        save: Also write the chart to ``output_dir``
        output_dir: Output directory (config.output_dir if omitted)
        image_format: Image format (config.image_format if omitted)
        theme: Theme (built from the config if omitted)
        renderer: Renderer used for saving
        config: Settings (load_config() if omitted)

    Returns:
        GeneratedChart with the chart description and the saved path, if any
    """
    start_time = datetime.now()
    config = _resolve_config(config, renderer)

    ensure_flag(save, "save")
    ensure_numeric(dataset, x)
    ensure_numeric(dataset, y)
    if color:
        dataset.column_schema(color)
    image_format = ensure_image_format(image_format or config.image_format)
    subset = ensure_category(dataset, category_column, label)

    spec = ChartSpec(
        data=subset.frame,
        layers=(Layer(LayerType.POINT, x=x, y=y, color=color, params={"alpha": 0.8}),),
        labels=Labels(title=str(label), color=color),
        theme=theme or _default_theme(config),
        data_fingerprint=subset.fingerprint(),
    )

    return _finish(
        spec,
        str(label),
        save=save,
        output_dir=output_dir,
        image_format=image_format,
        renderer=renderer,
        config=config,
        start_time=start_time,
        data_summary=_summary(subset, [x, y]),
    )


def boxplot_for_category(
    dataset: Dataset,
    category_column: str,
    label: Any,
    group: str,
    value: str,
    show_points: bool = False,
    *,
    save: bool = False,
    output_dir: Optional[Union[str, Path]] = None,
    image_format: Optional[str] = None,
    theme: Optional[ThemeConfig] = None,
    renderer: Optional[ChartRenderer] = None,
    config: Optional[PlotFactoryConfig] = None,
) -> GeneratedChart:
    """
    Boxplots of a numeric column per group, for the rows of one category.

    With ``show_points`` the raw observations are drawn as jittered points
    on top of the boxes.
    """
    start_time = datetime.now()
    config = _resolve_config(config, renderer)

    ensure_flag(save, "save")
    ensure_flag(show_points, "show_points")
    ensure_categorical(dataset, group)
    ensure_numeric(dataset, value)
    image_format = ensure_image_format(image_format or config.image_format)
    subset = ensure_category(dataset, category_column, label)

    layers = [Layer(LayerType.BOXPLOT, x=group, y=value, params={"color": "#4C72B0"})]
    if show_points:
        layers.append(
            Layer(LayerType.POINT, x=group, y=value, params={"alpha": 0.5, "color": "#333333"})
        )

    spec = ChartSpec(
        data=subset.frame,
        layers=tuple(layers),
        labels=Labels(title=str(label)),
        theme=theme or _default_theme(config),
        data_fingerprint=subset.fingerprint(),
    )

    return _finish(
        spec,
        str(label),
        save=save,
        output_dir=output_dir,
        image_format=image_format,
        renderer=renderer,
        config=config,
        start_time=start_time,
        data_summary=_summary(subset, [value]),
    )


def line_for_category(
    dataset: Dataset,
    category_column: str,
    label: Any,
    x: str,
    y: str,
    color: Optional[str] = None,
    *,
    save: bool = False,
    output_dir: Optional[Union[str, Path]] = None,
    image_format: Optional[str] = None,
    theme: Optional[ThemeConfig] = None,
    renderer: Optional[ChartRenderer] = None,
    config: Optional[PlotFactoryConfig] = None,
) -> GeneratedChart:
    """Line chart of a numeric column over a numeric or date axis for one category."""
    start_time = datetime.now()
    config = _resolve_config(config, renderer)

    ensure_flag(save, "save")
    ensure_continuous(dataset, x)
    ensure_numeric(dataset, y)
    if color:
        ensure_categorical(dataset, color)
    image_format = ensure_image_format(image_format or config.image_format)
    subset = ensure_category(dataset, category_column, label)

    spec = ChartSpec(
        data=subset.frame.sort_values(x, ignore_index=True),
        layers=(
            Layer(LayerType.LINE, x=x, y=y, color=color, params={"marker": "o", "linewidth": 2}),
        ),
        labels=Labels(title=str(label), color=color),
        theme=theme or _default_theme(config),
        data_fingerprint=subset.fingerprint(),
    )

    return _finish(
        spec,
        str(label),
        save=save,
        output_dir=output_dir,
        image_format=image_format,
        renderer=renderer,
        config=config,
        start_time=start_time,
        data_summary=_summary(subset, [y]),
    )


def scatter_plot(
    dataset: Dataset,
    x: str,
    y: str,
    color: Optional[str] = None,
    facet: Optional[str] = None,
    *,
    save: bool = False,
    output_dir: Optional[Union[str, Path]] = None,
    image_format: Optional[str] = None,
    theme: Optional[ThemeConfig] = None,
    renderer: Optional[ChartRenderer] = None,
    config: Optional[PlotFactoryConfig] = None,
) -> GeneratedChart:
    """
    Scatter plot of two numeric columns over the whole dataset.

    Used for iterating over column pairs; saved files are named
    ``<y>_by_<x>``. With ``facet`` one panel is drawn per value of that column.
    """
    start_time = datetime.now()
    config = _resolve_config(config, renderer)

    ensure_flag(save, "save")
    ensure_numeric(dataset, x)
    ensure_numeric(dataset, y)
    if color:
        dataset.column_schema(color)
    if facet:
        ensure_categorical(dataset, facet)
    image_format = ensure_image_format(image_format or config.image_format)

    spec = ChartSpec(
        data=dataset.frame,
        layers=(Layer(LayerType.POINT, x=x, y=y, color=color, params={"alpha": 0.8}),),
        labels=Labels(title=f"{y} by {x}", color=color),
        theme=theme or _default_theme(config),
        facet=Facet(column=facet) if facet else None,
        data_fingerprint=dataset.fingerprint(),
    )

    return _finish(
        spec,
        f"{y}_by_{x}",
        save=save,
        output_dir=output_dir,
        image_format=image_format,
        renderer=renderer,
        config=config,
        start_time=start_time,
        data_summary=_summary(dataset, [x, y]),
    )


def _resolve_config(
    config: Optional[PlotFactoryConfig],
    renderer: Optional[ChartRenderer],
) -> PlotFactoryConfig:
    if config is not None:
        return config
    if renderer is not None:
        return renderer.config
    return load_config()


def _default_theme(config: PlotFactoryConfig) -> ThemeConfig:
    return ThemeConfig(
        style=config.style,
        palette=config.palette,
        font_family=config.font_family,
    )


def _summary(dataset: Dataset, numeric_columns: list) -> dict:
    """Row count and value ranges of the plotted columns."""
    summary = {"row_count": len(dataset), "columns_used": list(numeric_columns)}
    for column in numeric_columns:
        values = dataset.numeric(column)
        summary[column] = {
            "min": float(values.min()),
            "max": float(values.max()),
            "mean": float(values.mean()),
        }
    return summary


def _finish(
    spec: ChartSpec,
    label: str,
    save: bool,
    output_dir: Optional[Union[str, Path]],
    image_format: str,
    renderer: Optional[ChartRenderer],
    config: PlotFactoryConfig,
    start_time: datetime,
    data_summary: dict,
) -> GeneratedChart:
    """Save the chart if requested and wrap it in a GeneratedChart."""
    output_path = None
    if save:
        renderer = renderer or ChartRenderer(config)
        target = Path(output_dir or config.output_dir) / f"{slugify(label)}.{image_format}"
        output_path = renderer.save(
            spec,
            target,
            width=config.width,
            height=config.height,
            image_format=image_format,
        )

    generation_time = (datetime.now() - start_time).total_seconds() * 1000
    logger.info(
        "Built chart '%s' in %.0fms (%d rows)%s",
        label,
        generation_time,
        len(spec.data),
        f", saved to {output_path}" if output_path else "",
    )

    return GeneratedChart(
        spec=spec,
        label=label,
        output_path=output_path,
        generation_time_ms=generation_time,
        data_summary=data_summary,
    )
