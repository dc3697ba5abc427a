"""
Chart Renderer for plotfactory.

This module turns ChartSpec descriptions into matplotlib figures using
seaborn for themes, palettes and statistical layers, and exports them to
image files.
"""

import base64
import io
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import matplotlib
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from pandas.api import types as ptypes

from ..config import PlotFactoryConfig
from ..exceptions import ChartGenerationError, ChartValidationError, UnknownColumnError
from .chart_spec import ChartSpec, ColorScale, Layer, LayerType
from .themes import ThemeConfig

# Use non-interactive backend for file rendering
matplotlib.use("Agg")

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("png", "pdf", "svg", "jpg", "jpeg")

# Legend anchors relative to a single axes
_AXES_LEGEND_ANCHORS = {
    "right": ("center left", (1.02, 0.5)),
    "left": ("center right", (-0.15, 0.5)),
    "top": ("lower center", (0.5, 1.02)),
    "bottom": ("upper center", (0.5, -0.15)),
}

# Legend anchors relative to the whole figure (faceted charts)
_FIGURE_LEGEND_ANCHORS = {
    "right": ("center left", (1.0, 0.5)),
    "left": ("center right", (0.0, 0.5)),
    "top": ("lower center", (0.5, 1.0)),
    "bottom": ("upper center", (0.5, 0.0)),
}

_MUTED_TEXT = "#666666"


class ChartRenderer:
    """
    Renders ChartSpec descriptions with matplotlib and seaborn.

    Example:
        ```python
        renderer = ChartRenderer()
        fig = renderer.render(spec)
        renderer.save(spec, "plots/suv.png", width=8, height=5)
        ```
    """

    def __init__(self, config: Optional[PlotFactoryConfig] = None):
        """
        Initialize the chart renderer.

        Args:
            config: Output and appearance defaults (PlotFactoryConfig() if omitted)
        """
        self.config = config or PlotFactoryConfig()

        plt.rcParams["figure.dpi"] = 100
        plt.rcParams["savefig.dpi"] = self.config.dpi

        logger.debug("ChartRenderer initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def render(
        self,
        spec: ChartSpec,
        figsize: Optional[Tuple[float, float]] = None,
    ) -> plt.Figure:
        """
        Render a chart description to a matplotlib figure.

        Args:
            spec: Chart description
            figsize: Figure size in inches (config width/height if omitted)

        Returns:
            The rendered Figure. Callers own it and should close it.
        """
        start_time = datetime.now()

        self._validate_spec(spec)

        fig = None
        try:
            self._apply_theme_defaults(spec.theme)

            fig, axes, panels = self._create_figure(spec, figsize or self.config.figsize)

            for ax, (panel_title, panel_data) in zip(axes, panels):
                for layer in spec.layers:
                    self._draw_layer(ax, layer, panel_data, spec)
                self._apply_scales(ax, spec)
                self._apply_axis_labels(ax, spec)
                self._apply_axis_style(ax, spec.theme)
                if panel_title is not None:
                    ax.set_title(panel_title, fontsize=spec.theme.base_size)

            self._apply_titles(fig, axes, spec)
            self._apply_legend(fig, axes, spec)
            self._apply_annotations(axes, spec)
            self._apply_tick_label_colors(axes, spec)

            fig.tight_layout()

        except ChartGenerationError:
            if fig is not None:
                plt.close(fig)
            raise
        except Exception as e:
            if fig is not None:
                plt.close(fig)
            logger.error("Chart rendering failed: %s", e)
            raise ChartGenerationError(f"Failed to render chart: {e}") from e

        render_time = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(
            "Rendered chart with %d layer(s) and %d panel(s) in %.0fms",
            len(spec.layers),
            len(axes),
            render_time,
        )
        return fig

    def save(
        self,
        spec: ChartSpec,
        path: Union[str, Path],
        width: Optional[float] = None,
        height: Optional[float] = None,
        dpi: Optional[int] = None,
        image_format: Optional[str] = None,
    ) -> Path:
        """
        Render a chart and write it to an image file.

        An existing file at ``path`` is overwritten.

        Args:
            spec: Chart description
            path: Output file; the format suffix is added when missing
            width: Width in inches
            height: Height in inches
            dpi: Resolution
            image_format: One of png, pdf, svg, jpg, jpeg (defaults to the
                path suffix, then the configured format)

        Returns:
            Path of the written file
        """
        path = Path(path)
        image_format = (
            image_format or path.suffix.lstrip(".") or self.config.image_format
        ).lower()

        if image_format not in SUPPORTED_FORMATS:
            raise ChartValidationError(
                f"Unsupported image format '{image_format}'. "
                f"Expected one of: {', '.join(SUPPORTED_FORMATS)}"
            )

        if not path.suffix:
            path = path.with_suffix(f".{image_format}")

        fig = self.render(
            spec,
            figsize=(width or self.config.width, height or self.config.height),
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(
                path,
                format=image_format,
                dpi=dpi or self.config.dpi,
                bbox_inches="tight",
                pad_inches=spec.theme.margin,
                facecolor="white",
            )
        except Exception as e:
            path.unlink(missing_ok=True)
            logger.error("Writing chart to %s failed: %s", path, e)
            raise ChartGenerationError(f"Failed to write chart to {path}: {e}") from e
        finally:
            plt.close(fig)

        logger.info("Saved chart to %s", path)
        return path

    def render_base64(self, spec: ChartSpec) -> str:
        """Render a chart to a base64-encoded PNG string."""
        fig = self.render(spec)
        try:
            buf = io.BytesIO()
            fig.savefig(buf, format="png", bbox_inches="tight", facecolor="white")
            buf.seek(0)
            return base64.b64encode(buf.read()).decode("utf-8")
        finally:
            plt.close(fig)

    # ------------------------------------------------------------------
    # Validation and setup
    # ------------------------------------------------------------------

    def _validate_spec(self, spec: ChartSpec) -> None:
        """Validate a chart description against its data."""
        if spec.data.empty:
            raise ChartValidationError("Cannot render chart from empty data")

        missing = [c for c in spec.columns_used() if c not in spec.data.columns]
        if missing:
            raise UnknownColumnError(
                f"Column(s) not found in chart data: {', '.join(missing)}"
            )

        if spec.color_scale and spec.color_scale.kind == "identity":
            for layer in spec.layers:
                if layer.color and layer.kind in (LayerType.LINE, LayerType.BOXPLOT):
                    raise ChartValidationError(
                        f"Identity color scales are not supported for {layer.kind.value} layers"
                    )

    def _apply_theme_defaults(self, theme: ThemeConfig) -> None:
        """Apply the seaborn style and base font settings."""
        sns.set_theme(
            style=theme.style,
            font=theme.font_family or "sans-serif",
            rc={
                "font.size": theme.base_size,
                "axes.titlesize": theme.title_size,
                "axes.labelsize": theme.base_size,
                "savefig.dpi": self.config.dpi,
            },
        )

    def _create_figure(
        self,
        spec: ChartSpec,
        figsize: Tuple[float, float],
    ) -> Tuple[plt.Figure, List[plt.Axes], List[Tuple[Optional[str], pd.DataFrame]]]:
        """Create the figure and one axes per panel."""
        if spec.facet is None:
            fig, ax = plt.subplots(figsize=figsize)
            return fig, [ax], [(None, spec.data)]

        facet = spec.facet
        values = self._category_order(spec.data, facet.column)
        ncol = min(facet.ncol, len(values))
        nrow = math.ceil(len(values) / ncol)

        fig, grid = plt.subplots(
            nrow,
            ncol,
            figsize=figsize,
            sharey=facet.share_y,
            squeeze=False,
        )
        all_axes = list(grid.flatten())
        for unused in all_axes[len(values):]:
            unused.set_visible(False)

        panels = [
            (str(value), spec.data[spec.data[facet.column] == value])
            for value in values
        ]
        return fig, all_axes[: len(values)], panels

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def _draw_layer(
        self,
        ax: plt.Axes,
        layer: Layer,
        data: pd.DataFrame,
        spec: ChartSpec,
    ) -> None:
        """Draw a single layer on an axes."""
        layer_creators = {
            LayerType.POINT: self._draw_points,
            LayerType.LINE: self._draw_lines,
            LayerType.BOXPLOT: self._draw_boxplot,
            LayerType.COL: self._draw_columns,
            LayerType.TEXT: self._draw_text,
        }

        creator = layer_creators.get(layer.kind)
        if not creator:
            raise ChartGenerationError(f"Unsupported layer type: {layer.kind}")

        if data.empty:
            return

        creator(ax, layer, data, spec)

    def _draw_points(self, ax: plt.Axes, layer: Layer, data: pd.DataFrame, spec: ChartSpec) -> None:
        """Create a scatter layer (jittered strips when x is discrete)."""
        if layer.color and self._color_scale(spec).kind == "identity":
            ax.scatter(
                [self._position(spec, layer.x, v) for v in data[layer.x]],
                data[layer.y],
                c=list(data[layer.color]),
                **layer.params,
            )
            return

        if self._is_discrete(spec, layer.x):
            sns.stripplot(
                data=data,
                x=layer.x,
                y=layer.y,
                hue=layer.color,
                palette=self._palette(spec, layer),
                order=self._discrete_order(spec, layer.x),
                legend=False,
                ax=ax,
                **layer.params,
            )
            return

        sns.scatterplot(
            data=data,
            x=layer.x,
            y=layer.y,
            hue=layer.color,
            palette=self._palette(spec, layer),
            legend="auto" if layer.color else False,
            ax=ax,
            **layer.params,
        )

    def _draw_lines(self, ax: plt.Axes, layer: Layer, data: pd.DataFrame, spec: ChartSpec) -> None:
        """Create a line layer (no confidence band unless asked for)."""
        params = {"errorbar": None}
        params.update(layer.params)

        sns.lineplot(
            data=data,
            x=layer.x,
            y=layer.y,
            hue=layer.color,
            palette=self._palette(spec, layer),
            legend="auto" if layer.color else False,
            ax=ax,
            **params,
        )

    def _draw_boxplot(self, ax: plt.Axes, layer: Layer, data: pd.DataFrame, spec: ChartSpec) -> None:
        """Create a boxplot of a numeric column per group."""
        params = dict(layer.params)
        params.setdefault("order", self._discrete_order(spec, layer.x))
        if layer.color:
            params["hue"] = layer.color
            params["palette"] = self._palette(spec, layer)

        sns.boxplot(data=data, x=layer.x, y=layer.y, ax=ax, **params)

    def _draw_columns(self, ax: plt.Axes, layer: Layer, data: pd.DataFrame, spec: ChartSpec) -> None:
        """
        Create a bar layer.

        Bars are horizontal when x is numeric and y is not. Categories are
        placed in their category order, the first one at the bottom (or left).
        """
        horizontal = self._is_numeric(spec.data, layer.x) and not self._is_numeric(
            spec.data, layer.y
        )
        category_column, value_column = (layer.y, layer.x) if horizontal else (layer.x, layer.y)

        order = self._category_order(spec.data, category_column)
        positions = {value: i for i, value in enumerate(order)}

        params = dict(layer.params)
        thickness = params.pop("width", 0.8)
        draw = ax.barh if horizontal else ax.bar
        size_arg = "height" if horizontal else "width"
        params[size_arg] = thickness

        scale = self._color_scale(spec)
        if layer.color and scale.kind != "identity":
            palette = self._palette(spec, layer)
            for level in self._category_order(spec.data, layer.color):
                group = data[data[layer.color] == level]
                if group.empty:
                    continue
                color = None
                if isinstance(palette, dict):
                    color = palette.get(level, palette.get(str(level)))
                draw(
                    [positions[v] for v in group[category_column]],
                    group[value_column],
                    color=color,
                    label=str(level),
                    **params,
                )
        else:
            if layer.color:
                params["color"] = list(data[layer.color])
            draw(
                [positions[v] for v in data[category_column]],
                data[value_column],
                **params,
            )

        ticks = list(range(len(order)))
        tick_labels = [str(value) for value in order]
        if horizontal:
            ax.set_yticks(ticks)
            ax.set_yticklabels(tick_labels)
        else:
            ax.set_xticks(ticks)
            ax.set_xticklabels(tick_labels)

    def _draw_text(self, ax: plt.Axes, layer: Layer, data: pd.DataFrame, spec: ChartSpec) -> None:
        """Create a text label per row, with optional nudges."""
        params = dict(layer.params)
        nudge_x = params.pop("nudge_x", 0)
        nudge_y = params.pop("nudge_y", 0)
        identity_colors = layer.color is not None

        for _, row in data.iterrows():
            if identity_colors:
                params["color"] = row[layer.color]
            ax.text(
                self._position(spec, layer.x, row[layer.x]) + nudge_x,
                self._position(spec, layer.y, row[layer.y]) + nudge_y,
                str(row[layer.label]),
                **params,
            )

    # ------------------------------------------------------------------
    # Colors and categories
    # ------------------------------------------------------------------

    def _color_scale(self, spec: ChartSpec) -> ColorScale:
        return spec.color_scale or ColorScale(palette=spec.theme.palette)

    def _palette(self, spec: ChartSpec, layer: Layer) -> Any:
        """
        Palette for a layer's color column.

        Discrete columns get a value -> color mapping built from the full
        chart data so every facet panel uses the same colors.
        """
        if not layer.color:
            return None

        scale = self._color_scale(spec)
        if scale.kind == "manual":
            return dict(scale.values)

        if self._is_numeric(spec.data, layer.color):
            return scale.palette

        levels = self._category_order(spec.data, layer.color)
        colors = sns.color_palette(scale.palette, len(levels))
        return dict(zip(levels, colors))

    @staticmethod
    def _is_numeric(data: pd.DataFrame, column: str) -> bool:
        return ptypes.is_numeric_dtype(data[column]) and not ptypes.is_bool_dtype(data[column])

    @staticmethod
    def _category_order(data: pd.DataFrame, column: str) -> List[Any]:
        """Categorical dtype order if defined, else order of first appearance."""
        series = data[column]
        if isinstance(series.dtype, pd.CategoricalDtype):
            present = set(series.dropna())
            return [c for c in series.cat.categories if c in present]
        return list(pd.unique(series.dropna()))

    def _is_discrete(self, spec: ChartSpec, column: str) -> bool:
        """
        Whether a column is drawn at category positions 0..n-1.

        Non-numeric columns always are. A numeric column is too when it is the
        x of a boxplot layer, since seaborn places the boxes by category.
        """
        if not self._is_numeric(spec.data, column):
            return True
        return any(
            layer.kind is LayerType.BOXPLOT and layer.x == column for layer in spec.layers
        )

    def _discrete_order(self, spec: ChartSpec, column: str) -> List[Any]:
        """Category order of a discrete column; numeric groups are sorted."""
        if self._is_numeric(spec.data, column):
            return sorted(pd.unique(spec.data[column].dropna()))
        return self._category_order(spec.data, column)

    def _position(self, spec: ChartSpec, column: str, value: Any) -> Any:
        """Axis position of a value; discrete values map to their category index."""
        if column in spec.data.columns and self._is_discrete(spec, column):
            order = self._discrete_order(spec, column)
            if value in order:
                return order.index(value)
        return value

    # ------------------------------------------------------------------
    # Styling
    # ------------------------------------------------------------------

    def _apply_scales(self, ax: plt.Axes, spec: ChartSpec) -> None:
        """Apply axis expansion, limits and log transforms."""
        for axis, scale in (("x", spec.x_scale), ("y", spec.y_scale)):
            if scale.log:
                getattr(ax, f"set_{axis}scale")("log")
            ax.margins(**{axis: scale.expand})
            if scale.limits:
                getattr(ax, f"set_{axis}lim")(*scale.limits)

    def _apply_axis_labels(self, ax: plt.Axes, spec: ChartSpec) -> None:
        """Set axis labels, defaulting to the first layer's column names."""
        first = spec.layers[0]
        x_label = spec.labels.x if spec.labels.x is not None else first.x
        y_label = spec.labels.y if spec.labels.y is not None else first.y
        ax.set_xlabel(x_label, fontsize=spec.theme.base_size)
        ax.set_ylabel(y_label, fontsize=spec.theme.base_size)

    def _apply_axis_style(self, ax: plt.Axes, theme: ThemeConfig) -> None:
        """Apply spines, grid, tick label and void settings."""
        for spine in theme.hide_spines:
            ax.spines[spine].set_visible(False)

        if not theme.show_grid:
            ax.grid(False)

        ax.tick_params(labelsize=theme.tick_label_size)
        for label in ax.get_xticklabels() + ax.get_yticklabels():
            label.set_fontweight(theme.tick_label_weight)
            if theme.font_family:
                label.set_fontfamily(theme.font_family)

        if theme.void:
            ax.grid(False)
            ax.set_xticks([])
            ax.set_xlabel("")
            ax.set_ylabel("")
            ax.tick_params(axis="y", length=0)
            for spine in ax.spines.values():
                spine.set_visible(False)

        if not theme.y_tick_labels:
            ax.set_yticks([])

    def _apply_titles(self, fig: plt.Figure, axes: List[plt.Axes], spec: ChartSpec) -> None:
        """Set the title, subtitle and caption."""
        labels, theme = spec.labels, spec.theme

        if len(axes) == 1:
            ax = axes[0]
            if labels.title:
                ax.set_title(
                    labels.title,
                    loc="left",
                    fontsize=theme.title_size,
                    fontweight=theme.title_weight,
                    pad=22 if labels.subtitle else 10,
                )
            if labels.subtitle:
                ax.text(
                    0,
                    1.02,
                    labels.subtitle,
                    transform=ax.transAxes,
                    ha="left",
                    va="bottom",
                    fontsize=theme.base_size,
                    color=_MUTED_TEXT,
                )
        elif labels.title or labels.subtitle:
            heading = "\n".join(t for t in (labels.title, labels.subtitle) if t)
            fig.suptitle(heading, fontsize=theme.title_size, fontweight=theme.title_weight)

        if labels.caption:
            fig.text(
                0.99,
                0.005,
                labels.caption,
                ha="right",
                va="bottom",
                fontsize=theme.base_size - 2,
                color=_MUTED_TEXT,
            )

    def _apply_legend(
        self,
        fig: plt.Figure,
        axes: List[plt.Axes],
        spec: ChartSpec,
    ) -> Optional[Any]:
        """Replace per-axes legends with a single legend placed per the theme."""
        handles: Dict[str, Any] = {}
        for ax in axes:
            old_legend = ax.get_legend()
            if old_legend is not None:
                # seaborn draws its own legend from proxy artists
                pairs = zip(
                    old_legend.legend_handles,
                    [text.get_text() for text in old_legend.get_texts()],
                )
                old_legend.remove()
            else:
                pairs = zip(*ax.get_legend_handles_labels())
            for handle, label in pairs:
                handles.setdefault(label, handle)

        legend_config = spec.theme.legend
        scale = self._color_scale(spec)
        if not handles or not legend_config.visible or not scale.show_legend:
            return None

        labels = list(handles)
        if legend_config.reverse:
            labels.reverse()

        title = legend_config.title or spec.labels.color or next(
            (layer.color for layer in spec.layers if layer.color), None
        )
        options = {
            "title": title,
            "frameon": legend_config.frameon,
            "fontsize": legend_config.fontsize,
            "title_fontsize": legend_config.title_fontsize,
        }

        faceted = len(axes) > 1
        if legend_config.position == "inside":
            options["loc"] = legend_config.inside_loc
        else:
            anchors = _FIGURE_LEGEND_ANCHORS if faceted else _AXES_LEGEND_ANCHORS
            options["loc"], options["bbox_to_anchor"] = anchors[legend_config.position]

        if legend_config.ncol is not None:
            options["ncol"] = legend_config.ncol
        elif legend_config.position in ("top", "bottom"):
            options["ncol"] = len(labels)

        target = fig if faceted else axes[0]
        return target.legend([handles[label] for label in labels], labels, **options)

    def _apply_annotations(self, axes: List[plt.Axes], spec: ChartSpec) -> None:
        """Draw free text annotations on every panel."""
        first = spec.layers[0]
        for ax in axes:
            for note in spec.annotations:
                if note.coords == "axes":
                    x, y, transform = note.x, note.y, ax.transAxes
                else:
                    x = self._position(spec, first.x, note.x)
                    y = self._position(spec, first.y, note.y)
                    transform = ax.transData
                ax.text(
                    x,
                    y,
                    note.text,
                    color=note.color,
                    fontsize=note.size,
                    ha=note.ha,
                    va=note.va,
                    fontweight=note.fontweight,
                    transform=transform,
                )

    def _apply_tick_label_colors(self, axes: List[plt.Axes], spec: ChartSpec) -> None:
        """Color individual tick labels, e.g. to match highlighted bars."""
        if not spec.tick_label_colors:
            return
        for ax in axes:
            for label in ax.get_xticklabels() + ax.get_yticklabels():
                color = spec.tick_label_colors.get(label.get_text())
                if color:
                    label.set_color(color)
