"""
Chart Templates for common presentation charts.

This module provides specialized chart templates that build finished
ChartSpec descriptions, such as a ranked bar chart that lumps small
categories into "Other" and highlights the top entries.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Tuple

import pandas as pd

from ..data_sources import Dataset, frame_fingerprint
from ..exceptions import ChartValidationError
from .chart_spec import AxisScale, ChartSpec, ColorScale, Labels, Layer, LayerType
from .themes import theme_preset

logger = logging.getLogger(__name__)

# goldenrod1, mediumpurple1, coral2
HIGHLIGHT_COLORS = ("#FFC125", "#AB82FF", "#EE6A50")
OTHER_COLOR = "#CCCCCC"  # gray80
BASE_COLOR = "#8C8C8C"  # gray55


class BaseChartTemplate(ABC):
    """Abstract base class for chart templates."""

    @abstractmethod
    def generate(self, dataset: Dataset, **kwargs) -> ChartSpec:
        """Generate a chart description from a dataset."""
        ...

    @abstractmethod
    def validate_data(self, dataset: Dataset) -> bool:
        """Validate that the dataset can be charted."""
        ...


@dataclass
class RankedBarChartConfig:
    """Configuration for ranked bar charts."""

    column: str
    top_n: int = 10
    other_label: str = "Other"
    title_case: bool = True
    title: str = ""
    first_label_suffix: str = ""
    highlight_colors: Tuple[str, ...] = HIGHLIGHT_COLORS
    other_color: str = OTHER_COLOR
    base_color: str = BASE_COLOR
    color_tick_labels: bool = True
    label_size: float = 14
    text_size: float = 11
    text_color: str = "black"
    label_nudge: float = 0.5
    font_family: Optional[str] = None


def lump_counts(
    series: pd.Series,
    top_n: int = 10,
    other_label: str = "Other",
    title_case: bool = True,
) -> pd.DataFrame:
    """
    Count values, keeping the ``top_n`` most frequent and lumping the rest.

    Args:
        series: Values to count (missing values are dropped)
        top_n: Number of values to keep
        other_label: Label for the lumped remainder
        title_case: Capitalize each word of the labels

    Returns:
        DataFrame with ``label`` and ``n`` columns, sorted by count (ties by
        label) with the lumped row last
    """
    if top_n < 1:
        raise ChartValidationError("top_n must be at least 1")

    values = series.dropna().astype(str)
    if title_case:
        values = values.str.title()

    ranked = _sorted_counts(values)
    keep = set(ranked["label"].head(top_n))
    lumped = values.where(values.isin(keep), other_label)

    table = _sorted_counts(lumped)
    is_other = (table["label"] == other_label) & (len(ranked) > top_n)
    return pd.concat([table[~is_other], table[is_other]], ignore_index=True)


def _sorted_counts(values: pd.Series) -> pd.DataFrame:
    counts = values.value_counts().rename_axis("label").reset_index(name="n")
    return counts.sort_values(["n", "label"], ascending=[False, True], ignore_index=True)


class RankedBarChartTemplate(BaseChartTemplate):
    """
    Template for ranked count charts.

    Shows how often each value of a column occurs as horizontal bars:
    - the top N values ranked by count, the rest lumped into "Other"
    - percentage labels inside the bar ends
    - the top three bars (and their axis labels) in highlight colors
    - everything except the category labels stripped away
    """

    def validate_data(self, dataset: Dataset) -> bool:
        """Validate the dataset has rows."""
        return len(dataset) > 0

    def build_table(self, series: pd.Series, config: RankedBarChartConfig) -> pd.DataFrame:
        """
        Build the per-bar table: label, n, perc, color and rank.

        Rows are ordered by rank, "Other" last.
        """
        table = lump_counts(
            series,
            top_n=config.top_n,
            other_label=config.other_label,
            title_case=config.title_case,
        )
        if table.empty:
            raise ChartValidationError(
                f"Column '{config.column}' has no non-missing values to count"
            )

        total = table["n"].sum()
        table["perc"] = [f"{n / total * 100:4.1f}%" for n in table["n"]]
        if config.first_label_suffix:
            table.loc[0, "perc"] = f"{table.loc[0, 'perc']} {config.first_label_suffix}"

        is_other = table["label"] == config.other_label
        table["rank"] = 0
        table.loc[~is_other, "rank"] = list(range(1, int((~is_other).sum()) + 1))

        table["color"] = config.base_color
        for rank, color in enumerate(config.highlight_colors, start=1):
            table.loc[table["rank"] == rank, "color"] = color
        table.loc[is_other, "color"] = config.other_color

        return table

    def generate(
        self,
        dataset: Dataset,
        column: str = "",
        top_n: int = 10,
        title: str = "",
        **kwargs: Any,
    ) -> ChartSpec:
        """
        Generate a ranked bar chart.

        Args:
            dataset: Source data
            column: Column whose values are counted
            top_n: Number of values shown before lumping into "Other"
            title: Chart title
            **kwargs: Additional RankedBarChartConfig options

        Returns:
            ChartSpec ready for ChartRenderer
        """
        if not self.validate_data(dataset):
            raise ChartValidationError("Cannot build a ranked bar chart from an empty dataset")

        config = RankedBarChartConfig(column=column, top_n=top_n, title=title, **kwargs)
        table = self.build_table(dataset.column(config.column), config)

        # first category is drawn at the bottom: "Other", then smallest to largest
        ranked_labels = list(table.loc[table["rank"] > 0, "label"])
        bottom_to_top = [
            label for label in table["label"] if label not in ranked_labels
        ] + ranked_labels[::-1]
        table["label"] = pd.Categorical(table["label"], categories=bottom_to_top)

        tick_label_colors = {}
        if config.color_tick_labels:
            highlighted = table[table["rank"].between(1, len(config.highlight_colors))]
            tick_label_colors = dict(zip(highlighted["label"].astype(str), highlighted["color"]))

        text_params = {
            "ha": "right",
            "va": "center",
            "nudge_x": -config.label_nudge,
            "fontsize": config.text_size,
            "fontweight": "bold",
            "color": config.text_color,
        }
        if config.font_family:
            text_params["fontfamily"] = config.font_family

        logger.info(
            "Built ranked bar chart for '%s' with %d bars (top %s of %d)",
            config.column,
            len(table),
            table.loc[0, "label"],
            int(table["n"].sum()),
        )

        return ChartSpec(
            data=table,
            layers=(
                Layer(LayerType.COL, x="n", y="label", color="color"),
                Layer(LayerType.TEXT, x="n", y="label", label="perc", params=text_params),
            ),
            labels=Labels(title=config.title, x="", y=""),
            theme=theme_preset(
                "void",
                tick_label_size=config.label_size,
                tick_label_weight="bold",
                font_family=config.font_family,
                margin=15 / 72,
            ),
            color_scale=ColorScale(kind="identity", show_legend=False),
            x_scale=AxisScale(expand=0.01),
            tick_label_colors=tick_label_colors,
            data_fingerprint=frame_fingerprint(table),
        )
