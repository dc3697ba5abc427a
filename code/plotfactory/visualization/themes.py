"""
Theme and legend settings for rendered charts.

Themes are plain frozen dataclasses so that two charts built with the same
settings compare equal. The renderer translates them into seaborn styles
and matplotlib artist properties.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from ..exceptions import ChartValidationError

LEGEND_POSITIONS = ("right", "left", "top", "bottom", "inside", "none")

# matplotlib loc strings accepted for legends drawn inside the plot area
INSIDE_LOCATIONS = (
    "best",
    "upper right",
    "upper left",
    "lower left",
    "lower right",
    "center left",
    "center right",
    "lower center",
    "upper center",
    "center",
)


@dataclass(frozen=True)
class LegendConfig:
    """Placement and styling of the color legend."""

    position: str = "right"
    inside_loc: str = "upper right"
    title: Optional[str] = None
    ncol: Optional[int] = None
    frameon: bool = False
    fontsize: float = 10
    title_fontsize: float = 11
    reverse: bool = False

    def __post_init__(self):
        if self.position not in LEGEND_POSITIONS:
            raise ChartValidationError(
                f"Invalid legend position '{self.position}'. "
                f"Expected one of: {', '.join(LEGEND_POSITIONS)}"
            )
        if self.inside_loc not in INSIDE_LOCATIONS:
            raise ChartValidationError(
                f"Invalid inside legend location '{self.inside_loc}'"
            )
        if self.ncol is not None and self.ncol < 1:
            raise ChartValidationError("Legend ncol must be at least 1")

    @property
    def visible(self) -> bool:
        return self.position != "none"


@dataclass(frozen=True)
class ThemeConfig:
    """Overall look of a chart."""

    style: str = "whitegrid"
    palette: str = "viridis"
    font_family: Optional[str] = None
    base_size: float = 11
    title_size: float = 14
    title_weight: str = "bold"
    legend: LegendConfig = field(default_factory=LegendConfig)
    hide_spines: Tuple[str, ...] = ("top", "right")
    show_grid: bool = True
    # theme_void: no axes, ticks or grid (tick labels controlled separately)
    void: bool = False
    tick_label_size: float = 10
    tick_label_weight: str = "normal"
    y_tick_labels: bool = True
    margin: float = 0.2

    def with_legend(self, **changes) -> "ThemeConfig":
        """Return a copy with the legend settings changed."""
        return replace(self, legend=replace(self.legend, **changes))


THEME_PRESETS = {
    "whitegrid": ThemeConfig(),
    "minimal": ThemeConfig(
        style="white",
        hide_spines=("top", "right", "left", "bottom"),
        show_grid=True,
    ),
    "classic": ThemeConfig(
        style="ticks",
        hide_spines=("top", "right"),
        show_grid=False,
    ),
    "void": ThemeConfig(
        style="white",
        hide_spines=("top", "right", "left", "bottom"),
        show_grid=False,
        void=True,
        legend=LegendConfig(position="none"),
    ),
}


def theme_preset(name: str = "whitegrid", **overrides) -> ThemeConfig:
    """
    Get a named theme, optionally with some fields overridden.

    Args:
        name: One of "whitegrid", "minimal", "classic", "void"
        **overrides: ThemeConfig fields to replace

    Returns:
        ThemeConfig
    """
    try:
        theme = THEME_PRESETS[name]
    except KeyError:
        raise ChartValidationError(
            f"Unknown theme preset '{name}'. "
            f"Available: {', '.join(sorted(THEME_PRESETS))}"
        ) from None

    return replace(theme, **overrides) if overrides else theme
