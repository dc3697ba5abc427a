"""
Unit tests for the chart renderer.

Tests layer drawing, legends, themes, annotations and file export.
"""

import base64

from matplotlib.figure import Figure
import matplotlib.pyplot as plt
import pandas as pd
import pytest

from plotfactory.exceptions import (
    ChartGenerationError,
    ChartValidationError,
    UnknownColumnError,
)
from plotfactory.visualization import (
    Annotation,
    AxisScale,
    ChartSpec,
    ColorScale,
    Facet,
    Labels,
    Layer,
    LayerType,
    theme_preset,
)


@pytest.fixture
def scatter_spec(sample_car_df) -> ChartSpec:
    """Scatter chart colored by vehicle class."""
    return ChartSpec(
        data=sample_car_df,
        layers=(Layer(LayerType.POINT, x="displ", y="hwy", color="class"),),
        labels=Labels(title="Highway mileage", subtitle="by engine size"),
    )


@pytest.fixture
def bar_spec() -> ChartSpec:
    """Horizontal bars with identity colors and text labels."""
    data = pd.DataFrame(
        {
            "label": pd.Categorical(["Other", "Ford", "Dodge"], categories=["Other", "Ford", "Dodge"]),
            "n": [5, 8, 12],
            "fill": ["#CCCCCC", "#AB82FF", "#FFC125"],
            "text": ["20%", "32%", "48%"],
        }
    )
    return ChartSpec(
        data=data,
        layers=(
            Layer(LayerType.COL, x="n", y="label", color="fill"),
            Layer(LayerType.TEXT, x="n", y="label", label="text", params={"ha": "right", "nudge_x": -0.5}),
        ),
        color_scale=ColorScale(kind="identity", show_legend=False),
        tick_label_colors={"Dodge": "#FFC125"},
    )


class TestRendererLayers:
    """Tests for drawing each layer type."""

    def test_scatter_layer(self, renderer, scatter_spec):
        """Test that points are drawn with a title and axis labels."""
        fig = renderer.render(scatter_spec)
        ax = fig.axes[0]
        assert len(ax.collections) >= 1
        assert ax.get_title(loc="left") == "Highway mileage"
        assert ax.get_xlabel() == "displ"
        assert ax.get_ylabel() == "hwy"

    def test_line_layer(self, renderer, sample_car_df):
        """Test that a line layer draws lines."""
        spec = ChartSpec(
            data=sample_car_df.sort_values("displ"),
            layers=(Layer(LayerType.LINE, x="displ", y="hwy"),),
        )
        fig = renderer.render(spec)
        assert len(fig.axes[0].lines) >= 1

    def test_boxplot_with_points(self, renderer, sample_car_df):
        """Test a boxplot with jittered points over a discrete axis."""
        spec = ChartSpec(
            data=sample_car_df,
            layers=(
                Layer(LayerType.BOXPLOT, x="class", y="hwy"),
                Layer(LayerType.POINT, x="class", y="hwy", params={"color": "black"}),
            ),
        )
        fig = renderer.render(spec)
        labels = [t.get_text() for t in fig.axes[0].get_xticklabels()]
        assert labels == ["compact", "suv", "pickup"]

    def test_points_over_numeric_boxplot_groups(self, renderer, sample_car_df):
        """Test that points share the box positions when the group column is numeric."""
        spec = ChartSpec(
            data=sample_car_df,
            layers=(
                Layer(LayerType.BOXPLOT, x="year", y="hwy"),
                Layer(LayerType.POINT, x="year", y="hwy", params={"color": "black"}),
            ),
        )
        ax = renderer.render(spec).axes[0]
        assert [t.get_text() for t in ax.get_xticklabels()] == ["1999", "2008"]
        point_x = [x for collection in ax.collections for x, _ in collection.get_offsets()]
        assert len(point_x) == 12
        assert all(-0.5 < x < 1.5 for x in point_x)

    def test_numeric_points_without_boxplot(self, renderer, sample_car_df):
        """Test that numeric x stays continuous when no boxplot uses it."""
        spec = ChartSpec(
            data=sample_car_df,
            layers=(Layer(LayerType.POINT, x="year", y="hwy"),),
        )
        ax = renderer.render(spec).axes[0]
        point_x = {x for collection in ax.collections for x, _ in collection.get_offsets()}
        assert point_x == {1999, 2008}

    def test_horizontal_bars_in_category_order(self, renderer, bar_spec):
        """Test that bars follow the category order from the bottom up."""
        fig = renderer.render(bar_spec)
        ax = fig.axes[0]
        assert [t.get_text() for t in ax.get_yticklabels()] == ["Other", "Ford", "Dodge"]
        widths = [patch.get_width() for patch in ax.patches]
        assert widths == [5, 8, 12]

    def test_text_layer_nudged(self, renderer, bar_spec):
        """Test that text labels are placed at the nudged bar ends."""
        fig = renderer.render(bar_spec)
        texts = {t.get_text(): t.get_position() for t in fig.axes[0].texts}
        assert texts["48%"] == (11.5, 2)
        assert texts["20%"] == (4.5, 0)

    def test_tick_label_colors(self, renderer, bar_spec):
        """Test that highlighted tick labels are colored."""
        fig = renderer.render(bar_spec)
        colors = {t.get_text(): t.get_color() for t in fig.axes[0].get_yticklabels()}
        assert colors["Dodge"] == "#FFC125"

    def test_vertical_bars_with_palette(self, renderer):
        """Test vertical bars colored through a palette with a legend."""
        data = pd.DataFrame({"drv": ["f", "4", "r"], "n": [10, 7, 3]})
        spec = ChartSpec(
            data=data,
            layers=(Layer(LayerType.COL, x="drv", y="n", color="drv"),),
        )
        fig = renderer.render(spec)
        ax = fig.axes[0]
        assert len(ax.patches) == 3
        assert ax.get_legend() is not None


class TestRendererLegends:
    """Tests for legend placement and visibility."""

    def test_legend_title_defaults_to_color_column(self, renderer, scatter_spec):
        """Test the default legend title and entries."""
        legend = renderer.render(scatter_spec).axes[0].get_legend()
        assert legend.get_title().get_text() == "class"
        assert [t.get_text() for t in legend.get_texts()] == ["compact", "suv", "pickup"]

    def test_legend_custom_title_and_reverse(self, renderer, scatter_spec):
        """Test renaming and reversing the legend."""
        spec = scatter_spec.with_legend(title="Vehicle class", reverse=True)
        legend = renderer.render(spec).axes[0].get_legend()
        assert legend.get_title().get_text() == "Vehicle class"
        assert [t.get_text() for t in legend.get_texts()] == ["pickup", "suv", "compact"]

    def test_legend_top_uses_one_row(self, renderer, scatter_spec):
        """Test that top legends lay entries out in a single row."""
        legend = renderer.render(scatter_spec.with_legend(position="top")).axes[0].get_legend()
        assert legend._ncols == 3

    def test_legend_hidden(self, renderer, scatter_spec):
        """Test that position none removes the legend."""
        fig = renderer.render(scatter_spec.with_legend(position="none"))
        assert fig.axes[0].get_legend() is None

    def test_legend_hidden_by_scale(self, renderer, scatter_spec):
        """Test that a color scale can hide its legend."""
        spec = scatter_spec.with_color_scale(ColorScale(palette="Set2", show_legend=False))
        assert renderer.render(spec).axes[0].get_legend() is None

    def test_manual_colors(self, renderer, scatter_spec):
        """Test that manual color scales are used for the points."""
        spec = scatter_spec.with_color_scale(
            ColorScale(kind="manual", values={"compact": "red", "suv": "blue", "pickup": "green"})
        )
        legend = renderer.render(spec).axes[0].get_legend()
        assert [t.get_text() for t in legend.get_texts()] == ["compact", "suv", "pickup"]

    def test_faceted_legend_on_figure(self, renderer, scatter_spec):
        """Test that faceted charts get one figure-level legend."""
        fig = renderer.render(scatter_spec.with_facet(Facet(column="drv", ncol=2)))
        visible = [ax for ax in fig.axes if ax.get_visible()]
        assert len(visible) == 3
        assert all(ax.get_legend() is None for ax in visible)
        assert len(fig.legends) == 1


class TestRendererStyling:
    """Tests for themes, scales and annotations."""

    def test_void_theme_keeps_only_y_labels(self, renderer, bar_spec):
        """Test that the void theme strips axes but keeps category labels."""
        spec = bar_spec.with_theme(theme_preset("void", tick_label_weight="bold"))
        ax = renderer.render(spec).axes[0]
        assert list(ax.get_xticks()) == []
        assert not any(spine.get_visible() for spine in ax.spines.values())
        labels = ax.get_yticklabels()
        assert [t.get_text() for t in labels] == ["Other", "Ford", "Dodge"]
        assert labels[0].get_fontweight() == "bold"

    def test_axis_limits_and_log(self, renderer, scatter_spec):
        """Test explicit limits and log scales."""
        spec = ChartSpec(
            data=scatter_spec.data,
            layers=scatter_spec.layers,
            x_scale=AxisScale(limits=(1, 7)),
            y_scale=AxisScale(log=True),
        )
        ax = renderer.render(spec).axes[0]
        assert ax.get_xlim() == (1, 7)
        assert ax.get_yscale() == "log"

    def test_annotations(self, renderer, scatter_spec):
        """Test data and axes coordinate annotations."""
        spec = scatter_spec.with_annotation(Annotation(2.0, 35, "efficient")).with_annotation(
            Annotation(0.95, 0.95, "source: EPA", coords="axes", ha="right")
        )
        ax = renderer.render(spec).axes[0]
        texts = {t.get_text(): t for t in ax.texts}
        assert texts["efficient"].get_position() == (2.0, 35)
        assert texts["source: EPA"].get_transform() == ax.transAxes

    def test_custom_axis_labels_and_caption(self, renderer, scatter_spec):
        """Test label overrides and the caption."""
        spec = scatter_spec.with_labels(x="Displacement (l)", y="Highway mpg", caption="Data: EPA")
        fig = renderer.render(spec)
        assert fig.axes[0].get_xlabel() == "Displacement (l)"
        assert "Data: EPA" in [t.get_text() for t in fig.texts]


class TestRendererErrors:
    """Tests for failures."""

    def test_missing_column(self, renderer, sample_car_df):
        """Test that unknown columns fail before drawing."""
        spec = ChartSpec(data=sample_car_df, layers=(Layer(LayerType.POINT, x="displ", y="mpg"),))
        with pytest.raises(UnknownColumnError, match="mpg"):
            renderer.render(spec)

    def test_empty_data(self, renderer):
        """Test that empty data is rejected."""
        spec = ChartSpec(
            data=pd.DataFrame({"a": [], "b": []}),
            layers=(Layer(LayerType.POINT, x="a", y="b"),),
        )
        with pytest.raises(ChartValidationError, match="empty"):
            renderer.render(spec)

    def test_identity_scale_on_lines(self, renderer, sample_car_df):
        """Test that identity colors are refused for line layers."""
        data = sample_car_df.assign(fill="red")
        spec = ChartSpec(
            data=data,
            layers=(Layer(LayerType.LINE, x="displ", y="hwy", color="fill"),),
            color_scale=ColorScale(kind="identity"),
        )
        with pytest.raises(ChartValidationError):
            renderer.render(spec)

    def test_library_errors_are_wrapped(self, renderer, scatter_spec):
        """Test that plotting library failures become ChartGenerationError."""
        spec = scatter_spec.with_theme(theme_preset(style="no-such-style"))
        with pytest.raises(ChartGenerationError, match="Failed to render chart"):
            renderer.render(spec)


class TestRendererExport:
    """Tests for saving charts."""

    def test_save_png(self, renderer, scatter_spec, output_dir):
        """Test that save writes exactly one file."""
        path = renderer.save(scatter_spec, output_dir / "scatter.png")
        assert path == output_dir / "scatter.png"
        assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
        assert list(output_dir.iterdir()) == [path]

    def test_save_adds_suffix(self, renderer, scatter_spec, output_dir):
        """Test that the configured format supplies a missing suffix."""
        path = renderer.save(scatter_spec, output_dir / "scatter", image_format="svg")
        assert path.suffix == ".svg"
        assert path.exists()

    def test_save_overwrites(self, renderer, scatter_spec, output_dir):
        """Test that saving twice writes to the same path."""
        first = renderer.save(scatter_spec, output_dir / "scatter.png")
        second = renderer.save(scatter_spec, output_dir / "scatter.png")
        assert first == second
        assert len(list(output_dir.iterdir())) == 1

    def test_unsupported_format(self, renderer, scatter_spec, output_dir):
        """Test that unsupported formats fail before writing."""
        with pytest.raises(ChartValidationError, match="Unsupported image format"):
            renderer.save(scatter_spec, output_dir / "scatter.bmp")
        assert not output_dir.exists()

    def test_failed_write_removes_partial_file(self, renderer, scatter_spec, output_dir, monkeypatch):
        """Test that a backend error is wrapped and leaves no file behind."""

        def broken_savefig(fig, path, **kwargs):
            path.write_bytes(b"partial")
            raise ValueError("backend exploded")

        monkeypatch.setattr(Figure, "savefig", broken_savefig)
        with pytest.raises(ChartGenerationError, match="backend exploded"):
            renderer.save(scatter_spec, output_dir / "scatter.png")
        assert not (output_dir / "scatter.png").exists()
        assert plt.get_fignums() == []

    def test_save_closes_figure(self, renderer, scatter_spec, output_dir):
        """Test that saved figures are closed."""
        plt.close("all")
        renderer.save(scatter_spec, output_dir / "scatter.png")
        assert plt.get_fignums() == []

    def test_render_base64(self, renderer, scatter_spec):
        """Test the base64 PNG export."""
        encoded = renderer.render_base64(scatter_spec)
        assert base64.b64decode(encoded)[:4] == b"\x89PNG"
