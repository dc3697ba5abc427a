#!/usr/bin/env python3
"""
Render one chart per category label.

Loads a CSV file (or the built-in mpg sample), then writes one chart per
distinct value of a category column into the output directory, plus the
ranked bar chart of that column.

Usage:
    python scripts/render_category_charts.py --category class --x displ --y hwy

    Options:
      --csv PATH        Data file (default: built-in mpg sample)
      --kind KIND       scatter | boxplot | line (default: scatter)
      --group COLUMN    Grouping column for boxplots
      --out DIR         Output directory (default: config output_dir)
      --format FMT      png | pdf | svg | jpg (default: config image_format)
      --config PATH     YAML config file
      --fail-fast       Stop at the first failing chart
      --where COL=VALUE Keep only matching rows (repeatable)
      --first-label-suffix TEXT
                        Text after the top percentage of the ranked chart

    Example:
      python scripts/render_category_charts.py --category class --x displ --y hwy \
          --where year=2008 --first-label-suffix "of all car models"
"""

import argparse
import logging
import sys
from pathlib import Path

# Add code directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "code"))

from plotfactory import (  # noqa: E402
    ChartGenerationError,
    ChartRenderer,
    Dataset,
    RankedBarChartTemplate,
    boxplot_for_category,
    line_for_category,
    load_config,
    plot_all_categories,
    scatter_for_category,
)

FACTORIES = {
    "scatter": scatter_for_category,
    "boxplot": boxplot_for_category,
    "line": line_for_category,
}


def parse_where(conditions):
    """Turn COL=VALUE strings into keyword arguments for Dataset.where."""
    equals = {}
    for condition in conditions:
        column, sep, value = condition.partition("=")
        if not sep or not column:
            raise ValueError(f"--where expects COL=VALUE, got '{condition}'")
        equals[column.strip()] = value.strip()
    return equals


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Render one chart per category label")
    parser.add_argument("--csv", help="CSV file to load (default: mpg sample)")
    parser.add_argument("--category", required=True, help="Category column")
    parser.add_argument("--kind", choices=sorted(FACTORIES), default="scatter")
    parser.add_argument("--x", help="x column (scatter, line)")
    parser.add_argument("--y", help="y column (scatter, line)")
    parser.add_argument("--group", help="Grouping column (boxplot)")
    parser.add_argument("--value", help="Value column (boxplot)")
    parser.add_argument("--color", help="Column mapped to color")
    parser.add_argument("--out", help="Output directory")
    parser.add_argument("--format", dest="image_format", help="Image format")
    parser.add_argument("--config", help="YAML config file")
    parser.add_argument("--fail-fast", action="store_true")
    parser.add_argument("--top-n", type=int, default=10, help="Bars in the ranked chart")
    parser.add_argument(
        "--where",
        action="append",
        default=[],
        metavar="COL=VALUE",
        help="Keep only rows where COL equals VALUE (repeatable)",
    )
    parser.add_argument(
        "--first-label-suffix", default="", help="Text after the top percentage of the ranked chart"
    )
    args = parser.parse_args(argv)

    try:
        args.where = parse_where(args.where)
    except ValueError as e:
        parser.error(str(e))

    if args.kind == "boxplot" and not (args.group and args.value):
        parser.error("--kind boxplot needs --group and --value")
    if args.kind != "boxplot" and not (args.x and args.y):
        parser.error(f"--kind {args.kind} needs --x and --y")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config = load_config(args.config)
    if args.out:
        config.output_dir = args.out
    if args.image_format:
        config.image_format = args.image_format

    print("\n" + "=" * 60)
    print("📊 Rendering category charts")
    print("=" * 60)

    try:
        dataset = (
            Dataset.from_csv(args.csv, categorical_threshold=config.categorical_threshold)
            if args.csv
            else Dataset.from_sample("mpg", categorical_threshold=config.categorical_threshold)
        )
        if args.where:
            dataset = dataset.where(**args.where)
    except ChartGenerationError as e:
        print(f"❌ {e}")
        return 1

    print(f"Loaded {dataset!r}")

    if args.kind == "boxplot":
        options = {"group": args.group, "value": args.value}
    else:
        options = {"x": args.x, "y": args.y, "color": args.color}

    renderer = ChartRenderer(config)
    try:
        result = plot_all_categories(
            dataset,
            args.category,
            FACTORIES[args.kind],
            fail_fast=args.fail_fast,
            config=config,
            save=True,
            renderer=renderer,
            **options,
        )
        ranked = RankedBarChartTemplate().generate(
            dataset,
            column=args.category,
            top_n=args.top_n,
            first_label_suffix=args.first_label_suffix,
        )
        ranked_path = renderer.save(
            ranked,
            Path(config.output_dir) / f"{args.category}_ranked.{config.image_format}",
        )
    except ChartGenerationError as e:
        print(f"❌ {e}")
        return 1

    for path in result.saved_paths:
        print(f"  ✅ {path}")
    print(f"  ✅ {ranked_path}")
    for label, error in result.failures.items():
        print(f"  ❌ {label}: {error}")

    print(f"\n{len(result)} chart(s) written, {len(result.failures)} failed")
    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
