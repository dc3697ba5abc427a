"""Guard clauses run by the plot factories before any chart is built."""

import re
from typing import Any, Dict, Iterable, List

from ..data_sources import ColumnKind, ColumnSchema, Dataset
from ..exceptions import ChartValidationError, ColumnTypeError, FlagTypeError
from ..visualization import SUPPORTED_FORMATS


def ensure_flag(value: Any, name: str) -> bool:
    """Require a real bool (1, "yes" and None are rejected)."""
    if not isinstance(value, bool):
        raise FlagTypeError(f"'{name}' must be True or False, got {value!r}")
    return value


def ensure_numeric(dataset: Dataset, column: str) -> ColumnSchema:
    """Require an existing numeric column."""
    schema = dataset.column_schema(column)
    if not schema.is_numeric:
        raise ColumnTypeError(
            f"Column '{column}' must be numeric but is {schema.kind.value}"
        )
    return schema


def ensure_continuous(dataset: Dataset, column: str) -> ColumnSchema:
    """Require a numeric or date/time column (e.g. for a line chart x axis)."""
    schema = dataset.column_schema(column)
    if schema.kind not in (ColumnKind.NUMERIC, ColumnKind.TEMPORAL):
        raise ColumnTypeError(
            f"Column '{column}' must be numeric or temporal but is {schema.kind.value}"
        )
    return schema


def ensure_categorical(dataset: Dataset, column: str) -> ColumnSchema:
    """Require a column usable for grouping: anything but high-cardinality numbers."""
    schema = dataset.column_schema(column)
    if schema.is_numeric and schema.unique_count > dataset.categorical_threshold:
        raise ColumnTypeError(
            f"Column '{column}' has {schema.unique_count} distinct numeric values "
            f"and cannot be used to group data"
        )
    return schema


def ensure_category(dataset: Dataset, column: str, label: Any) -> Dataset:
    """Require ``label`` to be a value of ``column``; returns the matching rows."""
    ensure_categorical(dataset, column)
    return dataset.subset(column, label)


def ensure_image_format(image_format: str) -> str:
    image_format = str(image_format).lower().lstrip(".")
    if image_format not in SUPPORTED_FORMATS:
        raise ChartValidationError(
            f"Unsupported image format '{image_format}'. "
            f"Expected one of: {', '.join(SUPPORTED_FORMATS)}"
        )
    return image_format


def slugify(label: Any) -> str:
    """File-name-safe version of a label: lowercase, runs of other characters -> '_'."""
    slug = re.sub(r"[^a-z0-9]+", "_", str(label).lower()).strip("_")
    return slug or "chart"


def ensure_unique_slugs(labels: Iterable[Any]) -> None:
    """Require distinct labels to map to distinct file names."""
    by_slug: Dict[str, List[str]] = {}
    for label in labels:
        names = by_slug.setdefault(slugify(label), [])
        if str(label) not in names:
            names.append(str(label))

    collisions = {slug: names for slug, names in by_slug.items() if len(names) > 1}
    if collisions:
        details = "; ".join(
            f"{', '.join(repr(n) for n in names)} -> '{slug}'"
            for slug, names in collisions.items()
        )
        raise ChartValidationError(f"Labels would be saved to the same file: {details}")
