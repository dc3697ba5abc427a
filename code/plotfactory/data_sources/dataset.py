"""
Tabular dataset wrapper for plotfactory.

A Dataset holds a pandas DataFrame together with a column schema that is
inferred once at load time. Charts look columns up through the schema, so
a misspelled or mistyped column fails with a descriptive error before any
plotting happens.
"""

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import pandas as pd
from pandas.api import types as ptypes

from ..exceptions import (
    ColumnTypeError,
    DatasetError,
    UnknownCategoryError,
    UnknownColumnError,
)

logger = logging.getLogger(__name__)

SAMPLE_DATASETS = {
    "mpg": "mpg.csv",
}

DerivedColumn = Callable[[pd.DataFrame], Any]


class ColumnKind(Enum):
    """Kinds of column a chart can reference."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    TEMPORAL = "temporal"
    BOOLEAN = "boolean"
    TEXT = "text"


@dataclass(frozen=True)
class ColumnSchema:
    """Schema information for a dataset column."""

    name: str
    kind: ColumnKind
    nullable: bool = True
    unique_count: int = 0

    @property
    def is_numeric(self) -> bool:
        return self.kind is ColumnKind.NUMERIC

    @property
    def is_discrete(self) -> bool:
        return self.kind in (ColumnKind.CATEGORICAL, ColumnKind.BOOLEAN, ColumnKind.TEXT)


class Dataset:
    """
    A read-only tabular dataset with a validated column schema.

    Derived fields are computed once at construction from callables
    instead of being resolved from expressions at plot time:

        ```python
        cars = Dataset.from_sample(
            "mpg",
            derived={"hwy_per_cyl": lambda df: df["hwy"] / df["cyl"]},
        )
        cars.numeric("hwy_per_cyl")
        ```
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        name: str = "data",
        derived: Optional[Dict[str, DerivedColumn]] = None,
        categorical_threshold: int = 50,
    ):
        """
        Initialize the dataset.

        Args:
            frame: Source DataFrame (copied, never modified)
            name: Display name used in log messages
            derived: Optional mapping of new column name to a function of the frame
            categorical_threshold: Max distinct values for a text column to count
                as categorical
        """
        if not isinstance(frame, pd.DataFrame):
            raise DatasetError(f"Expected a pandas DataFrame, got {type(frame).__name__}")

        self.name = name
        self.categorical_threshold = categorical_threshold
        self._frame = frame.copy()

        for column_name, func in (derived or {}).items():
            try:
                self._frame[column_name] = func(self._frame)
            except Exception as e:
                raise DatasetError(
                    f"Could not compute derived column '{column_name}': {e}"
                ) from e

        self._schema: Dict[str, ColumnSchema] = {
            str(col): self._infer_schema(str(col), self._frame[col])
            for col in self._frame.columns
        }

        logger.debug(
            "Dataset '%s' loaded with %d rows and %d columns",
            self.name,
            len(self._frame),
            len(self._schema),
        )

    @classmethod
    def from_dataframe(cls, frame: pd.DataFrame, name: str = "data", **kwargs) -> "Dataset":
        """Create a Dataset from a pandas DataFrame."""
        return cls(frame, name=name, **kwargs)

    @classmethod
    def from_csv(
        cls,
        csv_path: Union[str, Path],
        name: Optional[str] = None,
        derived: Optional[Dict[str, DerivedColumn]] = None,
        categorical_threshold: int = 50,
        **read_kwargs,
    ) -> "Dataset":
        """
        Create a Dataset from a CSV file.

        Args:
            csv_path: Path to the CSV file
            name: Dataset name (defaults to the file stem)
            derived: Optional derived columns
            categorical_threshold: See Dataset.__init__
            **read_kwargs: Passed through to pandas.read_csv

        Returns:
            Loaded Dataset
        """
        path = Path(csv_path)
        try:
            frame = pd.read_csv(path, **read_kwargs)
        except FileNotFoundError as e:
            raise DatasetError(f"Data file not found: {path}") from e
        except pd.errors.EmptyDataError as e:
            raise DatasetError(f"Data file is empty: {path}") from e

        if frame.empty:
            raise DatasetError(f"Data file has no rows: {path}")

        logger.info("Loaded %d rows from %s", len(frame), path)
        return cls(
            frame,
            name=name or path.stem,
            derived=derived,
            categorical_threshold=categorical_threshold,
        )

    @classmethod
    def from_sample(cls, sample: str = "mpg", **kwargs) -> "Dataset":
        """
        Load a sample dataset shipped with the package.

        Available samples: "mpg" (fuel economy of popular car models, 1999 and 2008).
        """
        file_name = SAMPLE_DATASETS.get(sample)
        if file_name is None:
            raise DatasetError(
                f"Unknown sample dataset '{sample}'. "
                f"Available: {', '.join(sorted(SAMPLE_DATASETS))}"
            )

        source = resources.files("plotfactory.data_sources").joinpath("samples", file_name)
        with resources.as_file(source) as path:
            return cls.from_csv(path, name=kwargs.pop("name", sample), **kwargs)

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def _infer_schema(self, name: str, series: pd.Series) -> ColumnSchema:
        """Infer the kind of a column from its dtype and cardinality."""
        unique_count = int(series.nunique(dropna=True))

        if ptypes.is_bool_dtype(series):
            kind = ColumnKind.BOOLEAN
        elif ptypes.is_numeric_dtype(series):
            kind = ColumnKind.NUMERIC
        elif ptypes.is_datetime64_any_dtype(series):
            kind = ColumnKind.TEMPORAL
        elif isinstance(series.dtype, pd.CategoricalDtype):
            kind = ColumnKind.CATEGORICAL
        elif unique_count <= self.categorical_threshold:
            kind = ColumnKind.CATEGORICAL
        else:
            kind = ColumnKind.TEXT

        return ColumnSchema(
            name=name,
            kind=kind,
            nullable=bool(series.isna().any()),
            unique_count=unique_count,
        )

    @property
    def schema(self) -> Dict[str, ColumnSchema]:
        return dict(self._schema)

    @property
    def columns(self) -> List[str]:
        return list(self._schema)

    @property
    def frame(self) -> pd.DataFrame:
        """A copy of the underlying DataFrame."""
        return self._frame.copy()

    def __len__(self) -> int:
        return len(self._frame)

    def __contains__(self, column: str) -> bool:
        return column in self._schema

    def __repr__(self) -> str:
        return f"Dataset(name={self.name!r}, rows={len(self)}, columns={len(self._schema)})"

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def column_schema(self, name: str) -> ColumnSchema:
        """Get the schema of a column, failing if it does not exist."""
        try:
            return self._schema[name]
        except KeyError:
            raise UnknownColumnError(
                f"Column '{name}' not found in dataset '{self.name}'. "
                f"Available columns: {', '.join(self.columns)}"
            ) from None

    def column(self, name: str) -> pd.Series:
        """Get a column by name."""
        self.column_schema(name)
        return self._frame[name].copy()

    def numeric(self, name: str) -> pd.Series:
        """Get a numeric column, failing if the column holds anything else."""
        schema = self.column_schema(name)
        if not schema.is_numeric:
            raise ColumnTypeError(
                f"Column '{name}' must be numeric but is {schema.kind.value}"
            )
        return self._frame[name].copy()

    def categories(self, name: str) -> List[str]:
        """Sorted distinct non-null values of a column, as strings."""
        values = self._label_values(name).dropna().unique()
        return sorted(values)

    def has_category(self, name: str, label: Any) -> bool:
        return str(label) in set(self._label_values(name).dropna())

    def _label_values(self, name: str) -> pd.Series:
        column = self.column(name)
        labels = column.astype(str)
        return labels.where(column.notna())

    # ------------------------------------------------------------------
    # Row selection
    # ------------------------------------------------------------------

    def subset(self, column: str, label: Any) -> "Dataset":
        """
        Rows whose ``column`` value equals ``label`` (compared as strings).

        Raises:
            UnknownCategoryError: If the label does not occur in the column.
        """
        if not self.has_category(column, label):
            raise UnknownCategoryError(
                f"'{label}' is not a value of column '{column}'. "
                f"Valid values: {', '.join(self.categories(column))}"
            )

        mask = self._label_values(column) == str(label)
        return self._child(self._frame[mask], f"{self.name}[{column}={label}]")

    def where(self, **equals: Any) -> "Dataset":
        """Rows matching every ``column=value`` pair (values compared as strings)."""
        frame = self._frame
        for column, value in equals.items():
            labels = self._label_values(column)
            frame = frame[labels.loc[frame.index] == str(value)]
        return self._child(frame, self.name)

    def _child(self, frame: pd.DataFrame, name: str) -> "Dataset":
        return Dataset(
            frame.reset_index(drop=True),
            name=name,
            categorical_threshold=self.categorical_threshold,
        )

    def fingerprint(self) -> str:
        """Stable content hash of the data, used to compare chart descriptions."""
        return frame_fingerprint(self._frame)


def frame_fingerprint(frame: pd.DataFrame) -> str:
    """Content hash of a DataFrame (values, index and column names)."""
    hashed = pd.util.hash_pandas_object(frame, index=True).values
    digest = hashlib.sha1(hashed.tobytes())
    digest.update(",".join(str(c) for c in frame.columns).encode("utf-8"))
    return digest.hexdigest()
