"""
Data Sources module for plotfactory.

This module provides the tabular dataset wrapper charts are built from.
"""

from .dataset import (
    SAMPLE_DATASETS,
    ColumnKind,
    ColumnSchema,
    Dataset,
    frame_fingerprint,
)

__all__ = [
    "Dataset",
    "frame_fingerprint",
    "ColumnKind",
    "ColumnSchema",
    "SAMPLE_DATASETS",
]
