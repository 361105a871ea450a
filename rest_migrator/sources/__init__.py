"""Source suppliers for migrations."""

from .base import SourceFactory, open_source, from_items
from .file_source import csv_source, json_source, infer_type

__all__ = [
    "SourceFactory",
    "open_source",
    "from_items",
    "csv_source",
    "json_source",
    "infer_type",
]
