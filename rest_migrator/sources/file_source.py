"""CSV/JSON file source factories."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

from .base import SourceFactory

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def infer_type(value: Optional[str]) -> Union[str, int, float, bool, None]:
    """Infer the type of a CSV cell."""
    if value is None:
        return None

    value = value.strip()
    if value.lower() in ("", "null", "none", "n/a", "na"):
        return None

    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    try:
        if "." not in value:
            return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def csv_source(
    path: PathLike,
    column_mapping: Optional[Dict[str, str]] = None,
    encoding: str = "utf-8",
    delimiter: str = ",",
    infer_types: bool = False
) -> SourceFactory:
    """
    Source factory reading rows of a CSV file with a header line.

    Args:
        path: CSV file
        column_mapping: Optional renaming of CSV columns
        encoding: File encoding
        delimiter: CSV delimiter character
        infer_types: Convert numeric / boolean / empty cells (otherwise cells are stripped strings)

    Returns:
        Factory returning a lazy iterator of row dicts
    """
    path = Path(path)
    column_mapping = column_mapping or {}

    def read_rows() -> Iterator[Dict[str, Any]]:
        logger.info(f"Reading CSV source: {path}")

        with open(path, "r", encoding=encoding, newline="") as f:
            reader = csv.DictReader(f, delimiter=delimiter)

            for row in reader:
                data = {}
                for column, value in row.items():
                    if column is None:
                        continue
                    field_name = column_mapping.get(column, column)
                    if infer_types:
                        data[field_name] = infer_type(value)
                    else:
                        data[field_name] = value.strip() if value is not None else None

                # Skip empty rows
                if all(v in (None, "") for v in data.values()):
                    continue

                yield data

    return read_rows


def json_source(path: PathLike, encoding: str = "utf-8") -> SourceFactory:
    """
    Source factory reading a JSON file.

    The file may hold a list of objects, an object wrapping the list under
    ``data`` / ``records`` / ``items`` / ``results``, or a single object.
    ``.jsonl`` files are read one object per line.
    """
    path = Path(path)

    def read_items() -> Iterator[Any]:
        logger.info(f"Reading JSON source: {path}")

        if path.suffix.lower() == ".jsonl":
            with open(path, "r", encoding=encoding) as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield json.loads(line)
                    except json.JSONDecodeError as e:
                        raise ValueError(f"Invalid JSON on line {line_num} of {path}: {e}") from e
            return

        with open(path, "r", encoding=encoding) as f:
            data = json.load(f)

        if isinstance(data, list):
            yield from data
        elif isinstance(data, dict):
            for key in ("data", "records", "items", "results"):
                if isinstance(data.get(key), list):
                    yield from data[key]
                    break
            else:
                yield data
        else:
            raise ValueError(f"Unexpected JSON structure in {path}")

    return read_items
