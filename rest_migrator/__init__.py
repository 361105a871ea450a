"""
REST Migrator

A record-level ETL engine: pulls records from any ordered source, remaps
their fields with a declarative mapping spec and writes them through a
pluggable list-model store, reporting every outcome to an event bus.

Supports:
- Rename, literal and resolver (sync or async) field mappings
- One-to-many and many-to-one field combinations
- Uniqueness checks that skip already-migrated records
- Related records saved in their own store, linked by foreign key
- Dry runs and windowed concurrency
"""

from .errors import (
    MigrationError,
    DuplicateError,
    MappingError,
    RelationError,
    PersistenceError,
    NotFoundError,
    classify,
)
from .events import EventBus, ConsoleLogger, ProgressTracker, MultiEventBus
from .migrator import RestMigrator, migrate_all
from .models import (
    TargetField,
    MigrationOptions,
    CancellationToken,
    MigrationOutcome,
    MigrationProgress,
)
from .sources import csv_source, json_source, from_items
from .stores import ListModel, Page, YAMLListModel, RESTListModel

__version__ = "0.1.0"

__all__ = [
    "MigrationError",
    "DuplicateError",
    "MappingError",
    "RelationError",
    "PersistenceError",
    "NotFoundError",
    "classify",
    "EventBus",
    "ConsoleLogger",
    "ProgressTracker",
    "MultiEventBus",
    "RestMigrator",
    "migrate_all",
    "TargetField",
    "MigrationOptions",
    "CancellationToken",
    "MigrationOutcome",
    "MigrationProgress",
    "csv_source",
    "json_source",
    "from_items",
    "ListModel",
    "Page",
    "YAMLListModel",
    "RESTListModel",
]
