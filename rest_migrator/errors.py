"""Error taxonomy for migrations.

Every error kind carries the outcome it maps to, so the engine can classify
a failure by reading that tag instead of inspecting the exception hierarchy.
Only :class:`DuplicateError` leads to a skip.
"""

from typing import Any, Optional

from .models.progress import MigrationOutcome


class MigrationError(Exception):
    """Base class for errors raised while migrating a record."""
    outcome = MigrationOutcome.ERRORED


class DuplicateError(MigrationError):
    """A unique target field already holds this value in the primary store."""
    outcome = MigrationOutcome.SKIPPED

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Duplicate value for '{field}': {value!r}")


class MappingError(MigrationError):
    """A field mapping could not be resolved against the source record."""

    def __init__(self, source_field: str, cause: BaseException):
        self.source_field = source_field
        self.cause = cause
        super().__init__(f"Failed to map field '{source_field}': {cause}")


class RelationError(MigrationError):
    """A related record could not be persisted."""

    def __init__(self, field: str, store: str, cause: BaseException):
        self.field = field
        self.store = store
        self.cause = cause
        super().__init__(f"Failed to save '{field}' into {store}: {cause}")


class PersistenceError(MigrationError):
    """The primary store failed to read or write a record."""

    def __init__(self, store: str, cause: BaseException):
        self.store = store
        self.cause = cause
        super().__init__(f"{store} failed: {cause}")


class NotFoundError(MigrationError):
    """A store has no record under the requested id."""

    def __init__(self, store: str, id: Any):
        self.store = store
        self.id = id
        super().__init__(f"Item with ID {id} is not found in {store}.")


def classify(error: Optional[BaseException]) -> MigrationOutcome:
    """Map a failure to the outcome it reports as."""
    if error is None:
        return MigrationOutcome.SAVED
    outcome = getattr(error, "outcome", None)
    if isinstance(outcome, MigrationOutcome):
        return outcome
    return MigrationOutcome.ERRORED
