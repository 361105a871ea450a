"""Progress models emitted to event buses during a migration."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum


class MigrationOutcome(str, Enum):
    """Terminal state of one record (or one relation) attempt."""
    SAVED = "saved"
    SKIPPED = "skipped"
    ERRORED = "errored"


@dataclass
class MigrationProgress:
    """
    One attempt to migrate a source record.

    Relation attempts reuse the parent's index and source item; they are
    told apart by ``field`` and ``store`` being set.
    """
    index: int
    source_item: Any
    mapped_data: Dict[str, Any] = field(default_factory=dict)
    target_item: Optional[Any] = None
    error: Optional[BaseException] = None
    batch_ordinal: Optional[int] = None
    field: Optional[str] = None  # Target field, for relation attempts
    store: Optional[str] = None  # Related store name, for relation attempts

    @property
    def is_relation(self) -> bool:
        return self.field is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "index": self.index,
            "batch_ordinal": self.batch_ordinal,
            "source_item": self.source_item,
            "mapped_data": self.mapped_data,
            "target_item": self.target_item,
            "error": str(self.error) if self.error else None,
            "field": self.field,
            "store": self.store,
        }
