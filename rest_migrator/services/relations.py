"""Persistence of related records referenced by a target field."""

import logging
from typing import Any, Awaitable, Callable

from ..errors import RelationError
from ..models.mapping import TargetField
from ..models.progress import MigrationProgress

logger = logging.getLogger(__name__)

# Returned by persist() when the field must be left out of the record
OMIT = object()

Emitter = Callable[[str, MigrationProgress], Awaitable[None]]


def store_label(factory: Any) -> str:
    return getattr(factory, "__name__", type(factory).__name__)


class RelationPersister:
    """
    Saves related sub-records and hands back their foreign keys.

    A new store instance is created for every relation occurrence; identical
    sub-records are not deduplicated here. Each attempt is reported on the
    event bus: ``save`` on success, ``error`` on failure.
    """

    def __init__(self, emit: Emitter):
        """
        Initialize the persister.

        Args:
            emit: Coroutine function taking an event name and a progress
        """
        self.emit = emit

    async def persist(
        self,
        field: str,
        descriptor: TargetField,
        parent: MigrationProgress
    ) -> Any:
        """
        Save ``descriptor.value`` through its related store.

        Args:
            field: Target field holding the relation
            descriptor: Descriptor with ``related_store`` set
            parent: Progress of the record being migrated

        Returns:
            The related record's ``index_key`` value, or OMIT on failure
        """
        value = descriptor.value
        progress = MigrationProgress(
            index=parent.index,
            batch_ordinal=parent.batch_ordinal,
            source_item=parent.source_item,
            mapped_data=dict(value) if isinstance(value, dict) else {field: value},
            field=field,
            store=store_label(descriptor.related_store),
        )

        try:
            store = descriptor.related_store()
            progress.store = store.name
            record = await store.upsert(value)

            key = store.key_of(record)
            if key is None:
                raise ValueError(f"saved record has no '{store.index_key}' field")
        except Exception as e:
            progress.error = RelationError(field, progress.store, e)
            logger.warning(f"Record {parent.index}: dropping field '{field}': {progress.error}")
            await self.emit("error", progress)
            return OMIT

        progress.target_item = record
        await self.emit("save", progress)
        return key
