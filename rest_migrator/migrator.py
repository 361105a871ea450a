"""Migration engine - pulls source records, maps them and writes them to a store."""

import asyncio
import inspect
import logging
from typing import Any, AsyncIterator, List, Optional, Tuple

from .errors import MappingError, MigrationError, PersistenceError, classify
from .events import ConsoleLogger
from .models.mapping import MappingSpec, TargetPatch, compile_mapping, merge_patches
from .models.options import CancellationToken, MigrationOptions
from .models.progress import MigrationOutcome, MigrationProgress
from .services.guard import UniquenessGuard
from .services.relations import OMIT, RelationPersister
from .services.resolver import FieldResolver
from .sources.base import SourceFactory, open_source
from .stores.base import ListModel, StoreFactory

logger = logging.getLogger(__name__)


class _Run:
    """Per-boot state shared by every record of the run."""

    def __init__(
        self,
        store: ListModel,
        options: MigrationOptions,
        relations: RelationPersister
    ):
        self.store = store
        self.options = options
        self.guard = UniquenessGuard(store)
        self.relations = relations
        self.counts = {outcome: 0 for outcome in MigrationOutcome}


class RestMigrator:
    """
    Migrates records from a source into a list-model store.

    Handles:
    - Resolving the mapping spec against each source record
    - Uniqueness checks on the primary store (duplicates are skipped)
    - Saving related records and substituting their keys
    - Writing the mapped record (unless dry-running)
    - Reporting every outcome to the event bus

    Only saved records are yielded by :meth:`boot`; skips and errors go to
    the event bus alone.
    """

    def __init__(
        self,
        source: SourceFactory,
        target_model: StoreFactory,
        mapping: MappingSpec,
        event_bus: Optional[Any] = None,
        source_options: Optional[Any] = None
    ):
        """
        Initialize the migrator.

        Args:
            source: Factory returning a sync or async iterable of source records
            target_model: Factory of the primary store (a ListModel subclass works)
            mapping: Source field -> target field name, literal patch or resolver
            event_bus: Observer with save/skip/error (defaults to ConsoleLogger)
            source_options: Single argument passed to the source factory
        """
        self.source = source
        self.target_model = target_model
        self.mapping = compile_mapping(mapping)
        self.event_bus = event_bus if event_bus is not None else ConsoleLogger()
        self.source_options = source_options
        self.resolver = FieldResolver()

    async def boot(
        self,
        options: Optional[Any] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> AsyncIterator[Any]:
        """
        Run the migration.

        Args:
            options: MigrationOptions or dict (``dry_run``, ``concurrency``)
            cancel_token: Stops drawing further source records once cancelled

        Yields:
            Each persisted target record (the mapped data when dry-running)
        """
        options = MigrationOptions.coerce(options)
        cancel_token = cancel_token or CancellationToken()
        run = _Run(self.target_model(), options, RelationPersister(self._emit))

        logger.info(
            f"Migrating into {run.store.name} "
            f"(dry_run={options.dry_run}, concurrency={options.concurrency})"
        )

        source = open_source(self.source, self.source_options)
        index = 0
        batch_ordinal = 0
        pending: List[asyncio.Future] = []
        source_error: Optional[Exception] = None

        try:
            while not cancel_token.cancelled and source_error is None:
                window = []
                while len(window) < options.concurrency and not cancel_token.cancelled:
                    try:
                        item = await source.__anext__()
                    except StopAsyncIteration:
                        break
                    except Exception as e:
                        # Raised once the records already drawn are reported
                        source_error = e
                        break
                    index += 1
                    window.append((index, item))

                if not window:
                    break

                batch_ordinal += 1
                pending = [
                    asyncio.ensure_future(self._migrate(run, i, batch_ordinal, item))
                    for i, item in window
                ]

                for finished in asyncio.as_completed(pending):
                    progress, outcome = await finished
                    if outcome is MigrationOutcome.SAVED:
                        yield progress.target_item

                pending = []

                if len(window) < options.concurrency:
                    break

            if source_error is not None:
                raise source_error
        finally:
            # Records already drawn run to completion even when iteration stops early
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            await source.aclose()

            logger.info(
                f"Migration into {run.store.name} finished: {index} drawn, "
                f"{run.counts[MigrationOutcome.SAVED]} saved, "
                f"{run.counts[MigrationOutcome.SKIPPED]} skipped, "
                f"{run.counts[MigrationOutcome.ERRORED]} errored"
            )

    async def _migrate(
        self,
        run: _Run,
        index: int,
        batch_ordinal: int,
        item: Any
    ) -> Tuple[MigrationProgress, MigrationOutcome]:
        """Migrate one record and report its outcome."""
        progress = MigrationProgress(index=index, batch_ordinal=batch_ordinal, source_item=item)

        try:
            progress.target_item = await self._process(run, progress)
        except Exception as e:
            progress.error = e

        outcome = classify(progress.error)
        run.counts[outcome] += 1

        if outcome is MigrationOutcome.SAVED:
            await self._emit("save", progress)
        elif outcome is MigrationOutcome.SKIPPED:
            logger.debug(f"Record {index} skipped: {progress.error}")
            await self._emit("skip", progress)
        else:
            logger.debug(f"Record {index} failed: {progress.error}")
            await self._emit("error", progress)

        return progress, outcome

    async def _process(self, run: _Run, progress: MigrationProgress) -> Any:
        """Build the target record for one source record and persist it."""
        patch = await self._resolve(progress)
        mapped = progress.mapped_data

        for key, descriptor in patch.items():
            value = descriptor.value

            if value is None:
                mapped.pop(key, None)
                continue

            if descriptor.unique:
                await run.guard.check(key, value)
            elif descriptor.related_store is not None and not run.options.dry_run:
                value = await run.relations.persist(key, descriptor, progress)
                if value is OMIT:
                    mapped.pop(key, None)
                    continue

            mapped[key] = value

        if run.options.dry_run:
            return dict(mapped)

        try:
            return await run.store.upsert(dict(mapped))
        except MigrationError:
            raise
        except Exception as e:
            raise PersistenceError(run.store.name, e) from e

    async def _resolve(self, progress: MigrationProgress) -> TargetPatch:
        """Resolve every mapping in declaration order; later fields win."""
        patch: TargetPatch = {}

        for source_field, mapping in self.mapping.items():
            try:
                field_patch = await self.resolver.resolve(source_field, mapping, progress.source_item)
            except Exception as e:
                raise MappingError(source_field, e) from e

            patch = merge_patches([patch, field_patch])
            for key, descriptor in field_patch.items():
                if descriptor.value is None:
                    progress.mapped_data.pop(key, None)
                else:
                    progress.mapped_data[key] = descriptor.value

        return patch

    async def _emit(self, name: str, progress: MigrationProgress) -> None:
        result = getattr(self.event_bus, name)(progress)
        if inspect.isawaitable(result):
            await result


async def migrate_all(migrator: RestMigrator, options: Optional[Any] = None) -> List[Any]:
    """Run a migration to the end and collect the saved records."""
    return [record async for record in migrator.boot(options)]
