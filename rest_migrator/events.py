"""Event buses observing a migration."""

import dataclasses
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models.progress import MigrationProgress

logger = logging.getLogger(__name__)


class EventBus(ABC):
    """
    Observer of a migration.

    Each record ends in exactly one of ``save``, ``skip`` or ``error``;
    related records report through ``save`` and ``error`` as well, with
    ``progress.field`` set. Implementations may be sync or async and must
    not raise.
    """

    @abstractmethod
    async def save(self, progress: MigrationProgress) -> None:
        pass

    @abstractmethod
    async def skip(self, progress: MigrationProgress) -> None:
        pass

    @abstractmethod
    async def error(self, progress: MigrationProgress) -> None:
        pass


def _as_rows(data: Any) -> Dict[str, Any]:
    if isinstance(data, dict):
        return data
    if dataclasses.is_dataclass(data) and not isinstance(data, type):
        return dataclasses.asdict(data)
    if hasattr(data, "__dict__"):
        return vars(data)
    return {"value": data}


def _label(progress: MigrationProgress) -> str:
    if progress.is_relation:
        return f"No.{progress.index} '{progress.field}' -> {progress.store}"
    return f"No.{progress.index}"


class ConsoleLogger(EventBus):
    """
    Default event bus: prints source, mapped and target data as tables.

    Every event also produces one log line. Rendering problems are logged
    and never raised.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def _table(self, title: str, data: Any) -> Table:
        table = Table(title=title, title_justify="left")
        table.add_column("Field", style="cyan")
        table.add_column("Value")

        for key, value in _as_rows(data).items():
            table.add_row(Text(str(key)), Text(repr(value)))

        return table

    def _render(self, progress: MigrationProgress, include_target: bool = False) -> None:
        try:
            self.console.print(self._table("Source", progress.source_item))
            self.console.print(self._table("Mapped", progress.mapped_data))
            if include_target:
                self.console.print(self._table("Target", progress.target_item))
        except Exception as e:
            logger.warning(f"Failed to render {_label(progress)}: {e}")

    async def save(self, progress: MigrationProgress) -> None:
        logger.info(f"saved {_label(progress)}")
        self._render(progress, include_target=True)

    async def skip(self, progress: MigrationProgress) -> None:
        logger.warning(f"skipped {_label(progress)}: {progress.error}")
        self._render(progress)

    async def error(self, progress: MigrationProgress) -> None:
        logger.error(f"error at {_label(progress)}: {progress.error}")
        self._render(progress)


class ProgressTracker(EventBus):
    """Counts outcomes of a migration run."""

    def __init__(self):
        self.saved = 0
        self.skipped = 0
        self.errored = 0
        self.relations_saved = 0
        self.relations_failed = 0
        self.errors: List[Dict[str, Any]] = []

    @property
    def processed(self) -> int:
        return self.saved + self.skipped + self.errored

    async def save(self, progress: MigrationProgress) -> None:
        if progress.is_relation:
            self.relations_saved += 1
        else:
            self.saved += 1

    async def skip(self, progress: MigrationProgress) -> None:
        self.skipped += 1

    async def error(self, progress: MigrationProgress) -> None:
        if progress.is_relation:
            self.relations_failed += 1
        else:
            self.errored += 1

        self.errors.append({
            "index": progress.index,
            "field": progress.field,
            "error": str(progress.error),
        })

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "processed": self.processed,
            "saved": self.saved,
            "skipped": self.skipped,
            "errored": self.errored,
            "relations_saved": self.relations_saved,
            "relations_failed": self.relations_failed,
            "errors": self.errors,
        }


class MultiEventBus(EventBus):
    """Forwards every event to several buses, in order."""

    def __init__(self, *buses: Any):
        self.buses = list(buses)

    async def _dispatch(self, name: str, progress: MigrationProgress) -> None:
        for bus in self.buses:
            result = getattr(bus, name)(progress)
            if inspect.isawaitable(result):
                await result

    async def save(self, progress: MigrationProgress) -> None:
        await self._dispatch("save", progress)

    async def skip(self, progress: MigrationProgress) -> None:
        await self._dispatch("skip", progress)

    async def error(self, progress: MigrationProgress) -> None:
        await self._dispatch("error", progress)
