"""Run options for a migration."""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class MigrationOptions(BaseModel):
    """Options accepted by ``RestMigrator.boot``."""
    dry_run: bool = False
    concurrency: int = Field(default=1, ge=1)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MigrationOptions":
        """Create from dictionary representation (``dryRun`` is accepted too)."""
        data = dict(data or {})
        if "dryRun" in data:
            data.setdefault("dry_run", data.pop("dryRun"))
        return cls(**data)

    @classmethod
    def from_env(cls, prefix: str = "MIGRATOR_") -> "MigrationOptions":
        """Read ``<prefix>DRY_RUN`` and ``<prefix>CONCURRENCY`` from the environment."""
        data: Dict[str, Any] = {}

        dry_run = os.environ.get(f"{prefix}DRY_RUN")
        if dry_run is not None:
            data["dry_run"] = dry_run.strip().lower() in ("1", "true", "yes", "on")

        concurrency = os.environ.get(f"{prefix}CONCURRENCY")
        if concurrency:
            data["concurrency"] = int(concurrency)

        return cls(**data)

    @classmethod
    def coerce(cls, options: Any) -> "MigrationOptions":
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, dict):
            return cls.from_dict(options)
        raise TypeError(f"Unsupported options type: {type(options).__name__}")


class CancellationToken:
    """
    Stops a running migration from drawing more source records.

    Records already drawn in the current window still run to completion.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled
