"""Data models for the migrator."""

from .mapping import (
    MISSING,
    TargetField,
    TargetPatch,
    RenameMapping,
    LiteralMapping,
    ResolverMapping,
    FieldMapping,
    MappingSpec,
    as_field_mapping,
    compile_mapping,
    normalize_patch,
    merge_patches,
)
from .options import (
    MigrationOptions,
    CancellationToken,
)
from .progress import (
    MigrationOutcome,
    MigrationProgress,
)

__all__ = [
    "MISSING",
    "TargetField",
    "TargetPatch",
    "RenameMapping",
    "LiteralMapping",
    "ResolverMapping",
    "FieldMapping",
    "MappingSpec",
    "as_field_mapping",
    "compile_mapping",
    "normalize_patch",
    "merge_patches",
    "MigrationOptions",
    "CancellationToken",
    "MigrationOutcome",
    "MigrationProgress",
]
