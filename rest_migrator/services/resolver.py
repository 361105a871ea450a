"""Field resolution: one mapping entry against one source record."""

import inspect
from collections.abc import Mapping
from typing import Any

from ..models.mapping import (
    FieldMapping,
    LiteralMapping,
    RenameMapping,
    ResolverMapping,
    TargetField,
    TargetPatch,
    normalize_patch,
)


def read_field(source: Any, name: str) -> Any:
    """Read a field from a mapping-like or attribute-style record; missing reads as None."""
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


class FieldResolver:
    """
    Resolves field mappings into target patches.

    - Rename: copies the source field's raw value under the new name
    - Resolver: calls the function with the whole record, awaiting if needed
    - Literal: uses the patch as given

    Descriptors without a value get the declaring source field's raw value.
    Errors raised by resolver functions propagate to the caller.
    """

    async def resolve(
        self,
        source_field: str,
        mapping: FieldMapping,
        source: Any
    ) -> TargetPatch:
        """
        Resolve one mapping entry.

        Args:
            source_field: Source field the mapping is declared under
            mapping: Mapping shape to evaluate
            source: Source record (read-only)

        Returns:
            Target patch with every descriptor holding a value
        """
        raw_value = read_field(source, source_field)

        if isinstance(mapping, RenameMapping):
            return {mapping.target: TargetField(value=raw_value)}

        if isinstance(mapping, ResolverMapping):
            result = mapping.func(source)
            if inspect.isawaitable(result):
                result = await result
            patch = normalize_patch(result)
        elif isinstance(mapping, LiteralMapping):
            patch = normalize_patch(mapping.patch)
        else:
            raise TypeError(f"Unsupported mapping type: {type(mapping).__name__}")

        return {
            key: descriptor if descriptor.has_value else descriptor.with_value(raw_value)
            for key, descriptor in patch.items()
        }
