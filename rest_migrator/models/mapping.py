"""Mapping models: how source fields become target fields."""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, Optional, Union


class _Missing:
    """Marker for a descriptor whose value was not given."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

DESCRIPTOR_KEYS = frozenset({"value", "unique", "related_store", "model"})


@dataclass
class TargetField:
    """
    Descriptor of one target field in a patch.

    Attributes:
        value: Value to write; MISSING means the declaring source field's raw value
        unique: Skip the record when the primary store already holds this value
        related_store: Store factory; the value is saved there and replaced by its key
    """
    value: Any = MISSING
    unique: bool = False
    related_store: Optional[Callable[[], Any]] = None

    def __post_init__(self):
        if self.unique and self.related_store is not None:
            raise ValueError("A target field cannot be both unique and related")

    @property
    def has_value(self) -> bool:
        return self.value is not MISSING

    def with_value(self, value: Any) -> "TargetField":
        return replace(self, value=value)

    @classmethod
    def from_value(cls, descriptor: Any) -> "TargetField":
        """
        Build a descriptor from what a mapping produced.

        Dicts made only of descriptor keys are read as descriptors (``model``
        is accepted as an alias of ``related_store``); anything else is taken
        as a plain value.
        """
        if isinstance(descriptor, TargetField):
            return descriptor

        if isinstance(descriptor, dict) and descriptor and set(descriptor) <= DESCRIPTOR_KEYS:
            if "model" in descriptor and "related_store" in descriptor:
                raise ValueError("Use either 'model' or 'related_store', not both")
            return cls(
                value=descriptor.get("value", MISSING),
                unique=bool(descriptor.get("unique", False)),
                related_store=descriptor.get("related_store", descriptor.get("model")),
            )

        return cls(value=descriptor)


TargetPatch = Dict[str, TargetField]


@dataclass(frozen=True)
class RenameMapping:
    """Copy the source field's value into ``target`` unchanged."""
    target: str


@dataclass(frozen=True)
class LiteralMapping:
    """A fixed set of target descriptors."""
    patch: Dict[str, Any]


@dataclass(frozen=True)
class ResolverMapping:
    """A function of the whole source record returning a patch (sync or async)."""
    func: Callable[[Any], Any]


FieldMapping = Union[RenameMapping, LiteralMapping, ResolverMapping]

# Source field name -> str | dict | callable | FieldMapping, in declaration order
MappingSpec = Dict[str, Any]


def as_field_mapping(mapping: Any) -> FieldMapping:
    """Coerce a user-supplied mapping entry into one of the mapping shapes."""
    if isinstance(mapping, (RenameMapping, LiteralMapping, ResolverMapping)):
        return mapping
    if isinstance(mapping, str):
        return RenameMapping(mapping)
    if isinstance(mapping, dict):
        return LiteralMapping(dict(mapping))
    if callable(mapping):
        return ResolverMapping(mapping)

    raise TypeError(f"Unsupported mapping type: {type(mapping).__name__}")


def compile_mapping(spec: MappingSpec) -> Dict[str, FieldMapping]:
    """Coerce every entry of a mapping spec, keeping declaration order."""
    compiled = {}
    for source_field, mapping in spec.items():
        try:
            compiled[source_field] = as_field_mapping(mapping)
        except TypeError as e:
            raise TypeError(f"Invalid mapping for field '{source_field}': {e}") from e
    return compiled


def normalize_patch(raw: Any) -> TargetPatch:
    """Turn a raw patch dict into target descriptors."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise TypeError(f"Expected a dict of target fields, got {type(raw).__name__}")

    return {str(key): TargetField.from_value(value) for key, value in raw.items()}


def merge_patches(patches: Iterable[TargetPatch]) -> TargetPatch:
    """Union of patches; later patches win on key collision."""
    merged: TargetPatch = {}
    for patch in patches:
        merged.update(patch)
    return merged
