"""Service layer for the migrator."""

from .resolver import FieldResolver
from .guard import UniquenessGuard
from .relations import RelationPersister, OMIT

__all__ = [
    "FieldResolver",
    "UniquenessGuard",
    "RelationPersister",
    "OMIT",
]
