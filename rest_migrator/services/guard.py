"""Uniqueness checks against the primary store."""

import logging
from typing import Any

from ..errors import DuplicateError, MigrationError, PersistenceError
from ..stores.base import ListModel

logger = logging.getLogger(__name__)


class UniquenessGuard:
    """Rejects values that already exist in the primary store."""

    def __init__(self, store: ListModel):
        self.store = store

    async def check(self, field: str, value: Any) -> None:
        """
        Look for a record holding ``value`` in ``field``.

        Raises:
            DuplicateError: If such a record exists
            PersistenceError: If the store query fails
        """
        try:
            page = await self.store.query_page(1, 1, {field: value})
        except MigrationError:
            raise
        except Exception as e:
            raise PersistenceError(self.store.name, e) from e

        if page.page_data:
            logger.debug(f"{self.store.name} already has {field}={value!r}")
            raise DuplicateError(field, value)
