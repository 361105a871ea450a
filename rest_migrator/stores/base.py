"""Base list-model interface for target stores."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass
class Page:
    """One page of a store query."""
    page_data: List[Dict[str, Any]] = field(default_factory=list)
    total_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_data": self.page_data,
            "total_count": self.total_count,
        }


class ListModel(ABC):
    """
    Base class for target stores.

    A list model is a paginated collection of records keyed by
    ``index_key``. The migrator only needs ``query_page`` (for uniqueness
    checks) and ``upsert`` (for writes); ``get_one`` is used by stores that
    merge updates into existing records.
    """

    index_key: str = "id"

    @property
    def name(self) -> str:
        """Name used in logs and relation events."""
        return type(self).__name__

    @abstractmethod
    async def query_page(
        self,
        page_index: int,
        page_size: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> Page:
        """
        Load one page of records matching ``filter`` exactly.

        Args:
            page_index: 1-based page number
            page_size: Records per page
            filter: Field -> value pairs every returned record must match

        Returns:
            Page of records with the total number of matches
        """
        pass

    @abstractmethod
    async def get_one(self, id: Any) -> Dict[str, Any]:
        """
        Get a single record.

        Raises:
            NotFoundError: If no record has this id
        """
        pass

    @abstractmethod
    async def upsert(self, data: Dict[str, Any], id: Any = None) -> Dict[str, Any]:
        """
        Create a record, or merge ``data`` into record ``id`` when given.

        Returns:
            The full persisted record, including its ``index_key`` field
        """
        pass

    async def get_list(
        self,
        filter: Optional[Dict[str, Any]] = None,
        page_index: int = 1,
        page_size: int = 10
    ) -> List[Dict[str, Any]]:
        """Load one page and return only its records."""
        page = await self.query_page(page_index, page_size, filter or {})
        return page.page_data

    def key_of(self, record: Dict[str, Any]) -> Any:
        """Get the index value of a persisted record."""
        if isinstance(record, dict):
            return record.get(self.index_key)
        return getattr(record, self.index_key, None)


# A ListModel subclass, or any zero-argument callable returning a ListModel
StoreFactory = Callable[[], ListModel]


def matches(record: Dict[str, Any], filter: Optional[Dict[str, Any]]) -> bool:
    """Exact-match filter used by the file-backed stores."""
    if not filter:
        return True
    return all(record.get(key) == value for key, value in filter.items())


def paginate(records: List[Dict[str, Any]], page_index: int, page_size: int) -> Page:
    """Slice a filtered record list into a 1-based page."""
    start = (page_index - 1) * page_size
    return Page(page_data=records[start:start + page_size], total_count=len(records))
