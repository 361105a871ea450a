"""YAML file-backed list model."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .base import ListModel, Page, matches, paginate
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


class YAMLListModel(ListModel):
    """
    List model that keeps its records in a YAML file.

    The file holds a YAML sequence of mappings. It is read once on
    construction (and created when missing); new records are appended to
    it, updates rewrite it. Records created without an index value get the
    next integer id.

    Subclass it with a fixed path to use it as a store factory::

        class ArticleFile(YAMLListModel):
            def __init__(self):
                super().__init__("data/articles.yml")
    """

    def __init__(
        self,
        path: Union[str, Path],
        index_key: Optional[str] = None,
        encoding: str = "utf-8"
    ):
        """
        Initialize the list model.

        Args:
            path: YAML file to read and write
            index_key: Field identifying records (defaults to ``id``)
            encoding: File encoding
        """
        self.path = Path(path)
        self.encoding = encoding
        if index_key:
            self.index_key = index_key

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.touch(exist_ok=True)
        self._items: List[Dict[str, Any]] = self._load()

    @property
    def name(self) -> str:
        return f"{type(self).__name__}({self.path.name})"

    def _load(self) -> List[Dict[str, Any]]:
        with open(self.path, encoding=self.encoding) as f:
            data = yaml.safe_load(f)

        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"{self.path} must contain a YAML list, got {type(data).__name__}")

        logger.debug(f"Loaded {len(data)} records from {self.path}")
        return data

    def _dump(self, items: List[Dict[str, Any]]) -> None:
        # File is left untouched when serialization fails
        text = yaml.safe_dump(items, allow_unicode=True, sort_keys=False)
        with open(self.path, "w", encoding=self.encoding) as f:
            f.write(text)

    def _append(self, record: Dict[str, Any]) -> None:
        text = yaml.safe_dump([record], allow_unicode=True, sort_keys=False)
        with open(self.path, "a", encoding=self.encoding) as f:
            f.write(text)

    def _position(self, id: Any) -> Optional[int]:
        for position, item in enumerate(self._items):
            if item.get(self.index_key) == id:
                return position
        return None

    def _next_id(self) -> int:
        ids = [item.get(self.index_key) for item in self._items]
        numeric = [i for i in ids if isinstance(i, int) and not isinstance(i, bool)]
        return max(numeric, default=len(self._items)) + 1

    async def get_one(self, id: Any) -> Dict[str, Any]:
        position = self._position(id)
        if position is None:
            raise NotFoundError(self.name, id)
        return dict(self._items[position])

    async def query_page(
        self,
        page_index: int,
        page_size: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> Page:
        filtered = [dict(item) for item in self._items if matches(item, filter)]
        return paginate(filtered, page_index, page_size)

    async def upsert(self, data: Dict[str, Any], id: Any = None) -> Dict[str, Any]:
        if id is not None:
            position = self._position(id)
            if position is None:
                raise NotFoundError(self.name, id)

            item = {**self._items[position], **data}
            items = list(self._items)
            items[position] = item
            self._dump(items)
            self._items = items
            return dict(item)

        record = dict(data)
        if record.get(self.index_key) is None:
            record[self.index_key] = self._next_id()

        self._append(record)
        self._items.append(record)
        return dict(record)
