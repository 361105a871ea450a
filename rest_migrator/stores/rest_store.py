"""REST API backed list model."""

import asyncio
import threading
import time
import logging
import requests
from typing import Any, Dict, List, Optional

from .base import ListModel, Page
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


class RESTListModel(ListModel):
    """
    List model for a REST resource that follows standard patterns.

    - ``GET {base_url}/{resource}?pageIndex=&pageSize=&<filter>`` loads a page
    - ``GET {base_url}/{resource}/{id}`` loads one record
    - ``POST {base_url}/{resource}`` creates a record
    - ``PATCH {base_url}/{resource}/{id}`` updates a record

    Page responses may be a bare JSON list or an object holding the records
    under one of ``list_keys`` and the total under one of ``count_keys``.
    Override :meth:`parse_page` for other shapes.

    Requests are blocking (``requests``) and run in a worker thread so the
    migrator's event loop keeps going.
    """

    list_keys = ("list", "data", "items", "results")
    count_keys = ("count", "total", "totalCount")

    def __init__(
        self,
        base_url: str,
        resource: str,
        api_key: Optional[str] = None,
        auth_type: str = "bearer",  # bearer, header
        auth_header: str = "Authorization",
        index_key: Optional[str] = None,
        rate_limit: float = 0.0,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the list model.

        Args:
            base_url: Base URL for the API
            resource: Resource path under the base URL (e.g. ``users``)
            api_key: API key for authentication
            auth_type: Type of authentication
            auth_header: Header name for ``header`` authentication
            index_key: Field identifying records (defaults to ``id``)
            rate_limit: Max requests per second (0 disables the limit)
            timeout: Request timeout in seconds
            session: Pre-configured session to use instead of a new one
        """
        self.base_url = base_url.rstrip("/")
        self.resource = resource.strip("/")
        self.api_key = api_key
        self.auth_type = auth_type
        self.auth_header = auth_header
        self.rate_limit = rate_limit
        self.timeout = timeout
        if index_key:
            self.index_key = index_key
        self._last_request_time = 0.0
        self._rate_lock = threading.Lock()
        self._session = session or self._create_session()

    @property
    def name(self) -> str:
        return f"{type(self).__name__}({self.resource})"

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.resource}"

    def _create_session(self) -> requests.Session:
        """Create a requests session with authentication."""
        session = requests.Session()

        if self.api_key:
            if self.auth_type == "bearer":
                session.headers["Authorization"] = f"Bearer {self.api_key}"
            elif self.auth_type == "header":
                session.headers[self.auth_header] = self.api_key

        session.headers["Content-Type"] = "application/json"
        session.headers["Accept"] = "application/json"

        return session

    def _rate_limit_wait(self):
        """Wait to respect rate limits."""
        with self._rate_lock:
            if self.rate_limit > 0:
                elapsed = time.time() - self._last_request_time
                wait_time = (1.0 / self.rate_limit) - elapsed
                if wait_time > 0:
                    time.sleep(wait_time)
            self._last_request_time = time.time()

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        self._rate_limit_wait()
        logger.debug(f"{method} {url}")
        return self._session.request(method, url, timeout=self.timeout, **kwargs)

    async def _send(self, method: str, url: str, **kwargs) -> requests.Response:
        return await asyncio.to_thread(self._request, method, url, **kwargs)

    def parse_page(self, body: Any) -> Page:
        """Read a page response body."""
        if isinstance(body, list):
            return Page(page_data=body, total_count=len(body))

        if not isinstance(body, dict):
            raise ValueError(f"Unexpected page response from {self.url}: {body!r}")

        records: List[Dict[str, Any]] = []
        for key in self.list_keys:
            if isinstance(body.get(key), list):
                records = body[key]
                break

        total = len(records)
        for key in self.count_keys:
            if isinstance(body.get(key), int):
                total = body[key]
                break

        return Page(page_data=records, total_count=total)

    async def query_page(
        self,
        page_index: int,
        page_size: int,
        filter: Optional[Dict[str, Any]] = None
    ) -> Page:
        params = {"pageIndex": page_index, "pageSize": page_size}
        params.update(filter or {})

        response = await self._send("GET", self.url, params=params)
        response.raise_for_status()
        return self.parse_page(response.json() if response.text else [])

    async def get_one(self, id: Any) -> Dict[str, Any]:
        response = await self._send("GET", f"{self.url}/{id}")

        if response.status_code == 404:
            raise NotFoundError(self.name, id)

        response.raise_for_status()
        return response.json()

    async def upsert(self, data: Dict[str, Any], id: Any = None) -> Dict[str, Any]:
        if id is None:
            response = await self._send("POST", self.url, json=data)
        else:
            response = await self._send("PATCH", f"{self.url}/{id}", json=data)

        if id is not None and response.status_code == 404:
            raise NotFoundError(self.name, id)

        response.raise_for_status()
        record = response.json() if response.text else {}
        if not isinstance(record, dict):
            raise ValueError(
                f"Unexpected upsert response from {self.url}: expected an object, got {type(record).__name__}"
            )

        # Some APIs wrap the created record
        if isinstance(record.get("data"), dict) and self.index_key not in record:
            record = record["data"]

        return record
