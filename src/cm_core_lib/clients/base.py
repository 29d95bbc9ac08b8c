"""Base client for the hosted data store's REST API."""

import logging
from typing import Dict, Optional

import httpx

from cm_core_lib.config.settings import DataStoreSettings

logger = logging.getLogger(__name__)


class BaseDataStoreClient:
    """Base class for HTTP clients of the hosted data store.

    The store exposes tables over a PostgREST-style API at
    ``{base_url}/rest/v1/{table}``. Requests carry the API key both as the
    ``apikey`` header and as a bearer token.

    A client is constructed once by the host process and passed explicitly to
    whatever needs it; there is no shared module-level instance.

    Usage:
        class CaseStoreClient(BaseDataStoreClient):
            async def fetch_case(self, case_id: str) -> Optional[CaseRecord]:
                async with self._get_client() as client:
                    response = await client.get(
                        self._table_url(self.settings.cases_table),
                        params={"id": f"eq.{case_id}"},
                        headers=self._headers(),
                    )
                    ...
    """

    def __init__(
        self,
        settings: DataStoreSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize data store client.

        Args:
            settings: Data store connection settings
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self.timeout = settings.timeout
        self._transport = transport

        logger.info(f"Initialized {self.__class__.__name__} with base_url={self.base_url}")

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _headers(
        self,
        range_start: Optional[int] = None,
        range_end: Optional[int] = None,
        count_exact: bool = False,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, str]:
        """Generate request headers.

        Args:
            range_start: First row index for a paged read
            range_end: Last row index (inclusive) for a paged read
            count_exact: Ask the store for the total row count (Content-Range)
            correlation_id: Optional correlation ID for request tracing

        Returns:
            Headers dict
        """
        headers = {
            "apikey": self.settings.api_key,
            "Authorization": f"Bearer {self.settings.api_key}",
            "Accept": "application/json",
        }

        if range_start is not None and range_end is not None:
            headers["Range-Unit"] = "items"
            headers["Range"] = f"{range_start}-{range_end}"

        if count_exact:
            headers["Prefer"] = "count=exact"

        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id

        return headers

    def _get_client(self) -> httpx.AsyncClient:
        """Get HTTP client instance with configured timeout.

        Returns:
            Configured AsyncClient ready for use with async context manager
        """
        if self._transport is not None:
            return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return httpx.AsyncClient(timeout=self.timeout)

    async def close(self):
        """Close any persistent connections.

        Override this if your client maintains a persistent httpx.AsyncClient.
        """
        pass
