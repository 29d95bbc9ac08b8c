"""HTTP client for case records in the hosted data store."""

import logging
from typing import Any, List, Optional, Tuple

import httpx

from cm_core_lib.clients.base import BaseDataStoreClient
from cm_core_lib.exceptions import DataFetchError
from cm_core_lib.models import CaseRecord, parse_case_rows

logger = logging.getLogger(__name__)


def parse_content_range_total(header: Optional[str]) -> Optional[int]:
    """Total row count from a ``Content-Range`` header ("0-24/3573", "*/0").

    Returns None when the header is missing or the total is unknown ("*").
    """
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1].strip()
    return int(total) if total.isdigit() else None


class CaseStoreClient(BaseDataStoreClient):
    """Async client for reading corruption cases.

    Any failure (transport error, non-2xx status, undecodable body, short
    read) raises DataFetchError and nothing is returned, so callers never
    aggregate a partial read. Retrying is the caller's choice (see
    ``cm_core_lib.utils.create_custom_retry``).

    Usage:
        client = CaseStoreClient(DataStoreSettings.from_env())
        cases = await client.fetch_all_cases()
    """

    async def _get_rows(
        self,
        client: httpx.AsyncClient,
        params: dict,
        headers: dict,
    ) -> Tuple[List[Any], Optional[int]]:
        """GET one page of rows.

        Returns:
            (rows, total) where total comes from Content-Range, if the store sent it
        """
        try:
            response = await client.get(
                self._table_url(self.settings.cases_table),
                params=params,
                headers=headers,
            )
            response.raise_for_status()
            rows = response.json()
            total = parse_content_range_total(response.headers.get("Content-Range"))
        except httpx.HTTPStatusError as e:
            logger.error(f"Case fetch failed with HTTP {e.response.status_code}")
            raise DataFetchError(
                f"Case fetch failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Case fetch failed: {e}")
            raise DataFetchError(f"Case fetch failed: {e}") from e
        except ValueError as e:
            logger.error(f"Case fetch returned an undecodable body: {e}")
            raise DataFetchError(f"Case fetch returned an undecodable body: {e}") from e

        if not isinstance(rows, list):
            raise DataFetchError(f"Expected a list of rows, got {type(rows).__name__}")
        return rows, total

    async def fetch_all_cases(self, correlation_id: Optional[str] = None) -> List[CaseRecord]:
        """Fetch every case, newest first.

        Requests ``settings.page_size`` rows at a time with an exact count.
        The store may return fewer rows than asked for (a server-side row
        cap), so the offset advances by the rows actually received. Reading
        stops once the reported total is reached, or on an empty page when
        the store reports no total. Malformed rows are skipped.

        Args:
            correlation_id: Optional correlation ID for request tracing

        Returns:
            List of CaseRecords

        Raises:
            DataFetchError: If any page fails, or the store stops returning
                rows before the reported total
        """
        page_size = self.settings.page_size
        rows: List[Any] = []
        total: Optional[int] = None

        async with self._get_client() as client:
            while total is None or len(rows) < total:
                offset = len(rows)
                page, page_total = await self._get_rows(
                    client,
                    params={"select": "*", "order": "created_at.desc"},
                    headers=self._headers(
                        range_start=offset,
                        range_end=offset + page_size - 1,
                        count_exact=True,
                        correlation_id=correlation_id,
                    ),
                )
                if page_total is not None:
                    total = page_total

                if not page:
                    if total is not None and len(rows) < total:
                        logger.error(f"Case fetch stopped at {len(rows)} of {total} row(s)")
                        raise DataFetchError(
                            f"Incomplete case read: got {len(rows)} of {total} row(s)"
                        )
                    break
                rows.extend(page)

        cases = parse_case_rows(rows)
        logger.info(f"Fetched {len(cases)} case(s) ({len(rows)} row(s))")
        return cases

    async def fetch_case(
        self, case_id: str, correlation_id: Optional[str] = None
    ) -> Optional[CaseRecord]:
        """Fetch one case by id.

        Args:
            case_id: Case identifier
            correlation_id: Optional correlation ID for request tracing

        Returns:
            CaseRecord, or None if no such case exists

        Raises:
            DataFetchError: If the request fails
            MalformedRecordError: If the stored row cannot be parsed
        """
        async with self._get_client() as client:
            rows, _ = await self._get_rows(
                client,
                params={"select": "*", "id": f"eq.{case_id}"},
                headers=self._headers(correlation_id=correlation_id),
            )

        if not rows:
            return None
        return CaseRecord.from_row(rows[0], strict=True)
