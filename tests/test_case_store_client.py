from dataclasses import replace

import httpx
import pytest

from cm_core_lib.clients import CaseStoreClient
from cm_core_lib.clients.case_store_client import parse_content_range_total
from cm_core_lib.exceptions import DataFetchError, MalformedRecordError

ROWS = [
    {"id": 1, "estimated_losses_idr": 100, "created_at": "2024-03-01T00:00:00Z"},
    {"id": 2, "estimated_losses_idr": 200, "created_at": "2024-02-01T00:00:00Z"},
    {"id": 3, "estimated_losses_idr": -1},
]


def paged_handler(rows, seen, max_rows=None, report_total=True):
    """Serve ``rows`` the way PostgREST does, optionally capping rows per response."""
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        start, end = (int(part) for part in request.headers["Range"].split("-"))
        if max_rows is not None:
            end = min(end, start + max_rows - 1)
        page = rows[start:end + 1]
        headers = {}
        if report_total:
            shown = f"{start}-{start + len(page) - 1}" if page else "*"
            headers["Content-Range"] = f"{shown}/{len(rows)}"
        return httpx.Response(200, json=page, headers=headers)
    return handler


@pytest.mark.asyncio
async def test_fetch_all_cases_pages_until_reported_total(store_settings):
    seen = []
    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(paged_handler(ROWS, seen)))

    cases = await client.fetch_all_cases()

    # Row 3 has negative losses and is skipped
    assert [c.id for c in cases] == ["1", "2"]
    assert [r.headers["Range"] for r in seen] == ["0-1", "2-3"]

    request = seen[0]
    assert request.url.path == "/rest/v1/corruption_cases"
    assert request.url.params["select"] == "*"
    assert request.url.params["order"] == "created_at.desc"
    assert request.headers["apikey"] == "test-key"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert request.headers["Prefer"] == "count=exact"


@pytest.mark.asyncio
async def test_server_row_cap_below_page_size_still_reads_everything(store_settings):
    rows = [{"id": i, "estimated_losses_idr": 10} for i in range(1, 6)]
    seen = []
    client = CaseStoreClient(
        replace(store_settings, page_size=3),
        transport=httpx.MockTransport(paged_handler(rows, seen, max_rows=2)),
    )

    cases = await client.fetch_all_cases()

    assert [c.id for c in cases] == ["1", "2", "3", "4", "5"]
    assert [r.headers["Range"] for r in seen] == ["0-2", "2-4", "4-6"]


@pytest.mark.asyncio
async def test_store_running_dry_before_total_raises(store_settings):
    def handler(request):
        if request.headers["Range"] == "0-1":
            return httpx.Response(200, json=ROWS[:2], headers={"Content-Range": "0-1/5"})
        return httpx.Response(200, json=[], headers={"Content-Range": "*/5"})

    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(handler))

    with pytest.raises(DataFetchError, match="2 of 5"):
        await client.fetch_all_cases()


@pytest.mark.asyncio
async def test_without_total_reads_until_empty_page(store_settings):
    seen = []
    client = CaseStoreClient(
        store_settings,
        transport=httpx.MockTransport(paged_handler(ROWS, seen, max_rows=1, report_total=False)),
    )

    cases = await client.fetch_all_cases(correlation_id="req-1")

    assert len(cases) == 2
    assert [r.headers["Range"] for r in seen] == ["0-1", "1-2", "2-3", "3-4"]
    assert seen[0].headers["X-Correlation-ID"] == "req-1"


def test_content_range_total():
    assert parse_content_range_total("0-24/3573") == 3573
    assert parse_content_range_total("*/0") == 0
    assert parse_content_range_total("0-24/*") is None
    assert parse_content_range_total(None) is None


@pytest.mark.asyncio
async def test_http_error_status_raises_data_fetch_error(store_settings):
    def handler(request):
        return httpx.Response(503, json={"message": "unavailable"})

    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(handler))

    with pytest.raises(DataFetchError) as exc_info:
        await client.fetch_all_cases()

    assert exc_info.value.status_code == 503
    assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)


@pytest.mark.asyncio
async def test_failure_on_later_page_returns_nothing(store_settings):
    def handler(request):
        if request.headers["Range"] == "0-1":
            return httpx.Response(200, json=ROWS[:2])
        raise httpx.ConnectError("connection reset", request=request)

    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(handler))

    with pytest.raises(DataFetchError) as exc_info:
        await client.fetch_all_cases()

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_undecodable_body_raises_data_fetch_error(store_settings):
    def handler(request):
        return httpx.Response(200, content=b"<html>oops</html>")

    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(handler))

    with pytest.raises(DataFetchError):
        await client.fetch_all_cases()


@pytest.mark.asyncio
async def test_non_list_body_raises_data_fetch_error(store_settings):
    def handler(request):
        return httpx.Response(200, json={"id": 1})

    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(handler))

    with pytest.raises(DataFetchError):
        await client.fetch_all_cases()


@pytest.mark.asyncio
async def test_fetch_case_filters_by_id(store_settings):
    seen = []

    def handler(request):
        seen.append(request)
        wanted = request.url.params["id"]
        rows = [row for row in ROWS if f"eq.{row['id']}" == wanted]
        return httpx.Response(200, json=rows)

    client = CaseStoreClient(store_settings, transport=httpx.MockTransport(handler))

    case = await client.fetch_case("2")
    missing = await client.fetch_case("99")

    assert case.estimated_losses == 200
    assert missing is None
    assert "Range" not in seen[0].headers

    with pytest.raises(MalformedRecordError):
        await client.fetch_case("3")
