"""
Tests for the query refresh engine and warehouse client.
"""

import asyncio

import pytest
from sqlalchemy import create_engine

from services.report_delivery_service.clients.warehouse_client import QueryResult, WarehouseClient
from services.report_delivery_service.errors import WarehouseError
from services.report_delivery_service.models.content import Slide
from services.report_delivery_service.services.query_refresh_service import QueryRefreshService


class GatedWarehouse:
    """Warehouse whose queries only return once all expected queries are in flight."""

    def __init__(self, expected: int):
        self.expected = expected
        self.in_flight = 0
        self.peak = 0
        self.all_started = asyncio.Event()

    async def execute(self, query: str) -> QueryResult:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        if self.in_flight == self.expected:
            self.all_started.set()
        try:
            await asyncio.wait_for(self.all_started.wait(), timeout=1)
        finally:
            self.in_flight -= 1
        return QueryResult(columns=[{"name": "n", "type": "int"}], rows=[[1]])


def _slide(*elements):
    return Slide.model_validate({"id": "s1", "elements": list(elements)})


def _metric(element_id, query, **content):
    return {
        "id": element_id,
        "type": "metric",
        "data_source": {"query": query},
        "content": {"label": element_id, **content},
    }


class TestQueryRefreshService:
    @pytest.mark.asyncio
    async def test_refreshes_metric_data(self, make_warehouse):
        warehouse = make_warehouse({"SELECT 1": ("total", 10)})
        slide = _slide(_metric("m1", "SELECT 1"))

        report = await QueryRefreshService(warehouse).refresh_slides([slide])

        assert report.refreshed_count == 1
        assert report.failed_element_ids == []
        assert slide.elements[0].content.data == [{"total": 10}]
        assert slide.elements[0].display_value() == "10"

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_data(self, make_warehouse):
        warehouse = make_warehouse({"SELECT ok": ("n", 2)})
        slide = _slide(
            _metric("good", "SELECT ok"),
            _metric("bad", "SELECT missing", data=[{"n": 1}]),
        )

        report = await QueryRefreshService(warehouse).refresh_slides([slide])

        assert report.refreshed_count == 1
        assert report.failed_element_ids == ["bad"]
        assert report.has_failures
        assert slide.elements[0].content.data == [{"n": 2}]
        assert slide.elements[1].content.data == [{"n": 1}]

    @pytest.mark.asyncio
    async def test_elements_are_refreshed_concurrently(self):
        warehouse = GatedWarehouse(expected=3)
        slides = [
            _slide(_metric("m1", "SELECT 1"), _metric("m2", "SELECT 2")),
            _slide(_metric("m3", "SELECT 3")),
        ]

        report = await QueryRefreshService(warehouse).refresh_slides(slides)

        assert report.failed_element_ids == []
        assert report.refreshed_count == 3
        assert warehouse.peak == 3

    @pytest.mark.asyncio
    async def test_query_element_gets_rows_and_columns(self, make_warehouse):
        result = QueryResult(
            columns=[{"name": "day", "type": "date"}, {"name": "visits", "type": "int"}],
            rows=[["mon", 1], ["tue", 2], ["wed", 3]],
        )
        warehouse = make_warehouse({"SELECT day, visits FROM v": result})
        slide = _slide(
            {
                "id": "q1",
                "type": "query",
                "data_source": {"query": "SELECT day, visits FROM v", "limit": 2},
            }
        )

        await QueryRefreshService(warehouse).refresh_slides([slide])

        element = slide.elements[0]
        assert element.columns == ["day", "visits"]
        assert element.data == [{"day": "mon", "visits": 1}, {"day": "tue", "visits": 2}]

    @pytest.mark.asyncio
    async def test_elements_without_query_are_skipped(self, make_warehouse):
        warehouse = make_warehouse()
        slide = _slide(
            {"id": "t1", "type": "text", "content": {"text": "hi"}},
            _metric("m1", "   "),
        )

        report = await QueryRefreshService(warehouse).refresh_slides([slide])

        assert report.refreshed_count == 0
        assert warehouse.queries == []

    @pytest.mark.asyncio
    async def test_legacy_content_query_is_honoured(self, make_warehouse):
        warehouse = make_warehouse({"SELECT 5": ("v", 5)})
        slide = _slide({"id": "m1", "type": "metric", "content": {"query": "SELECT 5"}})

        await QueryRefreshService(warehouse).refresh_slides([slide])

        assert warehouse.queries == ["SELECT 5"]

    @pytest.mark.asyncio
    async def test_no_warehouse_fails_every_element(self):
        slide = _slide(_metric("m1", "SELECT 1"), _metric("m2", "SELECT 2"))

        report = await QueryRefreshService(None).refresh_slides([slide])

        assert report.refreshed_count == 0
        assert report.failed_element_ids == ["m1", "m2"]


class TestWarehouseClient:
    @pytest.fixture
    def client(self):
        client = WarehouseClient("", engine=create_engine("sqlite://"))
        yield client
        client.close()

    @pytest.mark.asyncio
    async def test_select_returns_columns_and_rows(self, client):
        result = await client.execute("SELECT 1 AS a, 'x' AS b")

        assert result.column_names == ["a", "b"]
        assert result.rows == [[1, "x"]]
        assert result.first_scalar() == 1

    @pytest.mark.asyncio
    async def test_write_statement_is_rejected(self, client):
        with pytest.raises(WarehouseError, match="read queries"):
            await client.execute("DELETE FROM users")

    @pytest.mark.asyncio
    async def test_empty_query_is_rejected(self, client):
        with pytest.raises(WarehouseError):
            await client.execute("  ")

    @pytest.mark.asyncio
    async def test_database_error_is_wrapped(self, client):
        with pytest.raises(WarehouseError):
            await client.execute("SELECT * FROM no_such_table")

    def test_missing_url_is_rejected(self):
        with pytest.raises(WarehouseError):
            WarehouseClient("")
