"""
Query refresh engine.

Re-executes the queries bound to metric and query elements and writes the
returned rows back onto the elements. This single operation backs both the
user-invoked "refresh" action on stored content and the mandatory refresh
that precedes every template send.

Refresh is partial-failure tolerant: all bound elements are refreshed
concurrently, a failing element is logged and keeps its previous data, and
the remaining elements are still updated. No retries are attempted.
"""

import asyncio
from typing import Any

from loguru import logger

from services.report_delivery_service.clients.warehouse_client import WarehouseClient
from services.report_delivery_service.errors import RefreshError, WarehouseError
from services.report_delivery_service.models.content import (
    MetricElement,
    RefreshReport,
    Slide,
    data_bound_elements,
)


class QueryRefreshService:
    """Refreshes data-bound slide elements from the warehouse."""

    def __init__(self, warehouse: WarehouseClient | None):
        self.warehouse = warehouse

    async def refresh(self, elements: list[Any]) -> RefreshReport:
        """
        Refresh every metric/query element that carries a bound query.

        Elements are mutated in place; callers own persistence of the slides
        they belong to. Elements without a query are left untouched.

        Returns:
            RefreshReport with the number of refreshed elements and the ids
            of elements whose query failed.
        """
        targets = data_bound_elements(elements)
        if not targets:
            return RefreshReport()

        results = await asyncio.gather(
            *(self._refresh_element(element) for element in targets),
            return_exceptions=True,
        )

        failed_ids = []
        for element, result in zip(targets, results):
            if isinstance(result, RefreshError):
                logger.warning(str(result))
                failed_ids.append(element.id)
            elif isinstance(result, BaseException):
                logger.opt(exception=result).error(
                    f"Unexpected error refreshing element {element.id}"
                )
                failed_ids.append(element.id)

        report = RefreshReport(
            refreshed_count=len(targets) - len(failed_ids),
            failed_element_ids=failed_ids,
        )
        logger.info(
            f"Refreshed {report.refreshed_count}/{len(targets)} data-bound elements"
            + (f", failed: {', '.join(failed_ids)}" if failed_ids else "")
        )
        return report

    async def refresh_slides(self, slides: list[Slide]) -> RefreshReport:
        """Refresh the union of all elements across the given slides."""
        return await self.refresh([element for slide in slides for element in slide.elements])

    async def _refresh_element(self, element: Any) -> None:
        limit = element.data_source.limit if element.data_source else None
        if self.warehouse is None:
            raise RefreshError(element.id, "no warehouse configured")
        try:
            result = await self.warehouse.execute(element.bound_query)
        except WarehouseError as e:
            raise RefreshError(element.id, str(e)) from e

        rows = result.records(limit)
        if isinstance(element, MetricElement):
            element.content.data = rows
        else:
            element.data = rows
            element.columns = result.column_names
