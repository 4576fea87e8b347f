"""
External clients used by the report delivery service.
"""

from .warehouse_client import QueryResult, WarehouseClient

__all__ = ["QueryResult", "WarehouseClient"]
