"""Outbound ports - dependencies on external systems."""

from tabstore.ports.outbound.table_storage import TableStorage

__all__ = [
    "TableStorage",
]
