"""Outbound adapters - concrete storage implementations."""

from tabstore.adapters.outbound.tsv_table_file import RowScan, TsvTableStorage

__all__ = [
    "RowScan",
    "TsvTableStorage",
]
