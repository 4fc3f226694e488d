"""
tabstore - Flat-file Tabular Store

A small persistent table store served over a line-oriented TCP protocol.
Databases are directories, tables are tab-separated files with an implicit
auto-incrementing ``id`` column.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
