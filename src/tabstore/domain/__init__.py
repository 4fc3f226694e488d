"""Domain layer - storage-independent model of databases, tables and rows."""
