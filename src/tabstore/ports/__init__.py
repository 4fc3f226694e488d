"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Outbound ports: Dependencies on external systems (e.g., TableStorage)

Adapters implement these ports with concrete functionality.
"""

from tabstore.ports.outbound import TableStorage

__all__ = [
    "TableStorage",
]
