"""Prometheus metrics for the table store."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all table store metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Command metrics
        self.commands_total = Counter(
            "tabstore_commands_total",
            "Total number of commands handled",
            ["verb", "status"],  # status: ok, error
            registry=self._registry,
        )

        self.command_latency_seconds = Histogram(
            "tabstore_command_latency_seconds",
            "Command latency in seconds",
            ["verb"],
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Row metrics
        self.rows_inserted_total = Counter(
            "tabstore_rows_inserted_total",
            "Total rows appended to tables",
            registry=self._registry,
        )

        self.rows_returned_total = Counter(
            "tabstore_rows_returned_total",
            "Total rows returned by SELECT",
            registry=self._registry,
        )

        # Connection metrics
        self.connections_active = Gauge(
            "tabstore_connections_active",
            "Number of open client connections",
            registry=self._registry,
        )

        self.connections_total = Counter(
            "tabstore_connections_total",
            "Total client connections accepted",
            registry=self._registry,
        )

        # Lock metrics
        self.lock_wait_seconds = Histogram(
            "tabstore_lock_wait_seconds",
            "Time spent waiting for a table lock",
            buckets=(0.0001, 0.001, 0.01, 0.1, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        # Catalog metrics
        self.tables_registered = Gauge(
            "tabstore_tables_registered",
            "Number of tables known to the catalog",
            registry=self._registry,
        )

        self.tables_skipped_total = Counter(
            "tabstore_tables_skipped_total",
            "Tables skipped during bootstrap because they could not be read",
            registry=self._registry,
        )

        # Server info
        self.info = Info(
            "tabstore",
            "Table store information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from tabstore import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
