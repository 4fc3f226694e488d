"""Infrastructure layer - cross-cutting concerns."""

from tabstore.infrastructure.config import Config, get_config
from tabstore.infrastructure.logging import setup_logging, get_logger
from tabstore.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from tabstore.infrastructure.tracing import setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
