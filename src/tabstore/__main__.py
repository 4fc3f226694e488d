"""Process entry point: ``python -m tabstore``.

Configuration is read from ``TABSTORE_*`` environment variables, e.g.

    TABSTORE_SERVER__PORT=9000
    TABSTORE_STORAGE__DATA_DIR=/var/lib/tabstore
    TABSTORE_QUERY__STRICT_COLUMNS=true
"""

from __future__ import annotations

from tabstore.adapters.inbound.line_server import TabStoreServer
from tabstore.adapters.outbound import TsvTableStorage
from tabstore.application import Catalog, CommandInterpreter
from tabstore.infrastructure import (
    Config,
    get_config,
    get_logger,
    get_metrics,
    setup_logging,
    setup_metrics,
    setup_tracing,
)


def build_server(config: Config) -> TabStoreServer:
    """Wire storage, catalog, interpreter and server from configuration."""
    obs = config.observability
    if obs.metrics_port is not None:
        metrics = setup_metrics(port=obs.metrics_port)
    else:
        metrics = get_metrics()

    storage = TsvTableStorage(sync_mode=config.storage.sync_mode)
    catalog = Catalog.bootstrap(config.storage.data_dir, storage, metrics=metrics)
    interpreter = CommandInterpreter(
        catalog,
        strict_columns=config.query.strict_columns,
        metrics=metrics,
    )
    return TabStoreServer(
        (config.server.host, config.server.port),
        interpreter,
        idle_timeout=config.server.idle_timeout_seconds,
        metrics=metrics,
    )


def main() -> None:
    config = get_config()
    obs = config.observability
    setup_logging(level=obs.log_level, log_format=obs.log_format, log_file=obs.log_file)
    setup_tracing(service_name=obs.otel_service_name, otlp_endpoint=obs.otel_endpoint)

    logger = get_logger(__name__)
    server = build_server(config)
    logger.info("server_listening", host=config.server.host, port=server.port)

    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            logger.info("server_stopping")


if __name__ == "__main__":
    main()
