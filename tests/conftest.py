"""Pytest configuration and fixtures for tabstore tests."""

from __future__ import annotations

import socket
import tempfile
import threading
from pathlib import Path
from typing import Callable, Generator

import pytest
from prometheus_client import CollectorRegistry

from tabstore.adapters.inbound.line_server import SENTINEL, TabStoreServer
from tabstore.adapters.outbound import TsvTableStorage
from tabstore.application import Catalog, CommandInterpreter, SessionState
from tabstore.infrastructure.config import Config, ServerConfig, StorageConfig
from tabstore.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """Storage root inside the temporary directory."""
    return temp_dir / "data"


@pytest.fixture
def test_config(data_dir: Path) -> Config:
    """Provide a test configuration with temporary directories."""
    return Config(
        storage=StorageConfig(
            data_dir=data_dir,
            sync_mode="none",  # Faster for tests
        ),
        server=ServerConfig(host="127.0.0.1", port=0),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def storage() -> TsvTableStorage:
    """Table storage without fsync."""
    return TsvTableStorage(sync_mode="none")


@pytest.fixture
def make_catalog(
    data_dir: Path, storage: TsvTableStorage, metrics_registry: MetricsRegistry
) -> Callable[[], Catalog]:
    """Factory that bootstraps a catalog from the test storage root.

    Calling it twice simulates a restart over the same files.
    """

    def _make() -> Catalog:
        return Catalog.bootstrap(data_dir, storage, metrics=metrics_registry)

    return _make


@pytest.fixture
def catalog(make_catalog: Callable[[], Catalog]) -> Catalog:
    """Catalog over an empty storage root."""
    return make_catalog()


@pytest.fixture
def interpreter(catalog: Catalog, metrics_registry: MetricsRegistry) -> CommandInterpreter:
    """Interpreter with the default (lenient) projection policy."""
    return CommandInterpreter(catalog, metrics=metrics_registry)


@pytest.fixture
def session() -> SessionState:
    """Fresh session with no database selected."""
    return SessionState(session_id=1)


class LineClient:
    """Minimal blocking client for the line protocol."""

    def __init__(self, port: int, timeout: float = 5.0) -> None:
        self._sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
        self._file = self._sock.makefile("rwb")

    def send(self, command: str) -> str:
        """Send one command and return the response frame without the sentinel."""
        self._file.write((command + "\n").encode("utf-8"))
        self._file.flush()

        lines = []
        while True:
            raw = self._file.readline()
            if not raw:
                raise ConnectionError("Server closed the connection")
            text = raw.decode("utf-8").rstrip("\n")
            if text == SENTINEL:
                return "\n".join(lines)
            lines.append(text)

    def send_raw(self, data: bytes) -> None:
        self._file.write(data)
        self._file.flush()

    def read_raw(self) -> bytes:
        """Read until the server closes the connection."""
        return self._file.read()

    def close(self) -> None:
        self._file.close()
        self._sock.close()

    def __enter__(self) -> LineClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


@pytest.fixture
def start_server(
    metrics_registry: MetricsRegistry,
) -> Generator[Callable[..., TabStoreServer], None, None]:
    """Start servers on ephemeral ports; all are shut down after the test."""
    running: list[tuple[TabStoreServer, threading.Thread]] = []

    def _start(interpreter: CommandInterpreter, idle_timeout: float | None = None) -> TabStoreServer:
        srv = TabStoreServer(
            ("127.0.0.1", 0),
            interpreter,
            idle_timeout=idle_timeout,
            metrics=metrics_registry,
        )
        thread = threading.Thread(target=srv.serve_forever, daemon=True)
        thread.start()
        running.append((srv, thread))
        return srv

    yield _start

    for srv, thread in running:
        srv.shutdown()
        srv.server_close()
        thread.join(timeout=5)


@pytest.fixture
def server(
    start_server: Callable[..., TabStoreServer], interpreter: CommandInterpreter
) -> TabStoreServer:
    """A running server over the test catalog."""
    return start_server(interpreter)


@pytest.fixture
def open_client() -> Generator[Callable[[int], LineClient], None, None]:
    """Open client connections to an arbitrary port; all are closed after the test."""
    clients: list[LineClient] = []

    def _open(port: int) -> LineClient:
        client = LineClient(port)
        clients.append(client)
        return client

    yield _open

    for client in clients:
        client.close()


@pytest.fixture
def connect(
    server: TabStoreServer, open_client: Callable[[int], LineClient]
) -> Callable[[], LineClient]:
    """Open client connections to the running server."""
    return lambda: open_client(server.port)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
