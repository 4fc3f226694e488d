"""Line-oriented TCP server adapter.

Each client connection is handled on its own thread. A connection sends one
command per line and receives, for every command, exactly one response
frame:

    [OK] <message>
    EOT

or, for SELECT,

    [OK]
    <cell><TAB><cell>...
    EOT

or, on failure,

    [ERROR] <reason>
    EOT

An empty line or closing the socket ends the session. The connection's
selected database lives in a ``SessionState`` owned by its handler, so
``USE`` on one connection never affects another.

Usage:
    server = TabStoreServer(("0.0.0.0", 8080), interpreter)
    server.serve_forever()
"""

from __future__ import annotations

import itertools
import socketserver
import threading
from typing import Any

from tabstore.application.interpreter import (
    CommandInterpreter,
    ExecutionResult,
    SessionState,
)
from tabstore.domain.errors import StoreError
from tabstore.infrastructure.logging import get_logger
from tabstore.infrastructure.metrics import MetricsRegistry, get_metrics


logger = get_logger(__name__)

SENTINEL = "EOT"
OK_MARKER = "[OK]"
ERROR_MARKER = "[ERROR]"
ENCODING = "utf-8"


def render_result(result: ExecutionResult) -> str:
    """Render a successful command as response text (without sentinel)."""
    if result.is_query:
        lines = [OK_MARKER]
        lines.extend("\t".join(row.values) for row in result.rows)
        return "\n".join(lines)
    return f"{OK_MARKER} {result.message}"


def render_error(error: StoreError) -> str:
    """Render a failed command as response text (without sentinel)."""
    return f"{ERROR_MARKER} {error.reason}"


def encode_frame(response: str) -> bytes:
    """Append the sentinel line and encode for the socket."""
    return f"{response}\n{SENTINEL}\n".encode(ENCODING)


class ConnectionHandler(socketserver.StreamRequestHandler):
    """Request/response loop for one client connection."""

    server: TabStoreServer

    def setup(self) -> None:
        # StreamRequestHandler applies self.timeout to the socket
        self.timeout = self.server.idle_timeout
        super().setup()

    def handle(self) -> None:
        session = self.server.open_session()
        host, port = self.client_address[:2]
        log = get_logger(__name__, session_id=session.session_id, peer=f"{host}:{port}")
        metrics = self.server.metrics

        metrics.connections_total.inc()
        metrics.connections_active.inc()
        log.info("connection_opened")
        try:
            while True:
                raw = self.rfile.readline()
                if not raw:
                    break
                line = raw.decode(ENCODING, errors="replace").rstrip("\r\n")
                if not line.strip():
                    break

                response = self.server.dispatch(line, session, log)
                self.wfile.write(encode_frame(response))
                self.wfile.flush()
        except TimeoutError:
            log.info("connection_idle_timeout", timeout=self.timeout)
        except OSError as e:
            log.warning("connection_error", error=str(e))
        finally:
            metrics.connections_active.dec()
            log.info("connection_closed", database=session.database)


class TabStoreServer(socketserver.ThreadingTCPServer):
    """Thread-per-connection TCP server in front of a command interpreter.

    Attributes:
        interpreter: Shared command interpreter.
        idle_timeout: Seconds a connection may stay silent before it is
            closed, or None to wait forever.
    """

    allow_reuse_address = True
    daemon_threads = True

    def __init__(
        self,
        server_address: tuple[str, int],
        interpreter: CommandInterpreter,
        idle_timeout: float | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.interpreter = interpreter
        self.idle_timeout = idle_timeout
        self.metrics = metrics or get_metrics()
        self._session_ids = itertools.count(1)
        self._session_lock = threading.Lock()
        super().__init__(server_address, ConnectionHandler)

    @property
    def port(self) -> int:
        """Port actually bound (useful when binding port 0)."""
        return self.server_address[1]

    def open_session(self) -> SessionState:
        with self._session_lock:
            session_id = next(self._session_ids)
        return SessionState(session_id=session_id)

    def dispatch(self, line: str, session: SessionState, log: Any = None) -> str:
        """Execute one command line and render the response text.

        Every failure is converted to an ``[ERROR]`` response here; nothing
        escapes to the connection loop.
        """
        log = log or logger
        log.info("command_received", command=line)
        try:
            result = self.interpreter.execute(line, session)
        except StoreError as e:
            log.warning("command_failed", kind=e.kind, error=e.reason)
            return render_error(e)
        except Exception:
            log.exception("command_crashed", command=line)
            return f"{ERROR_MARKER} Internal error"

        response = render_result(result)
        log.info(
            "command_succeeded",
            rows=len(result.rows) if result.is_query else None,
            message=result.message or None,
        )
        return response
