"""JSON-RPC transport over lightningd's unix socket.

lightningd answers each request with exactly one newline-terminated JSON
document and does not pipeline, so the transport allows a single request in
flight per connection and serializes callers with a lock.
"""

import json
import socket
import threading
from pathlib import Path
from typing import Any, Protocol

from ...exceptions import RpcError, TransportError, wrap_exception
from ...utils.logging import LogPerformance, get_logger

logger = get_logger(__name__)

READ_CHUNK_SIZE = 1024
RECORD_SEPARATOR = b"\n"


class StreamConnection(Protocol):
    """The subset of ``socket.socket`` the transport uses."""

    def sendall(self, data: bytes) -> None: ...

    def recv(self, bufsize: int) -> bytes: ...


class LightningdRpcConnector:
    """Owns the socket connection to lightningd's ``lightning-rpc`` file.

    The connection is opened on first use and kept until ``disconnect``.
    """

    def __init__(self, rpc_file: Path | str, socket_timeout: float | None = 30):
        self.rpc_file = Path(rpc_file)
        self.socket_timeout = socket_timeout
        self._connection: socket.socket | None = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def get_connection(self) -> socket.socket:
        if self._connection is None:
            self._connection = self.connect()
        return self._connection

    def connect(self) -> socket.socket:
        """Open a unix stream socket to the daemon.

        Raises:
            TransportError: If the socket file cannot be connected to
        """
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.socket_timeout)
        try:
            sock.connect(str(self.rpc_file))
        except OSError as e:
            sock.close()
            raise wrap_exception(
                e,
                "Failed to connect to lightningd",
                exception_class=TransportError,
                rpc_file=str(self.rpc_file),
            ) from e

        logger.info("lightningd_connected", rpc_file=str(self.rpc_file))
        return sock

    def disconnect(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.shutdown(socket.SHUT_RDWR)
        except OSError:
            # Peer may already have closed its end.
            pass
        finally:
            self._connection.close()
            self._connection = None
            logger.info("lightningd_disconnected", rpc_file=str(self.rpc_file))


class LightningdRpcTransport:
    """Request/response channel to lightningd.

    ``call`` writes ``{"id", "method", "params"}`` in one write, reads until
    the buffer ends with a newline, and returns the ``result`` member.
    After a transport failure the connection is dropped, so the next call
    reconnects instead of reading a stale reply.
    """

    def __init__(self, connector: LightningdRpcConnector | StreamConnection):
        self._connector = connector
        self._lock = threading.Lock()

    def _connection(self) -> StreamConnection:
        if isinstance(self._connector, LightningdRpcConnector):
            return self._connector.get_connection()
        return self._connector

    def _drop_connection(self) -> None:
        if isinstance(self._connector, LightningdRpcConnector):
            self._connector.disconnect()

    def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """Issue one RPC call and return its result.

        Raises:
            TransportError: Socket I/O failed or the daemon closed the connection
            RpcError: The reply was not valid JSON or carried an ``error`` member
        """
        request = json.dumps({"id": 0, "method": method, "params": params or {}})

        with self._lock, LogPerformance("lightningd_rpc", logger, method=method):
            connection = self._connection()
            try:
                connection.sendall(request.encode("utf-8"))
                response = self._read_response(connection)
            except TransportError:
                self._drop_connection()
                raise
            except OSError as e:
                # A late reply on this socket would be read as the next call's.
                self._drop_connection()
                raise wrap_exception(
                    e,
                    f"Lightningd '{method}' socket I/O failed",
                    exception_class=TransportError,
                    method=method,
                ) from e

        try:
            content = json.loads(response)
        except (UnicodeDecodeError, json.JSONDecodeError):
            content = None

        if not isinstance(content, dict) or not content or "error" in content:
            raise self._to_rpc_error(method, content)

        return content.get("result")

    def _read_response(self, connection: StreamConnection) -> bytes:
        buffer = bytearray()
        while not buffer.endswith(RECORD_SEPARATOR):
            chunk = connection.recv(READ_CHUNK_SIZE)
            if not chunk:
                raise TransportError(
                    "Lightningd closed the connection mid-response",
                    context={"received_bytes": len(buffer)},
                )
            buffer.extend(chunk)
        return bytes(buffer)

    @staticmethod
    def _to_rpc_error(method: str, content: Any) -> RpcError:
        error = content.get("error") if isinstance(content, dict) else None
        if not isinstance(error, dict):
            return RpcError("Unknown response.", method=method)

        code = error.get("code")
        return RpcError(
            str(error.get("message", "Unknown error.")),
            code=code if isinstance(code, int) else None,
            method=method,
        )
