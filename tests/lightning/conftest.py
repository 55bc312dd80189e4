"""Shared fakes for lightningd tests: a scripted socket, transport and broker channel."""

import json
from collections import deque
from types import SimpleNamespace
from typing import Any

import pytest

from lightningd_adapter.core.events.base import LocalEventBus
from lightningd_adapter.lightning.application.services.lightningd_service import (
    LightningdService,
)

NODE_ID = "02" + "ab" * 32


def rpc_reply(result: Any = None, error: dict | None = None) -> bytes:
    """Encode a daemon reply the way lightningd frames it."""
    content: dict[str, Any] = {"jsonrpc": "2.0", "id": 0}
    if error is not None:
        content["error"] = error
    else:
        content["result"] = result
    return json.dumps(content).encode("utf-8") + b"\n"


class FakeSocket:
    """Records writes and replays replies split into small chunks."""

    def __init__(self, *replies: bytes, chunk_size: int = 7):
        self.sent: list[bytes] = []
        self._chunks: deque[bytes] = deque()
        for reply in replies:
            for start in range(0, len(reply), chunk_size):
                self._chunks.append(reply[start : start + chunk_size])
        self.recv_error: OSError | None = None
        self.closed = False

    def sendall(self, data: bytes) -> None:
        self.sent.append(data)

    def recv(self, bufsize: int) -> bytes:
        if self.recv_error is not None:
            raise self.recv_error
        if not self._chunks:
            return b""
        return self._chunks.popleft()

    def shutdown(self, how: int) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    @property
    def requests(self) -> list[dict[str, Any]]:
        return [json.loads(data) for data in self.sent]


class ScriptedTransport:
    """Transport double returning scripted results per RPC method.

    A scripted value that is an exception is raised instead of returned.
    """

    def __init__(self, **results: Any):
        self.results = results
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        self.calls.append((method, params or {}))
        result = self.results[method]
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def params_for(self, method: str) -> dict[str, Any]:
        return next(params for name, params in self.calls if name == method)


class FakeChannel:
    """Stand-in for a pika ``BlockingChannel``.

    ``consume`` yields the queued deliveries as pika does, then ends as if
    the subscription had been cancelled.
    """

    def __init__(self, deliveries: list[tuple[str, bytes, Any]] | None = None):
        self.deliveries = list(deliveries or [])
        self.prefetch_count: int | None = None
        self.consumed_queue: str | None = None
        self.acked: list[int] = []
        self.nacked: list[tuple[int, bool]] = []
        self.cancelled = False
        self.connection = SimpleNamespace(closed=False)

    def basic_qos(self, prefetch_count: int = 0, **kwargs: Any) -> None:
        self.prefetch_count = prefetch_count

    def consume(self, queue: str, auto_ack: bool = False, **kwargs: Any):
        assert auto_ack is False
        self.consumed_queue = queue
        for tag, (routing_key, body, timestamp) in enumerate(self.deliveries, start=1):
            method = SimpleNamespace(delivery_tag=tag, routing_key=routing_key)
            properties = SimpleNamespace(timestamp=timestamp)
            yield method, properties, body

    def basic_ack(self, delivery_tag: int = 0, multiple: bool = False) -> None:
        self.acked.append(delivery_tag)

    def basic_nack(self, delivery_tag: int = 0, multiple: bool = False, requeue: bool = True):
        self.nacked.append((delivery_tag, requeue))

    def cancel(self) -> int:
        self.cancelled = True
        return 0


@pytest.fixture
def transport():
    """Transport with sane defaults for every method the service calls."""
    return ScriptedTransport(getinfo={"id": NODE_ID, "blockheight": 700_000})


@pytest.fixture
def service(transport, settings):
    return LightningdService(transport, settings=settings)


@pytest.fixture
def event_bus():
    return LocalEventBus()


@pytest.fixture
def reply():
    return rpc_reply


@pytest.fixture
def make_socket():
    return FakeSocket


@pytest.fixture
def make_transport():
    return ScriptedTransport


@pytest.fixture
def make_channel():
    return FakeChannel
