"""Fake source and sink connectors shared by collector tests."""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import pytest

from mambo.core.errors import SinkError, SourceConnectionError

Responder = Callable[[str], Any]


class FakeCursor:
    def __init__(self, responder: Responder) -> None:
        self._responder = responder
        self._row: tuple[Any, ...] | None = None
        self.closed = False

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.closed = True

    def execute(self, query: str) -> int:
        value = self._responder(query)
        self._row = value if value is None or isinstance(value, tuple) else (value,)
        return 0 if self._row is None else 1

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._row


class FakeConnection:
    def __init__(self, responder: Responder, ping_error: Exception | None = None) -> None:
        self._responder = responder
        self._ping_error = ping_error
        self.open = True
        self.cursors: list[FakeCursor] = []

    def ping(self, reconnect: bool = True) -> None:
        if self._ping_error is not None:
            raise self._ping_error

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self._responder)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        self.open = False


class FakeSourceConnector:
    """Hand out fake connections whose cursors answer through a responder callable."""

    def __init__(
        self,
        responder: Responder,
        connect_error: Exception | None = None,
        ping_error: Exception | None = None,
    ) -> None:
        self._responder = responder
        self._connect_error = connect_error
        self._ping_error = ping_error
        self.connections: list[FakeConnection] = []

    @contextmanager
    def connect(self) -> Iterator[FakeConnection]:
        if self._connect_error is not None:
            raise SourceConnectionError(str(self._connect_error)) from self._connect_error
        connection = FakeConnection(self._responder, ping_error=self._ping_error)
        self.connections.append(connection)
        try:
            yield connection
        finally:
            connection.close()


class CapturingClient:
    def __init__(self, sink: "CapturingSink") -> None:
        self._sink = sink

    def incr(self, stat: str, count: int = 1, rate: float = 1) -> None:
        if self._sink.send_error is not None:
            raise self._sink.send_error
        with self._sink.lock:
            self._sink.calls.append((stat, count, rate))


class CapturingSink:
    """Record every increment; optionally fail on connect or send."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.calls: list[tuple[str, int, float]] = []
        self.opened = 0
        self.closed = 0
        self.connect_error: Exception | None = None
        self.send_error: Exception | None = None

    @contextmanager
    def connect(self) -> Iterator[CapturingClient]:
        if self.connect_error is not None:
            raise SinkError(str(self.connect_error))
        with self.lock:
            self.opened += 1
        try:
            yield CapturingClient(self)
        finally:
            with self.lock:
                self.closed += 1

    def snapshot(self) -> list[tuple[str, int, float]]:
        with self.lock:
            return list(self.calls)


class CountingResponder:
    """Return 1, 2, 3, ... per distinct query, so per-probe sequences are observable."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict[str, int] = {}

    def __call__(self, query: str) -> int:
        with self._lock:
            self._counts[query] = self._counts.get(query, 0) + 1
            return self._counts[query]

    def count(self, query: str) -> int:
        with self._lock:
            return self._counts.get(query, 0)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("mambo.tests")


@pytest.fixture
def sink() -> CapturingSink:
    return CapturingSink()
