"""Single consumer draining the result queue into statsd counter increments."""

import logging
import queue
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

import statsd

from mambo.core.errors import DispatchError, SinkError
from mambo.core.types import SAMPLE_RATE, Result, SinkParams, build_sink_address

STOP = object()


class CounterClient(Protocol):
    def incr(self, stat: str, count: int = 1, rate: float = 1) -> None: ...


class SinkConnector(Protocol):
    """Acquisition strategy for metrics-sink clients.

    `connect()` yields a client with `incr()` and releases it when the block
    exits. Implementations raise SinkError when no client can be created.
    """

    def connect(self) -> AbstractContextManager[CounterClient]: ...


class PerCallStatsdConnector:
    """Create a statsd UDP client for every result and close it afterwards."""

    def __init__(self, sink: SinkParams) -> None:
        self.sink = sink

    @contextmanager
    def connect(self) -> Iterator[statsd.StatsClient]:
        try:
            client = statsd.StatsClient(host=self.sink.host, port=self.sink.port)
        except OSError as exc:
            raise SinkError(f"cannot reach statsd at {build_sink_address(self.sink)}: {exc}") from exc

        try:
            yield client
        finally:
            client.close()


class Dispatcher:
    """Forward every queued result to the sink, one connection per result."""

    def __init__(
        self,
        connector: SinkConnector,
        results: "queue.Queue[Any]",
        logger: logging.Logger,
    ) -> None:
        self._connector = connector
        self._results = results
        self._logger = logger
        self._lock = threading.Lock()
        self._dispatched = 0
        self._dropped = 0
        self._thread = threading.Thread(target=self.run, name="dispatcher", daemon=True)

    def start(self) -> None:
        """Launch the dispatcher thread."""

        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the thread to finish; return False if it is still running."""

        self._thread.join(timeout)
        return not self._thread.is_alive()

    def stats(self) -> dict[str, int]:
        """Return dispatched and dropped result counts."""

        with self._lock:
            return {"dispatched": self._dispatched, "dropped": self._dropped}

    def run(self) -> None:
        """Block on the queue until the STOP sentinel arrives."""

        while True:
            message = self._results.get()
            try:
                if message is STOP:
                    break
                self.dispatch(message)
            finally:
                self._results.task_done()

        self._logger.info("dispatcher_stopped", extra=self.stats())

    def dispatch(self, message: str) -> bool:
        """Send one encoded result; return False when it was dropped."""

        try:
            result = Result.decode(message)
            self._send(result)
        except DispatchError as exc:
            self._record(sent=False)
            self._logger.error(
                "dispatch_failed",
                extra={"result": message, "error_kind": exc.kind, "error": str(exc)},
            )
            return False
        except Exception:  # noqa: BLE001
            self._record(sent=False)
            self._logger.exception("dispatch_crashed", extra={"result": message})
            return False

        self._record(sent=True)
        self._logger.info("statsd_flushed", extra={"result": message})
        return True

    def _send(self, result: Result) -> None:
        with self._connector.connect() as client:
            try:
                client.incr(result.name, result.value, rate=SAMPLE_RATE)
            except OSError as exc:
                raise SinkError(f"statsd send failed for {result.name}: {exc}") from exc

    def _record(self, sent: bool) -> None:
        with self._lock:
            if sent:
                self._dispatched += 1
            else:
                self._dropped += 1
