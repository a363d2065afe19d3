"""Per-probe fixed-rate scheduler threads feeding the shared result queue."""

import logging
import queue
import threading
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

from mambo.collector.executor import SourceConnector, execute_probe
from mambo.core.errors import ProbeError
from mambo.core.types import Probe


@dataclass(slots=True)
class ProbeStats:
    """Mutable per-probe counters exposed through the status API."""

    ticks: int = 0
    results: int = 0
    failures: int = 0
    missed_ticks: int = 0
    last_value: int | None = None
    last_error: str | None = None
    last_tick_at: datetime | None = None


class ProbeScheduler:
    """Drive one probe at its interval until the stop event is set.

    Ticks are anchored on the monotonic clock, so execution time does not
    shift the schedule. Ticks that elapse while a query is still running are
    dropped, except one which fires as soon as the query returns.
    """

    def __init__(
        self,
        probe: Probe,
        connector: SourceConnector,
        results: "queue.Queue[Any]",
        stop_event: threading.Event,
        logger: logging.Logger,
    ) -> None:
        self.probe = probe
        self._connector = connector
        self._results = results
        self._stop_event = stop_event
        self._logger = logger
        self._stats = ProbeStats()
        self._lock = threading.Lock()
        self._thread = threading.Thread(
            target=self.run,
            name=f"probe-{probe.name}",
            daemon=True,
        )

    def start(self) -> None:
        """Launch the scheduler thread."""

        self._thread.start()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the thread to finish; return False if it is still running."""

        self._thread.join(timeout)
        return not self._thread.is_alive()

    def stats(self) -> dict[str, Any]:
        """Return a snapshot of this probe's counters."""

        with self._lock:
            return asdict(self._stats)

    def run(self) -> None:
        interval_s = self.probe.interval_s
        self._logger.info(
            "probe_loaded",
            extra={"probe": self.probe.name, "query": self.probe.query, "interval_s": interval_s},
        )

        next_tick = time.monotonic() + interval_s
        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self.tick()
            next_tick += interval_s

            behind_s = time.monotonic() - next_tick
            if behind_s > 0:
                missed = int(behind_s // interval_s)
                if missed:
                    next_tick += missed * interval_s
                    with self._lock:
                        self._stats.missed_ticks += missed
                    self._logger.debug(
                        "probe_ticks_missed",
                        extra={"probe": self.probe.name, "missed": missed},
                    )

        self._logger.info("probe_stopped", extra={"probe": self.probe.name})

    def tick(self) -> None:
        """Execute the probe once and enqueue its result on success."""

        with self._lock:
            self._stats.ticks += 1
            self._stats.last_tick_at = datetime.now(timezone.utc)

        try:
            result = execute_probe(self.probe, self._connector)
        except ProbeError as exc:
            self._record_failure(str(exc))
            self._logger.error(
                "probe_tick_failed",
                extra={"probe": self.probe.name, "error_kind": exc.kind, "error": str(exc)},
            )
            return
        except Exception as exc:  # noqa: BLE001
            self._record_failure(str(exc))
            self._logger.exception("probe_tick_crashed", extra={"probe": self.probe.name})
            return

        with self._lock:
            self._stats.results += 1
            self._stats.last_value = result.value
            self._stats.last_error = None

        message = result.encode()
        self._logger.info("probe_result", extra={"probe": self.probe.name, "result": message})
        self._results.put(message)

    def _record_failure(self, error: str) -> None:
        with self._lock:
            self._stats.failures += 1
            self._stats.last_error = error
