"""Supervisor owning the result queue, the probe schedulers and the dispatcher."""

import logging
import queue
import threading
from collections.abc import Sequence
from typing import Any

from mambo.collector.dispatcher import STOP, Dispatcher, PerCallStatsdConnector, SinkConnector
from mambo.collector.executor import PerCallSourceConnector, SourceConnector
from mambo.collector.scheduler import ProbeScheduler
from mambo.core.types import EndpointConfig, Probe, build_sink_address, build_source_dsn


class Collector:
    """Start one scheduler per probe plus the dispatcher, and stop them on request.

    Schedulers push encoded results onto a single unbounded FIFO queue which
    only the dispatcher reads. Connectors default to per-call connections
    built from the endpoint config.
    """

    def __init__(
        self,
        endpoints: EndpointConfig,
        probes: Sequence[Probe],
        logger: logging.Logger,
        source_connector: SourceConnector | None = None,
        sink_connector: SinkConnector | None = None,
        query_timeout_s: float | None = None,
    ) -> None:
        self.endpoints = endpoints
        self.probes = tuple(probes)
        self._logger = logger
        self._results: "queue.Queue[Any]" = queue.Queue()
        self._stop_event = threading.Event()
        self._started = False

        if source_connector is None:
            source_connector = PerCallSourceConnector(endpoints.source, timeout_s=query_timeout_s)
        if sink_connector is None:
            sink_connector = PerCallStatsdConnector(endpoints.sink)

        self._schedulers = [
            ProbeScheduler(
                probe=probe,
                connector=source_connector,
                results=self._results,
                stop_event=self._stop_event,
                logger=logger,
            )
            for probe in self.probes
        ]
        self._dispatcher = Dispatcher(connector=sink_connector, results=self._results, logger=logger)

    @property
    def running(self) -> bool:
        return self._started and not self._stop_event.is_set()

    def start(self) -> None:
        if self._started:
            raise RuntimeError("collector already started")
        self._started = True

        self._logger.info(
            "collector_starting",
            extra={
                "source": build_source_dsn(self.endpoints.source, mask_password=True),
                "sink": build_sink_address(self.endpoints.sink),
                "probe_count": len(self.probes),
            },
        )
        self._dispatcher.start()
        for scheduler in self._schedulers:
            scheduler.start()
        self._logger.info("collector_running")

    def stop(self, timeout: float | None = None) -> bool:
        """Stop all schedulers, drain the queue and stop the dispatcher.

        Returns False when a thread is still blocked on I/O after timeout.
        Threads are daemons, so a stuck query never prevents process exit.
        """

        if not self._started or self._stop_event.is_set():
            return True

        self._logger.info("collector_stopping")
        self._stop_event.set()

        clean = True
        for scheduler in self._schedulers:
            if not scheduler.join(timeout):
                clean = False
                self._logger.warning("probe_stop_timeout", extra={"probe": scheduler.probe.name})

        self._results.put(STOP)
        if not self._dispatcher.join(timeout):
            clean = False
            self._logger.warning("dispatcher_stop_timeout")

        self._logger.info("collector_stopped", extra={"clean": clean})
        return clean

    def status(self) -> dict[str, Any]:
        """Return a JSON-ready snapshot of probe and dispatcher counters."""

        return {
            "running": self.running,
            "pending_results": self._results.qsize(),
            "dispatcher": self._dispatcher.stats(),
            "probes": [
                {
                    "name": scheduler.probe.name,
                    "query": scheduler.probe.query,
                    "interval_s": scheduler.probe.interval_s,
                    **scheduler.stats(),
                }
                for scheduler in self._schedulers
            ],
        }
