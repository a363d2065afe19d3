"""Collector process: load probes, run schedulers and dispatcher until a shutdown signal."""

import argparse
import logging
import signal
import threading
from collections.abc import Sequence

from mambo.collector.supervisor import Collector
from mambo.core.config import Settings, get_settings
from mambo.core.errors import ConfigError
from mambo.core.logging import build_logger
from mambo.core.probe_file import load_probe_file
from mambo.services.api.main import StatusServer, create_app

_POLL_SLEEP_S = 0.5


def _parse_args(argv: Sequence[str] | None, settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mambo",
        description="Poll scalar MySQL queries and forward them to statsd as counters.",
    )
    parser.add_argument(
        "--cfg",
        default=settings.MAMBO_CONFIG,
        help="main configuration file (default: %(default)s)",
    )
    return parser.parse_args(argv)


def _request_shutdown(shutdown_event: threading.Event, logger: logging.Logger, signal_name: str) -> None:
    if shutdown_event.is_set():
        return
    logger.info("collector_shutdown_signal", extra={"signal": signal_name})
    shutdown_event.set()


def _install_signal_handlers(shutdown_event: threading.Event, logger: logging.Logger) -> None:
    for sig in (signal.SIGINT, signal.SIGTERM):
        signal_name = sig.name
        signal.signal(
            sig,
            lambda *_args, signal_name=signal_name: _request_shutdown(
                shutdown_event,
                logger,
                signal_name,
            ),
        )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the collector until interrupted; return 1 on a configuration error."""

    settings = get_settings()
    args = _parse_args(argv, settings)
    logger = build_logger(settings.LOG_LEVEL)
    logger.info("collector_started", extra={"version": settings.VERSION, "env": settings.ENV})
    logger.info("collector_loading_config", extra={"path": args.cfg})

    try:
        endpoints, probes = load_probe_file(args.cfg, logger)
    except ConfigError as exc:
        logger.critical("collector_config_error", extra={"path": args.cfg, "error": str(exc)})
        return 1

    shutdown_event = threading.Event()
    _install_signal_handlers(shutdown_event, logger)

    collector = Collector(
        endpoints=endpoints,
        probes=probes,
        logger=logger,
        query_timeout_s=settings.query_timeout(),
    )

    status_server: StatusServer | None = None
    if settings.status_enabled():
        app = create_app(settings, collector.status, logger)
        status_server = StatusServer(app, host=settings.STATUS_HOST, port=settings.STATUS_PORT)
        status_server.start()
        logger.info(
            "status_api_listening",
            extra={"host": settings.STATUS_HOST, "port": settings.STATUS_PORT},
        )

    collector.start()
    try:
        while not shutdown_event.is_set():
            shutdown_event.wait(_POLL_SLEEP_S)
    finally:
        collector.stop(timeout=settings.SHUTDOWN_TIMEOUT_S)
        if status_server is not None:
            status_server.stop(timeout=settings.SHUTDOWN_TIMEOUT_S)

    logger.info("collector_shutdown", extra=collector.status()["dispatcher"])
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
