"""Load endpoint parameters and probe definitions from the collector INI file.

The `[config]` section holds MySQL and statsd connection parameters; every
other section describes one probe:

    [config]
    mysql_host = db01
    mysql_user = monitor
    mysql_pass = secret
    mysql_db = app
    statsd_host = graphite

    [replication_lag]
    key = mysql.db01.replication_lag
    query = SELECT seconds_behind FROM heartbeat
    freq = 10000
"""

import configparser
import logging
from pathlib import Path

from mambo.core.errors import ConfigError
from mambo.core.types import (
    DEFAULT_SINK_PORT,
    DEFAULT_SOURCE_PORT,
    DEFAULT_SOURCE_SOCKET,
    EndpointConfig,
    Probe,
    SinkParams,
    SourceParams,
    parse_integer,
    with_default_port,
)

CONFIG_SECTION = "config"
LEGACY_SINK_PORT_KEY = "stats_port"


def _read_int(section: configparser.SectionProxy, key: str) -> int:
    raw = section.get(key, "").strip()
    if not raw:
        return 0
    value = parse_integer(raw)
    if value is None:
        raise ConfigError(f"[{section.name}] {key} must be an integer, got {raw!r}")
    return value


def _read_port(section: configparser.SectionProxy, key: str, default: int) -> int:
    port = with_default_port(_read_int(section, key), default)
    if not 0 < port < 65536:
        raise ConfigError(f"[{section.name}] {key} out of range: {port}")
    return port


def _parse_endpoints(section: configparser.SectionProxy, logger: logging.Logger | None) -> EndpointConfig:
    sink_host = section.get("statsd_host", "").strip()
    if not sink_host:
        raise ConfigError(f"[{section.name}] statsd_host is required")

    source = SourceParams(
        host=section.get("mysql_host", "").strip(),
        user=section.get("mysql_user", ""),
        password=section.get("mysql_pass", ""),
        database=section.get("mysql_db", ""),
        port=_read_port(section, "mysql_port", DEFAULT_SOURCE_PORT),
        socket=section.get("mysql_socket", "").strip() or DEFAULT_SOURCE_SOCKET,
    )
    sink = SinkParams(
        host=sink_host,
        port=_read_port(section, "statsd_port", DEFAULT_SINK_PORT),
    )
    if logger is not None and section.get(LEGACY_SINK_PORT_KEY, "").strip():
        logger.warning(
            "config_legacy_key_ignored",
            extra={"key": LEGACY_SINK_PORT_KEY, "use": "statsd_port", "statsd_port": sink.port},
        )
    return EndpointConfig(source=source, sink=sink)


def _parse_probe(section: configparser.SectionProxy) -> Probe:
    freq_ms = _read_int(section, "freq")
    if freq_ms <= 0:
        raise ConfigError(f"[{section.name}] freq must be a positive number of milliseconds")

    try:
        return Probe(
            name=section.get("key", "").strip(),
            query=section.get("query", "").strip(),
            interval_s=freq_ms / 1000.0,
        )
    except ValueError as exc:
        raise ConfigError(f"[{section.name}] {exc}") from exc


def parse_probe_config(
    text: str,
    source: str = "<string>",
    logger: logging.Logger | None = None,
) -> tuple[EndpointConfig, tuple[Probe, ...]]:
    """Parse INI text into endpoint parameters and probes in file order.

    A `stats_port` key is not read as the sink port; it only produces a
    warning on logger.
    """

    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(text, source=source)
    except configparser.Error as exc:
        raise ConfigError(f"{source}: {exc}") from exc

    if not parser.has_section(CONFIG_SECTION):
        raise ConfigError(f"{source}: missing [{CONFIG_SECTION}] section")

    endpoints = _parse_endpoints(parser[CONFIG_SECTION], logger)
    probes = tuple(
        _parse_probe(parser[name]) for name in parser.sections() if name != CONFIG_SECTION
    )
    if not probes:
        raise ConfigError(f"{source}: no probes defined")
    return endpoints, probes


def load_probe_file(
    path: str | Path,
    logger: logging.Logger | None = None,
) -> tuple[EndpointConfig, tuple[Probe, ...]]:
    """Read and parse the INI file at path."""

    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read configuration {file_path}: {exc}") from exc
    return parse_probe_config(text, source=str(file_path), logger=logger)
