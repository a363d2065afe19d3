"""Shared lightweight types to keep module interfaces explicit and typed."""

import re
from dataclasses import dataclass

from mambo.core.errors import ResultDecodeError

DEFAULT_SOURCE_PORT = 3306
DEFAULT_SINK_PORT = 8125
DEFAULT_SOURCE_SOCKET = "/var/run/mysqld/mysqld.sock"
SAMPLE_RATE = 1.0

_SEPARATOR = ":"
_MASK = "***"
_INTEGER = re.compile(r"[+-]?[0-9]+")


def parse_integer(text: str) -> int | None:
    """Parse a strict base-10 integer; blanks, decimals and digit separators are rejected."""

    if not _INTEGER.fullmatch(text):
        return None
    return int(text)


def with_default_port(port: int | None, default: int) -> int:
    """Map an absent (0 or None) port to the given default."""

    if not port:
        return default
    return port


@dataclass(frozen=True, slots=True)
class Probe:
    """One scheduled unit of work: a scalar query whose value becomes a metric."""

    name: str
    query: str
    interval_s: float

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("probe name must not be empty")
        if _SEPARATOR in self.name:
            raise ValueError(f"probe name {self.name!r} must not contain {_SEPARATOR!r}")
        if not self.query:
            raise ValueError(f"probe {self.name!r} has an empty query")
        if self.interval_s <= 0:
            raise ValueError(f"probe {self.name!r} interval must be positive, got {self.interval_s}")


@dataclass(frozen=True, slots=True)
class SourceParams:
    """MySQL connection parameters. An empty host selects local-socket mode."""

    host: str = ""
    user: str = ""
    password: str = ""
    database: str = ""
    port: int = DEFAULT_SOURCE_PORT
    socket: str = DEFAULT_SOURCE_SOCKET

    @property
    def local_socket(self) -> bool:
        """Return whether connections go through the unix socket."""

        return self.host == ""


@dataclass(frozen=True, slots=True)
class SinkParams:
    """statsd server address."""

    host: str
    port: int = DEFAULT_SINK_PORT


@dataclass(frozen=True, slots=True)
class EndpointConfig:
    """Connection parameters for both ends of the pipeline."""

    source: SourceParams
    sink: SinkParams


@dataclass(frozen=True, slots=True)
class Result:
    """A named integer sample travelling from a scheduler to the dispatcher."""

    name: str
    value: int

    def encode(self) -> str:
        """Return the `name:value` form carried on the result queue."""

        return f"{self.name}{_SEPARATOR}{self.value}"

    @classmethod
    def decode(cls, message: str) -> "Result":
        """Split on the first separator and parse the remainder as a base-10 integer."""

        name, separator, raw_value = message.partition(_SEPARATOR)
        if not separator:
            raise ResultDecodeError(f"missing separator in result {message!r}")
        if not name:
            raise ResultDecodeError(f"empty metric name in result {message!r}")
        value = parse_integer(raw_value)
        if value is None:
            raise ResultDecodeError(f"non-integer value in result {message!r}")
        return cls(name=name, value=value)


def build_source_dsn(source: SourceParams, mask_password: bool = False) -> str:
    """Return `user:password@/database` for local sockets, `user:password@host:port/database` otherwise."""

    password = _MASK if mask_password and source.password else source.password
    credentials = f"{source.user}:{password}"
    if source.local_socket:
        return f"{credentials}@/{source.database}"
    return f"{credentials}@{source.host}:{source.port}/{source.database}"


def build_sink_address(sink: SinkParams) -> str:
    """Return `host:port` for the statsd server."""

    return f"{sink.host}:{sink.port}"
