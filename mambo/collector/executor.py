"""Single-shot scalar query execution against MySQL."""

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any, Protocol

import pymysql

from mambo.core.errors import (
    QueryExecutionError,
    QueryPrepareError,
    ScalarParseError,
    SourceConnectionError,
)
from mambo.core.types import Probe, Result, SourceParams, build_source_dsn, parse_integer

_DRIVER_ERRORS = (pymysql.MySQLError, OSError)


class SourceConnector(Protocol):
    """Acquisition strategy for data-source connections.

    `connect()` yields a DB-API connection with `ping()` and `cursor()` and
    releases it when the block exits. Implementations raise
    SourceConnectionError when no connection can be established.
    """

    def connect(self) -> AbstractContextManager[Any]: ...


class PerCallSourceConnector:
    """Open a fresh pymysql connection for every execution and close it afterwards."""

    def __init__(self, source: SourceParams, timeout_s: float | None = None) -> None:
        self.source = source
        self.timeout_s = timeout_s

    def connect_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "user": self.source.user,
            "password": self.source.password,
            "database": self.source.database or None,
            "autocommit": True,
        }
        if self.source.local_socket:
            kwargs["unix_socket"] = self.source.socket
        else:
            kwargs["host"] = self.source.host
            kwargs["port"] = self.source.port

        if self.timeout_s is not None:
            kwargs["connect_timeout"] = self.timeout_s
            kwargs["read_timeout"] = self.timeout_s
            kwargs["write_timeout"] = self.timeout_s
        return kwargs

    @contextmanager
    def connect(self) -> Iterator[pymysql.connections.Connection]:
        try:
            connection = pymysql.connect(**self.connect_kwargs())
        except _DRIVER_ERRORS as exc:
            dsn = build_source_dsn(self.source, mask_password=True)
            raise SourceConnectionError(f"cannot connect to {dsn}: {exc}") from exc

        try:
            yield connection
        finally:
            if connection.open:
                connection.close()


def _scalar_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _fetch_first_column(probe: Probe, cursor: Any) -> Any:
    try:
        cursor.execute(probe.query)
    except pymysql.err.ProgrammingError as exc:
        raise QueryPrepareError(f"probe {probe.name}: {exc}") from exc
    except _DRIVER_ERRORS as exc:
        raise QueryExecutionError(f"probe {probe.name}: {exc}") from exc

    try:
        row = cursor.fetchone()
    except _DRIVER_ERRORS as exc:
        raise QueryExecutionError(f"probe {probe.name}: {exc}") from exc

    if not row:
        raise QueryExecutionError(f"probe {probe.name}: query returned no rows")
    return row[0]


def execute_probe(probe: Probe, connector: SourceConnector) -> Result:
    """Run the probe query once and return its integer scalar as a Result.

    Every failure raises a ProbeError subclass; the connection and cursor are
    released before the error propagates.
    """

    with connector.connect() as connection:
        try:
            connection.ping(reconnect=False)
        except _DRIVER_ERRORS as exc:
            raise SourceConnectionError(f"probe {probe.name}: source unreachable: {exc}") from exc

        with connection.cursor() as cursor:
            raw_value = _fetch_first_column(probe, cursor)

    text = _scalar_text(raw_value)
    if text is None:
        raise ScalarParseError(f"probe {probe.name}: query returned NULL")
    value = parse_integer(text.strip())
    if value is None:
        raise ScalarParseError(f"probe {probe.name}: {text!r} is not an integer")
    return Result(name=probe.name, value=value)
