"""Loading endpoint parameters and probes from the INI configuration file."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from mambo.core.errors import ConfigError
from mambo.core.probe_file import load_probe_file, parse_probe_config
from mambo.core.types import DEFAULT_SOURCE_SOCKET, Probe

_FULL_CONFIG = """
[config]
mysql_host = db01
mysql_user = monitor
mysql_pass = s3cret
mysql_db = app
mysql_port = 3307
statsd_host = graphite
statsd_port = 9125

[threads]
key = mysql.db01.threads
query = SELECT COUNT(*) FROM information_schema.processlist WHERE command LIKE '%Query%'
freq = 1500

[lag]
key = mysql.db01.lag
query = SELECT 1
freq = 100
"""


def test_parse_full_config(tmp_path: Path) -> None:
    """Every field should be read and probes should keep file order."""

    path = tmp_path / "mambo.cfg"
    path.write_text(_FULL_CONFIG, encoding="utf-8")

    endpoints, probes = load_probe_file(path)

    assert endpoints.source.host == "db01"
    assert endpoints.source.user == "monitor"
    assert endpoints.source.password == "s3cret"
    assert endpoints.source.database == "app"
    assert endpoints.source.port == 3307
    assert endpoints.sink.host == "graphite"
    assert endpoints.sink.port == 9125
    assert probes == (
        Probe(
            name="mysql.db01.threads",
            query="SELECT COUNT(*) FROM information_schema.processlist WHERE command LIKE '%Query%'",
            interval_s=1.5,
        ),
        Probe(name="mysql.db01.lag", query="SELECT 1", interval_s=0.1),
    )


def test_defaults_applied_for_missing_values() -> None:
    endpoints, _ = parse_probe_config(
        "[config]\nstatsd_host = graphite\nmysql_port = 0\n\n[q]\nkey = q1\nquery = SELECT 1\nfreq = 1000\n"
    )

    assert endpoints.source.local_socket
    assert endpoints.source.port == 3306
    assert endpoints.source.socket == DEFAULT_SOURCE_SOCKET
    assert endpoints.sink.port == 8125


@pytest.mark.parametrize(
    "text",
    [
        "[q]\nkey = q1\nquery = SELECT 1\nfreq = 1000\n",
        "[config]\nmysql_host = db01\n\n[q]\nkey = q1\nquery = SELECT 1\nfreq = 1000\n",
        "[config]\nstatsd_host = graphite\n",
        "[config]\nstatsd_host = graphite\n\n[q]\nkey = q1\nquery = SELECT 1\n",
        "[config]\nstatsd_host = graphite\n\n[q]\nkey = q1\nquery = SELECT 1\nfreq = 0\n",
        "[config]\nstatsd_host = graphite\n\n[q]\nkey = q1\nquery = SELECT 1\nfreq = often\n",
        "[config]\nstatsd_host = graphite\n\n[q]\nquery = SELECT 1\nfreq = 1000\n",
        "[config]\nstatsd_host = graphite\n\n[q]\nkey = mysql:lag\nquery = SELECT 1\nfreq = 1000\n",
        "[config]\nstatsd_host = graphite\n\n[q]\nkey = q1\nfreq = 1000\n",
        "[config]\nstatsd_host = graphite\nstatsd_port = 70000\n\n[q]\nkey = q1\nquery = SELECT 1\nfreq = 1000\n",
        "[config\nbroken",
    ],
    ids=[
        "missing-config-section",
        "missing-statsd-host",
        "no-probes",
        "missing-freq",
        "zero-freq",
        "non-integer-freq",
        "missing-key",
        "separator-in-key",
        "missing-query",
        "port-out-of-range",
        "unparsable",
    ],
)
def test_invalid_configs_raise_config_error(text: str) -> None:
    with pytest.raises(ConfigError):
        parse_probe_config(text)


def test_missing_file_raises_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_probe_file(tmp_path / "absent.cfg")


def test_legacy_stats_port_is_ignored_with_warning() -> None:
    """The renamed sink port key should warn instead of silently using the default."""

    logger = MagicMock()
    endpoints, _ = parse_probe_config(
        "[config]\nstatsd_host = graphite\nstats_port = 9125\n\n[q]\nkey = q1\nquery = SELECT 1\nfreq = 1000\n",
        logger=logger,
    )

    assert endpoints.sink.port == 8125
    logger.warning.assert_called_once()
    assert logger.warning.call_args.args == ("config_legacy_key_ignored",)
    assert logger.warning.call_args.kwargs["extra"]["key"] == "stats_port"


def test_canonical_statsd_port_does_not_warn() -> None:
    logger = MagicMock()
    parse_probe_config(_FULL_CONFIG, logger=logger)
    logger.warning.assert_not_called()
