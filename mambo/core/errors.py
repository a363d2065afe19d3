"""Error taxonomy separating fatal startup errors from per-tick and per-result failures."""


class MamboError(Exception):
    """Base class for collector errors."""

    kind = "error"


class ConfigError(MamboError):
    """Configuration could not be loaded or is structurally invalid."""

    kind = "config"


class ProbeError(MamboError):
    """One probe execution failed; the tick is dropped and the scheduler continues."""

    kind = "probe"


class SourceConnectionError(ProbeError):
    kind = "source_connection"


class QueryPrepareError(ProbeError):
    kind = "query_prepare"


class QueryExecutionError(ProbeError):
    kind = "query_execution"


class ScalarParseError(ProbeError):
    kind = "scalar_parse"


class DispatchError(MamboError):
    """One result could not be forwarded; it is dropped and the dispatcher continues."""

    kind = "dispatch"


class ResultDecodeError(DispatchError):
    kind = "result_decode"


class SinkError(DispatchError):
    kind = "sink"
