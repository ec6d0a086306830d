"""Error taxonomy for snapshot runs."""


class StakeLedgerError(Exception):
    """Base class for all stakeledger errors."""


class ExternalServiceError(StakeLedgerError):
    """Transient failure talking to an external service (RPC error, HTTP 429/5xx, transport). Retried."""


class FatalFetchError(StakeLedgerError):
    """A run cannot proceed: no snapshot is written and the previous checkpoint stays in place."""


class FetchCancelledError(StakeLedgerError):
    """The run was cancelled at a page or batch boundary."""
