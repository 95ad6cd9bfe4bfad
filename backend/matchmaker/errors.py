class NotFound(LookupError):
    """No ledger record for the requested key."""


class StorageUnavailable(RuntimeError):
    """The durable store failed; the request made no state change."""


class IdsExhausted(RuntimeError):
    """The player id space configured by MAX_PLAYERS is used up."""
