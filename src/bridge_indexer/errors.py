class BridgeIndexerError(Exception):
    """Base class for errors raised while processing a single bridge event."""


class PayloadDecodeError(BridgeIndexerError, ValueError):
    """Call-data for a known bridge function could not be decoded."""


class ProofUnavailableError(BridgeIndexerError):
    """The storage proof for a sent message could not be fetched."""

    def __init__(self, message_id: int, cause: Exception):
        super().__init__(f"Failed to fetch storage proof for message {message_id}: {cause}")
        self.message_id = message_id
        self.cause = cause


class ReconciliationError(BridgeIndexerError):
    """A record violates the status invariants and must not be written."""
