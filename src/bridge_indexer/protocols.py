"""
This module defines the protocols for the collaborators the core depends on.

The handlers only ever talk to these `Protocol`-based interfaces, so the RPC
client, the storage backend and the chain-event notifier can be swapped (for
example a PostgreSQL store instead of SQLite) without touching the decode and
reconciliation logic.
"""
from typing import Any, Dict, List, Mapping, Protocol, Tuple


class TransactionFetcher(Protocol):
    """Fetches a raw transaction by hash. The result must expose `input`."""

    async def get_transaction(self, tx_hash: str) -> Mapping[str, Any]:
        ...


class ProofFetcher(Protocol):
    """Fetches an EIP-1186 account/storage proof."""

    async def get_proof(
        self, *, address: str, storage_keys: List[bytes], block_number: int
    ) -> Mapping[str, Any]:
        ...


class PersistenceAdapter(Protocol):
    """
    Defines the write contract of the durable store: insert the row, or
    overwrite the supplied columns if a row with the same primary key exists.
    """

    async def upsert(self, table: str, primary_key: Tuple[Any, ...], values: Dict[str, Any]) -> None:
        ...

