"""
Storage proof helpers for in-flight (sent) messages.

The bridge contract records message completion in a mapping at a fixed slot,
so the storage key of a message is `keccak256(pad32(message_id) || pad32(slot))`.
Fetched proofs are stored as JSON, which has no big-integer type, so every
integer leaf is converted to its decimal string before persistence.
"""
from typing import Any, Mapping

from web3 import Web3

from .models import UINT256_MAX

MESSAGE_COMPLETION_SLOT = 1


def _pad32(value: int, name: str) -> bytes:
    if value < 0 or value > UINT256_MAX:
        raise ValueError(f"{name} must fit in an unsigned 256-bit integer, got {value}")
    return value.to_bytes(32, "big")


def derive_storage_key(message_id: int, slot: int = MESSAGE_COMPLETION_SLOT) -> bytes:
    return bytes(Web3.keccak(_pad32(message_id, "message_id") + _pad32(slot, "slot")))


def normalize_proof(value: Any) -> Any:
    if isinstance(value, bool) or value is None or isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Mapping):
        return {str(k): normalize_proof(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_proof(v) for v in value]
    raise TypeError(f"Unsupported value in proof: {type(value).__name__}")


def contains_integers(value: Any) -> bool:
    """True if any leaf is a native int (booleans excluded)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    if isinstance(value, Mapping):
        return any(contains_integers(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(contains_integers(v) for v in value)
    return False
