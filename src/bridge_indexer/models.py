"""
This module defines the core data models for the bridge indexer using Pydantic.
`BridgeEvent` is the canonical record shared by both legs of a transfer, and
`ChainEvent` is the shape delivered by the chain-event notifier.
"""
import json
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

UINT256_MAX = 2**256 - 1

# Bump when the serialized status values change.
STATUS_SCHEMA_VERSION = 1


class EventType(str, Enum):
    SENT = "MessageSent"
    RECEIVED = "MessageReceived"


class BridgeStatus(str, Enum):
    """Lifecycle of one bridge-event row."""
    INITIATED = "initiated"
    IN_PROGRESS = "in progress"
    CLAIM_READY = "claim ready"
    BRIDGED = "bridged"


def _normalize_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if not isinstance(value, str):
        raise ValueError(f"expected hex string, got {type(value).__name__}")
    body = value[2:] if value[:2].lower() == "0x" else value
    try:
        bytes.fromhex(body)
    except ValueError:
        raise ValueError(f"invalid hex string: {value!r}")
    return "0x" + body.lower()


# 20-byte EVM addresses and 32-byte accounts of the remote chain.
ADDRESS_LENGTHS = (20, 32)


def _normalize_address(value: Any) -> str:
    value = _normalize_hex(value)
    if (len(value) - 2) // 2 not in ADDRESS_LENGTHS:
        raise ValueError(f"address must be 20 or 32 bytes, got {value!r}")
    return value


class ChainEventArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    message_id: int = Field(alias="messageId", ge=0, le=UINT256_MAX)
    sender: str = Field(alias="from")
    receiver: str = Field(alias="to")

    @field_validator("sender", "receiver", mode="before")
    @classmethod
    def check_addresses(cls, value):
        return _normalize_address(value)


class ChainEvent(BaseModel):
    """An on-chain event as delivered by the chain-event notifier."""
    model_config = ConfigDict(populate_by_name=True)

    transaction_hash: str = Field(alias="transactionHash")
    block_number: int = Field(alias="blockNumber", ge=0)
    block_hash: str = Field(alias="blockHash")
    args: ChainEventArgs
    # Some notifiers ship the transaction input along with the log.
    input: Optional[str] = None

    @field_validator("transaction_hash", "block_hash", mode="before")
    @classmethod
    def check_hashes(cls, value):
        return _normalize_hex(value)

    @field_validator("input", mode="before")
    @classmethod
    def check_input(cls, value):
        return None if value is None else _normalize_hex(value)


class DecodedCall(BaseModel):
    function: str
    selector: str
    args: Tuple[Any, ...]


class BridgeEvent(BaseModel):
    message_id: int = Field(ge=0, le=UINT256_MAX)
    event_type: EventType
    sender: str
    receiver: str
    amount: str
    asset_id: Optional[str] = None
    proof: Optional[Dict[str, Any]] = None
    status: BridgeStatus
    source_block_hash: str
    source_transaction_hash: str
    block_number: int = Field(ge=0)

    @field_validator("sender", "receiver", mode="before")
    @classmethod
    def check_addresses(cls, value):
        return _normalize_address(value)

    @field_validator("source_block_hash", "source_transaction_hash", mode="before")
    @classmethod
    def check_hashes(cls, value):
        return _normalize_hex(value)

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_decimal_string(cls, value):
        # bool is an int subclass; floats would lose precision.
        if isinstance(value, bool) or isinstance(value, float):
            raise ValueError("amount must be an integer or a decimal string")
        if isinstance(value, int):
            value = str(value)
        # str.isdigit() alone also accepts non-ASCII digits.
        if not isinstance(value, str) or not (value.isascii() and value.isdigit()):
            raise ValueError(f"amount must be a non-negative integer, got {value!r}")
        return str(int(value))

    @field_validator("asset_id", mode="before")
    @classmethod
    def check_asset_id(cls, value):
        if value is None:
            return None
        value = _normalize_hex(value)
        if len(value) != 66:
            raise ValueError("asset_id must be 32 bytes")
        return value

    @property
    def primary_key(self) -> Tuple[int, EventType]:
        return self.message_id, self.event_type

    def to_row(self) -> Dict[str, Any]:
        """Column values for the `bridge_event` table. Big integers are stored as text."""
        return {
            "message_id": str(self.message_id),
            "event_type": self.event_type.value,
            "sender": self.sender,
            "receiver": self.receiver,
            "amount": self.amount,
            "asset_id": self.asset_id,
            "proof": json.dumps(self.proof) if self.proof is not None else None,
            "status": self.status.value,
            "source_block_hash": self.source_block_hash,
            "source_transaction_hash": self.source_transaction_hash,
            "block_number": self.block_number,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "BridgeEvent":
        data = dict(row)
        data["message_id"] = int(data["message_id"])
        if data.get("proof") is not None:
            data["proof"] = json.loads(data["proof"])
        return cls(**data)
