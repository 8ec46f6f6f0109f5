import logging
from typing import Any, Mapping, Optional

from web3 import Web3

from .models import BridgeEvent, BridgeStatus, ChainEvent, EventType
from .proof import normalize_proof


def format_amount(amount: int) -> str:
    """Human readable amount of an 18-decimal token, for logs only."""
    try:
        return str(Web3.from_wei(int(amount), "ether"))
    except (TypeError, ValueError) as e:
        logging.debug(f"Could not format amount {amount!r}: {e}")
        return ""


def build_sent_event(
    event: ChainEvent, amount: int, proof: Optional[Mapping[str, Any]]
) -> BridgeEvent:
    return BridgeEvent(
        message_id=event.args.message_id,
        event_type=EventType.SENT,
        sender=event.args.sender,
        receiver=event.args.receiver,
        amount=str(amount),
        proof=normalize_proof(proof) if proof is not None else None,
        status=BridgeStatus.IN_PROGRESS,
        source_block_hash=event.block_hash,
        source_transaction_hash=event.transaction_hash,
        block_number=event.block_number,
    )


def build_received_event(event: ChainEvent, asset_id: bytes, amount: int) -> BridgeEvent:
    # Receipt settles the transfer whether or not the send leg was observed.
    return BridgeEvent(
        message_id=event.args.message_id,
        event_type=EventType.RECEIVED,
        sender=event.args.sender,
        receiver=event.args.receiver,
        amount=str(amount),
        asset_id="0x" + bytes(asset_id).hex(),
        status=BridgeStatus.BRIDGED,
        source_block_hash=event.block_hash,
        source_transaction_hash=event.transaction_hash,
        block_number=event.block_number,
    )
