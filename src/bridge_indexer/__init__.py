# bridge_indexer package

from .models import BridgeEvent, BridgeStatus, ChainEvent, EventType
from .decoder import PayloadDecoder
from .proof import derive_storage_key, normalize_proof
from .reconciler import ProofPolicy, StatusReconciler
from .handlers import (
    BridgeContext,
    BridgeEventProcessor,
    HandlerOutcome,
    handle_message_received,
    handle_message_sent,
)
from .adaptors.sqlite import sqlite_persistence_factory

__all__ = [
    "BridgeEvent",
    "BridgeStatus",
    "ChainEvent",
    "EventType",
    "PayloadDecoder",
    "derive_storage_key",
    "normalize_proof",
    "ProofPolicy",
    "StatusReconciler",
    "BridgeContext",
    "BridgeEventProcessor",
    "HandlerOutcome",
    "handle_message_received",
    "handle_message_sent",
    "sqlite_persistence_factory",
]
