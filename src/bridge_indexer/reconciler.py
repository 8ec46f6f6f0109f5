"""
Applies bridge-event records to the durable store.

Every write is an upsert keyed by `(message_id, event_type)`: the first
delivery inserts the row and any redelivery overwrites its mutable columns.
Sent and Received rows are distinct keys and are never merged, so the order in
which the two legs arrive does not matter, and neither does a duplicate.
"""
import logging
from enum import Enum

from .errors import ReconciliationError
from .models import BridgeEvent, BridgeStatus, EventType
from .proof import contains_integers
from .protocols import PersistenceAdapter

BRIDGE_EVENT_TABLE = "bridge_event"

EXPECTED_STATUS = {
    EventType.SENT: BridgeStatus.IN_PROGRESS,
    EventType.RECEIVED: BridgeStatus.BRIDGED,
}


class ProofPolicy(str, Enum):
    # Proof fetch failure fails the Sent event; nothing is written.
    REQUIRED = "required"
    # The Sent row is written with a NULL proof and healed by a later redelivery.
    OPTIONAL = "optional"


class StatusReconciler:
    def __init__(
        self,
        store: PersistenceAdapter,
        proof_policy: ProofPolicy = ProofPolicy.REQUIRED,
        table: str = BRIDGE_EVENT_TABLE,
    ):
        self.store = store
        self.proof_policy = ProofPolicy(proof_policy)
        self.table = table

    def validate(self, record: BridgeEvent):
        expected = EXPECTED_STATUS[record.event_type]
        if record.status is not expected:
            raise ReconciliationError(
                f"{record.event_type.value} for message {record.message_id} must be "
                f"'{expected.value}', got '{record.status.value}'"
            )
        if record.event_type is EventType.RECEIVED and record.proof is not None:
            raise ReconciliationError(f"Received leg of message {record.message_id} carries a proof")
        if record.event_type is EventType.SENT:
            if record.proof is None and self.proof_policy is ProofPolicy.REQUIRED:
                raise ReconciliationError(f"Sent leg of message {record.message_id} has no proof")
            if record.proof is not None and contains_integers(record.proof):
                raise ReconciliationError(
                    f"Proof for message {record.message_id} has integer leaves; normalize it first"
                )

    async def reconcile(self, record: BridgeEvent) -> BridgeEvent:
        """Validate the record and insert it, or overwrite the existing row with the same key."""
        self.validate(record)
        await self.store.upsert(self.table, record.primary_key, record.to_row())
        if record.event_type is EventType.SENT and record.proof is None:
            logging.warning(
                f"Message {record.message_id} written without proof; pending re-fetch",
                extra={"event_type": record.event_type.value, "message_id": record.message_id},
            )
        return record
