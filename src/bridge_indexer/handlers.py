"""
Event handlers: one per bridge event type, each turning a single delivered
chain event into a single upserted `bridge_event` row (or a deliberate skip).

Handlers keep no state between invocations. All correlation between the send
and receive legs happens through the store's `(message_id, event_type)` key, so
events may be processed concurrently, out of order, or more than once.
"""
import asyncio
import functools
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError

from .builder import build_received_event, build_sent_event, format_amount
from .decoder import PayloadDecoder
from .errors import PayloadDecodeError, ProofUnavailableError
from .models import ChainEvent, DecodedCall, EventType
from .proof import MESSAGE_COMPLETION_SLOT, derive_storage_key
from .protocols import PersistenceAdapter, ProofFetcher, TransactionFetcher
from .reconciler import BRIDGE_EVENT_TABLE, ProofPolicy, StatusReconciler
from .stats import ProcessingStats

# Upper bound on events in flight during batch processing.
DEFAULT_BATCH_SIZE = 100


class HandlerOutcome(str, Enum):
    WRITTEN = "written"
    SKIPPED = "skipped"


class BridgeContext:
    """The collaborators a handler needs, bound to one bridge contract."""

    def __init__(
        self,
        transactions: TransactionFetcher,
        proofs: ProofFetcher,
        store: PersistenceAdapter,
        contract_address: str,
        *,
        decoder: Optional[PayloadDecoder] = None,
        proof_policy: ProofPolicy = ProofPolicy.REQUIRED,
        message_slot: int = MESSAGE_COMPLETION_SLOT,
        table: str = BRIDGE_EVENT_TABLE,
    ):
        self.transactions = transactions
        self.proofs = proofs
        self.store = store
        self.contract_address = contract_address
        self.decoder = decoder or PayloadDecoder()
        self.message_slot = message_slot
        self.reconciler = StatusReconciler(store, proof_policy, table=table)


Handler = Callable[[ChainEvent, BridgeContext], Awaitable[HandlerOutcome]]


def _log_failures(event_type: EventType):
    """Log a per-event failure with its message id and cause, then re-raise it."""
    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(event: ChainEvent, context: BridgeContext) -> HandlerOutcome:
            try:
                return await handler(event, context)
            except Exception as e:
                logging.error(
                    f"Failed to process {event_type.value} for message {event.args.message_id} "
                    f"(tx {event.transaction_hash}): {e}",
                    extra={
                        "event_type": event_type.value,
                        "message_id": event.args.message_id,
                        "cause": repr(e),
                    },
                )
                raise
        return wrapper
    return decorator


async def _decode_transaction(event: ChainEvent, context: BridgeContext, event_type: EventType) -> Optional[DecodedCall]:
    call_data = event.input
    if call_data is None:
        tx = await context.transactions.get_transaction(event.transaction_hash)
        call_data = tx.get("input") if isinstance(tx, Mapping) else None
        if call_data is None:
            raise PayloadDecodeError(f"Transaction {event.transaction_hash} has no input data")

    call = context.decoder.decode_call(call_data)
    if call is None:
        logging.info(
            f"Skipping {event_type.value} for message {event.args.message_id}: "
            f"transaction {event.transaction_hash} calls a foreign function",
            extra={"event_type": event_type.value, "message_id": event.args.message_id},
        )
    return call


@_log_failures(EventType.SENT)
async def handle_message_sent(event: ChainEvent, context: BridgeContext) -> HandlerOutcome:
    call = await _decode_transaction(event, context, EventType.SENT)
    if call is None:
        return HandlerOutcome.SKIPPED
    amount = context.decoder.decode_send_amount(call)

    message_id = event.args.message_id
    storage_key = derive_storage_key(message_id, context.message_slot)
    try:
        # Proof at the block of the send, so it reflects post-send state.
        proof = await context.proofs.get_proof(
            address=context.contract_address,
            storage_keys=[storage_key],
            block_number=event.block_number,
        )
    except Exception as e:
        if context.reconciler.proof_policy is ProofPolicy.REQUIRED:
            raise ProofUnavailableError(message_id, e) from e
        logging.warning(f"Proof fetch failed for message {message_id}, writing without proof: {e}")
        proof = None

    record = build_sent_event(event, amount, proof)
    logging.info(
        f"MessageSent {message_id}: amount={format_amount(amount)} "
        f"from={record.sender} to={record.receiver}"
    )
    await context.reconciler.reconcile(record)
    return HandlerOutcome.WRITTEN


@_log_failures(EventType.RECEIVED)
async def handle_message_received(event: ChainEvent, context: BridgeContext) -> HandlerOutcome:
    call = await _decode_transaction(event, context, EventType.RECEIVED)
    if call is None:
        return HandlerOutcome.SKIPPED
    asset_id, amount = context.decoder.decode_receive_payload(call)

    record = build_received_event(event, asset_id, amount)
    logging.info(
        f"MessageReceived {record.message_id}: amount={format_amount(amount)} "
        f"from={record.sender} to={record.receiver}"
    )
    await context.reconciler.reconcile(record)
    return HandlerOutcome.WRITTEN


class BridgeEventProcessor:
    """
    Dispatches delivered events to their handler by event name. Names may be
    qualified with the contract, as in "AvailBridgeV1:MessageSent".
    """

    def __init__(self, context: BridgeContext):
        self.context = context
        self._handlers: Dict[str, Handler] = {}
        self.on(EventType.SENT.value)(handle_message_sent)
        self.on(EventType.RECEIVED.value)(handle_message_received)

    def on(self, name: str) -> Callable[[Handler], Handler]:
        def register(handler: Handler) -> Handler:
            self._handlers[name] = handler
            return handler
        return register

    async def process(self, name: str, event: Union[ChainEvent, Mapping[str, Any]]) -> HandlerOutcome:
        handler = self._handlers[name.rsplit(":", 1)[-1]]
        if not isinstance(event, ChainEvent):
            event = ChainEvent.model_validate(event)
        return await handler(event, self.context)

    async def process_many(
        self,
        items: Iterable[Tuple[str, Union[ChainEvent, Mapping[str, Any]]]],
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> ProcessingStats:
        """
        Process events in batches of at most `batch_size`, one batch at a time.

        Within a batch, deliveries that share a `(message_id, event name)` key
        run one after another in input order, so the latest delivery is the one
        left in the store. Different keys run concurrently. One failure never
        stops the others.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        stats = ProcessingStats()
        batch = []
        for item in items:
            batch.append(item)
            if len(batch) == batch_size:
                await self._process_batch(batch, stats)
                batch = []
        if batch:
            await self._process_batch(batch, stats)
        stats.log_summary()
        return stats

    async def _process_batch(self, batch, stats: ProcessingStats):
        groups: Dict[Tuple[int, str], List[Tuple[str, ChainEvent]]] = {}
        for name, event in batch:
            try:
                if not isinstance(event, ChainEvent):
                    event = ChainEvent.model_validate(event)
            except ValidationError as e:
                logging.error(f"Rejected malformed {name} event: {e}")
                stats.record_failure(name, e)
                continue
            key = (event.args.message_id, name.rsplit(":", 1)[-1])
            groups.setdefault(key, []).append((name, event))

        results = await asyncio.gather(*(self._process_in_order(group) for group in groups.values()))
        for group_results in results:
            for name, result in group_results:
                if isinstance(result, Exception):
                    stats.record_failure(name, result)
                elif result is HandlerOutcome.SKIPPED:
                    stats.skipped += 1
                else:
                    stats.written += 1

    async def _process_in_order(self, group):
        results = []
        for name, event in group:
            try:
                results.append((name, await self.process(name, event)))
            except Exception as e:
                results.append((name, e))
        return results
