import asyncio

import pytest
from pytest_asyncio import fixture
from eth_abi import encode
from hexbytes import HexBytes

from bridge_indexer import BridgeContext, BridgeEventProcessor, sqlite_persistence_factory
from bridge_indexer.abi import MERKLE_PROOF_TUPLE, MESSAGE_TUPLE, RECEIVE_AVAIL, SEND_AVAIL
from bridge_indexer.reconciler import ProofPolicy

BRIDGE_ADDRESS = "0x42CDc5D4B05E8dACc2FCD181cbe0Cc86Ee14c439"
SENDER = "0x" + "aa" * 20
RECEIVER = "0x" + "bb" * 20
AVAIL_ACCOUNT = "0x" + "cc" * 32
ASSET_ID = b"\x11" * 32
ONE_TOKEN = 10**18


def selector_bytes(spec) -> bytes:
    return bytes.fromhex(spec.selector[2:])


def send_call_data(amount: int, recipient: bytes = b"\xcc" * 32) -> bytes:
    return selector_bytes(SEND_AVAIL) + encode(["bytes32", "uint256"], [recipient, amount])


def receive_call_data(message_id: int, amount: int, asset_id: bytes = ASSET_ID) -> bytes:
    payload = encode(["bytes32", "uint256"], [asset_id, amount])
    message = (b"\x02", b"\xcc" * 32, b"\x00" * 12 + b"\xbb" * 20, 2, 1, payload, message_id)
    merkle_proof = ([b"\x01" * 32], [], b"\x02" * 32, 7, b"\x03" * 32, b"\x04" * 32, b"\x05" * 32, 3)
    return selector_bytes(RECEIVE_AVAIL) + encode([MESSAGE_TUPLE, MERKLE_PROOF_TUPLE], [message, merkle_proof])


def make_event(message_id=42, tx_byte="11", block_number=100, sender=SENDER, receiver=RECEIVER, **extra):
    event = {
        "transactionHash": "0x" + tx_byte * 32,
        "blockNumber": block_number,
        "blockHash": "0x" + "22" * 32,
        "args": {"messageId": message_id, "from": sender, "to": receiver},
    }
    event.update(extra)
    return event


def sample_proof(value: int = 1):
    """Shaped like web3's eth_getProof result: ints and HexBytes leaves."""
    return {
        "address": BRIDGE_ADDRESS,
        "balance": 0,
        "nonce": 1,
        "codeHash": HexBytes(b"\x0c" * 32),
        "storageHash": HexBytes(b"\x0d" * 32),
        "accountProof": [HexBytes(b"\xf8\x51"), HexBytes(b"\xf8\x71")],
        "storageProof": [
            {"key": 2**255 + 17, "value": value, "proof": [HexBytes(b"\xe2\x01")]},
        ],
    }


class FakeRpc:
    """In-process stand-in for the transaction and proof fetchers."""

    def __init__(self):
        self.transactions = {}
        self.proof = sample_proof()
        self.proof_error = None
        self.proof_calls = []
        self.transaction_calls = []
        # Seconds to stall a proof fetch, by block number.
        self.proof_delays = {}
        self.proofs_in_flight = 0
        self.max_proofs_in_flight = 0

    def add_transaction(self, tx_byte: str, call_data: bytes):
        self.transactions["0x" + tx_byte * 32] = call_data

    async def get_transaction(self, tx_hash):
        self.transaction_calls.append(tx_hash)
        return {"input": HexBytes(self.transactions[tx_hash])}

    async def get_proof(self, *, address, storage_keys, block_number):
        self.proof_calls.append({"address": address, "storage_keys": storage_keys, "block_number": block_number})
        self.proofs_in_flight += 1
        self.max_proofs_in_flight = max(self.max_proofs_in_flight, self.proofs_in_flight)
        try:
            await asyncio.sleep(self.proof_delays.get(block_number, 0))
            if self.proof_error is not None:
                raise self.proof_error
            return self.proof
        finally:
            self.proofs_in_flight -= 1


class MemoryStore:
    """Dict-backed PersistenceAdapter."""

    def __init__(self):
        self.rows = {}
        self.writes = []

    async def upsert(self, table, primary_key, values):
        self.writes.append((table, primary_key, values))
        self.rows[primary_key] = {**self.rows.get(primary_key, {}), **values}


@pytest.fixture
def rpc():
    return FakeRpc()


@fixture
async def store():
    async with sqlite_persistence_factory(":memory:") as adapter:
        yield adapter


@fixture
async def processor(rpc, store):
    context = BridgeContext(transactions=rpc, proofs=rpc, store=store, contract_address=BRIDGE_ADDRESS)
    yield BridgeEventProcessor(context)


@fixture
async def lenient_processor(rpc, store):
    context = BridgeContext(
        transactions=rpc,
        proofs=rpc,
        store=store,
        contract_address=BRIDGE_ADDRESS,
        proof_policy=ProofPolicy.OPTIONAL,
    )
    yield BridgeEventProcessor(context)
