import pytest

from bridge_indexer.adaptors.rpc import Web3RpcClient
from bridge_indexer.proof import derive_storage_key

from conftest import BRIDGE_ADDRESS


class FakeEth:
    def __init__(self):
        self.calls = []

    async def get_transaction(self, tx_hash):
        self.calls.append(("get_transaction", tx_hash))
        return {"hash": tx_hash, "input": b"\x01\x02\x03\x04"}

    async def get_proof(self, account, positions, block_identifier):
        self.calls.append(("get_proof", account, positions, block_identifier))
        return {"address": account, "storageProof": []}


class FakeWeb3:
    def __init__(self):
        self.eth = FakeEth()


@pytest.mark.asyncio
async def test_get_transaction_passes_hash_through():
    w3 = FakeWeb3()
    tx = await Web3RpcClient(w3).get_transaction("0xabc")
    assert tx["input"] == b"\x01\x02\x03\x04"
    assert w3.eth.calls == [("get_transaction", "0xabc")]


@pytest.mark.asyncio
async def test_get_proof_converts_keys_to_positions():
    w3 = FakeWeb3()
    key = derive_storage_key(42)

    await Web3RpcClient(w3).get_proof(
        address=BRIDGE_ADDRESS.lower(), storage_keys=[key], block_number=17942200
    )

    name, account, positions, block = w3.eth.calls[0]
    assert name == "get_proof"
    assert account == BRIDGE_ADDRESS
    assert positions == [int.from_bytes(key, "big")]
    assert block == 17942200
