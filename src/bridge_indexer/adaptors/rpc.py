"""
web3.py implementation of the `TransactionFetcher` and `ProofFetcher` protocols.
Errors from the node propagate unchanged; retries belong to the provider or
to the notifier redelivering the event.
"""
from typing import Any, List, Mapping

from web3 import AsyncWeb3


class Web3RpcClient:
    def __init__(self, w3: AsyncWeb3):
        self.w3 = w3

    async def get_transaction(self, tx_hash: str) -> Mapping[str, Any]:
        return await self.w3.eth.get_transaction(tx_hash)

    async def get_proof(
        self, *, address: str, storage_keys: List[bytes], block_number: int
    ) -> Mapping[str, Any]:
        positions = [int.from_bytes(key, "big") for key in storage_keys]
        return await self.w3.eth.get_proof(
            AsyncWeb3.to_checksum_address(address), positions, block_number
        )


def connect(rpc_url: str) -> Web3RpcClient:
    return Web3RpcClient(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url)))
