"""
Function signatures of the bridge contract that the decoder understands.

Only the argument types are needed: call-data is decoded positionally with
`eth_abi`, and the selector is the first four bytes of the keccak256 hash of
the canonical signature.
"""
from typing import Dict, Iterable, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from web3 import Web3

from .models import EventType

MESSAGE_TUPLE = "(bytes1,bytes32,bytes32,uint32,uint32,bytes,uint64)"
MERKLE_PROOF_TUPLE = "(bytes32[],bytes32[],bytes32,uint256,bytes32,bytes32,bytes32,uint256)"

# Index of the `data` member inside MESSAGE_TUPLE.
MESSAGE_DATA_INDEX = 5

# ABI of the nested `data` bytes for a fungible-token message.
FUNGIBLE_PAYLOAD_TYPES = ("bytes32", "uint256")

# Safe (Gnosis) `execTransaction`. Multisig wallets call the bridge through it,
# which is a legitimate transaction shape this indexer does not decode.
SAFE_EXEC_TRANSACTION_SELECTOR = "0x6a761202"


def selector_for(signature: str) -> str:
    return "0x" + bytes(Web3.keccak(text=signature)[:4]).hex()


class FunctionSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    inputs: Tuple[str, ...]
    leg: EventType
    # Position of the uint256 amount (send functions only).
    amount_index: Optional[int] = None
    # Position of the Message struct (receive functions only).
    message_index: Optional[int] = None

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> str:
        return selector_for(self.signature)


SEND_AVAIL = FunctionSpec(
    name="sendAVAIL", inputs=("bytes32", "uint256"), leg=EventType.SENT, amount_index=1
)
SEND_ERC20 = FunctionSpec(
    name="sendERC20", inputs=("bytes32", "bytes32", "uint256"), leg=EventType.SENT, amount_index=2
)
RECEIVE_AVAIL = FunctionSpec(
    name="receiveAVAIL", inputs=(MESSAGE_TUPLE, MERKLE_PROOF_TUPLE), leg=EventType.RECEIVED, message_index=0
)
RECEIVE_ERC20 = FunctionSpec(
    name="receiveERC20", inputs=(MESSAGE_TUPLE, MERKLE_PROOF_TUPLE), leg=EventType.RECEIVED, message_index=0
)

BRIDGE_FUNCTIONS: Tuple[FunctionSpec, ...] = (SEND_AVAIL, SEND_ERC20, RECEIVE_AVAIL, RECEIVE_ERC20)


def index_by_selector(functions: Iterable[FunctionSpec]) -> Dict[str, FunctionSpec]:
    return {f.selector: f for f in functions}
