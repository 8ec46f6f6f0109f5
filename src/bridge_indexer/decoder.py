"""
Decodes bridge-contract call-data into the arguments relevant to a transfer.

Call-data whose selector is on the foreign-selector denylist is "not
applicable": `decode_call` returns `None` and the caller skips the event.
Anything else that cannot be decoded is a `PayloadDecodeError`.
"""
from typing import Iterable, Optional, Tuple, Union

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from .abi import (
    BRIDGE_FUNCTIONS,
    FUNGIBLE_PAYLOAD_TYPES,
    MESSAGE_DATA_INDEX,
    SAFE_EXEC_TRANSACTION_SELECTOR,
    FunctionSpec,
    index_by_selector,
)
from .errors import PayloadDecodeError
from .models import DecodedCall, EventType


def _to_bytes(call_data: Union[bytes, str]) -> bytes:
    if isinstance(call_data, (bytes, bytearray)):
        return bytes(call_data)
    body = call_data[2:] if call_data[:2].lower() == "0x" else call_data
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise PayloadDecodeError(f"Call-data is not valid hex: {e}") from e


def _normalize_selector(selector: str) -> str:
    selector = selector.lower()
    return selector if selector.startswith("0x") else "0x" + selector


class PayloadDecoder:
    def __init__(
        self,
        functions: Iterable[FunctionSpec] = BRIDGE_FUNCTIONS,
        foreign_selectors: Iterable[str] = (SAFE_EXEC_TRANSACTION_SELECTOR,),
    ):
        self.functions = index_by_selector(functions)
        self.foreign_selectors = frozenset(_normalize_selector(s) for s in foreign_selectors)

    def is_foreign(self, call_data: Union[bytes, str]) -> bool:
        data = _to_bytes(call_data)
        return "0x" + data[:4].hex() in self.foreign_selectors

    def spec_for(self, call: DecodedCall) -> FunctionSpec:
        return self.functions[call.selector]

    def decode_call(self, call_data: Union[bytes, str]) -> Optional[DecodedCall]:
        """Decode call-data, or return None if it belongs to a foreign function."""
        data = _to_bytes(call_data)
        if len(data) < 4:
            raise PayloadDecodeError(f"Call-data too short to hold a selector ({len(data)} bytes)")

        selector = "0x" + data[:4].hex()
        if selector in self.foreign_selectors:
            return None

        spec = self.functions.get(selector)
        if spec is None:
            raise PayloadDecodeError(f"Unknown function selector {selector}")

        try:
            args = decode(list(spec.inputs), data[4:])
        except DecodingError as e:
            raise PayloadDecodeError(f"Malformed call-data for {spec.name}: {e}") from e
        return DecodedCall(function=spec.name, selector=selector, args=tuple(args))

    def _expect_leg(self, call: DecodedCall, leg: EventType) -> FunctionSpec:
        spec = self.spec_for(call)
        if spec.leg is not leg:
            raise PayloadDecodeError(f"{spec.name} is not a {leg.value} function")
        return spec

    def decode_send_amount(self, call: DecodedCall) -> int:
        spec = self._expect_leg(call, EventType.SENT)
        return call.args[spec.amount_index]

    def decode_receive_payload(self, call: DecodedCall) -> Tuple[bytes, int]:
        """Return `(asset_id, amount)` from the message's nested `data` bytes."""
        spec = self._expect_leg(call, EventType.RECEIVED)
        message = call.args[spec.message_index]
        try:
            asset_id, amount = decode(list(FUNGIBLE_PAYLOAD_TYPES), message[MESSAGE_DATA_INDEX])
        except DecodingError as e:
            raise PayloadDecodeError(f"Malformed message payload in {spec.name}: {e}") from e
        return asset_id, amount
