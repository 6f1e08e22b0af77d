import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from .abi import WORD, AbiCodec
from .errors import CodecError
from .signatures import MethodSignature
from .utils import hex_to_bytes, to_hex

logger = logging.getLogger(__name__)

SELECTOR_SIZE = 4


@dataclass(frozen=True)
class KnownCall:
    method: MethodSignature
    values: Dict[str, Any]
    leftover: bytes = b""
    complete: bool = True

    kind = "known"

    def to_dict(self) -> Dict[str, Any]:
        params: List[Dict[str, Any]] = []
        for param in self.method.params:
            if param.name not in self.values:
                break
            params.append({"name": param.name, "type": param.type, "value": self.values[param.name]})
        return {
            "kind": self.kind,
            "method": self.method.name,
            "signature": self.method.signature,
            "selector": self.method.selector_hex,
            "params": params,
            "complete": self.complete,
            "leftover": to_hex(self.leftover) if self.leftover else None,
        }


@dataclass(frozen=True)
class UnknownCall:
    selector: bytes
    data: bytes

    kind = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "selector": to_hex(self.selector),
            "data": to_hex(self.data),
        }


@dataclass(frozen=True)
class PlainTransfer:
    """Input too short to carry a selector: a plain value transfer."""

    data: bytes = field(default=b"")

    kind = "transfer"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "data": to_hex(self.data)}


DecodedCall = Union[KnownCall, UnknownCall, PlainTransfer]


class TransactionDecoder:
    """Decode raw transaction input against the method signature table."""

    def __init__(self, codec: AbiCodec) -> None:
        self.codec = codec

    def decode(self, raw_input: Union[str, bytes]) -> DecodedCall:
        data = hex_to_bytes(raw_input, "input")
        if len(data) < SELECTOR_SIZE:
            return PlainTransfer(data)

        selector, body = data[:SELECTOR_SIZE], data[SELECTOR_SIZE:]
        method = self.codec.lookup_method(selector)
        if method is None:
            logger.debug("Unknown selector 0x%s", selector.hex())
            return UnknownCall(selector=selector, data=body)

        return self._decode_params(method, body)

    def _decode_params(self, method: MethodSignature, body: bytes) -> KnownCall:
        types = method.types
        names = [param.name for param in method.params]
        try:
            values = self.codec.decode_return(types, body)
        except CodecError as exc:
            logger.debug("Partial decode of %s: %s", method.signature, exc)
            return self._decode_prefix(method, body)

        consumed = self.codec.encoded_length(types, values)
        return KnownCall(method=method, values=dict(zip(names, values)), leftover=body[consumed:], complete=True)

    def _decode_prefix(self, method: MethodSignature, body: bytes) -> KnownCall:
        """Longest leading run of parameters that decodes; the rest stays raw."""
        types = method.types
        names = [param.name for param in method.params]
        for count in range(len(types) - 1, 0, -1):
            try:
                values = self.codec.decode_return(types[:count], body)
            except CodecError:
                continue
            return KnownCall(
                method=method,
                values=dict(zip(names, values)),
                leftover=body[count * WORD :],
                complete=False,
            )
        return KnownCall(method=method, values={}, leftover=body, complete=False)
