import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import eth_abi
import eth_abi.exceptions
from eth_utils import to_checksum_address

from .errors import CodecError, MalformedDataError, UnsupportedTypeError
from .signatures import EventSignature, MethodSignature, SignatureDatabase
from .utils import hex_to_bytes, keccak256

WORD = 32
ENCODABLE_TYPES = frozenset({"address", "uint256", "bool", "bytes32", "string", "bytes"})
_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

_TYPE_ERRORS = (
    eth_abi.exceptions.ParseError,
    eth_abi.exceptions.ABITypeError,
    eth_abi.exceptions.PredicateMappingError,
)


def _split_array(typ: str) -> Tuple[str, bool]:
    base = typ.strip()
    if base.endswith("[]"):
        return base[:-2], True
    return base, False


def is_dynamic(typ: str) -> bool:
    base, is_array = _split_array(typ)
    return is_array or base in {"bytes", "string"}


class AbiCodec:
    """
    ABI codec for the signature database, backed by ``eth_abi``.

    Encoding is limited to the primitive subset used by token, WETH and
    router calls (plus dynamic arrays of those). Decoding accepts anything
    ``eth_abi`` understands. Decoded addresses are EIP-55 checksummed and
    byte values are returned as 0x-prefixed hex.
    """

    def __init__(self, signatures: SignatureDatabase) -> None:
        self.signatures = signatures

    # -- lookups -----------------------------------------------------------

    def lookup_method(self, selector: Union[str, bytes]) -> Optional[MethodSignature]:
        return self.signatures.lookup_method(selector)

    def lookup_event(self, topic0: Union[str, bytes], topic_count: Optional[int] = None) -> Optional[EventSignature]:
        return self.signatures.lookup_event(topic0, topic_count)

    # -- encoding ----------------------------------------------------------

    def selector(self, name: str, types: Sequence[str]) -> bytes:
        return keccak256(f"{name}({','.join(types)})".encode())[:4]

    def encode_call(self, name: str, params: Iterable[Tuple[str, Any]]) -> bytes:
        """Encode ``name(type,...)`` call data from ordered ``(type, value)`` pairs."""
        fn = (name or "").strip()
        if not _NAME_RE.fullmatch(fn):
            raise CodecError(f"Invalid function name '{name}'.")
        pairs = list(params)
        types = [typ.strip() for typ, _ in pairs]
        for typ in types:
            self._check_encodable(typ)
        return self.selector(fn, types) + self.encode_params(types, [value for _, value in pairs])

    def encode_method(self, method: MethodSignature, values: Sequence[Any]) -> bytes:
        if len(values) != len(method.params):
            raise CodecError(f"Argument count mismatch: expected {len(method.params)}, got {len(values)}.")
        return self.encode_call(method.name, zip(method.types, values))

    def encode_params(self, types: Sequence[str], values: Sequence[Any]) -> bytes:
        if len(types) != len(values):
            raise CodecError(f"Argument count mismatch: expected {len(types)}, got {len(values)}.")
        for typ in types:
            self._check_encodable(typ)
        prepared = [self._prepare(typ, value) for typ, value in zip(types, values)]
        try:
            return eth_abi.encode(list(types), prepared)
        except eth_abi.exceptions.EncodingError as exc:
            raise CodecError(f"Cannot encode ({','.join(types)}): {exc}") from exc

    def _check_encodable(self, typ: str) -> None:
        base, _ = _split_array(typ)
        if base not in ENCODABLE_TYPES:
            raise UnsupportedTypeError(typ)

    def _prepare(self, typ: str, value: Any) -> Any:
        """Turn hex-string inputs into the bytes ``eth_abi`` expects."""
        base, is_array = _split_array(typ)
        if is_array:
            if not isinstance(value, (list, tuple)):
                raise CodecError(f"{typ} value must be a list or tuple.")
            return [self._prepare(base, item) for item in value]

        if base == "address":
            if not isinstance(value, (str, bytes, bytearray)):
                raise CodecError("address value must be a hex string or bytes.")
            raw = hex_to_bytes(value, "address")
            if len(raw) != 20:
                raise CodecError("Invalid address value.")
            return raw

        if base == "bytes32":
            raw = hex_to_bytes(value, "bytes32")
            if len(raw) != 32:
                raise CodecError("bytes32 requires 32 bytes.")
            return raw

        if base == "bytes":
            return hex_to_bytes(value, "bytes")

        return value

    # -- decoding ----------------------------------------------------------

    def decode_return(self, expected_types: Sequence[str], raw: Union[str, bytes]) -> List[Any]:
        """Decode an ABI-encoded tuple of ``expected_types``."""
        data = hex_to_bytes(raw, "return data")
        minimum = WORD * len(expected_types)
        if len(data) < minimum:
            raise MalformedDataError(
                f"Return data is {len(data)} bytes; at least {minimum} required for {len(expected_types)} values."
            )
        types = [typ.strip() for typ in expected_types]
        try:
            decoded = eth_abi.decode(types, data)
        except _TYPE_ERRORS as exc:
            raise UnsupportedTypeError(",".join(types)) from exc
        except (eth_abi.exceptions.DecodingError, UnicodeDecodeError) as exc:
            raise MalformedDataError(f"Cannot decode ({','.join(types)}): {exc}") from exc
        return [self._present(typ, value) for typ, value in zip(types, decoded)]

    def decode_word(self, typ: str, word: bytes) -> Any:
        """Decode a single static 32-byte word (also used for indexed topics)."""
        if len(word) != WORD:
            raise MalformedDataError("ABI word must be 32 bytes.")
        if is_dynamic(typ):
            raise UnsupportedTypeError(typ)
        return self.decode_return([typ], word)[0]

    def encoded_length(self, types: Sequence[str], values: Sequence[Any]) -> int:
        """Size of the canonical encoding of already-decoded ``values``."""
        return len(self.encode_params(types, values))

    def _present(self, typ: str, value: Any) -> Any:
        base, is_array = _split_array(typ)
        if is_array:
            return [self._present(base, item) for item in value]
        if base == "address":
            return to_checksum_address(value)
        if isinstance(value, (bytes, bytearray)):
            return "0x" + bytes(value).hex()
        return value
