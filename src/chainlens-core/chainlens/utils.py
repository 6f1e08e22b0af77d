import re
from typing import Any, Optional, Union

from Crypto.Hash import keccak
from eth_utils import to_checksum_address

from .errors import MalformedDataError

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
_HEX_RE = re.compile(r"[0-9a-fA-F]*")

WEI_DECIMALS = 18
GWEI_DECIMALS = 9


def keccak256(data: bytes) -> bytes:
    """Ethereum Keccak-256 (the pre-standard padding, not NIST SHA3-256)."""
    return keccak.new(data=data, digest_bits=256).digest()


def strip_0x(value: str) -> str:
    text = value.strip()
    if text[:2] in ("0x", "0X"):
        return text[2:]
    return text


def hex_to_bytes(value: Union[str, bytes, bytearray], field: str = "data") -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise MalformedDataError(f"{field} must be a hex string or bytes.")
    v = strip_0x(value)
    if len(v) % 2 != 0:
        raise MalformedDataError(f"{field} has an odd number of hex digits.")
    if not _HEX_RE.fullmatch(v):
        raise MalformedDataError(f"{field} must be a hex string.")
    return bytes.fromhex(v)


def to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def hex_to_int(value: Any, field: str) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"{field} is not a valid quantity.")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"{field} is not a valid hex value.")
    text = strip_0x(value)
    if not text:
        return 0
    try:
        return int(text, 16)
    except ValueError:
        raise ValueError(f"{field} is not a valid hex value.")


def format_scaled_int(value: int, decimals: int) -> str:
    if decimals <= 0:
        return str(value)
    negative = value < 0
    s = str(abs(value))
    if len(s) <= decimals:
        s = "0." + "0" * (decimals - len(s)) + s
    else:
        s = s[: len(s) - decimals] + "." + s[len(s) - decimals :]
    s = s.rstrip("0").rstrip(".") or "0"
    if negative:
        s = "-" + s
    return s


def normalize_address(address: str) -> str:
    if not isinstance(address, str):
        raise ValueError("Address must be a string.")

    candidate = address.strip()
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"

    if not ADDRESS_PATTERN.match(candidate):
        raise ValueError("Invalid address format. Expected 0x-prefixed 40 hex characters.")

    return to_checksum_address(candidate)


def checksum_or_raw(value: Any) -> Any:
    """EIP-55 form of a node-reported address; anything else passes through."""
    if isinstance(value, str) and ADDRESS_PATTERN.match(value):
        return to_checksum_address(value)
    return value
