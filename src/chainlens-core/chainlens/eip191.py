"""
EIP-191 (``personal_sign``) message construction and signer recovery.

Both the message digest and the public-key-to-address step use Keccak-256.
NIST SHA3-256 gives different digests for the same input and would silently
yield wrong addresses.
"""
from typing import Tuple, Union

from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import to_checksum_address

from .errors import (
    InvalidRecoveryIdError,
    InvalidSignatureLengthError,
    MalformedDataError,
    RecoveryFailedError,
)
from .utils import hex_to_bytes, keccak256

PERSONAL_MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"
SIGNATURE_LENGTH = 65
DEFAULT_APP_NAME = "Chainlens"

Message = Union[str, bytes]


def build_sign_text(nonce: str, app_name: str = DEFAULT_APP_NAME) -> str:
    """Human-readable login text the wallet is asked to sign."""
    return (
        f"Welcome to {app_name}!\n\n"
        "Signing this message proves you own this wallet.\n\n"
        f"Nonce: {nonce}\n\n"
        "This request will not trigger a blockchain transaction or cost any gas fees."
    )


def encode_personal_message(message: Message) -> bytes:
    body = message.encode("utf-8") if isinstance(message, str) else bytes(message)
    return PERSONAL_MESSAGE_PREFIX + str(len(body)).encode("ascii") + body


def generate_sign_message(nonce: str, app_name: str = DEFAULT_APP_NAME) -> bytes:
    """Prefixed personal-sign payload for ``nonce``; identical input gives identical bytes."""
    return encode_personal_message(build_sign_text(nonce, app_name))


def hash_personal_message(message: Message) -> bytes:
    return keccak256(encode_personal_message(message))


def public_key_to_address(public_key: bytes) -> str:
    """Checksummed address: last 20 bytes of keccak256(X || Y)."""
    if len(public_key) == 65 and public_key[0] == 0x04:
        public_key = public_key[1:]
    if len(public_key) != 64:
        raise ValueError("Uncompressed public key must be 64 bytes (or 65 with 0x04 prefix).")
    return to_checksum_address(keccak256(public_key)[-20:])


def split_signature(signature: Union[str, bytes]) -> Tuple[int, int, int]:
    """Parse a 65-byte r||s||v signature, returning (r, s, v) with v in {0, 1}."""
    try:
        raw = hex_to_bytes(signature, "signature")
    except MalformedDataError as exc:
        raise RecoveryFailedError(f"Invalid hex format in signature: {exc}") from exc
    if len(raw) != SIGNATURE_LENGTH:
        raise InvalidSignatureLengthError(len(raw))

    r = int.from_bytes(raw[0:32], "big")
    s = int.from_bytes(raw[32:64], "big")
    v = raw[64]
    if v in (27, 28):
        v -= 27
    elif v not in (0, 1):
        raise InvalidRecoveryIdError(v)
    return r, s, v


def recover_signer(message: Message, signature: Union[str, bytes]) -> str:
    r, s, v = split_signature(signature)
    digest = hash_personal_message(message)
    try:
        sig = keys.Signature(vrs=(v, r, s))
        public_key = sig.recover_public_key_from_msg_hash(digest)
    except (BadSignature, ValidationError) as exc:
        raise RecoveryFailedError(f"Recovery failed: {exc}") from exc
    return public_key_to_address(public_key.to_bytes())


def same_address(left: str, right: str) -> bool:
    """Case-insensitive address equality (checksummed vs lowercase forms)."""
    return (left or "").strip().lower() == (right or "").strip().lower()


def verify(message: Message, signature: Union[str, bytes], expected_address: str) -> bool:
    return same_address(recover_signer(message, signature), expected_address)
