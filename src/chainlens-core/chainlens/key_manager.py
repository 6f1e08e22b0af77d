"""
Private keys at rest: PBKDF2-HMAC-SHA256 key derivation and AES-256-GCM.

Plaintext key bytes only exist in the caller's scope and in locals here; they
are never logged.
"""
import base64
import binascii
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from Crypto.Cipher import AES
from Crypto.Hash import SHA256
from Crypto.Protocol.KDF import PBKDF2
from Crypto.Random import get_random_bytes
from eth_keys import keys

from .eip191 import public_key_to_address
from .errors import DecryptionFailedError, InvalidPrivateKeyError
from .utils import strip_0x

PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 32
SALT_LENGTH = 16
NONCE_LENGTH = 12
TAG_LENGTH = 16
KDF_NAME = "pbkdf2-hmac-sha256"

# secp256k1 group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


@dataclass(frozen=True)
class EncryptedPrivateKey:
    ciphertext: bytes  # includes the trailing GCM tag
    nonce: bytes
    salt: bytes
    kdf: str = KDF_NAME
    iterations: int = PBKDF2_ITERATIONS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ciphertext": base64.b64encode(self.ciphertext).decode("ascii"),
            "nonce": base64.b64encode(self.nonce).decode("ascii"),
            "salt": base64.b64encode(self.salt).decode("ascii"),
            "kdf": self.kdf,
            "iterations": self.iterations,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "EncryptedPrivateKey":
        try:
            return cls(
                ciphertext=base64.b64decode(payload["ciphertext"], validate=True),
                nonce=base64.b64decode(payload["nonce"], validate=True),
                salt=base64.b64decode(payload["salt"], validate=True),
                kdf=str(payload.get("kdf", KDF_NAME)),
                iterations=int(payload.get("iterations", PBKDF2_ITERATIONS)),
            )
        except (KeyError, TypeError, ValueError, binascii.Error) as exc:
            raise DecryptionFailedError(f"Malformed encrypted key payload: {exc}") from exc


def validate_private_key(private_key: bytes) -> bool:
    if not isinstance(private_key, (bytes, bytearray)) or len(private_key) != KEY_LENGTH:
        return False
    value = int.from_bytes(private_key, "big")
    return 0 < value < SECP256K1_N


def parse_private_key(value: Union[str, bytes]) -> bytes:
    """Accept 32 raw bytes or 64 hex chars (optional 0x) and return validated bytes."""
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    elif isinstance(value, str):
        text = strip_0x(value)
        if len(text) != KEY_LENGTH * 2:
            raise InvalidPrivateKeyError("Private key must be 64 hex characters.")
        try:
            raw = bytes.fromhex(text)
        except ValueError:
            raise InvalidPrivateKeyError("Private key must be hex.")
    else:
        raise InvalidPrivateKeyError("Private key must be bytes or a hex string.")
    if not validate_private_key(raw):
        raise InvalidPrivateKeyError("Private key is out of range for secp256k1.")
    return raw


def derive_address(private_key: bytes) -> str:
    if not validate_private_key(private_key):
        raise InvalidPrivateKeyError("Private key is out of range for secp256k1.")
    public_key = keys.PrivateKey(bytes(private_key)).public_key
    return public_key_to_address(public_key.to_bytes())


class KeyManager:
    def __init__(self, iterations: int = PBKDF2_ITERATIONS) -> None:
        if iterations < PBKDF2_ITERATIONS:
            raise ValueError(f"PBKDF2 iterations must be at least {PBKDF2_ITERATIONS}.")
        self.iterations = iterations

    def derive_key(self, passphrase: str, salt: bytes, iterations: Optional[int] = None) -> bytes:
        if not passphrase:
            raise ValueError("passphrase must be a non-empty string.")
        rounds = iterations or self.iterations
        return PBKDF2(passphrase, salt, dkLen=KEY_LENGTH, count=rounds, hmac_hash_module=SHA256)

    def encrypt(self, private_key: bytes, passphrase: str) -> EncryptedPrivateKey:
        if not validate_private_key(private_key):
            raise InvalidPrivateKeyError("Private key is out of range for secp256k1.")
        salt = get_random_bytes(SALT_LENGTH)
        nonce = get_random_bytes(NONCE_LENGTH)
        key = self.derive_key(passphrase, salt)

        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce, mac_len=TAG_LENGTH)
        ciphertext, tag = cipher.encrypt_and_digest(bytes(private_key))
        return EncryptedPrivateKey(
            ciphertext=ciphertext + tag,
            nonce=nonce,
            salt=salt,
            kdf=KDF_NAME,
            iterations=self.iterations,
        )

    def decrypt(self, encrypted: EncryptedPrivateKey, passphrase: str) -> bytes:
        if encrypted.kdf != KDF_NAME:
            raise DecryptionFailedError(f"Unsupported kdf '{encrypted.kdf}'.")
        if encrypted.iterations < PBKDF2_ITERATIONS:
            raise DecryptionFailedError("KDF iteration count below the supported minimum.")
        if len(encrypted.nonce) != NONCE_LENGTH or len(encrypted.ciphertext) <= TAG_LENGTH:
            raise DecryptionFailedError("Malformed encrypted key.")

        key = self.derive_key(passphrase, encrypted.salt, encrypted.iterations)
        body, tag = encrypted.ciphertext[:-TAG_LENGTH], encrypted.ciphertext[-TAG_LENGTH:]
        cipher = AES.new(key, AES.MODE_GCM, nonce=encrypted.nonce, mac_len=TAG_LENGTH)
        try:
            plaintext = cipher.decrypt_and_verify(body, tag)
        except ValueError:
            raise DecryptionFailedError("Authentication failed: wrong passphrase or corrupted ciphertext.") from None

        if not validate_private_key(plaintext):
            raise DecryptionFailedError("Decrypted payload is not a valid private key.")
        return plaintext

    def validate_private_key(self, private_key: bytes) -> bool:
        return validate_private_key(private_key)

    def derive_address(self, private_key: bytes) -> str:
        return derive_address(private_key)
