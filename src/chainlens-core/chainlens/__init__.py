"""
chainlens: EVM codec and chain-access core.

Decode call data and receipts against static signature tables, talk to
JSON-RPC nodes per chain, verify EIP-191 wallet signatures and keep private
keys encrypted at rest.
"""

from .abi import AbiCodec
from .cache import CachedValue, MemoryStore, StaleCache
from .chains import ChainConfig, ProviderPool
from .decoder import KnownCall, PlainTransfer, TransactionDecoder, UnknownCall
from .eip191 import generate_sign_message, recover_signer, verify
from .key_manager import EncryptedPrivateKey, KeyManager
from .receipt import KnownEvent, ParsedReceipt, ReceiptParser, UnknownEvent
from .rpc_client import RpcProvider
from .signatures import SignatureDatabase, build_default_database

__version__ = "0.1.0"
__all__ = [
    "AbiCodec",
    "CachedValue",
    "ChainConfig",
    "EncryptedPrivateKey",
    "KeyManager",
    "KnownCall",
    "KnownEvent",
    "MemoryStore",
    "ParsedReceipt",
    "PlainTransfer",
    "ProviderPool",
    "ReceiptParser",
    "RpcProvider",
    "SignatureDatabase",
    "StaleCache",
    "TransactionDecoder",
    "UnknownCall",
    "UnknownEvent",
    "build_default_database",
    "generate_sign_message",
    "recover_signer",
    "verify",
    "__version__",
]
