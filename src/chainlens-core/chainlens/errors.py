from typing import Any, Optional


class ChainlensError(Exception):
    """Base class for every error raised by chainlens."""


class ConfigError(ChainlensError, ValueError):
    pass


class UnknownChainError(ConfigError):
    def __init__(self, chain_id: int) -> None:
        self.chain_id = chain_id
        super().__init__(f"Unknown chain_id {chain_id}. Register it with add_provider first.")


class DuplicateChainError(ConfigError):
    def __init__(self, chain_id: int) -> None:
        self.chain_id = chain_id
        super().__init__(f"chain_id {chain_id} is already registered (pass overwrite=True to replace it).")


class TransportError(ChainlensError):
    """Timeout, connection failure or non-success HTTP status."""


class RpcProtocolError(ChainlensError):
    """JSON-RPC level failure: an `error` object or an unparseable response."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        self.code = code
        self.data = data
        super().__init__(message)


class CodecError(ChainlensError, ValueError):
    pass


class UnsupportedTypeError(CodecError):
    def __init__(self, typ: str) -> None:
        self.type = typ
        super().__init__(f"Unsupported ABI type '{typ}'.")


class MalformedDataError(CodecError):
    pass


class CryptoError(ChainlensError):
    pass


class InvalidSignatureLengthError(CryptoError):
    def __init__(self, length: int) -> None:
        self.length = length
        super().__init__(f"Signature must be 65 bytes (r + s + v), got {length}.")


class InvalidRecoveryIdError(CryptoError):
    def __init__(self, v: int) -> None:
        self.v = v
        super().__init__(f"Invalid recovery id v={v}; expected 0, 1, 27 or 28.")


class RecoveryFailedError(CryptoError):
    pass


class DecryptionFailedError(CryptoError):
    pass


class InvalidPrivateKeyError(CryptoError, ValueError):
    pass
