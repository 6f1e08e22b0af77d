import asyncio
import logging
import re
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from .abi import AbiCodec
from .cache import StaleCache
from .chains import ProviderPool
from .config import Config, default_chains
from .decoder import TransactionDecoder
from .eip191 import build_sign_text, generate_sign_message, recover_signer, same_address
from .errors import MalformedDataError, RpcProtocolError
from .key_manager import EncryptedPrivateKey, KeyManager, derive_address, parse_private_key
from .price_client import PriceClient
from .receipt import ReceiptParser, format_gas_info
from .signatures import SignatureDatabase, build_default_database
from .utils import GWEI_DECIMALS, WEI_DECIMALS, checksum_or_raw, format_scaled_int, normalize_address, to_hex

logger = logging.getLogger(__name__)

TX_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")


class Web3Service:
    """Combine provider pool, codec, decoders and caches into dict-returning operations."""

    def __init__(
        self,
        config: Config,
        pool: Optional[ProviderPool] = None,
        signatures: Optional[SignatureDatabase] = None,
        cache: Optional[StaleCache] = None,
        price_client: Optional[PriceClient] = None,
    ) -> None:
        self.config = config
        self.pool = pool or ProviderPool(default_chains(config), timeout=config.request_timeout)
        self.signatures = signatures or build_default_database()
        self.codec = AbiCodec(self.signatures)
        self.decoder = TransactionDecoder(self.codec)
        self.receipt_parser = ReceiptParser(self.codec)
        self.cache = cache or StaleCache(retention_factor=config.cache_retention_factor)
        self.price_client = price_client or PriceClient(
            base_url=config.coingecko_base_url,
            timeout=config.request_timeout,
        )
        self.key_manager = KeyManager(iterations=config.pbkdf2_iterations)

    # -- account state -----------------------------------------------------

    async def get_balance(self, address: str, chain_id: int) -> Dict[str, Any]:
        normalized = normalize_address(address)
        provider = self.pool.get_provider(chain_id)
        wei = await provider.get_balance(normalized)
        return {
            "address": normalized,
            "chain_id": chain_id,
            "symbol": provider.chain.native_symbol,
            "balance_wei": wei,
            "balance": format_scaled_int(wei, WEI_DECIMALS),
        }

    async def get_nonce(self, address: str, chain_id: int) -> Dict[str, Any]:
        normalized = normalize_address(address)
        provider = self.pool.get_provider(chain_id)
        nonce = await provider.get_transaction_count(normalized)
        return {"address": normalized, "chain_id": chain_id, "nonce": nonce}

    # -- cached market data ------------------------------------------------

    async def get_gas_price(self, chain_id: int) -> Dict[str, Any]:
        provider = self.pool.get_provider(chain_id)
        wei = await self.cache.get_or_fetch(
            f"gas_price:{chain_id}",
            self.config.gas_price_ttl_seconds,
            provider.get_gas_price,
        )
        return {
            "chain_id": chain_id,
            "gas_price_wei": wei,
            "gas_price_gwei": format_scaled_int(wei, GWEI_DECIMALS),
        }

    async def get_token_price(self, symbol: str, currency: str = "usd") -> Dict[str, Any]:
        normalized = (symbol or "").strip().upper()
        currency = (currency or "").strip().lower()
        self.price_client.coin_id(normalized)

        async def fetch() -> str:
            return str(await self.price_client.get_price(normalized, currency))

        price = await self.cache.get_or_fetch(
            f"price:{normalized}:{currency}",
            self.config.price_ttl_seconds,
            fetch,
        )
        return {"symbol": normalized, "currency": currency, "price": Decimal(price)}

    # -- contract reads ----------------------------------------------------

    async def _call_method(self, chain_id: int, token: str, name: str, args: list, result_type: str) -> Any:
        method = self.signatures.lookup_method_by_name(name)
        if method is None:
            raise MalformedDataError(f"Method '{name}' is not in the signature database.")
        provider = self.pool.get_provider(chain_id)
        data = to_hex(self.codec.encode_method(method, args))
        raw = await provider.eth_call(token, data)
        return self.codec.decode_return([result_type], raw)[0]

    async def get_token_balance(self, token: str, owner: str, chain_id: int) -> Dict[str, Any]:
        token_addr = normalize_address(token)
        owner_addr = normalize_address(owner)
        balance, decimals = await asyncio.gather(
            self._call_method(chain_id, token_addr, "balanceOf", [owner_addr], "uint256"),
            self._call_method(chain_id, token_addr, "decimals", [], "uint256"),
        )
        return {
            "token": token_addr,
            "owner": owner_addr,
            "chain_id": chain_id,
            "balance_raw": balance,
            "decimals": decimals,
            "balance": format_scaled_int(balance, decimals),
        }

    async def get_token_info(self, token: str, chain_id: int) -> Dict[str, Any]:
        token_addr = normalize_address(token)
        name, symbol, decimals, supply = await asyncio.gather(
            self._call_method(chain_id, token_addr, "name", [], "string"),
            self._call_method(chain_id, token_addr, "symbol", [], "string"),
            self._call_method(chain_id, token_addr, "decimals", [], "uint256"),
            self._call_method(chain_id, token_addr, "totalSupply", [], "uint256"),
        )
        return {
            "token": token_addr,
            "chain_id": chain_id,
            "name": name,
            "symbol": symbol,
            "decimals": decimals,
            "total_supply": supply,
            "total_supply_scaled": format_scaled_int(supply, decimals),
        }

    # -- transactions ------------------------------------------------------

    def decode_input(self, data: Union[str, bytes]) -> Dict[str, Any]:
        return self.decoder.decode(data).to_dict()

    async def decode_transaction(self, tx_hash: str, chain_id: int) -> Dict[str, Any]:
        normalized_hash = self._normalize_tx_hash(tx_hash)
        provider = self.pool.get_provider(chain_id)
        tx = await provider.get_transaction(normalized_hash)
        if tx is None:
            return {"tx_hash": normalized_hash, "chain_id": chain_id, "transaction": None, "decoded": None}
        if not isinstance(tx, dict):
            raise RpcProtocolError("Unexpected transaction payload (non-object).")
        return {
            "tx_hash": normalized_hash,
            "chain_id": chain_id,
            "from": checksum_or_raw(tx.get("from")),
            "to": checksum_or_raw(tx.get("to")),
            "value": tx.get("value"),
            "decoded": self.decoder.decode(tx.get("input") or "0x").to_dict(),
        }

    async def get_receipt(self, tx_hash: str, chain_id: int) -> Dict[str, Any]:
        normalized_hash = self._normalize_tx_hash(tx_hash)
        provider = self.pool.get_provider(chain_id)
        raw = await provider.get_transaction_receipt(normalized_hash)
        if raw is None:
            logger.debug("No receipt for %s on chain %s (pending or unknown)", normalized_hash, chain_id)
            return {"tx_hash": normalized_hash, "chain_id": chain_id, "receipt": None}
        parsed = self.receipt_parser.parse(raw)
        return {
            "tx_hash": normalized_hash,
            "chain_id": chain_id,
            "receipt": parsed.to_dict(),
            "summary": format_gas_info(parsed),
        }

    # -- wallet authentication ---------------------------------------------

    def sign_message(self, nonce: str) -> Dict[str, Any]:
        app_name = self.config.sign_message_app_name
        return {
            "nonce": nonce,
            "message": build_sign_text(nonce, app_name),
            "payload": to_hex(generate_sign_message(nonce, app_name)),
        }

    def verify_signature(self, message: str, signature: str, address: str) -> Dict[str, Any]:
        expected = normalize_address(address)
        recovered = recover_signer(message, signature)
        return {
            "address": expected,
            "recovered": recovered,
            "valid": same_address(recovered, expected),
        }

    # -- key storage ------------------------------------------------------

    def encrypt_private_key(self, private_key: Union[str, bytes], passphrase: str) -> Dict[str, Any]:
        raw = parse_private_key(private_key)
        encrypted = self.key_manager.encrypt(raw, passphrase)
        return {"address": derive_address(raw), "encrypted": encrypted.to_dict()}

    def unlock_address(self, payload: Dict[str, Any], passphrase: str) -> Dict[str, Any]:
        """Decrypt a stored key and report its address; the key itself is not returned."""
        raw = self.key_manager.decrypt(EncryptedPrivateKey.from_dict(payload), passphrase)
        return {"address": derive_address(raw)}

    def _normalize_tx_hash(self, tx_hash: str) -> str:
        if not isinstance(tx_hash, str):
            raise ValueError("Transaction hash must be a string.")
        candidate = tx_hash.strip()
        if not candidate.startswith("0x"):
            candidate = f"0x{candidate}"
        if not TX_HASH_PATTERN.match(candidate):
            raise ValueError("Invalid transaction hash. Expected 0x-prefixed 64 hex characters.")
        return candidate.lower()
