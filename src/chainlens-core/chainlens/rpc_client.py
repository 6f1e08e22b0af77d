import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import requests

from .errors import RpcProtocolError, TransportError
from .utils import hex_to_int

if TYPE_CHECKING:
    from .chains import ChainConfig

logger = logging.getLogger(__name__)


class RpcProvider:
    """JSON-RPC 2.0 client for one EVM chain (HTTP POST, no retries)."""

    def __init__(
        self,
        chain: "ChainConfig",
        timeout: int = 10,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        url = (chain.rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.chain = chain
        self.rpc_url = url
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if headers:
            self.session.headers.update(dict(headers))
        self._ids = itertools.count(1)

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    def call_sync(self, method: str, params: Optional[List[Any]] = None) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise ValueError("params must be a list.")

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("rpc %s chain=%s", method, self.chain_id)

        try:
            response = self.session.post(self.rpc_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise TransportError(f"{method} timed out after {self.timeout}s on chain {self.chain_id}.") from exc
        except requests.RequestException as exc:
            raise TransportError(f"{method} failed on chain {self.chain_id}: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcProtocolError("Unexpected JSON-RPC response (not JSON).") from exc
        if not isinstance(data, dict):
            raise RpcProtocolError("Unexpected JSON-RPC response (non-object).")

        error_obj = data.get("error")
        if isinstance(error_obj, dict):
            code = error_obj.get("code")
            message = error_obj.get("message")
            err_data = error_obj.get("data")
            parts: List[str] = []
            if code is not None:
                parts.append(f"code {code}")
            if message:
                parts.append(str(message))
            if err_data:
                parts.append(str(err_data))
            detail = ": ".join(parts) if parts else "unknown error"
            raise RpcProtocolError(f"RPC error: {detail}.", code=code, data=err_data)
        if error_obj is not None:
            raise RpcProtocolError(f"RPC error: {error_obj}.")

        if "result" not in data:
            raise RpcProtocolError("Unexpected JSON-RPC response (missing result).")
        return data.get("result")

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        return await asyncio.to_thread(self.call_sync, method, params)

    async def _quantity(self, method: str, params: List[Any]) -> int:
        result = await self.call(method, params)
        if not isinstance(result, str) or not result.startswith("0x"):
            raise RpcProtocolError(f"RPC error: {method} returned unexpected result.")
        return hex_to_int(result, method)

    async def get_balance(self, address: str, block_tag: str = "latest") -> int:
        return await self._quantity("eth_getBalance", [address, block_tag])

    async def get_transaction_count(self, address: str, block_tag: str = "latest") -> int:
        return await self._quantity("eth_getTransactionCount", [address, block_tag])

    async def get_gas_price(self) -> int:
        return await self._quantity("eth_gasPrice", [])

    async def get_block_number(self) -> int:
        return await self._quantity("eth_blockNumber", [])

    async def get_chain_id(self) -> int:
        return await self._quantity("eth_chainId", [])

    async def eth_call(self, to: str, data: str, block_tag: str = "latest") -> str:
        result = await self.call("eth_call", [{"to": to, "data": data}, block_tag])
        if not isinstance(result, str):
            raise RpcProtocolError("RPC error: eth_call returned a non-hex result.")
        return result

    async def get_block_by_number(self, block: Any = "latest", full_transactions: bool = False) -> Optional[Dict[str, Any]]:
        tag = hex(block) if isinstance(block, int) else block
        return await self.call("eth_getBlockByNumber", [tag, full_transactions])

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    def close(self) -> None:
        self.session.close()
