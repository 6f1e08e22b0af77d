import asyncio
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

import requests

from .errors import RpcProtocolError, TransportError

DEFAULT_BASE_URL = "https://api.coingecko.com/api/v3"

# symbol -> CoinGecko coin id
COIN_IDS = {
    "ETH": "ethereum",
    "WETH": "weth",
    "BTC": "bitcoin",
    "SOL": "solana",
    "BNB": "binancecoin",
    "XRP": "ripple",
    "ADA": "cardano",
    "DOGE": "dogecoin",
    "DOT": "polkadot",
    "MATIC": "matic-network",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
    "MKR": "maker",
    "CRV": "curve-dao-token",
    "LDO": "lido-dao",
    "USDC": "usd-coin",
    "USDT": "tether",
    "DAI": "dai",
}


class PriceClient:
    """Thin wrapper around the CoinGecko simple/price endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: int = 10,
        coin_ids: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.coin_ids = dict(coin_ids or COIN_IDS)
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def coin_id(self, symbol: str) -> str:
        key = (symbol or "").strip().upper()
        coin = self.coin_ids.get(key)
        if not coin:
            raise ValueError(f"Unsupported symbol '{symbol}'. Supported: {', '.join(sorted(self.coin_ids))}.")
        return coin

    def get_prices_sync(self, symbols: Iterable[str], currency: str = "usd") -> Dict[str, Decimal]:
        currency = (currency or "").strip().lower()
        wanted = {self.coin_id(symbol): symbol.strip().upper() for symbol in symbols}
        if not wanted:
            return {}
        params = {"ids": ",".join(sorted(wanted)), "vs_currencies": currency}
        payload = self._request("simple/price", params)

        prices: Dict[str, Decimal] = {}
        for coin, symbol in wanted.items():
            entry = payload.get(coin)
            if not isinstance(entry, dict) or currency not in entry:
                raise RpcProtocolError(f"Price oracle returned no {currency} price for {coin}.")
            try:
                prices[symbol] = Decimal(str(entry[currency]))
            except (ArithmeticError, ValueError) as exc:
                raise RpcProtocolError(f"Price oracle returned a non-numeric price for {coin}.") from exc
        return prices

    async def get_price(self, symbol: str, currency: str = "usd") -> Decimal:
        prices = await asyncio.to_thread(self.get_prices_sync, [symbol], currency)
        return prices[symbol.strip().upper()]

    async def get_prices(self, symbols: Iterable[str], currency: str = "usd") -> Dict[str, Decimal]:
        return await asyncio.to_thread(self.get_prices_sync, list(symbols), currency)

    def _request(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as exc:
            raise TransportError(f"Price request timed out after {self.timeout}s.") from exc
        except requests.RequestException as exc:
            raise TransportError(f"Price request failed: {exc}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcProtocolError("Unexpected price oracle response (not JSON).") from exc
        if not isinstance(data, dict):
            raise RpcProtocolError("Unexpected price oracle response (non-object).")
        return data
