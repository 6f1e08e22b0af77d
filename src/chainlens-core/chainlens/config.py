import os
from dataclasses import dataclass, field
from typing import Dict, List

from .chains import ChainConfig

DEFAULT_COINGECKO_URL = "https://api.coingecko.com/api/v3"
MIN_PBKDF2_ITERATIONS = 100_000

# chain_id -> (name, env var, fallback rpc, explorer, native symbol)
DEFAULT_CHAINS = {
    1: ("Ethereum Mainnet", "ETH_MAINNET_RPC", "https://eth.llamarpc.com", "https://etherscan.io", "ETH"),
    11155111: (
        "Sepolia Testnet",
        "ETH_SEPOLIA_RPC",
        "https://sepolia.infura.io/v3/public",
        "https://sepolia.etherscan.io",
        "ETH",
    ),
    137: ("Polygon", "POLYGON_RPC", "https://polygon.llamarpc.com", "https://polygonscan.com", "MATIC"),
    42161: ("Arbitrum One", "ARBITRUM_RPC", "https://arb1.arbitrum.io/rpc", "https://arbiscan.io", "ETH"),
    10: ("Optimism", "OPTIMISM_RPC", "https://mainnet.optimism.io", "https://optimistic.etherscan.io", "ETH"),
    56: ("BNB Smart Chain", "BSC_RPC", "https://bsc-dataseed.binance.org", "https://bscscan.com", "BNB"),
}


@dataclass
class Config:
    request_timeout: int = 10
    price_ttl_seconds: int = 60
    gas_price_ttl_seconds: int = 30
    cache_retention_factor: int = 10
    coingecko_base_url: str = DEFAULT_COINGECKO_URL
    pbkdf2_iterations: int = MIN_PBKDF2_ITERATIONS
    sign_message_app_name: str = "Chainlens"
    log_level: str = "INFO"
    rpc_urls: Dict[int, str] = field(default_factory=dict)


def default_chains(config: Config) -> List[ChainConfig]:
    """Built-in chains, with RPC URLs taken from config overrides when present."""
    chains: List[ChainConfig] = []
    for chain_id, (name, _env, fallback, explorer, symbol) in DEFAULT_CHAINS.items():
        chains.append(
            ChainConfig(
                chain_id=chain_id,
                name=name,
                rpc_url=config.rpc_urls.get(chain_id) or fallback,
                explorer_url=explorer,
                native_symbol=symbol,
            )
        )
    return chains


def load_config() -> Config:
    """Load configuration from environment variables."""
    timeout = int(os.getenv("REQUEST_TIMEOUT", "10"))
    price_ttl = int(os.getenv("PRICE_TTL_SECONDS", "60"))
    gas_ttl = int(os.getenv("GAS_PRICE_TTL_SECONDS", "30"))
    retention = int(os.getenv("CACHE_RETENTION_FACTOR", "10"))
    coingecko_url = os.getenv("COINGECKO_BASE_URL", DEFAULT_COINGECKO_URL).rstrip("/")
    iterations = int(os.getenv("PBKDF2_ITERATIONS", str(MIN_PBKDF2_ITERATIONS)))
    app_name = os.getenv("SIGN_MESSAGE_APP_NAME", "Chainlens").strip() or "Chainlens"
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    if iterations < MIN_PBKDF2_ITERATIONS:
        raise ValueError(f"PBKDF2_ITERATIONS must be at least {MIN_PBKDF2_ITERATIONS}.")
    if retention < 1:
        raise ValueError("CACHE_RETENTION_FACTOR must be >= 1.")

    rpc_urls: Dict[int, str] = {}
    for chain_id, (_name, env_var, _fallback, _explorer, _symbol) in DEFAULT_CHAINS.items():
        value = os.getenv(env_var)
        if value and value.strip():
            rpc_urls[chain_id] = value.strip()

    return Config(
        request_timeout=timeout,
        price_ttl_seconds=price_ttl,
        gas_price_ttl_seconds=gas_ttl,
        cache_retention_factor=retention,
        coingecko_base_url=coingecko_url,
        pbkdf2_iterations=iterations,
        sign_message_app_name=app_name,
        log_level=log_level,
        rpc_urls=rpc_urls,
    )
