import logging

import pytest

from chainlens.config import DEFAULT_CHAINS, Config, default_chains, load_config
from chainlens.logging_config import setup_logging

ENV_VARS = [
    "REQUEST_TIMEOUT",
    "PRICE_TTL_SECONDS",
    "GAS_PRICE_TTL_SECONDS",
    "CACHE_RETENTION_FACTOR",
    "COINGECKO_BASE_URL",
    "PBKDF2_ITERATIONS",
    "SIGN_MESSAGE_APP_NAME",
    "LOG_LEVEL",
] + [env for (_, env, _, _, _) in DEFAULT_CHAINS.values()]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = load_config()
    assert config.request_timeout == 10
    assert config.price_ttl_seconds == 60
    assert config.gas_price_ttl_seconds == 30
    assert config.pbkdf2_iterations == 100_000
    assert config.rpc_urls == {}
    assert config.log_level == "INFO"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("REQUEST_TIMEOUT", "3")
    monkeypatch.setenv("COINGECKO_BASE_URL", "https://prices.example.invalid/api/")
    monkeypatch.setenv("POLYGON_RPC", " https://polygon.example.invalid ")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    config = load_config()
    assert config.request_timeout == 3
    assert config.coingecko_base_url == "https://prices.example.invalid/api"
    assert config.rpc_urls == {137: "https://polygon.example.invalid"}
    assert config.log_level == "DEBUG"


def test_low_iterations_rejected(monkeypatch):
    monkeypatch.setenv("PBKDF2_ITERATIONS", "1000")
    with pytest.raises(ValueError):
        load_config()


def test_zero_retention_rejected(monkeypatch):
    monkeypatch.setenv("CACHE_RETENTION_FACTOR", "0")
    with pytest.raises(ValueError):
        load_config()


def test_default_chains_use_overrides():
    chains = {c.chain_id: c for c in default_chains(Config(rpc_urls={1: "https://private.example.invalid"}))}
    assert set(chains) == {1, 11155111, 137, 42161, 10, 56}
    assert chains[1].rpc_url == "https://private.example.invalid"
    assert chains[56].native_symbol == "BNB"
    assert chains[137].rpc_url == DEFAULT_CHAINS[137][2]


def test_setup_logging_installs_single_handler():
    setup_logging("debug")
    setup_logging(logging.WARNING)
    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert logging.getLogger("chainlens").level == logging.WARNING
    assert logging.getLogger("urllib3").level == logging.WARNING
