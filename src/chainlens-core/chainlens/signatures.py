"""
Static method and event signature tables.

Selectors and topics are derived from the canonical signature text with
Keccak-256 when the database is built, so the tables cannot drift from the
declared parameter shapes. Build the database once with
``build_default_database()`` and pass it to the components that need it.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .utils import keccak256, strip_0x


@dataclass(frozen=True)
class Param:
    name: str
    type: str
    indexed: bool = False


def _canonical(name: str, params: Tuple[Param, ...]) -> str:
    return f"{name}({','.join(p.type for p in params)})"


@dataclass(frozen=True)
class MethodSignature:
    selector: bytes
    name: str
    params: Tuple[Param, ...]

    @property
    def signature(self) -> str:
        return _canonical(self.name, self.params)

    @property
    def selector_hex(self) -> str:
        return "0x" + self.selector.hex()

    @property
    def types(self) -> List[str]:
        return [p.type for p in self.params]

    @classmethod
    def from_params(cls, name: str, params: Iterable[Tuple[str, str]]) -> "MethodSignature":
        shaped = tuple(Param(name=pname, type=ptype) for ptype, pname in params)
        selector = keccak256(_canonical(name, shaped).encode())[:4]
        return cls(selector=selector, name=name, params=shaped)


@dataclass(frozen=True)
class EventSignature:
    topic0: bytes
    name: str
    params: Tuple[Param, ...]

    @property
    def signature(self) -> str:
        return _canonical(self.name, self.params)

    @property
    def topic_hex(self) -> str:
        return "0x" + self.topic0.hex()

    @property
    def indexed_params(self) -> List[Param]:
        return [p for p in self.params if p.indexed]

    @property
    def data_params(self) -> List[Param]:
        return [p for p in self.params if not p.indexed]

    @property
    def topic_count(self) -> int:
        return 1 + len(self.indexed_params)

    @classmethod
    def from_params(cls, name: str, params: Iterable[Tuple[str, str, bool]]) -> "EventSignature":
        shaped = tuple(Param(name=pname, type=ptype, indexed=indexed) for ptype, pname, indexed in params)
        topic0 = keccak256(_canonical(name, shaped).encode())
        return cls(topic0=topic0, name=name, params=shaped)


def _normalize_key(value: Union[str, bytes], size: int) -> Optional[str]:
    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).hex()
    elif isinstance(value, str):
        text = strip_0x(value).lower()
    else:
        return None
    if len(text) != size * 2:
        return None
    return text


class SignatureDatabase:
    """Read-only lookup tables keyed by selector / topic0 hex (no 0x, lowercase)."""

    def __init__(self, methods: Iterable[MethodSignature], events: Iterable[EventSignature]) -> None:
        method_map: Dict[str, MethodSignature] = {}
        for method in methods:
            method_map[method.selector.hex()] = method

        event_map: Dict[str, List[EventSignature]] = {}
        for event in events:
            event_map.setdefault(event.topic0.hex(), []).append(event)

        self._methods: Mapping[str, MethodSignature] = MappingProxyType(method_map)
        self._events: Mapping[str, Tuple[EventSignature, ...]] = MappingProxyType(
            {key: tuple(variants) for key, variants in event_map.items()}
        )
        by_name: Dict[str, MethodSignature] = {}
        for method in method_map.values():
            by_name.setdefault(method.name, method)
        self._methods_by_name: Mapping[str, MethodSignature] = MappingProxyType(by_name)

    @property
    def methods(self) -> Mapping[str, MethodSignature]:
        return self._methods

    @property
    def events(self) -> Mapping[str, Tuple[EventSignature, ...]]:
        return self._events

    def lookup_method(self, selector: Union[str, bytes]) -> Optional[MethodSignature]:
        key = _normalize_key(selector, 4)
        if key is None:
            return None
        return self._methods.get(key)

    def lookup_method_by_name(self, name: str) -> Optional[MethodSignature]:
        """First registered method with this name (overloads resolve to the first declared)."""
        return self._methods_by_name.get(name)

    def lookup_event(self, topic0: Union[str, bytes], topic_count: Optional[int] = None) -> Optional[EventSignature]:
        """
        Resolve topic0 to an event shape.

        ERC20 and ERC721 Transfer/Approval share a topic0 and differ only in how
        many arguments are indexed; ``topic_count`` (the log's total topic count)
        picks the matching variant. Without it the first declared variant wins.
        """
        key = _normalize_key(topic0, 32)
        if key is None:
            return None
        variants = self._events.get(key)
        if not variants:
            return None
        if topic_count is None:
            return variants[0]
        for variant in variants:
            if variant.topic_count == topic_count:
                return variant
        return None


def _m(name: str, *params: Tuple[str, str]) -> MethodSignature:
    return MethodSignature.from_params(name, params)


def _e(name: str, *params: Tuple[str, str, bool]) -> EventSignature:
    return EventSignature.from_params(name, params)


def default_methods() -> List[MethodSignature]:
    return [
        # ERC20
        _m("transfer", ("address", "to"), ("uint256", "amount")),
        _m("approve", ("address", "spender"), ("uint256", "amount")),
        _m("transferFrom", ("address", "from"), ("address", "to"), ("uint256", "amount")),
        _m("balanceOf", ("address", "owner")),
        _m("allowance", ("address", "owner"), ("address", "spender")),
        _m("totalSupply"),
        _m("name"),
        _m("symbol"),
        _m("decimals"),
        # ERC721
        _m("safeTransferFrom", ("address", "from"), ("address", "to"), ("uint256", "tokenId")),
        _m(
            "safeTransferFrom",
            ("address", "from"),
            ("address", "to"),
            ("uint256", "tokenId"),
            ("bytes", "data"),
        ),
        _m("ownerOf", ("uint256", "tokenId")),
        _m("tokenURI", ("uint256", "tokenId")),
        _m("setApprovalForAll", ("address", "operator"), ("bool", "approved")),
        # WETH
        _m("deposit"),
        _m("withdraw", ("uint256", "amount")),
        # Uniswap V2 router
        _m(
            "swapExactTokensForTokens",
            ("uint256", "amountIn"),
            ("uint256", "amountOutMin"),
            ("address[]", "path"),
            ("address", "to"),
            ("uint256", "deadline"),
        ),
        _m(
            "swapExactETHForTokens",
            ("uint256", "amountOutMin"),
            ("address[]", "path"),
            ("address", "to"),
            ("uint256", "deadline"),
        ),
    ]


def default_events() -> List[EventSignature]:
    return [
        # ERC20 (declared before the ERC721 variants sharing the same topic0)
        _e("Transfer", ("address", "from", True), ("address", "to", True), ("uint256", "value", False)),
        _e("Approval", ("address", "owner", True), ("address", "spender", True), ("uint256", "value", False)),
        # ERC721
        _e("Transfer", ("address", "from", True), ("address", "to", True), ("uint256", "tokenId", True)),
        _e(
            "Approval",
            ("address", "owner", True),
            ("address", "approved", True),
            ("uint256", "tokenId", True),
        ),
        _e(
            "ApprovalForAll",
            ("address", "owner", True),
            ("address", "operator", True),
            ("bool", "approved", False),
        ),
        # Ownable
        _e("OwnershipTransferred", ("address", "previousOwner", True), ("address", "newOwner", True)),
        # WETH
        _e("Deposit", ("address", "dst", True), ("uint256", "wad", False)),
        _e("Withdrawal", ("address", "src", True), ("uint256", "wad", False)),
        # Uniswap V2 pair
        _e(
            "Swap",
            ("address", "sender", True),
            ("uint256", "amount0In", False),
            ("uint256", "amount1In", False),
            ("uint256", "amount0Out", False),
            ("uint256", "amount1Out", False),
            ("address", "to", True),
        ),
        _e("Sync", ("uint112", "reserve0", False), ("uint112", "reserve1", False)),
    ]


def build_default_database() -> SignatureDatabase:
    return SignatureDatabase(default_methods(), default_events())
