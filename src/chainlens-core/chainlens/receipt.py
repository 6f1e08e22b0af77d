import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .abi import AbiCodec, is_dynamic
from .errors import CodecError, MalformedDataError
from .signatures import EventSignature
from .utils import GWEI_DECIMALS, WEI_DECIMALS, checksum_or_raw, format_scaled_int, hex_to_bytes, hex_to_int, to_hex

logger = logging.getLogger(__name__)

STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class KnownEvent:
    event: EventSignature
    values: Dict[str, Any]
    address: Optional[str]
    log_index: Optional[int] = None

    kind = "known"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.event.name,
            "signature": self.event.signature,
            "topic": self.event.topic_hex,
            "address": self.address,
            "log_index": self.log_index,
            "params": [
                {"name": p.name, "type": p.type, "indexed": p.indexed, "value": self.values.get(p.name)}
                for p in self.event.params
            ],
        }


@dataclass(frozen=True)
class UnknownEvent:
    topics: Tuple[bytes, ...]
    data: bytes
    address: Optional[str]
    log_index: Optional[int] = None

    kind = "unknown"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "address": self.address,
            "log_index": self.log_index,
            "topics": [to_hex(t) for t in self.topics],
            "data": to_hex(self.data),
        }


DecodedEvent = Union[KnownEvent, UnknownEvent]


@dataclass(frozen=True)
class ParsedReceipt:
    status: str
    gas_used: int
    effective_gas_price: int
    total_fee: int
    events: List[DecodedEvent] = field(default_factory=list)
    transaction_hash: Optional[str] = None
    block_number: Optional[int] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    contract_address: Optional[str] = None
    cumulative_gas_used: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCESS

    @property
    def total_fee_eth(self) -> str:
        return format_scaled_int(self.total_fee, WEI_DECIMALS)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_hash": self.transaction_hash,
            "block_number": self.block_number,
            "from": self.from_address,
            "to": self.to_address,
            "contract_address": self.contract_address,
            "status": self.status,
            "gas_used": self.gas_used,
            "cumulative_gas_used": self.cumulative_gas_used,
            "effective_gas_price": self.effective_gas_price,
            "total_fee": self.total_fee,
            "total_fee_eth": self.total_fee_eth,
            "events": [event.to_dict() for event in self.events],
        }


def format_gas_info(receipt: ParsedReceipt) -> str:
    gwei = format_scaled_int(receipt.effective_gas_price, GWEI_DECIMALS)
    return f"Gas Used: {receipt.gas_used} | Gas Price: {gwei} Gwei | Total: {receipt.total_fee_eth} ETH"


class ReceiptParser:
    """Turn an eth_getTransactionReceipt result into a ParsedReceipt."""

    def __init__(self, codec: AbiCodec) -> None:
        self.codec = codec

    def parse(self, raw_receipt: Mapping[str, Any]) -> ParsedReceipt:
        if not isinstance(raw_receipt, Mapping):
            raise MalformedDataError("Receipt must be an object.")

        def hx(name: str) -> Optional[int]:
            try:
                return hex_to_int(raw_receipt.get(name), name)
            except ValueError as exc:
                raise MalformedDataError(str(exc)) from exc

        gas_used = hx("gasUsed") or 0
        gas_price = hx("effectiveGasPrice")
        if gas_price is None:
            gas_price = hx("gasPrice") or 0

        logs = raw_receipt.get("logs") or []
        if not isinstance(logs, list):
            raise MalformedDataError("Receipt logs must be a list.")

        events = [self.parse_log(entry, idx) for idx, entry in enumerate(logs)]

        return ParsedReceipt(
            status=STATUS_SUCCESS if hx("status") == 1 else STATUS_FAILED,
            gas_used=gas_used,
            effective_gas_price=gas_price,
            total_fee=gas_used * gas_price,
            events=events,
            transaction_hash=raw_receipt.get("transactionHash"),
            block_number=hx("blockNumber"),
            from_address=checksum_or_raw(raw_receipt.get("from")),
            to_address=checksum_or_raw(raw_receipt.get("to")),
            contract_address=checksum_or_raw(raw_receipt.get("contractAddress")),
            cumulative_gas_used=hx("cumulativeGasUsed"),
        )

    def parse_log(self, entry: Mapping[str, Any], position: int = 0) -> DecodedEvent:
        if not isinstance(entry, Mapping):
            raise MalformedDataError("Log entry must be an object.")

        address = checksum_or_raw(entry.get("address"))
        try:
            log_index = hex_to_int(entry.get("logIndex"), "logIndex")
        except ValueError:
            log_index = None
        if log_index is None:
            log_index = position

        topics = tuple(hex_to_bytes(t, "topic") for t in entry.get("topics") or [])
        data = hex_to_bytes(entry.get("data") or "0x", "log data")

        if not topics:
            return UnknownEvent(topics=topics, data=data, address=address, log_index=log_index)

        event = self.codec.lookup_event(topics[0], topic_count=len(topics))
        if event is None:
            logger.debug("Unknown event topic %s", to_hex(topics[0]))
            return UnknownEvent(topics=topics, data=data, address=address, log_index=log_index)

        try:
            values = self._decode_event(event, topics, data)
        except CodecError as exc:
            logger.debug("Could not decode %s log at index %s: %s", event.signature, log_index, exc)
            return UnknownEvent(topics=topics, data=data, address=address, log_index=log_index)

        return KnownEvent(event=event, values=values, address=address, log_index=log_index)

    def _decode_event(self, event: EventSignature, topics: Sequence[bytes], data: bytes) -> Dict[str, Any]:
        decoded: Dict[str, Any] = {}

        indexed = event.indexed_params
        for param, topic in zip(indexed, topics[1:]):
            if len(topic) != 32:
                raise MalformedDataError("Topic must be 32 bytes.")
            if is_dynamic(param.type):
                # indexed dynamic values are stored as their keccak hash
                decoded[param.name] = to_hex(topic)
            else:
                decoded[param.name] = self.codec.decode_word(param.type, topic)

        data_params = event.data_params
        if data_params:
            values = self.codec.decode_return([p.type for p in data_params], data)
            for param, value in zip(data_params, values):
                decoded[param.name] = value

        # keep declaration order
        return {p.name: decoded[p.name] for p in event.params}
