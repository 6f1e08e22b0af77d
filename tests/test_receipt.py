import pytest
from eth_utils import to_checksum_address

from chainlens.errors import MalformedDataError
from chainlens.receipt import KnownEvent, ReceiptParser, UnknownEvent, format_gas_info

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
OWNERSHIP_TOPIC = "0x8be0079c531659141344cd1fd0a4f28419497f9722a3daafe3b4186f6b6457e0"
SYNC_TOPIC = "0x1c411e9a96e071241c2f21f7726b17ae89e3cab4c78be50e062b03a9fffbbad1"

TOKEN = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
ALICE = "0x1111111111111111111111111111111111111111"
BOB = "0x2222222222222222222222222222222222222222"


def _topic_for(address: str) -> str:
    return "0x" + "00" * 12 + address[2:]


def _word(value: int) -> str:
    return value.to_bytes(32, "big").hex()


def _receipt(logs=None, status="0x1", **extra):
    receipt = {
        "transactionHash": "0x" + "ab" * 32,
        "blockNumber": "0x10",
        "from": ALICE,
        "to": TOKEN,
        "status": status,
        "gasUsed": hex(21000),
        "cumulativeGasUsed": hex(42000),
        "effectiveGasPrice": hex(20 * 10**9),
        "logs": logs or [],
    }
    receipt.update(extra)
    return receipt


@pytest.fixture
def parser(codec):
    return ReceiptParser(codec)


def test_plain_transfer_receipt(parser):
    parsed = parser.parse(_receipt())
    assert parsed.status == "success"
    assert parsed.succeeded
    assert parsed.gas_used == 21000
    assert parsed.effective_gas_price == 20_000_000_000
    assert parsed.total_fee == 420_000_000_000_000
    assert parsed.total_fee_eth == "0.00042"
    assert parsed.events == []
    assert parsed.block_number == 16
    assert parsed.cumulative_gas_used == 42000


def test_failed_status(parser):
    parsed = parser.parse(_receipt(status="0x0"))
    assert parsed.status == "failed"
    assert not parsed.succeeded


def test_legacy_gas_price_fallback(parser):
    raw = _receipt()
    del raw["effectiveGasPrice"]
    raw["gasPrice"] = hex(10**9)
    parsed = parser.parse(raw)
    assert parsed.effective_gas_price == 10**9
    assert parsed.total_fee == 21000 * 10**9


def test_erc20_transfer_log(parser):
    log = {
        "address": TOKEN,
        "topics": [TRANSFER_TOPIC, _topic_for(ALICE), _topic_for(BOB)],
        "data": "0x" + _word(1_500_000),
        "logIndex": "0x3",
    }
    (event,) = parser.parse(_receipt([log])).events
    assert isinstance(event, KnownEvent)
    assert event.event.name == "Transfer"
    assert event.values == {"from": ALICE, "to": BOB, "value": 1_500_000}
    assert event.address == to_checksum_address(TOKEN)
    assert event.log_index == 3


def test_erc721_transfer_log_uses_four_topic_variant(parser):
    log = {
        "address": TOKEN,
        "topics": [TRANSFER_TOPIC, _topic_for(ALICE), _topic_for(BOB), "0x" + _word(42)],
        "data": "0x",
    }
    (event,) = parser.parse(_receipt([log])).events
    assert isinstance(event, KnownEvent)
    assert event.values == {"from": ALICE, "to": BOB, "tokenId": 42}


def test_all_indexed_event_without_data(parser):
    log = {"address": TOKEN, "topics": [OWNERSHIP_TOPIC, _topic_for(ALICE), _topic_for(BOB)], "data": "0x"}
    event = parser.parse_log(log)
    assert isinstance(event, KnownEvent)
    assert event.values == {"previousOwner": ALICE, "newOwner": BOB}


def test_sync_event_decodes_uint112(parser):
    log = {"address": TOKEN, "topics": [SYNC_TOPIC], "data": "0x" + _word(5) + _word(7)}
    event = parser.parse_log(log)
    assert isinstance(event, KnownEvent)
    assert event.values == {"reserve0": 5, "reserve1": 7}


def test_unknown_topic_is_preserved(parser):
    topic = "0x" + "99" * 32
    log = {"address": TOKEN, "topics": [topic, _topic_for(ALICE)], "data": "0xdeadbeef"}
    event = parser.parse_log(log, position=5)
    assert isinstance(event, UnknownEvent)
    assert event.topics == (bytes.fromhex("99" * 32), bytes.fromhex(_topic_for(ALICE)[2:]))
    assert event.data == bytes.fromhex("deadbeef")
    assert event.log_index == 5
    assert event.to_dict()["topics"][0] == topic


def test_known_topic_with_bad_data_falls_back_to_unknown(parser):
    log = {"address": TOKEN, "topics": [TRANSFER_TOPIC, _topic_for(ALICE), _topic_for(BOB)], "data": "0x01"}
    event = parser.parse_log(log)
    assert isinstance(event, UnknownEvent)
    assert event.data == b"\x01"


def test_log_without_topics(parser):
    event = parser.parse_log({"address": TOKEN, "topics": [], "data": "0x"})
    assert isinstance(event, UnknownEvent)
    assert event.topics == ()


def test_events_keep_log_order(parser):
    logs = [
        {"address": TOKEN, "topics": ["0x" + "99" * 32], "data": "0x"},
        {"address": TOKEN, "topics": [OWNERSHIP_TOPIC, _topic_for(ALICE), _topic_for(BOB)], "data": "0x"},
    ]
    events = parser.parse(_receipt(logs)).events
    assert [e.kind for e in events] == ["unknown", "known"]
    assert [e.log_index for e in events] == [0, 1]


def test_malformed_receipt(parser):
    with pytest.raises(MalformedDataError):
        parser.parse(["not", "a", "receipt"])
    with pytest.raises(MalformedDataError):
        parser.parse(_receipt(gasUsed="0xnothex"))


def test_format_gas_info(parser):
    parsed = parser.parse(_receipt())
    assert format_gas_info(parsed) == "Gas Used: 21000 | Gas Price: 20 Gwei | Total: 0.00042 ETH"


def test_to_dict(parser):
    payload = parser.parse(_receipt()).to_dict()
    assert payload["status"] == "success"
    assert payload["total_fee"] == 420_000_000_000_000
    assert payload["from"] == ALICE
    assert payload["events"] == []


def test_addresses_are_checksummed(parser):
    log = {"address": TOKEN, "topics": [OWNERSHIP_TOPIC, _topic_for(ALICE), _topic_for(BOB)], "data": "0x"}
    parsed = parser.parse(_receipt([log], contractAddress=None))
    assert parsed.to_address == to_checksum_address(TOKEN)
    assert parsed.to_address != TOKEN
    assert parsed.events[0].address == to_checksum_address(TOKEN)
    assert parsed.contract_address is None
