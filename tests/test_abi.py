import hashlib

import pytest
from eth_utils import to_checksum_address

from chainlens.errors import CodecError, MalformedDataError, UnsupportedTypeError
from chainlens.utils import keccak256

ADDR_A = "0x742d35cc6634c0532925a3b844bc9e7595f0beb1"
ADDR_B = "0x1234567890123456789012345678901234567890"

SAMPLE_VALUES = {
    "address": to_checksum_address(ADDR_A),
    "uint256": 10**18,
    "bool": True,
    "bytes32": "0x" + "ab" * 32,
    "string": "ipfs://token/42",
    "bytes": "0xdeadbeef00",
    "address[]": [to_checksum_address(ADDR_A), ADDR_B],
}


def test_keccak_is_not_sha3():
    # Keccak-256 and NIST SHA3-256 diverge on every input, including the empty string.
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert keccak256(b"") != hashlib.sha3_256(b"").digest()
    assert keccak256(b"transfer(address,uint256)")[:4].hex() == "a9059cbb"
    assert hashlib.sha3_256(b"transfer(address,uint256)").digest()[:4].hex() != "a9059cbb"


def test_encode_transfer_matches_known_calldata(codec):
    data = codec.encode_call("transfer", [("address", ADDR_A), ("uint256", 10**18)])
    assert data.hex() == (
        "a9059cbb"
        "000000000000000000000000742d35cc6634c0532925a3b844bc9e7595f0beb1"
        "0000000000000000000000000000000000000000000000000de0b6b3a7640000"
    )


def test_encode_string_is_length_prefixed(codec):
    data = codec.encode_call("setName", [("string", "abc")])
    body = data[4:]
    assert int.from_bytes(body[0:32], "big") == 32
    assert int.from_bytes(body[32:64], "big") == 3
    assert body[64:67] == b"abc"
    assert body[67:96] == b"\x00" * 29
    assert len(body) == 96


def test_encode_no_params_is_selector_only(codec):
    assert codec.encode_call("totalSupply", []).hex() == "18160ddd"


@pytest.mark.parametrize("typ", ["uint8", "int256", "tuple", "bytes4", "(address,uint256)", "uint256[2]"])
def test_encode_rejects_unsupported_types(codec, typ):
    with pytest.raises(UnsupportedTypeError):
        codec.encode_call("f", [(typ, 1)])


def test_encode_rejects_bad_values(codec):
    with pytest.raises(CodecError):
        codec.encode_call("f", [("uint256", -1)])
    with pytest.raises(CodecError):
        codec.encode_call("f", [("address", "0x1234")])
    with pytest.raises(CodecError):
        codec.encode_call("f", [("bool", 2)])
    with pytest.raises(CodecError):
        codec.encode_call("f", [("bytes32", "0x01")])


def test_round_trip_for_every_database_method(codec, signatures):
    for method in signatures.methods.values():
        values = [SAMPLE_VALUES[t] for t in method.types]
        data = codec.encode_method(method, values)
        assert data[:4] == method.selector
        assert codec.decode_return(method.types, data[4:]) == values, method.signature


def test_decode_return_accepts_hex(codec):
    raw = "0x" + (18).to_bytes(32, "big").hex()
    assert codec.decode_return(["uint256"], raw) == [18]


def test_decode_return_string(codec):
    encoded = codec.encode_params(["string"], ["Wrapped Ether"])
    assert codec.decode_return(["string"], encoded) == ["Wrapped Ether"]


def test_decode_return_too_short(codec):
    with pytest.raises(MalformedDataError):
        codec.decode_return(["uint256", "uint256"], b"\x00" * 40)


def test_decode_return_bad_offset(codec):
    word = (1024).to_bytes(32, "big")
    with pytest.raises(MalformedDataError):
        codec.decode_return(["bytes"], word)


def test_decode_word_rejects_dirty_bool(codec):
    with pytest.raises(MalformedDataError):
        codec.decode_word("bool", (2).to_bytes(32, "big"))


def test_decode_word_rejects_overflow_for_narrow_uint(codec):
    assert codec.decode_word("uint112", (2**112 - 1).to_bytes(32, "big")) == 2**112 - 1
    with pytest.raises(MalformedDataError):
        codec.decode_word("uint112", (2**112).to_bytes(32, "big"))


def test_decode_word_rejects_dynamic_types(codec):
    with pytest.raises(UnsupportedTypeError):
        codec.decode_word("string", b"\x00" * 32)


def test_decode_return_unknown_type(codec):
    with pytest.raises(UnsupportedTypeError):
        codec.decode_return(["notatype"], b"\x00" * 32)


def test_decoded_addresses_are_checksummed(codec):
    encoded = codec.encode_params(["address", "address[]"], [ADDR_A, [ADDR_A]])
    expected = to_checksum_address(ADDR_A)
    assert expected != ADDR_A
    assert codec.decode_return(["address", "address[]"], encoded) == [expected, [expected]]


def test_decoded_bytes_are_hex(codec):
    encoded = codec.encode_params(["bytes32", "bytes"], ["0x" + "cd" * 32, b"\x01\x02"])
    assert codec.decode_return(["bytes32", "bytes"], encoded) == ["0x" + "cd" * 32, "0x0102"]


def test_encoded_length_covers_tail(codec):
    types = ["bytes", "uint256"]
    values = ["0x" + "11" * 40, 7]
    encoded = codec.encode_params(types, values)
    assert codec.encoded_length(types, values) == len(encoded) == 32 * 2 + 32 + 64
