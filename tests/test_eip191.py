import pytest
from eth_keys import keys

from chainlens.eip191 import (
    build_sign_text,
    encode_personal_message,
    generate_sign_message,
    hash_personal_message,
    public_key_to_address,
    recover_signer,
    same_address,
    split_signature,
    verify,
)
from chainlens.errors import InvalidRecoveryIdError, InvalidSignatureLengthError, RecoveryFailedError

KEY_ONE = keys.PrivateKey((1).to_bytes(32, "big"))
KEY_ONE_ADDRESS = "0x7E5F4552091A69125d5DfCb7b8C2659029395Bdf"


def _sign(message, key=KEY_ONE, v_offset=0):
    sig = key.sign_msg_hash(hash_personal_message(message))
    raw = sig.to_bytes()
    return "0x" + (raw[:64] + bytes([raw[64] + v_offset])).hex()


def test_personal_message_prefix():
    assert encode_personal_message("test") == b"\x19Ethereum Signed Message:\n4test"
    # length prefix counts UTF-8 bytes, not characters
    assert encode_personal_message("é") == b"\x19Ethereum Signed Message:\n2" + "é".encode("utf-8")


def test_hash_matches_known_digest():
    assert hash_personal_message("Hello World").hex() == (
        "a1de988600a42c4b4ab089b619297c17d53cffae5d5120d82d8a92d0bb3b78f2"
    )


def test_generate_sign_message_is_deterministic():
    first = generate_sign_message("abc123")
    assert first == generate_sign_message("abc123")
    assert first != generate_sign_message("abc124")
    text = build_sign_text("abc123")
    assert "Nonce: abc123" in text
    assert first == encode_personal_message(text)


def test_app_name_is_part_of_message():
    assert b"Welcome to Other!" in generate_sign_message("n", app_name="Other")


def test_public_key_to_address():
    public = KEY_ONE.public_key.to_bytes()
    assert public_key_to_address(public) == KEY_ONE_ADDRESS
    assert public_key_to_address(b"\x04" + public) == KEY_ONE_ADDRESS
    with pytest.raises(ValueError):
        public_key_to_address(public[:33])


@pytest.mark.parametrize("v_offset", [0, 27])
def test_recover_signer(v_offset):
    signature = _sign("test", v_offset=v_offset)
    assert recover_signer("test", signature) == KEY_ONE_ADDRESS


def test_recover_signer_of_login_message():
    text = build_sign_text("nonce-1")
    assert recover_signer(text, _sign(text)) == KEY_ONE_ADDRESS


def test_verify():
    signature = _sign("test")
    assert verify("test", signature, KEY_ONE_ADDRESS)
    assert verify("test", signature, KEY_ONE_ADDRESS.lower())
    assert not verify("test", signature, "0x" + "00" * 20)
    assert not verify("other", signature, KEY_ONE_ADDRESS)


def test_same_address_ignores_case():
    assert same_address(KEY_ONE_ADDRESS, KEY_ONE_ADDRESS.lower())
    assert same_address(" " + KEY_ONE_ADDRESS.lower() + " ", KEY_ONE_ADDRESS)
    assert not same_address(KEY_ONE_ADDRESS, "0x" + "00" * 20)


def test_split_signature_normalises_v():
    sig = _sign("test", v_offset=27)
    r, s, v = split_signature(sig)
    assert v in (0, 1)
    assert (r, s, v) == split_signature(_sign("test"))


def test_signature_length_error():
    with pytest.raises(InvalidSignatureLengthError):
        recover_signer("test", "0x" + "11" * 64)


def test_invalid_recovery_id():
    signature = _sign("test")[:-2] + "05"
    with pytest.raises(InvalidRecoveryIdError):
        recover_signer("test", signature)


def test_out_of_range_signature_fails_recovery():
    with pytest.raises(RecoveryFailedError):
        recover_signer("test", "0x" + "ff" * 64 + "1b")


def test_non_hex_signature():
    with pytest.raises(RecoveryFailedError):
        recover_signer("test", "0x" + "zz" * 65)
