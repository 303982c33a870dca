import pytest
from eth_utils import keccak

from conftest import USDT, USDT_HEX, abi_string_hex, packed_hex, tron_address, uint_hex
from tron_scraper.abi import (
    decode_text_field,
    decode_uint256,
    encode_call_data,
    hex_to_bytes,
    parse_signature,
    sanitize_text,
    selector,
)
from tron_scraper.errors import ErrorKind, RpcCallError


def test_selector_is_leading_keccak_bytes_of_canonical_signature():
    assert selector(" balanceOf( address ) ") == keccak(text="balanceOf(address)")[:4]
    assert selector("decimals()") == keccak(b"decimals()")[:4]


@pytest.mark.parametrize(
    "signature, expected",
    [
        ("decimals()", "313ce567"),
        ("symbol()", "95d89b41"),
        ("name()", "06fdde03"),
        ("totalSupply()", "18160ddd"),
        ("balanceOf(address)", "70a08231"),
    ],
)
def test_selector_known_values(signature, expected):
    assert selector(signature).hex() == expected


def test_selector_ignores_whitespace_in_signature():
    assert selector(" balanceOf( address ) ") == selector("balanceOf(address)")


def test_encode_call_data_without_args():
    assert encode_call_data("decimals()") == "0x313ce567"


def test_encode_call_data_pads_address_argument():
    data = encode_call_data("balanceOf(address)", [USDT])
    assert data == "0x70a08231" + "00" * 12 + USDT_HEX[2:]
    assert len(data) == 2 + 8 + 64


def test_encode_call_data_accepts_hex_address():
    account = tron_address(0x11)
    assert encode_call_data("balanceOf(address)", [account]) == encode_call_data(
        "balanceOf(address)", ["0x" + "11" * 20]
    )


@pytest.mark.parametrize(
    "signature",
    ["decimals", "1bad()", "transfer(address,uint256)", "approve(address,address)", "foo(uint256)"],
)
def test_parse_signature_rejects_unsupported(signature):
    with pytest.raises(RpcCallError) as excinfo:
        parse_signature(signature)
    assert excinfo.value.kind is ErrorKind.CLIENT_ERROR
    assert excinfo.value.retryable is False


def test_encode_call_data_argument_count_mismatch():
    with pytest.raises(RpcCallError) as excinfo:
        encode_call_data("balanceOf(address)")
    assert excinfo.value.kind is ErrorKind.CLIENT_ERROR


def test_encode_call_data_bad_address_is_client_error():
    with pytest.raises(RpcCallError) as excinfo:
        encode_call_data("balanceOf(address)", ["not-an-address"])
    assert excinfo.value.kind is ErrorKind.CLIENT_ERROR


def test_hex_to_bytes_tolerates_prefix_and_odd_length():
    assert hex_to_bytes("0x1") == b"\x01"
    assert hex_to_bytes("0X0a0b") == b"\x0a\x0b"
    assert hex_to_bytes("") == b""
    with pytest.raises(ValueError):
        hex_to_bytes("0xzz")


def test_decode_uint256():
    assert decode_uint256(uint_hex(1)) == 1
    assert decode_uint256("0x" + "00" * 32) == 0
    assert decode_uint256("0x") == 0
    assert decode_uint256("") == 0
    assert decode_uint256("0x12") == 18
    assert decode_uint256(uint_hex(2**256 - 1)) == 2**256 - 1


def test_decode_text_field_dynamic_string():
    assert decode_text_field(abi_string_hex("Tether USD")) == "Tether USD"


def test_decode_text_field_packed_ascii_slot():
    assert decode_text_field(packed_hex("USDT")) == "USDT"


def test_decode_text_field_falls_back_when_header_is_inconsistent():
    # offset word claims 32 but length overruns the payload
    bogus = "0x" + (32).to_bytes(32, "big").hex() + (500).to_bytes(32, "big").hex() + b"WIN".ljust(32, b"\x00").hex()
    assert decode_text_field(bogus) == "WIN"


def test_decode_text_field_strips_digits_and_controls():
    assert decode_text_field(abi_string_hex("1INCH Token")) == "INCH Token"
    assert decode_text_field(packed_hex("\x05ABC\x07")) == "ABC"


def test_decode_text_field_empty_results():
    assert decode_text_field("0x") is None
    assert decode_text_field(abi_string_hex("")) is None
    assert decode_text_field(abi_string_hex("2024")) is None


def test_sanitize_text_removes_escaped_quotes():
    assert sanitize_text('My \\"Coin\\"  ') == "My Coin"
    assert sanitize_text("   ") is None
