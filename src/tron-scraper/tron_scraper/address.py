import re

import base58

from .errors import ErrorKind, RpcCallError

TRON_ADDRESS_PREFIX = 0x41
_HEX40 = re.compile(r"[0-9a-fA-F]{40}")


def _invalid(address: object, reason: str) -> RpcCallError:
    return RpcCallError(ErrorKind.CLIENT_ERROR, f"Invalid TRON address '{address}': {reason}.")


def to_hex_address(address: str) -> str:
    """
    Convert a TRON address to the 0x-prefixed 20-byte hex form used in call data.
    Accepts base58check (T...), 41-prefixed hex (42 chars) or 0x-prefixed hex.
    """
    if not isinstance(address, str):
        raise _invalid(address, "must be a string")
    candidate = address.strip()

    if candidate[:2].lower() == "0x":
        body = candidate[2:]
        if not _HEX40.fullmatch(body):
            raise _invalid(address, "expected 40 hex characters after 0x")
        return "0x" + body.lower()

    if len(candidate) == 42 and candidate[:2] == "41" and _HEX40.fullmatch(candidate[2:]):
        return "0x" + candidate[2:].lower()

    try:
        raw = base58.b58decode_check(candidate)
    except ValueError as exc:
        raise _invalid(address, str(exc) or "bad base58 checksum") from exc
    if len(raw) != 21:
        raise _invalid(address, f"expected 21 bytes, decoded {len(raw)}")
    if raw[0] != TRON_ADDRESS_PREFIX:
        raise _invalid(address, f"unexpected version byte 0x{raw[0]:02x}")
    return "0x" + raw[1:].hex()


def to_base58_address(address: str) -> str:
    hex_address = to_hex_address(address)
    payload = bytes([TRON_ADDRESS_PREFIX]) + bytes.fromhex(hex_address[2:])
    return base58.b58encode_check(payload).decode("ascii")
