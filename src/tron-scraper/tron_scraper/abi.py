import re
from typing import List, Optional, Sequence, Tuple

from eth_utils import keccak

from .address import to_hex_address
from .errors import ErrorKind, RpcCallError

WORD_SIZE = 32
SUPPORTED_ARG_TYPES = {"address"}

_HEX_BODY = re.compile(r"[0-9a-fA-F]*")
_CONTROL_AND_DIGITS = re.compile(r"[\x00-\x1f0-9]")
_ESCAPED_QUOTE = '\\"'


def parse_signature(signature: str) -> Tuple[str, List[str]]:
    if not isinstance(signature, str):
        raise RpcCallError(ErrorKind.CLIENT_ERROR, "Function signature must be a string.")
    text = signature.strip()
    if "(" not in text or not text.endswith(")"):
        raise RpcCallError(
            ErrorKind.CLIENT_ERROR,
            f"Invalid function signature '{signature}'. Expected name(type1,type2,...).",
        )
    name, rest = text.split("(", 1)
    fn = name.strip()
    if not re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", fn):
        raise RpcCallError(ErrorKind.CLIENT_ERROR, f"Invalid function name in '{signature}'.")

    params = rest[:-1].strip()
    types = [t.strip() for t in params.split(",")] if params else []
    for typ in types:
        if typ not in SUPPORTED_ARG_TYPES:
            raise RpcCallError(ErrorKind.CLIENT_ERROR, f"Unsupported argument type '{typ}' in '{signature}'.")
    if len(types) > 1:
        raise RpcCallError(ErrorKind.CLIENT_ERROR, f"At most one address argument is supported, got '{signature}'.")
    return fn, types


def selector(signature: str) -> bytes:
    fn, types = parse_signature(signature)
    canonical = f"{fn}({','.join(types)})"
    return keccak(text=canonical)[:4]


def pad32(b: bytes) -> bytes:
    if len(b) > WORD_SIZE:
        raise ValueError("Encoded value exceeds 32 bytes.")
    return b.rjust(WORD_SIZE, b"\x00")


def encode_args(types: Sequence[str], args: Sequence[str]) -> bytes:
    if len(types) != len(args):
        raise RpcCallError(
            ErrorKind.CLIENT_ERROR,
            f"Argument count mismatch: expected {len(types)}, got {len(args)}.",
        )
    encoded: List[bytes] = []
    for typ, value in zip(types, args):
        if typ != "address":
            raise RpcCallError(ErrorKind.CLIENT_ERROR, f"Unsupported argument type '{typ}'.")
        encoded.append(pad32(bytes.fromhex(to_hex_address(value)[2:])))
    return b"".join(encoded)


def encode_call_data(signature: str, args: Optional[Sequence[str]] = None) -> str:
    """Selector followed by the ABI-encoded arguments, as 0x-prefixed hex."""
    _, types = parse_signature(signature)
    data = selector(signature) + encode_args(types, list(args or []))
    return "0x" + data.hex()


def hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise ValueError("Result must be a hex string.")
    v = value.strip()
    if v[:2].lower() == "0x":
        v = v[2:]
    if len(v) % 2 != 0:
        v = "0" + v
    if not _HEX_BODY.fullmatch(v):
        raise ValueError("Result must be a hex string.")
    return bytes.fromhex(v)


def decode_uint256(value: str) -> int:
    """Big-endian unsigned integer; empty input decodes to 0."""
    data = hex_to_bytes(value)
    if not data:
        return 0
    return int.from_bytes(data, "big")


def _read_word(data: bytes, offset: int) -> int:
    return int.from_bytes(data[offset : offset + WORD_SIZE], "big")


def _decode_dynamic_string(data: bytes) -> Optional[str]:
    """
    Return the string if ``data`` has a consistent ABI dynamic-string layout:
    an offset word pointing at a length word, followed by ``length`` UTF-8 bytes
    that all fit inside the payload. Otherwise None.
    """
    if len(data) < 2 * WORD_SIZE:
        return None
    offset = _read_word(data, 0)
    if offset < WORD_SIZE or offset % WORD_SIZE != 0 or offset + WORD_SIZE > len(data):
        return None
    length = _read_word(data, offset)
    start = offset + WORD_SIZE
    if start + length > len(data):
        return None
    try:
        return data[start : start + length].decode("utf-8")
    except UnicodeDecodeError:
        return None


def _decode_packed_ascii(data: bytes) -> str:
    return data.decode("ascii", errors="ignore")


def sanitize_text(text: str) -> Optional[str]:
    cleaned = _CONTROL_AND_DIGITS.sub("", text).replace(_ESCAPED_QUOTE, "").strip()
    return cleaned or None


def decode_text_field(value: str) -> Optional[str]:
    """Decode a ``name()``/``symbol()`` result.

    Contracts answer either with a proper ABI dynamic string or, for older
    tokens, with raw ASCII packed into a single 32-byte slot. The dynamic
    layout is tried first and is accepted only when its offset/length header
    is consistent with the payload; anything else is read as packed ASCII.
    """
    data = hex_to_bytes(value)
    text = _decode_dynamic_string(data)
    if text is None:
        text = _decode_packed_ascii(data)
    return sanitize_text(text)
