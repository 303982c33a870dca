import json
import threading
from typing import Any, Dict, List, Optional

import base58
import pytest

from tron_scraper import rpc_client

USDT = "TR7NHqjeKQxGTCi8q8ZY4pL8otSzgjLj6t"
USDT_HEX = "0xa614f803b6fd780986a42c78ec9c7f77e6ded13c"


def tron_address(fill: int) -> str:
    return base58.b58encode_check(bytes([0x41]) + bytes([fill]) * 20).decode("ascii")


def uint_hex(value: int) -> str:
    return "0x" + value.to_bytes(32, "big").hex()


def abi_string_hex(text: str) -> str:
    raw = text.encode("utf-8")
    padded = raw.ljust(((len(raw) + 31) // 32) * 32, b"\x00")
    return "0x" + (32).to_bytes(32, "big").hex() + len(raw).to_bytes(32, "big").hex() + padded.hex()


def packed_hex(text: str) -> str:
    return "0x" + text.encode("ascii").ljust(32, b"\x00").hex()


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else ("" if body is None else json.dumps(body))
        self.reason = "Fake"
        self.closed = False

    def json(self) -> Any:
        if self._body is None:
            return json.loads(self.text)
        return self._body

    def iter_content(self, chunk_size: int = 1):
        raw = self.text.encode("utf-8")
        for start in range(0, len(raw), chunk_size):
            yield raw[start : start + chunk_size]

    def close(self) -> None:
        self.closed = True


def rpc_result(result: Any) -> FakeResponse:
    return FakeResponse(200, {"jsonrpc": "2.0", "id": 1, "result": result})


def rpc_error(code: int, message: str, status: int = 200) -> FakeResponse:
    return FakeResponse(status, {"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}})


class FakeSession:
    """Replays queued responses (or raises queued exceptions) for each POST."""

    def __init__(self, *outcomes: Any) -> None:
        self.headers: Dict[str, str] = {}
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    def post(self, url: str, **kwargs: Any) -> Any:
        self.calls.append({"url": url, **kwargs})
        if not self.outcomes:
            raise AssertionError("Unexpected POST: no queued response left.")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class InMemorySource:
    def __init__(self, contracts=None, holdings=None) -> None:
        self.contracts = list(contracts or [])
        self.holdings = dict(holdings or {})
        self.lookups: List[str] = []

    def list_contracts(self) -> List[str]:
        return list(self.contracts)

    def list_accounts(self) -> List[str]:
        return list(self.holdings)

    def list_contracts_for_account(self, account: str) -> List[str]:
        self.lookups.append(account)
        return list(self.holdings[account])


class InMemorySink:
    def __init__(self, existing=None) -> None:
        self.existing = set(existing or [])
        self.metadata: List[Any] = []
        self.balances: List[Any] = []
        self.errors: List[Any] = []
        self._lock = threading.Lock()

    def has_metadata(self, contract: str) -> bool:
        return contract in self.existing

    def insert_metadata(self, record) -> None:
        with self._lock:
            self.metadata.append(record)

    def insert_balance(self, record) -> None:
        with self._lock:
            self.balances.append(record)

    def insert_error(self, record) -> None:
        with self._lock:
            self.errors.append(record)


@pytest.fixture
def sleeps(monkeypatch):
    recorded: List[float] = []
    monkeypatch.setattr(rpc_client.time, "sleep", recorded.append)
    return recorded
