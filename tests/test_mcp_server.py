import pytest

from conftest import USDT, USDT_HEX, FakeSession, abi_string_hex, packed_hex, rpc_result, tron_address, uint_hex
from tron_scraper import mcp_server
from tron_scraper.rpc_client import RpcClient


@pytest.fixture
def session(monkeypatch):
    fake = FakeSession()
    monkeypatch.setattr(mcp_server, "_client", RpcClient("https://node.example", session=fake))
    return fake


@pytest.fixture
def runs(monkeypatch):
    calls = []
    monkeypatch.setattr(mcp_server.server, "run", lambda **kwargs: calls.append(kwargs))
    return calls


def test_main_defaults_to_stdio(runs):
    mcp_server.main([])
    assert runs == [{"transport": "stdio"}]


def test_main_streamable_http_binds_host_and_port(runs):
    mcp_server.main(["--transport", "streamable-http", "--host", "0.0.0.0", "--port", "9001"])

    assert runs == [{"transport": "streamable-http"}]
    assert mcp_server.server.settings.host == "0.0.0.0"
    assert mcp_server.server.settings.port == 9001


def test_main_rejects_sse():
    with pytest.raises(SystemExit):
        mcp_server.main(["--transport", "sse", "--mount-path", "/mcp"])


def test_call_contract_tool_decodes_result(session):
    session.queue(rpc_result(uint_hex(6)))

    result = mcp_server.call_contract(USDT, "decimals()")

    assert result["data"] == uint_hex(6)
    assert result["decoded"]["uint256"] == "6"


def test_get_token_metadata_tool(session):
    session.queue(rpc_result(uint_hex(6)), rpc_result(packed_hex("USDT")), rpc_result(abi_string_hex("Tether USD")))

    row = mcp_server.get_token_metadata(USDT)

    assert (row["decimals"], row["symbol"], row["name"]) == (6, "USDT", "Tether USD")


def test_get_balance_tool_reports_zero(session):
    session.queue(rpc_result("0x"))

    result = mcp_server.get_balance(tron_address(0x11), USDT)

    assert result["balance"] == "0"
    assert result["balance_hex"] is None


def test_encode_and_convert_tools():
    encoded = mcp_server.encode_call_data_tool("balanceOf(address)", USDT)
    assert encoded["selector"] == "0x70a08231"
    assert encoded["data"].endswith(USDT_HEX[2:])

    assert mcp_server.convert_address(USDT) == {"base58": USDT, "hex": USDT_HEX}
