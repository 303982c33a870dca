"""
MCP server exposing read-only TRC-20 contract calls against a TRON JSON-RPC node.
"""

import argparse
from collections.abc import Mapping
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from .abi import decode_text_field, decode_uint256, encode_call_data, selector
from .address import to_base58_address, to_hex_address
from .config import load_config
from .rpc_client import RpcClient
from .tokens import fetch_balance, fetch_token_metadata

server = FastMCP(
    name="tron-scraper",
    instructions="Read TRC-20 metadata and balances from a TRON JSON-RPC node.",
)

_client: Optional[RpcClient] = None


def _get_client() -> RpcClient:
    global _client
    if _client is None:
        cfg = load_config()
        _client = RpcClient(cfg.node_url, policy=cfg.retry)
    return _client


def _normalize_args(value: Optional[Any]) -> Optional[list]:
    """
    Accept the call arguments as an array; a single scalar is wrapped.
    A bare string is treated as one address argument.
    """
    if value is None:
        return None
    if isinstance(value, Mapping):
        raise ValueError("args must be an array, not an object/map.")
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@server.tool(
    name="call_contract",
    title="Call Read-Only Function",
    description="eth_call a contract function by signature (e.g. 'balanceOf(address)'). Returns raw hex plus uint256/string decodings. `retries` overrides the retry count.",
)
def call_contract(
    contract: str,
    function: str,
    args: Optional[Any] = None,
    retries: Optional[int] = None,
) -> dict:
    client = _get_client()
    result = client.call_contract(contract, function, _normalize_args(args), retries)
    return {
        "contract": contract,
        "function": function,
        "data": result,
        "decoded": {
            "uint256": str(decode_uint256(result)),
            "string": decode_text_field(result),
        },
    }


@server.tool(
    name="get_token_metadata",
    title="Get TRC-20 Metadata",
    description="Fetch decimals, symbol and name of a TRC-20 contract. Decimals outside 0..18 are rejected.",
)
def get_token_metadata(contract: str) -> dict:
    metadata = fetch_token_metadata(_get_client(), contract)
    return metadata.to_row()


@server.tool(
    name="get_balance",
    title="Get TRC-20 Balance",
    description="Fetch balanceOf(account) on a TRC-20 contract. Zero or empty results are reported as balance '0'.",
)
def get_balance(account: str, contract: str) -> dict:
    record = fetch_balance(_get_client(), account, contract)
    if record is None:
        return {"account": account, "contract": contract, "balance_hex": None, "balance": "0"}
    return record.to_row()


@server.tool(
    name="encode_call_data",
    title="Encode Function Call",
    description="Compute the 4-byte selector and call data for a signature with an optional single address argument.",
)
def encode_call_data_tool(function: str, args: Optional[Any] = None) -> dict:
    return {
        "function": function,
        "selector": "0x" + selector(function).hex(),
        "data": encode_call_data(function, _normalize_args(args)),
    }


@server.tool(
    name="convert_address",
    title="Convert TRON Address",
    description="Convert a TRON address between base58 (T...) and 20-byte hex forms.",
)
def convert_address(address: str) -> dict:
    return {
        "base58": to_base58_address(address),
        "hex": to_hex_address(address),
    }


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Serve TRC-20 contract reads over MCP.")
    parser.add_argument("--transport", choices=["stdio", "streamable-http"], default="stdio")
    parser.add_argument("--host", default="127.0.0.1", help="Bind host for streamable-http.")
    parser.add_argument("--port", type=int, default=8000, help="Bind port for streamable-http.")
    args = parser.parse_args(argv)

    server.settings.host = args.host
    server.settings.port = args.port
    server.run(transport=args.transport)


if __name__ == "__main__":
    main()
