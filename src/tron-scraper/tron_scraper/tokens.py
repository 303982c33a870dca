from typing import Any, Optional

from .abi import decode_text_field, decode_uint256
from .errors import ErrorKind, RpcCallError
from .models import BalanceRecord, TokenMetadata
from .rpc_client import RpcClient

MIN_DECIMALS = 0
MAX_DECIMALS = 18


class InvalidDecimalsError(ValueError):
    def __init__(self, decimals: int) -> None:
        super().__init__(f"Invalid decimals: {decimals}")
        self.decimals = decimals


def fetch_token_metadata(rpc: RpcClient, contract: str, policy: Any = None) -> TokenMetadata:
    # decimals() gates the item, so symbol()/name() are only read once it is valid.
    decimals = decode_uint256(rpc.call_contract(contract, "decimals()", policy=policy))
    if not MIN_DECIMALS <= decimals <= MAX_DECIMALS:
        raise InvalidDecimalsError(decimals)

    symbol_hex = rpc.call_contract(contract, "symbol()", policy=policy)
    name_hex = rpc.call_contract(contract, "name()", policy=policy)

    return TokenMetadata(
        contract=contract,
        decimals=decimals,
        symbol=decode_text_field(symbol_hex),
        name=decode_text_field(name_hex),
    )


def fetch_balance(rpc: RpcClient, account: str, contract: str, policy: Any = None) -> Optional[BalanceRecord]:
    """TRC-20 ``balanceOf(account)``; None when the node returns nothing or zero."""
    try:
        balance_hex = rpc.call_contract(contract, "balanceOf(address)", [account], policy)
    except RpcCallError as exc:
        if exc.kind is ErrorKind.NO_RESULT:
            return None
        raise

    balance = decode_uint256(balance_hex)
    if balance == 0:
        return None
    return BalanceRecord(account=account, contract=contract, balance_hex=balance_hex, balance=balance)
