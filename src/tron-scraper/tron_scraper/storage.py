from pathlib import Path
from typing import List, Protocol

from .clickhouse import ClickHouseClient
from .models import BalanceRecord, ErrorRecord, TokenMetadata

SQL_DIR = Path(__file__).parent / "sql"

METADATA_TABLE = "metadata"
BALANCES_TABLE = "trc20_balances_rpc"
ERRORS_TABLE = "error_balances"


class SourceReader(Protocol):
    def list_contracts(self) -> List[str]: ...

    def list_accounts(self) -> List[str]: ...

    def list_contracts_for_account(self, account: str) -> List[str]: ...


class StorageSink(Protocol):
    def has_metadata(self, contract: str) -> bool: ...

    def insert_metadata(self, record: TokenMetadata) -> None: ...

    def insert_balance(self, record: BalanceRecord) -> None: ...

    def insert_error(self, record: ErrorRecord) -> None: ...


def load_sql(name: str) -> str:
    return (SQL_DIR / name).read_text(encoding="utf-8")


class ClickHouseSource:
    """Contracts and accounts to scan, read from the indexed transfer tables."""

    def __init__(self, client: ClickHouseClient) -> None:
        self.client = client

    def list_contracts(self) -> List[str]:
        rows = self.client.query(load_sql("get_contracts.sql"))
        return [row["contract"] for row in rows]

    def list_accounts(self) -> List[str]:
        rows = self.client.query(load_sql("get_distinct_accounts.sql"))
        return [row["account"] for row in rows]

    def list_contracts_for_account(self, account: str) -> List[str]:
        rows = self.client.query(load_sql("get_distinct_contracts_by_account.sql"), {"account": account})
        return [row["log_address"] for row in rows]


class ClickHouseSink:
    def __init__(self, client: ClickHouseClient) -> None:
        self.client = client

    def has_metadata(self, contract: str) -> bool:
        rows = self.client.query(
            f"SELECT 1 AS found FROM {METADATA_TABLE} WHERE contract = {{contract:String}} LIMIT 1",
            {"contract": contract},
        )
        return bool(rows)

    def insert_metadata(self, record: TokenMetadata) -> None:
        self.client.insert(METADATA_TABLE, [record.to_row()])

    def insert_balance(self, record: BalanceRecord) -> None:
        self.client.insert(BALANCES_TABLE, [record.to_row()])

    def insert_error(self, record: ErrorRecord) -> None:
        self.client.insert(ERRORS_TABLE, [record.to_row()])
