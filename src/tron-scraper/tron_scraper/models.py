from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

CLICKHOUSE_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenMetadata:
    contract: str
    decimals: int
    symbol: Optional[str] = None
    name: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        return {
            "contract": self.contract,
            "decimals": self.decimals,
            "symbol": self.symbol,
            "name": self.name,
        }


@dataclass(frozen=True)
class BalanceRecord:
    account: str
    contract: str
    balance_hex: str
    balance: int

    def to_row(self) -> Dict[str, Any]:
        # UInt256 travels as a decimal string in JSONEachRow.
        return {
            "account": self.account,
            "contract": self.contract,
            "balance_hex": self.balance_hex,
            "balance": str(self.balance),
        }


@dataclass(frozen=True)
class ErrorRecord:
    contract: str
    reason: str
    account: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_row(self) -> Dict[str, Any]:
        return {
            "contract": self.contract,
            "account": self.account,
            "error": self.reason,
            "timestamp": self.timestamp.strftime(CLICKHOUSE_DATETIME_FORMAT),
        }
