import logging
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, as_completed, wait
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, Tuple, TypeVar

from .metrics import SCAN_ITEMS
from .models import ErrorRecord
from .rpc_client import RpcClient
from .storage import SourceReader, StorageSink
from .tokens import InvalidDecimalsError, fetch_balance, fetch_token_metadata

logger = logging.getLogger(__name__)

# Tron black hole address, holds burned tokens for every contract.
BLACK_HOLE_ADDRESS = "T9yD14Nj9j7xAB4dbGeiX9h8unkKHxuWwb"
ZERO_BALANCE_REASON = "zero balance"

INSERTED = "inserted"
SKIPPED = "skipped"
ZERO = "zero"
ERROR = "error"

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ScanSummary:
    inserted: int = 0
    skipped: int = 0
    zero: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.inserted + self.skipped + self.zero + self.errors

    def record(self, outcome: str) -> None:
        if outcome == INSERTED:
            self.inserted += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        elif outcome == ZERO:
            self.zero += 1
        else:
            self.errors += 1

    def to_dict(self) -> Dict[str, int]:
        return {**asdict(self), "total": self.total}


def run_bounded(items: Iterable[T], worker: Callable[[T], R], concurrency: int = 1) -> Iterator[R]:
    """
    Apply ``worker`` to every item with at most ``concurrency`` in flight.
    Items are pulled lazily; while all slots are busy no new item is taken.
    Results come back in completion order and worker exceptions re-raise here.
    """
    if concurrency <= 1:
        for item in items:
            yield worker(item)
        return

    with ThreadPoolExecutor(max_workers=concurrency) as executor:
        pending = set()
        for item in items:
            if len(pending) >= concurrency:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    yield future.result()
            pending.add(executor.submit(worker, item))
        for future in as_completed(pending):
            yield future.result()


class MetadataScanner:
    """Reads decimals/symbol/name for every known contract not stored yet."""

    service = "metadata"

    def __init__(
        self,
        rpc: RpcClient,
        source: SourceReader,
        sink: StorageSink,
        concurrency: int = 1,
        policy: Any = None,
    ) -> None:
        self.rpc = rpc
        self.source = source
        self.sink = sink
        self.concurrency = concurrency
        self.policy = policy

    def run(self) -> ScanSummary:
        summary = ScanSummary()
        for outcome in run_bounded(self.source.list_contracts(), self.process, self.concurrency):
            SCAN_ITEMS.labels(service=self.service, outcome=outcome).inc()
            summary.record(outcome)
        logger.info(f"Metadata scan finished: {summary.to_dict()}")
        return summary

    def process(self, contract: str) -> str:
        if self.sink.has_metadata(contract):
            logger.debug(f"Skipping {contract}, metadata already stored")
            return SKIPPED

        logger.info(f"Processing {contract}...")
        try:
            metadata = fetch_token_metadata(self.rpc, contract, self.policy)
        except InvalidDecimalsError as exc:
            logger.warning(f"Discarding {contract}: {exc}")
            self.sink.insert_error(ErrorRecord(contract=contract, reason=str(exc)))
            return ERROR
        except Exception as exc:  # pylint: disable=broad-except
            logger.error(f"Error fetching metadata for contract {contract}: {exc}")
            self.sink.insert_error(ErrorRecord(contract=contract, reason=str(exc)))
            return ERROR

        self.sink.insert_metadata(metadata)
        logger.info(f"  -> {metadata.name} ({metadata.symbol}), decimals: {metadata.decimals}")
        return INSERTED


class BalanceScanner:
    """Reads TRC-20 balanceOf for every (account, contract) pair seen in transfers."""

    service = "trc20-balances"

    def __init__(
        self,
        rpc: RpcClient,
        source: SourceReader,
        sink: StorageSink,
        concurrency: int = 1,
        policy: Any = None,
    ) -> None:
        self.rpc = rpc
        self.source = source
        self.sink = sink
        self.concurrency = concurrency
        self.policy = policy

    def pairs(self) -> Iterator[Tuple[str, str]]:
        for account in self.source.list_accounts():
            if account == BLACK_HOLE_ADDRESS:
                continue
            for contract in self.source.list_contracts_for_account(account):
                yield account, contract

    def run(self) -> ScanSummary:
        summary = ScanSummary()
        for outcome in run_bounded(self.pairs(), self.process, self.concurrency):
            SCAN_ITEMS.labels(service=self.service, outcome=outcome).inc()
            summary.record(outcome)
        logger.info(f"Balance scan finished: {summary.to_dict()}")
        return summary

    def process(self, pair: Tuple[str, str]) -> str:
        account, contract = pair
        try:
            record = fetch_balance(self.rpc, account, contract, self.policy)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error(f"Error fetching balance for account {account} on contract {contract}: {exc}")
            self.sink.insert_error(ErrorRecord(contract=contract, account=account, reason=str(exc)))
            return ERROR

        if record is None:
            logger.warning(f"Account {account} has zero balance on contract {contract}")
            self.sink.insert_error(ErrorRecord(contract=contract, account=account, reason=ZERO_BALANCE_REASON))
            return ZERO

        self.sink.insert_balance(record)
        logger.info(f"{account} | {contract} ({record.balance})")
        return INSERTED
