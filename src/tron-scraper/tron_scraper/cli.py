import argparse
import json
import logging
import sys
from typing import Dict, Optional

from .clickhouse import ClickHouseClient
from .config import Config, load_config
from .metrics import start_metrics_server
from .rpc_client import RpcClient
from .scanner import BalanceScanner, MetadataScanner
from .storage import ClickHouseSink, ClickHouseSource

VERSION = "0.1.0"

SERVICES = {
    "metadata": (MetadataScanner, "Fetch TRC-20 token metadata (decimals, symbol, name)"),
    "trc20-balances": (BalanceScanner, "Fetch TRC-20 balances for every account/contract pair"),
}

# CLI flag dest -> environment variable it overrides.
_FLAG_ENV = {
    "node_url": "NODE_URL",
    "clickhouse_url": "CLICKHOUSE_URL",
    "clickhouse_username": "CLICKHOUSE_USERNAME",
    "clickhouse_password": "CLICKHOUSE_PASSWORD",
    "clickhouse_database": "CLICKHOUSE_DATABASE",
    "concurrency": "CONCURRENCY",
    "prometheus_port": "PROMETHEUS_PORT",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tron-scraper",
        description="Scrape TRC-20 metadata and balances from a TRON JSON-RPC node into ClickHouse.",
        allow_abbrev=False,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scraper service")
    run_parser.add_argument("service", choices=sorted(SERVICES), help="Service to run.")
    run_parser.add_argument("--node-url", help="TRON JSON-RPC node URL (env NODE_URL).")
    run_parser.add_argument("--clickhouse-url", help="ClickHouse HTTP URL (env CLICKHOUSE_URL).")
    run_parser.add_argument("--clickhouse-username", help="ClickHouse username (env CLICKHOUSE_USERNAME).")
    run_parser.add_argument("--clickhouse-password", help="ClickHouse password (env CLICKHOUSE_PASSWORD).")
    run_parser.add_argument("--clickhouse-database", help="ClickHouse database (env CLICKHOUSE_DATABASE).")
    run_parser.add_argument("--concurrency", type=int, help="Concurrent RPC workers (env CONCURRENCY, default 10).")
    run_parser.add_argument(
        "--enable-prometheus",
        action="store_true",
        help="Expose Prometheus metrics (env ENABLE_PROMETHEUS).",
    )
    run_parser.add_argument("--prometheus-port", type=int, help="Prometheus metrics port (env PROMETHEUS_PORT).")

    subparsers.add_parser("list", help="List available services")
    subparsers.add_parser("version", help="Show version information")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, str]:
    env: Dict[str, str] = {}
    for dest, name in _FLAG_ENV.items():
        value = getattr(args, dest, None)
        if value is not None:
            env[name] = str(value)
    if getattr(args, "enable_prometheus", False):
        env["ENABLE_PROMETHEUS"] = "true"
    return env


def build_scanner(service: str, config: Config):
    scanner_cls, _ = SERVICES[service]
    rpc = RpcClient(config.node_url, policy=config.retry)
    clickhouse = ClickHouseClient(
        config.clickhouse_url,
        username=config.clickhouse_username,
        password=config.clickhouse_password,
        database=config.clickhouse_database,
    )
    return scanner_cls(
        rpc,
        ClickHouseSource(clickhouse),
        ClickHouseSink(clickhouse),
        concurrency=config.concurrency,
    )


def main(argv: Optional[list[str]] = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "list":
        print("Available services:")
        for name, (_, description) in SERVICES.items():
            print(f"  {name:<20} {description}")
        return
    if args.command == "version":
        print(f"tron-scraper v{VERSION}")
        return

    try:
        config = load_config(_overrides(args))
        logging.basicConfig(
            level=config.log_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        if config.enable_prometheus:
            start_metrics_server(config.prometheus_port)

        scanner = build_scanner(args.service, config)
        summary = scanner.run()
        print(json.dumps({"service": args.service, **summary.to_dict()}, indent=2))
    except Exception as exc:  # pylint: disable=broad-except
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
