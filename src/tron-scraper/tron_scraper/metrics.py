from prometheus_client import Counter, start_http_server

RPC_REQUESTS = Counter(
    "tron_scraper_rpc_requests_total",
    "JSON-RPC attempts sent to the node, by HTTP status.",
    ["method", "status"],
)
RPC_RETRIES = Counter(
    "tron_scraper_rpc_retries_total",
    "JSON-RPC attempts repeated after a retryable failure.",
    ["method"],
)
RPC_FAILURES = Counter(
    "tron_scraper_rpc_failures_total",
    "Classified JSON-RPC attempt failures.",
    ["kind"],
)
SCAN_ITEMS = Counter(
    "tron_scraper_scan_items_total",
    "Items processed by the scanners, by outcome.",
    ["service", "outcome"],
)


def start_metrics_server(port: int, addr: str = "0.0.0.0") -> None:
    start_http_server(port, addr=addr)
