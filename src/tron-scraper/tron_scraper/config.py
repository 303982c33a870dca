import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .retry import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_JITTER_MAX,
    DEFAULT_JITTER_MIN,
    DEFAULT_MAX_DELAY_MS,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT_MS,
    RetryPolicy,
)

DEFAULT_NODE_URL = "https://tron-evm-rpc.publicnode.com"
DEFAULT_CLICKHOUSE_URL = "http://localhost:8123"
DEFAULT_CONCURRENCY = 10
DEFAULT_PROMETHEUS_PORT = 9090

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Config:
    node_url: str = DEFAULT_NODE_URL
    clickhouse_url: str = DEFAULT_CLICKHOUSE_URL
    clickhouse_username: str = "default"
    clickhouse_password: str = ""
    clickhouse_database: str = "default"
    concurrency: int = DEFAULT_CONCURRENCY
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    enable_prometheus: bool = False
    prometheus_port: int = DEFAULT_PROMETHEUS_PORT
    log_level: str = "INFO"


def _get(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _get(env, name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got '{raw}'.") from exc


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name, str(default))
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got '{raw}'.") from exc


def load_config(overrides: Optional[Mapping[str, str]] = None) -> Config:
    """Load configuration from environment variables; ``overrides`` wins over the environment."""
    env = {**os.environ, **(overrides or {})}

    concurrency = _get_int(env, "CONCURRENCY", DEFAULT_CONCURRENCY)
    if concurrency < 1:
        raise ValueError("CONCURRENCY must be at least 1.")

    retry = RetryPolicy(
        retries=_get_int(env, "MAX_RETRIES", DEFAULT_RETRIES),
        base_delay_ms=_get_int(env, "BASE_DELAY_MS", DEFAULT_BASE_DELAY_MS),
        timeout_ms=_get_int(env, "TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
        jitter_min=_get_float(env, "JITTER_MIN", DEFAULT_JITTER_MIN),
        jitter_max=_get_float(env, "JITTER_MAX", DEFAULT_JITTER_MAX),
        max_delay_ms=_get_int(env, "MAX_DELAY_MS", DEFAULT_MAX_DELAY_MS),
    )

    return Config(
        node_url=_get(env, "NODE_URL", DEFAULT_NODE_URL).rstrip("/"),
        clickhouse_url=_get(env, "CLICKHOUSE_URL", DEFAULT_CLICKHOUSE_URL).rstrip("/"),
        clickhouse_username=_get(env, "CLICKHOUSE_USERNAME", "default"),
        clickhouse_password=env.get("CLICKHOUSE_PASSWORD", ""),
        clickhouse_database=_get(env, "CLICKHOUSE_DATABASE", "default"),
        concurrency=concurrency,
        retry=retry,
        enable_prometheus=_get(env, "ENABLE_PROMETHEUS", "false").lower() in _TRUTHY,
        prometheus_port=_get_int(env, "PROMETHEUS_PORT", DEFAULT_PROMETHEUS_PORT),
        log_level=_get(env, "LOG_LEVEL", "INFO").upper(),
    )
