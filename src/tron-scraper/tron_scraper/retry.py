import math
import random
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from typing import Callable, Optional, Union

DEFAULT_RETRIES = 3
DEFAULT_BASE_DELAY_MS = 400
DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_JITTER_MIN = 0.7
DEFAULT_JITTER_MAX = 1.3
DEFAULT_MAX_DELAY_MS = 30_000


@dataclass(frozen=True)
class RetryPolicy:
    retries: int = DEFAULT_RETRIES
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    jitter_min: float = DEFAULT_JITTER_MIN
    jitter_max: float = DEFAULT_JITTER_MAX
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS

    def __post_init__(self) -> None:
        if isinstance(self.retries, bool) or not isinstance(self.retries, int):
            raise ValueError("retries must be an integer.")
        for name in ("base_delay_ms", "timeout_ms", "max_delay_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative.")
        if self.jitter_min < 0 or self.jitter_max < 0:
            raise ValueError("jitter bounds must be non-negative.")
        if self.jitter_min > self.jitter_max:
            raise ValueError("jitter_min must not exceed jitter_max.")

    @property
    def attempts(self) -> int:
        return max(1, self.retries)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def coerce(
        cls,
        value: Union[None, int, Mapping, "RetryPolicy"],
        default: Optional["RetryPolicy"] = None,
    ) -> "RetryPolicy":
        """
        Normalize the accepted call options into one policy:
        - None: the default policy
        - int: retry count only, other fields from the default
        - Mapping: field overrides on top of the default
        - RetryPolicy: used as is
        """
        base = default if default is not None else cls()
        if value is None:
            return base
        if isinstance(value, RetryPolicy):
            return value
        if isinstance(value, bool):
            raise ValueError("retry options must be an int, a mapping or a RetryPolicy.")
        if isinstance(value, int):
            return replace(base, retries=value)
        if isinstance(value, Mapping):
            allowed = {f.name for f in fields(cls)}
            unknown = sorted(set(value) - allowed)
            if unknown:
                raise ValueError(f"Unknown retry option(s): {', '.join(unknown)}.")
            return replace(base, **dict(value))
        raise ValueError("retry options must be an int, a mapping or a RetryPolicy.")


def backoff_delay_ms(
    policy: RetryPolicy,
    attempt: int,
    uniform: Callable[[float, float], float] = random.uniform,
) -> int:
    """Jittered exponential delay before the attempt after ``attempt`` (1-based)."""
    backoff = policy.base_delay_ms * (2 ** (attempt - 1))
    jitter = uniform(policy.jitter_min, policy.jitter_max)
    return min(policy.max_delay_ms, math.floor(backoff * jitter))
