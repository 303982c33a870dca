import enum
import re
from typing import Any, Optional

import requests

# JSON-RPC codes that TRON nodes return for node-level or internal failures.
TRANSIENT_RPC_CODES = frozenset({-32000, -32001, -32002, -32603})

_TRANSIENT_MESSAGE = re.compile(
    r"network"
    r"|econnreset|connection reset"
    r"|etimedout|timed out"
    r"|enotfound|getaddrinfo|name or service not known|name resolution"
    r"|socket hang up|remotedisconnected|connection aborted"
    r"|operation was aborted"
    r"|fetch failed",
    re.IGNORECASE,
)


class ErrorKind(enum.Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    JSON_RPC = "json_rpc"
    MALFORMED = "malformed"
    NO_RESULT = "no_result"
    CLIENT_ERROR = "client_error"


class RpcCallError(Exception):
    """A classified contract-call failure; ``str(exc)`` is the raw message."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        retryable: bool = False,
        status: Optional[int] = None,
        code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.retryable = retryable
        self.status = status
        self.code = code


def remote_error_code(body: Any) -> Optional[int]:
    if not isinstance(body, dict):
        return None
    error_obj = body.get("error")
    if not isinstance(error_obj, dict):
        return None
    code = error_obj.get("code")
    if isinstance(code, bool) or not isinstance(code, int):
        return None
    return code


def is_retryable(
    error: Optional[BaseException] = None,
    http_status: Optional[int] = None,
    body: Any = None,
) -> bool:
    """Decide whether a failed attempt is worth repeating.

    True for transport-level trouble (resets, timeouts, DNS, aborted sockets),
    HTTP 429 and 5xx, and the transient node error codes. Everything else,
    including client errors and malformed requests, is final.
    """
    if error is not None:
        if isinstance(error, (requests.ConnectionError, requests.Timeout)):
            return True
        if _TRANSIENT_MESSAGE.search(str(error)):
            return True

    if http_status is not None and (http_status == 429 or http_status >= 500):
        return True

    return remote_error_code(body) in TRANSIENT_RPC_CODES
