import itertools
import json
import logging
import threading
import time
from typing import Any, Dict, List, Optional, Sequence

import requests

from .abi import encode_call_data
from .address import to_hex_address
from .errors import ErrorKind, RpcCallError, is_retryable
from .metrics import RPC_FAILURES, RPC_REQUESTS, RPC_RETRIES
from .retry import RetryPolicy, backoff_delay_ms

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1


class RpcClient:
    """JSON-RPC 2.0 client for TRON's EVM-compatible endpoint, with classified retries."""

    def __init__(
        self,
        rpc_url: str,
        policy: Optional[RetryPolicy] = None,
        headers: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        url = (rpc_url or "").strip()
        if not url:
            raise ValueError("rpc_url must be a non-empty string.")

        self.rpc_url = url
        self.policy = policy if policy is not None else RetryPolicy()
        self.headers = {"Content-Type": "application/json", **dict(headers or {})}
        self._shared_session = session
        if session is not None:
            session.headers.update(self.headers)
        self._local = threading.local()
        self._ids = itertools.count(1)
        self._ids_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The injected session, or one session per worker thread."""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    def _next_id(self) -> int:
        with self._ids_lock:
            return next(self._ids)

    def call(
        self,
        method: str,
        params: Optional[List[Any]] = None,
        policy: Any = None,
        context: Optional[str] = None,
    ) -> Any:
        if not isinstance(method, str) or not method.strip():
            raise ValueError("method must be a non-empty string.")
        if params is None:
            params = []
        if not isinstance(params, list):
            raise ValueError("params must be a list.")

        resolved = RetryPolicy.coerce(policy, self.policy)
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params,
        }
        attempts = resolved.attempts

        for attempt in range(1, attempts + 1):
            try:
                return self._attempt(method, payload, resolved)
            except RpcCallError as exc:
                RPC_FAILURES.labels(kind=exc.kind.value).inc()
                if not exc.retryable or attempt == attempts:
                    raise

                delay = backoff_delay_ms(resolved, attempt)
                RPC_RETRIES.labels(method=method).inc()
                logger.warning(
                    f"{method} retry {attempt}/{attempts} for {context or method} after {delay}ms: {exc}"
                )
                time.sleep(delay / 1000)

        raise RuntimeError("RPC request failed without raising an exception.")

    def _read_body(self, response: requests.Response, method: str, deadline: float, policy: RetryPolicy) -> bytes:
        # Read byte by byte so a trickling body cannot outlive the deadline.
        chunks = []
        for chunk in response.iter_content(chunk_size=READ_CHUNK_SIZE):
            if time.monotonic() > deadline:
                RPC_REQUESTS.labels(method=method, status="timeout").inc()
                raise RpcCallError(
                    ErrorKind.TIMEOUT,
                    f"Request exceeded the {policy.timeout_ms}ms deadline.",
                    retryable=True,
                )
            chunks.append(chunk)
        return b"".join(chunks)

    def _attempt(self, method: str, payload: Dict[str, Any], policy: RetryPolicy) -> Any:
        deadline = time.monotonic() + policy.timeout_seconds
        try:
            response = self.session.post(
                self.rpc_url,
                json=payload,
                timeout=policy.timeout_seconds,
                stream=True,
            )
            try:
                raw = self._read_body(response, method, deadline, policy)
            finally:
                response.close()
        except requests.Timeout as exc:
            RPC_REQUESTS.labels(method=method, status="timeout").inc()
            raise RpcCallError(
                ErrorKind.TIMEOUT,
                f"Request timed out after {policy.timeout_ms}ms: {exc}",
                retryable=True,
            ) from exc
        except requests.RequestException as exc:
            RPC_REQUESTS.labels(method=method, status="error").inc()
            raise RpcCallError(ErrorKind.NETWORK, str(exc), retryable=is_retryable(exc)) from exc

        status = response.status_code
        RPC_REQUESTS.labels(method=method, status=str(status)).inc()

        try:
            data = json.loads(raw)
        except ValueError as exc:
            if is_retryable(exc, status):
                raise RpcCallError(
                    ErrorKind.MALFORMED, f"Non-JSON response (status {status})", retryable=True, status=status
                ) from exc
            raise RpcCallError(
                ErrorKind.MALFORMED, f"Failed to parse JSON (status {status})", status=status
            ) from exc

        if not 200 <= status < 300:
            if is_retryable(None, status, data):
                raise RpcCallError(ErrorKind.HTTP_STATUS, f"HTTP {status}", retryable=True, status=status)
            raise RpcCallError(ErrorKind.HTTP_STATUS, f"HTTP {status}: {json.dumps(data)}", status=status)

        if not isinstance(data, dict):
            raise RpcCallError(ErrorKind.MALFORMED, "Unexpected JSON-RPC response (non-object).", status=status)

        error_obj = data.get("error")
        if error_obj:
            code = error_obj.get("code") if isinstance(error_obj, dict) else None
            message = error_obj.get("message") if isinstance(error_obj, dict) else error_obj
            raise RpcCallError(
                ErrorKind.JSON_RPC,
                f"RPC error {code}: {message}",
                retryable=is_retryable(None, status, data),
                status=status,
                code=code if isinstance(code, int) else None,
            )

        return data.get("result")

    def call_contract(
        self,
        contract: str,
        signature: str,
        args: Optional[Sequence[str]] = None,
        policy: Any = None,
    ) -> str:
        """
        Read-only ``eth_call`` of ``signature`` on ``contract`` at the latest block.
        Returns the raw result hex. An empty ("0x") result fails with NO_RESULT
        right away and is never retried.
        """
        resolved = RetryPolicy.coerce(policy, self.policy)
        params = [
            {
                "to": to_hex_address(contract),
                "data": encode_call_data(signature, args),
            },
            "latest",
        ]

        result = self.call("eth_call", params, resolved, context=f"{signature} on {contract}")
        if not isinstance(result, str) or not result or result.lower() == "0x":
            RPC_FAILURES.labels(kind=ErrorKind.NO_RESULT.value).inc()
            raise RpcCallError(ErrorKind.NO_RESULT, f"No result for {signature} on {contract}")
        return result
