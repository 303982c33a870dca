import json
import re
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

_TABLE_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?")


class ClickHouseError(RuntimeError):
    pass


class ClickHouseClient:
    """Minimal ClickHouse HTTP interface client (JSONEachRow in and out)."""

    def __init__(
        self,
        url: str,
        username: str = "default",
        password: str = "",
        database: str = "default",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ) -> None:
        base = (url or "").strip().rstrip("/")
        if not base:
            raise ValueError("ClickHouse url must be a non-empty string.")

        self.url = base
        self.database = database
        self.timeout = timeout
        self.headers = {
            "X-ClickHouse-User": username,
            "X-ClickHouse-Key": password,
        }
        self._shared_session = session
        if session is not None:
            session.headers.update(self.headers)
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(self.headers)
            self._local.session = session
        return session

    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """Run a SELECT; ``{name:Type}`` placeholders are bound from ``params``."""
        query_params: Dict[str, Any] = {
            "database": self.database,
            "default_format": "JSONEachRow",
        }
        for key, value in (params or {}).items():
            query_params[f"param_{key}"] = value

        response = self._post(query_params, sql.encode("utf-8"))
        rows: List[Dict[str, Any]] = []
        for line in response.text.splitlines():
            if line.strip():
                rows.append(json.loads(line))
        return rows

    def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> None:
        if not _TABLE_NAME.fullmatch(table or ""):
            raise ValueError(f"Invalid table name '{table}'.")
        body = "\n".join(json.dumps(dict(row)) for row in rows)
        if not body:
            return
        query_params = {
            "database": self.database,
            "query": f"INSERT INTO {table} FORMAT JSONEachRow",
        }
        self._post(query_params, body.encode("utf-8"))

    def _post(self, params: Dict[str, Any], data: bytes) -> requests.Response:
        try:
            response = self.session.post(self.url, params=params, data=data, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ClickHouseError(f"Failed to reach ClickHouse at {self.url}: {exc}") from exc
        if response.status_code >= 400:
            detail = response.text.strip() or response.reason
            raise ClickHouseError(f"ClickHouse HTTP {response.status_code}: {detail}")
        return response
