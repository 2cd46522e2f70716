"""PostgREST query client for Supabase-hosted stores."""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .base import QueryClient, Row
from ..exceptions import StoreError
from ..models.record import InsertResult, SelectQuery

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class RestQueryClient(QueryClient):
    """
    Query client speaking the PostgREST dialect exposed at ``/rest/v1``.

    Supports:
    - Equality, IS NULL and IN filters
    - Ordering and offset/limit pagination
    - Single and bulk inserts, upserts with on_conflict
    - Retry with backoff on 429/5xx for idempotent requests
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the REST client.

        Args:
            name: Label used in log messages
            base_url: Project URL (e.g. https://xyz.supabase.co)
            api_key: Service role key, sent as apikey and bearer token
            timeout: Per-request timeout in seconds
            max_retries: Transport retries for GET requests
            backoff_factor: Exponential backoff factor between retries
            session: Custom requests session
        """
        super().__init__(name)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self._session = session or self._create_session()
        self._session.headers.update(self._auth_headers())

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        # POST is not retried: a retried insert could land twice
        retries = Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retries)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        return session

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _table_url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    @staticmethod
    def _format_value(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def build_params(self, query: SelectQuery) -> Dict[str, str]:
        """Translate a SelectQuery into PostgREST query parameters."""
        params: Dict[str, str] = {"select": query.columns.replace(" ", "") or "*"}

        for column, expected in query.filters.items():
            if expected is None:
                params[column] = "is.null"
            elif isinstance(expected, (list, tuple, set)):
                members = ",".join(f'"{self._format_value(v)}"' for v in expected)
                params[column] = f"in.({members})"
            else:
                params[column] = f"eq.{self._format_value(expected)}"

        if query.order_by:
            direction = "asc" if query.ascending else "desc"
            params["order"] = f"{query.order_by}.{direction}"

        if query.range_start is not None:
            params["offset"] = str(query.range_start)
        if query.limit is not None:
            params["limit"] = str(query.limit)

        return params

    @staticmethod
    def _error_details(response: requests.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {"message": response.text or f"HTTP {response.status_code}"}
        if isinstance(data, dict):
            return data
        return {"message": str(data)}

    def select(self, table: str, query: Optional[SelectQuery] = None) -> List[Row]:
        query = query or SelectQuery()
        params = self.build_params(query)

        try:
            response = self._session.get(self._table_url(table), params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise StoreError(str(e), table=table) from e

        if response.status_code >= 400:
            details = self._error_details(response)
            message = details.get("message") or details.get("error") or str(details)
            raise StoreError(message, table=table, status_code=response.status_code)

        try:
            data = response.json() if response.text else []
        except ValueError as e:
            raise StoreError(f"Invalid JSON response: {e}", table=table, status_code=response.status_code) from e

        logger.debug(f"{self.name}: selected {len(data)} rows from {table}")
        return data

    def insert(self, table: str, rows: Union[Row, Sequence[Row]]) -> InsertResult:
        return self._write(table, rows, headers={"Prefer": "return=representation"})

    def upsert(
        self,
        table: str,
        rows: Union[Row, Sequence[Row]],
        conflict_keys: Sequence[str]
    ) -> InsertResult:
        return self._write(
            table,
            rows,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            params={"on_conflict": ",".join(conflict_keys)},
        )

    def _write(
        self,
        table: str,
        rows: Union[Row, Sequence[Row]],
        headers: Dict[str, str],
        params: Optional[Dict[str, str]] = None
    ) -> InsertResult:
        payload: Any = rows if isinstance(rows, dict) else list(rows)

        try:
            response = self._session.post(
                self._table_url(table),
                json=payload,
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{self.name}: write to {table} failed: {e}")
            return InsertResult.failed(str(e))

        if response.status_code >= 400:
            details = self._error_details(response)
            message = details.get("message") or details.get("error") or str(details)
            code = details.get("code")
            if response.status_code == 409 or code == UNIQUE_VIOLATION:
                return InsertResult.conflict(message, error_code=code or str(response.status_code))
            return InsertResult.failed(message, error_code=code or str(response.status_code))

        try:
            data = response.json() if response.text else []
        except ValueError as e:
            # The write landed; only the echoed rows are unreadable
            logger.warning(f"{self.name}: unreadable response from {table}: {e}")
            data = []
        if isinstance(data, dict):
            data = [data]
        return InsertResult.inserted(data)

    def close(self) -> None:
        self._session.close()
