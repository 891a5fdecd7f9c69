"""
Remote store clients for the authoritative project records API.

This module provides:
- RemoteStore: the async contract the coordinator consumes
- HttpRemoteStore: JSON-over-HTTP client with retry on idempotent reads
- OfflineRemoteStore: a store that is never reachable, for offline mode
"""

import asyncio
import http.client
import json
import logging
import time
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from ..errors import RemoteUnavailableError

logger = logging.getLogger(__name__)

# Returned by HttpRemoteStore._send_request for a 404.
MISSING = object()


class RemoteStore(ABC):
    """
    Async contract for the remote project store.

    Every method raises RemoteUnavailableError when the store cannot be
    reached or answers with something unusable. Rows are plain dicts keyed
    by remote column name.
    """

    label = "remote"

    @abstractmethod
    async def fetch_all(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def fetch_all_ordered(self) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def fetch_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Return the row, or None when the store has no such record."""

    @abstractmethod
    async def insert(self, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Insert a row and return it as created (with its id and timestamps)."""

    @abstractmethod
    async def update_by_id(self, record_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def delete_by_id(self, record_id: str) -> bool:
        """Delete a row. Returns False when the store had no such record."""

    @abstractmethod
    async def next_serial_number(self, classification: str) -> Optional[int]:
        ...

    @abstractmethod
    async def list_organizations(self) -> List[Dict[str, Any]]:
        ...

    async def ping(self) -> bool:
        return False

    async def close(self) -> None:
        """Release any resources held by the client."""


class OfflineRemoteStore(RemoteStore):
    """Remote store used when syncing is disabled: every call is unavailable."""

    label = "offline"

    @staticmethod
    def _unavailable() -> RemoteUnavailableError:
        return RemoteUnavailableError("Remote store is disabled")

    async def fetch_all(self):
        raise self._unavailable()

    async def fetch_all_ordered(self):
        raise self._unavailable()

    async def fetch_by_id(self, record_id):
        raise self._unavailable()

    async def insert(self, row):
        raise self._unavailable()

    async def update_by_id(self, record_id, patch):
        raise self._unavailable()

    async def delete_by_id(self, record_id):
        raise self._unavailable()

    async def next_serial_number(self, classification):
        raise self._unavailable()

    async def list_organizations(self):
        raise self._unavailable()


class HttpRemoteStore(RemoteStore):
    """
    HTTP client for the remote records API.

    This class provides:
    - JSON requests with bearer-token authentication
    - Response envelope validation ({"success", "data", "error"})
    - Exponential backoff retry for idempotent reads
    - Non-blocking use from asyncio via worker threads
    """

    DEFAULT_ENDPOINT = "http://localhost:8000"
    TABLE = "projects"
    DEFAULT_TIMEOUT = 30.0
    MAX_RETRIES = 3
    BASE_RETRY_DELAY = 0.5  # seconds
    MAX_RETRY_DELAY = 8.0  # seconds

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None
    ):
        """
        Initialize the remote store client.

        Args:
            endpoint: Base URL of the records API
            api_key: API key for bearer authentication
            timeout: Per-request timeout in seconds
            max_retries: Attempts for idempotent reads (1 disables retry)
        """
        self.endpoint = (endpoint or self.DEFAULT_ENDPOINT).rstrip('/')
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.max_retries = max(1, max_retries if max_retries is not None else self.MAX_RETRIES)

    @property
    def label(self) -> str:
        return self.endpoint

    @staticmethod
    def json_serialize_fallback(obj: Any) -> Any:
        """
        JSON serialization fallback for non-standard types.

        Args:
            obj: Object to serialize

        Returns:
            Serializable representation of the object

        Raises:
            TypeError: If object is not serializable
        """
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")

    def _build_headers(self) -> Dict[str, str]:
        """Build HTTP headers for the request."""
        headers = {
            "Content-Type": "application/json",
            "User-Agent": "ProjectSync/0.1"
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _url(self, path: str, query: Optional[Dict[str, str]] = None) -> str:
        url = f"{self.endpoint}{path}"
        if query:
            url += "?" + urlencode(query)
        return url

    def _send_request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        query: Optional[Dict[str, str]] = None
    ) -> Any:
        """
        Send a single request and unwrap the response envelope.

        Args:
            method: HTTP method
            path: Path below the endpoint
            payload: JSON body, if any
            query: Query string parameters, if any

        Returns:
            The envelope's ``data`` member, None for an empty body,
            or MISSING for a 404

        Raises:
            RemoteUnavailableError: On network failure, non-2xx status,
                undecodable body or an unsuccessful envelope
        """
        try:
            data = None
            if payload is not None:
                data = json.dumps(payload, default=self.json_serialize_fallback).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise RemoteUnavailableError(f"Cannot encode request body: {e}") from e

        request = Request(
            self._url(path, query),
            data=data,
            headers=self._build_headers(),
            method=method
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:
                status = response.status
                body = response.read()
        except HTTPError as e:
            if e.code == 404:
                logger.debug(f"{method} {path} returned 404")
                return MISSING
            logger.error(f"HTTP error on {method} {path}: {e.code} {e.reason}")
            raise RemoteUnavailableError(f"HTTP {e.code} {e.reason}", status=e.code) from e
        except URLError as e:
            logger.error(f"URL error on {method} {path}: {e.reason}")
            raise RemoteUnavailableError(f"Cannot reach remote store: {e.reason}") from e
        except http.client.HTTPException as e:
            logger.error(f"Malformed HTTP response on {method} {path}: {e!r}")
            raise RemoteUnavailableError(f"Malformed response from remote store: {e!r}") from e
        except OSError as e:
            logger.error(f"Error on {method} {path}: {e}")
            raise RemoteUnavailableError(f"Remote request failed: {e}") from e

        if status not in (200, 201, 202, 204):
            logger.warning(f"Unexpected response status: {status}")
            raise RemoteUnavailableError(f"Unexpected response status {status}", status=status)
        if not body:
            return None

        try:
            envelope = json.loads(body.decode('utf-8'))
        except (UnicodeDecodeError, ValueError) as e:
            raise RemoteUnavailableError(f"Malformed response from remote store: {e}") from e
        if not isinstance(envelope, dict) or not envelope.get("success"):
            message = envelope.get("error") if isinstance(envelope, dict) else None
            raise RemoteUnavailableError(message or "Remote store reported failure", status=status)
        return envelope.get("data")

    def _send_with_retry(self, method: str, path: str, query: Optional[Dict[str, str]] = None) -> Any:
        """
        Send an idempotent request with exponential backoff retry.

        Returns:
            The unwrapped response data

        Raises:
            RemoteUnavailableError: If every attempt failed
        """
        delay = self.BASE_RETRY_DELAY
        for attempt in range(self.max_retries):
            try:
                result = self._send_request(method, path, query=query)
            except RemoteUnavailableError as e:
                # client errors will not get better on retry
                if e.status is not None and 400 <= e.status < 500:
                    raise
                if attempt == self.max_retries - 1:
                    raise
                sleep_time = min(delay, self.MAX_RETRY_DELAY)
                logger.debug(f"Retry {attempt + 1}/{self.max_retries} in {sleep_time:.1f}s")
                time.sleep(sleep_time)
                delay *= 2
            else:
                if attempt > 0:
                    logger.info(f"Remote read succeeded after {attempt + 1} attempts")
                return result

    async def _call(self, method: str, path: str, payload=None) -> Any:
        return await asyncio.to_thread(self._send_request, method, path, payload)

    async def _read(self, path: str, query=None) -> Any:
        return await asyncio.to_thread(self._send_with_retry, "GET", path, query)

    @staticmethod
    def _rows(data: Any) -> List[Dict[str, Any]]:
        if data is None or data is MISSING:
            return []
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            raise RemoteUnavailableError("Malformed response: expected a list of rows")
        return data

    @staticmethod
    def _single(data: Any) -> Optional[Dict[str, Any]]:
        if data is MISSING:
            return None
        if isinstance(data, list):
            data = data[0] if data else None
        if data is not None and not isinstance(data, dict):
            raise RemoteUnavailableError("Malformed response: expected a row")
        return data

    @staticmethod
    def _quote(record_id: str) -> str:
        return quote(str(record_id), safe='')

    async def fetch_all(self) -> List[Dict[str, Any]]:
        return self._rows(await self._read(f"/records/{self.TABLE}"))

    async def fetch_all_ordered(self) -> List[Dict[str, Any]]:
        return self._rows(await self._read(f"/records/{self.TABLE}", {"order": "created_at.desc"}))

    async def fetch_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        return self._single(await self._read(f"/records/{self.TABLE}/{self._quote(record_id)}"))

    async def insert(self, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._single(await self._call("POST", f"/records/insert/{self.TABLE}", row))

    async def update_by_id(self, record_id: str, patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        path = f"/records/update/{self.TABLE}/{self._quote(record_id)}"
        return self._single(await self._call("PATCH", path, patch))

    async def delete_by_id(self, record_id: str) -> bool:
        path = f"/records/delete/{self.TABLE}/{self._quote(record_id)}"
        return await self._call("DELETE", path) is not MISSING

    async def next_serial_number(self, classification: str) -> Optional[int]:
        data = await self._read(f"/records/{self.TABLE}/next-serial", {"field": classification})
        if data is None or data is MISSING:
            return None
        try:
            return int(data)
        except (TypeError, ValueError) as e:
            raise RemoteUnavailableError(f"Malformed serial number: {data!r}") from e

    async def list_organizations(self) -> List[Dict[str, Any]]:
        return self._rows(await self._read("/records/organizations"))

    def test_connection(self) -> bool:
        """Test if the remote store is reachable."""
        try:
            request = Request(
                self.endpoint + '/health',
                headers=self._build_headers(),
                method='GET'
            )
            with urlopen(request, timeout=5) as response:
                return response.status == 200
        except (URLError, OSError, http.client.HTTPException):
            return False

    async def ping(self) -> bool:
        return await asyncio.to_thread(self.test_connection)
