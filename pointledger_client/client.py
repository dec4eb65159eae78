"""Point Ledger client implementation with async/sync interfaces."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response Models (mirror the server models)
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Point:
    """A registered point and its owner."""

    id: str
    owner: str


@dataclass(slots=True)
class Transaction:
    """A proposed exchange between two traders."""

    id: str
    timestamp: str
    trader_a: str
    trader_b: str
    asset_a: str
    asset_b: str
    related: list[Point] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        return cls(
            id=data["id"],
            timestamp=data.get("timestamp", ""),
            trader_a=data.get("trader_a", ""),
            trader_b=data.get("trader_b", ""),
            asset_a=data.get("asset_a", ""),
            asset_b=data.get("asset_b", ""),
            related=[Point(**p) for p in data.get("related", [])],
        )


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LedgerClientError(Exception):
    """Base exception for ledger client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind


class LedgerConnectionError(LedgerClientError):
    """Connection to the ledger service failed."""


class LedgerRequestError(LedgerClientError):
    """The service rejected the request arguments."""


class LedgerNotFoundError(LedgerClientError):
    """Point, key or owner match not found."""


class LedgerConflictError(LedgerClientError):
    """The point already exists."""


_STATUS_ERRORS: dict[int, type[LedgerClientError]] = {
    400: LedgerRequestError,
    404: LedgerNotFoundError,
    409: LedgerConflictError,
    422: LedgerNotFoundError,
}


def _segment(value: str) -> str:
    """Escape a value for use as a single URL path segment."""
    return quote(value, safe="")


# ---------------------------------------------------------------------------
# Client Configuration
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class LedgerClientConfig:
    """Configuration for LedgerClient."""

    base_url: str
    timeout: float = 30.0
    max_retries: int = 3
    retry_backoff: float = 1.0
    connection_pool_size: int = 10

    @classmethod
    def from_env(cls) -> "LedgerClientConfig":
        """Load configuration from environment variables."""
        return cls(
            base_url=os.environ.get("POINTLEDGER_URL", "http://localhost:4950"),
            timeout=float(os.environ.get("POINTLEDGER_TIMEOUT", "30.0")),
            max_retries=int(os.environ.get("POINTLEDGER_MAX_RETRIES", "3")),
        )


# ---------------------------------------------------------------------------
# Async Client
# ---------------------------------------------------------------------------


class LedgerClient:
    """Async client for the ledger service.

    Example:
        >>> async with LedgerClient("http://localhost:4950") as client:
        ...     await client.create_point("p1", "alice")
        ...     ids = await client.find_points_by_owner("alice")
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._config = LedgerClientConfig(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            max_retries=max_retries,
            retry_backoff=retry_backoff,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "LedgerClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                transport=self._transport,
                limits=httpx.Limits(
                    max_connections=self._config.connection_pool_size,
                    max_keepalive_connections=5,
                ),
            )
        return self._client

    async def close(self) -> None:
        """Close the client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.status_code < 400:
            return
        try:
            body = response.json()
        except ValueError:
            body = {}
        detail = body.get("detail") or response.text
        if not isinstance(detail, str):
            detail = str(detail)
        kind = body.get("kind")
        error_cls = _STATUS_ERRORS.get(response.status_code, LedgerClientError)
        raise error_cls(detail, response.status_code, kind)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ) -> dict[str, Any]:
        """Make request, retrying only on transport failures."""
        client = await self._ensure_client()
        headers = {"X-Correlation-ID": correlation_id} if correlation_id else {}

        last_error: Exception | None = None
        for attempt in range(self._config.max_retries):
            try:
                response = await client.request(
                    method,
                    path,
                    json=json,
                    params=params,
                    headers=headers,
                )
                self._raise_for_error(response)
                return response.json()
            except httpx.ConnectError as e:
                last_error = LedgerConnectionError(f"Connection failed: {e}")
            except httpx.TimeoutException as e:
                last_error = LedgerConnectionError(f"Request timed out: {e}")

            if attempt < self._config.max_retries - 1:
                delay = self._config.retry_backoff * (2 ** attempt)
                logger.debug(f"Retry {attempt + 1}/{self._config.max_retries} after {delay}s")
                await asyncio.sleep(delay)

        if last_error:
            raise last_error
        raise LedgerConnectionError("Request failed after retries")

    # -----------------------------------------------------------------------
    # Named Invocation API
    # -----------------------------------------------------------------------

    async def invoke(
        self,
        function: str,
        *args: str,
        correlation_id: str | None = None,
    ) -> str:
        """Run a named invocation and return its payload text."""
        data = await self._request(
            "POST",
            "/invoke",
            json={"function": function, "args": list(args)},
            correlation_id=correlation_id,
        )
        return data.get("payload", "")

    # -----------------------------------------------------------------------
    # Points API
    # -----------------------------------------------------------------------

    async def create_point(self, point_id: str, owner: str) -> Point:
        data = await self._request("POST", "/points", json={"id": point_id, "owner": owner})
        return Point(**data)

    async def get_point(self, point_id: str) -> Point:
        data = await self._request("GET", f"/points/{_segment(point_id)}")
        return Point(**data)

    async def transfer_point(self, point_id: str, owner: str) -> Point:
        data = await self._request("PUT", f"/points/{_segment(point_id)}/owner", json={"owner": owner})
        return Point(**data)

    async def delete_point(self, point_id: str) -> int:
        """Delete a point; returns the number of index entries removed."""
        data = await self._request("DELETE", f"/points/{_segment(point_id)}")
        return data.get("index_entries_removed", 0)

    async def list_points(self) -> list[str]:
        data = await self._request("GET", "/points")
        return data.get("ids", [])

    async def find_points_by_owner(self, owner: str) -> list[str]:
        """Ids of points owned by ``owner``. Raises LedgerNotFoundError if none."""
        data = await self._request("GET", f"/owners/{_segment(owner)}/points")
        return data.get("ids", [])

    # -----------------------------------------------------------------------
    # Transactions API
    # -----------------------------------------------------------------------

    async def record_transaction(
        self,
        tx_id: str,
        trader_a: str,
        trader_b: str,
        asset_a: str,
        asset_b: str,
    ) -> Transaction:
        payload = {
            "id": tx_id,
            "trader_a": trader_a,
            "trader_b": trader_b,
            "asset_a": asset_a,
            "asset_b": asset_b,
        }
        data = await self._request("POST", "/transactions", json=payload)
        return Transaction.from_dict(data)

    async def find_transactions(self, participant: str | None = None) -> list[Transaction]:
        params = {"participant": participant} if participant is not None else None
        data = await self._request("GET", "/transactions", params=params)
        return [Transaction.from_dict(t) for t in data.get("transactions", [])]

    # -----------------------------------------------------------------------
    # Health API
    # -----------------------------------------------------------------------

    async def health(self) -> dict[str, Any]:
        """Get service health status."""
        return await self._request("GET", "/healthz")

    async def ready(self) -> bool:
        """Check if service is ready."""
        try:
            data = await self._request("GET", "/ready")
            return data.get("ready", False)
        except LedgerClientError:
            return False


# ---------------------------------------------------------------------------
# Sync Client Wrapper
# ---------------------------------------------------------------------------


class LedgerClientSync:
    """Synchronous wrapper for LedgerClient.

    Each call runs on a fresh event loop, so this must not be used from
    inside a running loop.

    Example:
        >>> client = LedgerClientSync("http://localhost:4950")
        >>> client.create_point("p1", "alice")
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport

    def _run(self, method: str, *args, **kwargs):
        async def call():
            async with LedgerClient(
                self._base_url,
                timeout=self._timeout,
                max_retries=self._max_retries,
                transport=self._transport,
            ) as client:
                return await getattr(client, method)(*args, **kwargs)

        return asyncio.run(call())

    def invoke(self, function: str, *args: str) -> str:
        return self._run("invoke", function, *args)

    def create_point(self, point_id: str, owner: str) -> Point:
        return self._run("create_point", point_id, owner)

    def get_point(self, point_id: str) -> Point:
        return self._run("get_point", point_id)

    def transfer_point(self, point_id: str, owner: str) -> Point:
        return self._run("transfer_point", point_id, owner)

    def delete_point(self, point_id: str) -> int:
        return self._run("delete_point", point_id)

    def list_points(self) -> list[str]:
        return self._run("list_points")

    def find_points_by_owner(self, owner: str) -> list[str]:
        return self._run("find_points_by_owner", owner)

    def record_transaction(
        self,
        tx_id: str,
        trader_a: str,
        trader_b: str,
        asset_a: str,
        asset_b: str,
    ) -> Transaction:
        return self._run("record_transaction", tx_id, trader_a, trader_b, asset_a, asset_b)

    def find_transactions(self, participant: str | None = None) -> list[Transaction]:
        return self._run("find_transactions", participant)

    def health(self) -> dict[str, Any]:
        return self._run("health")
