"""Async HTTP client for the purchase-memory service."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import httpx

from intel_market.exceptions import MEMORY_UNAVAILABLE, ServiceError
from intel_market.logging import get_logger

if TYPE_CHECKING:
    from intel_market.core.state import Transaction


class MemoryClient:
    """Client for recording purchases and searching similar past ones."""

    def __init__(
        self,
        base_url: str,
        record_path: str,
        search_path: str,
        timeout_seconds: int,
    ) -> None:
        self._base_url = base_url
        self._record_path = record_path
        self._search_path = search_path
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    async def record_transaction(self, transaction: Transaction, success: bool) -> None:
        """
        Store a purchase in the memory index.

        Raises:
            ServiceError: MEMORY_UNAVAILABLE (502) on connection/timeout/unexpected errors
        """
        payload = {"transaction": asdict(transaction), "success": success}
        response = await self._post(self._record_path, payload, "record")

        if response.status_code in (200, 201):
            return

        get_logger(__name__).warning(
            "Memory service unexpected status on record",
            extra={
                "status_code": response.status_code,
                "transaction_id": transaction.transaction_id,
                "base_url": self._base_url,
            },
        )
        raise ServiceError(
            error=MEMORY_UNAVAILABLE,
            message="Memory service returned unexpected status on record",
            status_code=502,
            details={},
        )

    async def search_similar(
        self,
        agent_id: str,
        query: str,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Past records of an agent similar to the query text.

        Returns:
            list of record dicts, at most `limit` long

        Raises:
            ServiceError: MEMORY_UNAVAILABLE (502) on connection/timeout/unexpected errors
        """
        payload = {"agent_id": agent_id, "query": query, "limit": limit}
        response = await self._post(self._search_path, payload, "search")

        if response.status_code == 200:
            body: dict[str, Any] = response.json()
            results = body.get("results", [])
            if isinstance(results, list):
                return results[:limit]

        get_logger(__name__).warning(
            "Memory service unexpected response on search",
            extra={
                "status_code": response.status_code,
                "agent_id": agent_id,
                "base_url": self._base_url,
            },
        )
        raise ServiceError(
            error=MEMORY_UNAVAILABLE,
            message="Memory service returned unexpected response on search",
            status_code=502,
            details={},
        )

    async def _post(self, path: str, payload: dict[str, Any], operation: str) -> httpx.Response:
        logger = get_logger(__name__)
        try:
            return await self._client.post(path, json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.warning(
                "Memory service connection failed",
                extra={"error": str(exc), "operation": operation, "base_url": self._base_url},
            )
            raise ServiceError(
                error=MEMORY_UNAVAILABLE,
                message="Cannot connect to memory service",
                status_code=502,
                details={},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Memory service HTTP error",
                extra={"error": str(exc), "operation": operation, "base_url": self._base_url},
            )
            raise ServiceError(
                error=MEMORY_UNAVAILABLE,
                message="Memory service request failed",
                status_code=502,
                details={},
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
