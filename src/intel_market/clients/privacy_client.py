"""Async HTTP client for the privacy (amount-shielding) service."""

from __future__ import annotations

from typing import Any

import httpx

from intel_market.exceptions import PRIVACY_UNAVAILABLE, ServiceError
from intel_market.logging import get_logger


class PrivacyClient:
    """
    Client for shielded transfers.

    The shielding decision is local policy: shield when the price is at or
    above the price threshold, or the buyer's reputation is below the
    reputation threshold. Only shield and reveal go over the wire.
    """

    def __init__(
        self,
        base_url: str,
        shield_path: str,
        reveal_path: str,
        timeout_seconds: int,
        shield_price_threshold: float,
        shield_reputation_threshold: int,
    ) -> None:
        self._base_url = base_url
        self._shield_path = shield_path
        self._reveal_path = reveal_path
        self._shield_price_threshold = shield_price_threshold
        self._shield_reputation_threshold = shield_reputation_threshold
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout_seconds),
        )

    def is_shielding_recommended(self, price: float, buyer_reputation: int) -> bool:
        return (
            price >= self._shield_price_threshold
            or buyer_reputation < self._shield_reputation_threshold
        )

    async def shield(self, sender_id: str, recipient_id: str, amount: float) -> str:
        """
        Execute a shielded transfer and return its opaque handle.

        Raises:
            ServiceError: PRIVACY_UNAVAILABLE (502) on connection/timeout/unexpected errors
        """
        logger = get_logger(__name__)

        response = await self._post(
            self._shield_path,
            {"sender_id": sender_id, "recipient_id": recipient_id, "amount": amount},
            "shield",
        )

        if response.status_code in (200, 201):
            body: dict[str, Any] = response.json()
            handle = body.get("shielded_tx_id")
            if isinstance(handle, str) and handle:
                return handle
            logger.warning(
                "Privacy service shield response missing handle",
                extra={"base_url": self._base_url},
            )
            raise ServiceError(
                error=PRIVACY_UNAVAILABLE,
                message="Privacy service returned no shielded transaction id",
                status_code=502,
                details={},
            )

        logger.warning(
            "Privacy service unexpected status on shield",
            extra={"status_code": response.status_code, "base_url": self._base_url},
        )
        raise ServiceError(
            error=PRIVACY_UNAVAILABLE,
            message="Privacy service returned unexpected status",
            status_code=502,
            details={},
        )

    async def reveal(self, handle: str) -> dict[str, Any]:
        """
        Reveal the amount behind a shielded transfer.

        Raises:
            ServiceError: PRIVACY_UNAVAILABLE (502) on connection/timeout/unexpected errors
        """
        logger = get_logger(__name__)

        response = await self._post(
            self._reveal_path.format(handle=handle),
            {},
            "reveal",
        )

        if response.status_code == 200:
            result: dict[str, Any] = response.json()
            return result

        logger.warning(
            "Privacy service unexpected status on reveal",
            extra={
                "status_code": response.status_code,
                "shielded_tx_id": handle,
                "base_url": self._base_url,
            },
        )
        raise ServiceError(
            error=PRIVACY_UNAVAILABLE,
            message="Privacy service returned unexpected status on reveal",
            status_code=502,
            details={},
        )

    async def _post(self, path: str, payload: dict[str, Any], operation: str) -> httpx.Response:
        logger = get_logger(__name__)
        try:
            return await self._client.post(path, json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            logger.warning(
                "Privacy service connection failed",
                extra={"error": str(exc), "operation": operation, "base_url": self._base_url},
            )
            raise ServiceError(
                error=PRIVACY_UNAVAILABLE,
                message="Cannot connect to privacy service",
                status_code=502,
                details={},
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Privacy service HTTP error",
                extra={"error": str(exc), "operation": operation, "base_url": self._base_url},
            )
            raise ServiceError(
                error=PRIVACY_UNAVAILABLE,
                message="Privacy service request failed",
                status_code=502,
                details={},
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
