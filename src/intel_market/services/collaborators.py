"""Ports for the external collaborators the marketplace calls."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from intel_market.core.state import Transaction


class PrivacyGateway(Protocol):
    """Amount-shielding execution path. Handles are opaque to the marketplace."""

    def is_shielding_recommended(self, price: float, buyer_reputation: int) -> bool: ...

    async def shield(self, sender_id: str, recipient_id: str, amount: float) -> str: ...

    async def reveal(self, handle: str) -> dict[str, Any]: ...

    async def close(self) -> None: ...


class MemoryIndex(Protocol):
    """Optional history of past purchases, searchable by similarity."""

    async def record_transaction(self, transaction: Transaction, success: bool) -> None: ...

    async def search_similar(
        self,
        agent_id: str,
        query: str,
        limit: int,
    ) -> list[dict[str, Any]]: ...

    async def close(self) -> None: ...
