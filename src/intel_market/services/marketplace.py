"""
Marketplace facade.

Composes the registry, catalog, ledger, and commit-reveal ledger behind one
surface and orders a purchase as commit -> optional shield -> transact ->
reveal. Collaborator failures after the ledger write are logged and never
undo the purchase.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Any

from intel_market.core.state import MarketStats, PurchaseResult
from intel_market.exceptions import (
    AGENT_NOT_REGISTERED,
    INTELLIGENCE_NOT_FOUND,
    INVALID_TRANSACTION,
    MEMORY_UNAVAILABLE,
    PRIVACY_UNAVAILABLE,
    ServiceError,
)
from intel_market.logging import get_logger
from intel_market.services.agent_registry import AgentRegistry
from intel_market.services.commit_reveal import CommitRevealLedger
from intel_market.services.intelligence_catalog import IntelligenceCatalog
from intel_market.services.recommendations import RecommendationEngine
from intel_market.services.transaction_ledger import TransactionLedger

if TYPE_CHECKING:
    from collections.abc import Mapping

    from intel_market.config import Settings
    from intel_market.core.state import (
        AgentAudit,
        AgentProfile,
        AuditResult,
        CommitmentRecord,
        IntelligenceListing,
        Reasoning,
        Recommendation,
        SearchFilters,
        Transaction,
        TransparencyStats,
    )
    from intel_market.services.collaborators import MemoryIndex, PrivacyGateway

PERSONALIZED_CONTEXT_KNOWN = "Based on your past purchases"
PERSONALIZED_CONTEXT_NEW = "New category for you"


class Marketplace:
    """Public surface of the intelligence marketplace."""

    def __init__(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        commit_reveal: CommitRevealLedger,
        recommendations: RecommendationEngine,
        privacy: PrivacyGateway | None = None,
        memory: MemoryIndex | None = None,
        similar_limit: int = 3,
    ) -> None:
        self._registry = registry
        self._catalog = catalog
        self._ledger = ledger
        self._commit_reveal = commit_reveal
        self._recommendations = recommendations
        self._privacy = privacy
        self._memory = memory
        self._similar_limit = similar_limit
        self._logger = get_logger(__name__)

    # --- agents and listings ---

    def register_agent(self, agent_id: str, profile: Mapping[str, object]) -> bool:
        return self._registry.register(agent_id, profile)

    def get_agent(self, agent_id: str) -> AgentProfile | None:
        return self._registry.get(agent_id)

    def list_intelligence(self, seller_id: str, spec: Mapping[str, object]) -> str:
        return self._catalog.list_intelligence(seller_id, spec)

    def get_intelligence(self, intelligence_id: str) -> IntelligenceListing | None:
        return self._catalog.get(intelligence_id)

    def search_intelligence(self, filters: SearchFilters | None = None) -> list[IntelligenceListing]:
        return self._catalog.search(filters)

    def get_top_agents(self, limit: int = 10) -> list[AgentProfile]:
        return self._registry.top_agents(limit)

    # --- purchases ---

    async def purchase_intelligence(
        self,
        buyer_id: str,
        intelligence_id: str,
        reasoning: Reasoning | None = None,
    ) -> PurchaseResult:
        """
        Buy a listing, optionally pre-committing to the buyer's reasoning.

        Steps:
        1. Validate listing, buyer, and seller; reject self-purchase.
        2. Commit the reasoning, when given.
        3. Shield the transfer when the privacy policy asks for it.
        4. Record the purchase and link the commitment to it.
        5. Best-effort: record in memory, reveal the commitment, reveal the
           shielded transfer, look up similar past purchases.

        Raises:
            ServiceError: INTELLIGENCE_NOT_FOUND, AGENT_NOT_REGISTERED,
                INVALID_TRANSACTION, PRIVACY_UNAVAILABLE (shield failed),
                and any validation error from commit()
        """
        listing = self._catalog.get(intelligence_id)
        if listing is None:
            raise ServiceError(
                INTELLIGENCE_NOT_FOUND,
                "Intelligence listing not found",
                404,
                {"intelligence_id": intelligence_id},
            )
        buyer = self._registry.get(buyer_id)
        if buyer is None:
            raise ServiceError(
                AGENT_NOT_REGISTERED,
                "Buyer must be registered as an agent first",
                404,
                {"buyer_id": buyer_id},
            )
        if not self._registry.has(listing.seller_id):
            raise ServiceError(
                AGENT_NOT_REGISTERED,
                "Seller agent not found",
                404,
                {"seller_id": listing.seller_id},
            )
        if listing.seller_id == buyer_id:
            raise ServiceError(
                INVALID_TRANSACTION,
                "Cannot purchase your own intelligence",
                409,
                {"buyer_id": buyer_id, "intelligence_id": intelligence_id},
            )

        commitment_id: str | None = None
        nonce: str | None = None
        if reasoning is not None:
            nonce = secrets.token_hex(16)
            commitment_id = self._commit_reveal.commit(
                buyer_id, reasoning, intelligence_id, nonce=nonce
            )

        shielded_tx_id: str | None = None
        if self._privacy is not None and self._privacy.is_shielding_recommended(
            listing.price, buyer.reputation_score
        ):
            shielded_tx_id = await self._shield(buyer_id, listing.seller_id, listing.price)

        receipt = self._ledger.purchase(buyer_id, intelligence_id)
        transaction_id = receipt.transaction.transaction_id
        if commitment_id is not None:
            self._commit_reveal.link_to_transaction(commitment_id, transaction_id)

        await self._try_record_transaction(receipt.transaction)

        if commitment_id is not None:
            self._try_reveal_commitment(commitment_id, nonce)

        if shielded_tx_id is not None:
            await self._try_reveal_shielded(shielded_tx_id)

        similar = await self._try_search_similar(buyer_id, listing.category)

        data: dict[str, Any] = dict(receipt.data)
        data["privacy_protected"] = shielded_tx_id is not None
        data["transparency_committed"] = commitment_id is not None
        data["personalized_context"] = (
            PERSONALIZED_CONTEXT_KNOWN if similar else PERSONALIZED_CONTEXT_NEW
        )

        return PurchaseResult(
            success=True,
            data=data,
            transaction_id=transaction_id,
            shielded_tx_id=shielded_tx_id,
            commitment_id=commitment_id,
        )

    def rate_intelligence(
        self,
        buyer_id: str,
        intelligence_id: str,
        rating: int,
        review: str | None = None,
    ) -> None:
        self._ledger.rate(buyer_id, intelligence_id, rating, review)

    def get_agent_transactions(self, agent_id: str) -> list[Transaction]:
        return self._ledger.agent_transactions(agent_id)

    def get_market_stats(self) -> MarketStats:
        totals = self._ledger.aggregates()
        return MarketStats(
            total_intelligence=self._catalog.count(),
            total_agents=self._registry.count(),
            total_transactions=totals.count,
            total_volume=totals.total_volume,
            avg_price=totals.average_price,
            categories=self._catalog.category_counts(),
        )

    # --- recommendations ---

    def get_recommendations(
        self,
        agent_id: str,
        count: int = 10,
        exclude_owned: bool = True,
        min_quality: float = 0,
        categories: list[str] | None = None,
    ) -> list[Recommendation]:
        return self._recommendations.personalized(
            agent_id,
            count=count,
            exclude_owned=exclude_owned,
            min_quality=min_quality,
            categories=categories,
        )

    def get_trending_intelligence(self, limit: int = 5) -> list[IntelligenceListing]:
        return self._recommendations.trending(limit)

    def get_similar_agent_picks(self, agent_id: str, limit: int = 5) -> list[IntelligenceListing]:
        return self._recommendations.similar_agent_picks(agent_id, limit)

    # --- transparency ---

    def audit_transaction(self, transaction_id: str) -> AuditResult:
        return self._commit_reveal.audit(transaction_id)

    def public_audit_report(self, transaction_id: str) -> dict[str, Any]:
        return self._commit_reveal.public_audit_report(transaction_id)

    def get_agent_commitments(
        self,
        agent_id: str,
        include_revealed: bool = True,
    ) -> list[CommitmentRecord]:
        return self._commit_reveal.agent_commitments(agent_id, include_revealed)

    def get_transparency_stats(self) -> TransparencyStats:
        return self._commit_reveal.stats()

    def audit_agent(
        self,
        agent_id: str,
        start: str | None = None,
        end: str | None = None,
    ) -> AgentAudit:
        return self._commit_reveal.audit_agent(agent_id, start, end)

    def generate_transparency_report(self) -> str:
        return self._commit_reveal.transparency_report()

    def perform_maintenance(self) -> int:
        """Expire overdue commitments. Returns how many were expired."""
        expired = self._commit_reveal.cleanup_expired()
        if expired > 0:
            self._logger.info("Maintenance expired commitments", extra={"expired": expired})
        return expired

    async def close(self) -> None:
        """Close collaborator connections."""
        if self._privacy is not None:
            await self._privacy.close()
        if self._memory is not None:
            await self._memory.close()

    # --- collaborator calls ---

    async def _shield(self, sender_id: str, recipient_id: str, amount: float) -> str:
        """
        Shield a transfer through the privacy collaborator.

        Raises ServiceError("PRIVACY_UNAVAILABLE", ..., 502) on failure.
        """
        if self._privacy is None:
            raise ServiceError(
                PRIVACY_UNAVAILABLE,
                "No privacy collaborator configured",
                502,
                {},
            )
        try:
            return await self._privacy.shield(sender_id, recipient_id, amount)
        except ServiceError:
            raise
        except Exception as exc:
            raise ServiceError(
                PRIVACY_UNAVAILABLE,
                "Privacy shield request failed",
                502,
                {},
            ) from exc

    async def _record_transaction(self, transaction: Transaction) -> None:
        """
        Store a completed purchase in the memory index.

        Raises ServiceError("MEMORY_UNAVAILABLE", ..., 502) on failure.
        """
        if self._memory is None:
            return
        try:
            await self._memory.record_transaction(transaction, True)
        except ServiceError:
            raise
        except Exception as exc:
            raise ServiceError(
                MEMORY_UNAVAILABLE,
                "Memory record request failed",
                502,
                {},
            ) from exc

    async def _search_similar(self, agent_id: str, category: str) -> list[dict[str, Any]]:
        """
        Past purchases similar to a new one.

        Raises ServiceError("MEMORY_UNAVAILABLE", ..., 502) on failure.
        """
        if self._memory is None:
            return []
        try:
            return await self._memory.search_similar(
                agent_id, f"purchased {category} intelligence", self._similar_limit
            )
        except ServiceError:
            raise
        except Exception as exc:
            raise ServiceError(
                MEMORY_UNAVAILABLE,
                "Memory search request failed",
                502,
                {},
            ) from exc

    async def _reveal_shielded(self, handle: str) -> None:
        """
        Ask the privacy collaborator to reveal a shielded transfer.

        Raises ServiceError("PRIVACY_UNAVAILABLE", ..., 502) on failure.
        """
        if self._privacy is None:
            return
        try:
            await self._privacy.reveal(handle)
        except ServiceError:
            raise
        except Exception as exc:
            raise ServiceError(
                PRIVACY_UNAVAILABLE,
                "Privacy reveal request failed",
                502,
                {},
            ) from exc

    async def _try_record_transaction(self, transaction: Transaction) -> None:
        """Does NOT raise: the purchase stands even if memory is down."""
        try:
            await self._record_transaction(transaction)
        except ServiceError as exc:
            self._logger.warning(
                "Recording purchase in memory failed",
                extra={"transaction_id": transaction.transaction_id, "error": exc.error},
            )

    def _try_reveal_commitment(self, commitment_id: str, nonce: str | None) -> None:
        """Reveal the buyer's commitment after purchase. Does NOT raise."""
        try:
            self._commit_reveal.reveal(commitment_id, nonce)
        except ServiceError as exc:
            self._logger.warning(
                "Automatic reveal after purchase failed",
                extra={"commitment_id": commitment_id, "error": exc.error},
            )

    async def _try_reveal_shielded(self, handle: str) -> None:
        """Does NOT raise."""
        try:
            await self._reveal_shielded(handle)
        except ServiceError as exc:
            self._logger.warning(
                "Shielded transfer reveal failed",
                extra={"shielded_tx_id": handle, "error": exc.error},
            )

    async def _try_search_similar(self, agent_id: str, category: str) -> list[dict[str, Any]]:
        """Empty list on any failure."""
        try:
            return await self._search_similar(agent_id, category)
        except ServiceError as exc:
            self._logger.warning(
                "Similar purchase lookup failed",
                extra={"agent_id": agent_id, "error": exc.error},
            )
            return []


def build_marketplace(
    settings: Settings,
    privacy: PrivacyGateway | None = None,
    memory: MemoryIndex | None = None,
) -> Marketplace:
    """Wire every component from loaded settings."""
    market = settings.marketplace
    registry = AgentRegistry(
        initial_reputation=market.initial_reputation,
        max_reputation=market.max_reputation,
        max_rating=market.max_rating,
        max_name_length=market.max_name_length,
        max_description_length=market.max_description_length,
        max_top_agents=market.max_top_agents,
    )
    catalog = IntelligenceCatalog(
        registry=registry,
        categories=market.categories,
        min_price=market.min_price,
        max_price=market.max_price,
        max_title_length=market.max_title_length,
        max_description_length=market.max_description_length,
        quality_weight=settings.ranking.quality_weight,
        recency_weight=settings.ranking.recency_weight,
    )
    ledger = TransactionLedger(
        registry=registry,
        catalog=catalog,
        min_rating=market.min_rating,
        max_rating=market.max_rating,
        max_review_length=market.max_review_length,
    )
    commit_reveal = CommitRevealLedger(
        ttl_seconds=settings.transparency.commitment_ttl_seconds,
        explorer_url=settings.transparency.explorer_url,
    )
    recommendations = RecommendationEngine(
        registry=registry,
        catalog=catalog,
        ledger=ledger,
        max_rating=market.max_rating,
    )
    return Marketplace(
        registry=registry,
        catalog=catalog,
        ledger=ledger,
        commit_reveal=commit_reveal,
        recommendations=recommendations,
        privacy=privacy,
        memory=memory,
        similar_limit=settings.memory.similar_limit,
    )
