"""Listing recommendations derived from specializations and purchase history."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from intel_market.core.state import Recommendation, RecommendationReason

if TYPE_CHECKING:
    from collections.abc import Iterable

    from intel_market.core.state import AgentProfile, IntelligenceListing, Transaction
    from intel_market.services.agent_registry import AgentRegistry
    from intel_market.services.intelligence_catalog import IntelligenceCatalog
    from intel_market.services.transaction_ledger import TransactionLedger

SPECIALIZATION_WEIGHT = 0.4
QUALITY_WEIGHT = 0.3
CATEGORY_PREFERENCE_WEIGHT = 0.2
TRENDING_WEIGHT = 0.1

HIGH_QUALITY_THRESHOLD = 0.7
PERSONALIZED_THRESHOLD = 0.3
TRENDING_MIN_SALES = 5

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "market-analysis": ("market", "analysis", "trading", "finance"),
    "defi-strategy": ("defi", "strategy", "yield", "liquidity", "protocol"),
    "price-prediction": ("price", "prediction", "forecast", "technical"),
    "risk-assessment": ("risk", "assessment", "security", "audit"),
    "trend-analysis": ("trend", "pattern", "technical", "chart"),
}


def specialization_score(agent: AgentProfile, category: str) -> float:
    """Share of the agent's tags that mention one of the category's keywords."""
    keywords = CATEGORY_KEYWORDS.get(category, ())
    if not agent.specialization:
        return 0.0
    matches = sum(
        1
        for tag in agent.specialization
        if any(keyword in tag.lower() for keyword in keywords)
    )
    return min(1.0, matches / len(agent.specialization))


def trending_score(listing: IntelligenceListing) -> float:
    if listing.sales_count >= TRENDING_MIN_SALES:
        return min(1.0, listing.sales_count / (TRENDING_MIN_SALES * 2))
    return 0.0


def _tags_overlap(left: Iterable[str], right: Iterable[str]) -> bool:
    right_lower = [tag.lower() for tag in right]
    for tag in left:
        lowered = tag.lower()
        if any(lowered in other or other in lowered for other in right_lower):
            return True
    return False


class RecommendationEngine:
    """Read-only scoring over the registry, catalog, and ledger."""

    def __init__(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        max_rating: int,
    ) -> None:
        self._registry = registry
        self._catalog = catalog
        self._ledger = ledger
        self._max_rating = max_rating

    def personalized(
        self,
        agent_id: str,
        count: int = 10,
        exclude_owned: bool = True,
        min_quality: float = 0,
        categories: list[str] | None = None,
    ) -> list[Recommendation]:
        """
        Best-scoring listings for an agent.

        score = 0.4 * specialization match
              + 0.3 * mean(quality / 100, rating / max_rating)
              + 0.2 * share of past purchases in the listing's category
              + 0.1 * trending score
        clamped to [0, 1]. Unknown agents get no recommendations.
        """
        agent = self._registry.get(agent_id)
        if agent is None:
            return []

        purchased_categories = self._purchased_categories(agent_id)
        candidates = [
            listing
            for listing in self._catalog.all_listings()
            if not (exclude_owned and listing.seller_id == agent_id)
            and listing.quality_score >= min_quality
            and (not categories or listing.category in categories)
        ]

        scored = [self._score(agent, listing, purchased_categories) for listing in candidates]
        scored.sort(key=lambda rec: rec.score, reverse=True)
        return scored[: max(0, count)]

    def trending(self, limit: int = 5) -> list[IntelligenceListing]:
        """Listings with at least one sale, by 0.6 * sales + 0.4 * rating."""
        sold = [listing for listing in self._catalog.all_listings() if listing.sales_count > 0]
        sold.sort(key=lambda listing: listing.sales_count * 0.6 + listing.rating * 0.4, reverse=True)
        return sold[: max(0, limit)]

    def similar_agent_picks(self, agent_id: str, limit: int = 5) -> list[IntelligenceListing]:
        """Listings most purchased by agents whose specializations overlap this agent's."""
        agent = self._registry.get(agent_id)
        if agent is None:
            return []

        similar_ids = {
            other.agent_id
            for other in self._registry.all_agents()
            if other.agent_id != agent_id
            and _tags_overlap(agent.specialization, other.specialization)
        }
        popularity: Counter[str] = Counter(
            tx.intelligence_id for tx in self._ledger.transactions() if tx.buyer_id in similar_ids
        )

        picks: list[IntelligenceListing] = []
        for intelligence_id, _ in popularity.most_common():
            listing = self._catalog.get(intelligence_id)
            if listing is not None and listing.seller_id != agent_id:
                picks.append(listing)
            if len(picks) >= limit:
                break
        return picks

    def _purchased_categories(self, agent_id: str) -> list[str]:
        purchases: list[Transaction] = [
            tx for tx in self._ledger.agent_transactions(agent_id) if tx.buyer_id == agent_id
        ]
        categories: list[str] = []
        for tx in purchases:
            listing = self._catalog.get(tx.intelligence_id)
            if listing is not None:
                categories.append(listing.category)
        return categories

    def _score(
        self,
        agent: AgentProfile,
        listing: IntelligenceListing,
        purchased_categories: list[str],
    ) -> Recommendation:
        reasons: list[RecommendationReason] = []
        total = 0.0

        match = specialization_score(agent, listing.category)
        if match > 0:
            total += match * SPECIALIZATION_WEIGHT
            reasons.append(
                RecommendationReason(
                    type="specialization_match",
                    weight=SPECIALIZATION_WEIGHT,
                    description=f"Matches your specialization in {listing.category}",
                )
            )

        combined_quality = (listing.quality_score / 100 + listing.rating / self._max_rating) / 2
        total += combined_quality * QUALITY_WEIGHT
        if combined_quality > HIGH_QUALITY_THRESHOLD:
            reasons.append(
                RecommendationReason(
                    type="quality_based",
                    weight=QUALITY_WEIGHT,
                    description=(
                        f"High quality intelligence with "
                        f"{listing.rating:.1f}/{self._max_rating} rating"
                    ),
                )
            )

        if purchased_categories:
            preference = purchased_categories.count(listing.category) / len(purchased_categories)
            if preference > 0:
                total += preference * CATEGORY_PREFERENCE_WEIGHT
                reasons.append(
                    RecommendationReason(
                        type="category_preference",
                        weight=CATEGORY_PREFERENCE_WEIGHT,
                        description=f"You frequently purchase {listing.category} intelligence",
                    )
                )

        trend = trending_score(listing)
        if trend > 0:
            total += trend * TRENDING_WEIGHT
            reasons.append(
                RecommendationReason(
                    type="trending",
                    weight=TRENDING_WEIGHT,
                    description="Currently trending with recent purchases",
                )
            )

        score = min(1.0, max(0.0, total))
        return Recommendation(
            listing=listing,
            score=score,
            reasons=reasons,
            is_personalized=score > PERSONALIZED_THRESHOLD,
        )
