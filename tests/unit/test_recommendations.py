"""Tests for the recommendation engine."""

from __future__ import annotations

import pytest

from intel_market.core.state import AgentProfile, IntelligenceListing, Transaction
from intel_market.services.agent_registry import AgentRegistry
from intel_market.services.intelligence_catalog import IntelligenceCatalog
from intel_market.services.recommendations import (
    RecommendationEngine,
    specialization_score,
    trending_score,
)
from intel_market.services.transaction_ledger import TransactionLedger
from tests.helpers import make_listing_spec, make_profile


def _agent(specialization: list[str]) -> AgentProfile:
    return AgentProfile(
        agent_id="agent",
        name="Agent",
        description="d",
        specialization=specialization,
        reputation_score=100,
        total_sales=0,
        total_earnings=0.0,
        verified=False,
        created_at="2026-01-01T00:00:00.000000Z",
    )


def _listing(sales_count: int) -> IntelligenceListing:
    return IntelligenceListing(
        intelligence_id="intel-x",
        seller_id="seller",
        title="t",
        description="d",
        category="trend-analysis",
        price=1.0,
        quality_score=10.0,
        sales_count=sales_count,
        rating=0.0,
        created_at="2026-01-01T00:00:00.000000Z",
    )


@pytest.fixture
def engine(
    registry: AgentRegistry,
    catalog: IntelligenceCatalog,
    ledger: TransactionLedger,
) -> RecommendationEngine:
    return RecommendationEngine(registry=registry, catalog=catalog, ledger=ledger, max_rating=5)


def _by_id(recommendations, intelligence_id: str):
    return next(rec for rec in recommendations if rec.listing.intelligence_id == intelligence_id)


@pytest.mark.unit
class TestScoreComponents:
    """Keyword matching and trending."""

    def test_half_the_tags_match(self) -> None:
        agent = _agent(["defi-strategy", "market-analysis"])
        assert specialization_score(agent, "market-analysis") == 0.5
        assert specialization_score(agent, "defi-strategy") == 0.5

    def test_no_tag_matches(self) -> None:
        agent = _agent(["defi-strategy", "market-analysis"])
        assert specialization_score(agent, "risk-assessment") == 0.0

    def test_keyword_match_is_case_insensitive(self) -> None:
        agent = _agent(["Chart Patterns"])
        assert specialization_score(agent, "trend-analysis") == 1.0

    def test_unknown_category_scores_zero(self) -> None:
        assert specialization_score(_agent(["market"]), "gossip") == 0.0

    @pytest.mark.parametrize(
        ("sales_count", "expected"),
        [(0, 0.0), (4, 0.0), (5, 0.5), (8, 0.8), (10, 1.0), (40, 1.0)],
    )
    def test_trending_score(self, sales_count: int, expected: float) -> None:
        assert trending_score(_listing(sales_count)) == pytest.approx(expected)


@pytest.mark.unit
class TestPersonalized:
    """Weighted personalized recommendations."""

    def _seed(self, registry: AgentRegistry, catalog: IntelligenceCatalog) -> dict[str, str]:
        registry.register("S", make_profile(name="Seller"))
        registry.register("B", make_profile(name="Buyer"))
        return {
            "market": catalog.list_intelligence("S", make_listing_spec(category="market-analysis")),
            "risk": catalog.list_intelligence("S", make_listing_spec(category="risk-assessment")),
            "own": catalog.list_intelligence("B", make_listing_spec(category="market-analysis")),
        }

    def test_unknown_agent_gets_nothing(self, engine: RecommendationEngine) -> None:
        assert engine.personalized("ghost") == []

    def test_scores_and_order(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        engine: RecommendationEngine,
    ) -> None:
        ids = self._seed(registry, catalog)

        recommendations = engine.personalized("B")

        assert [rec.listing.intelligence_id for rec in recommendations] == [
            ids["market"],
            ids["risk"],
        ]
        market = recommendations[0]
        # 0.5 * 0.4 specialization + (0.1 + 0) / 2 * 0.3 quality
        assert market.score == pytest.approx(0.215)
        assert [reason.type for reason in market.reasons] == ["specialization_match"]
        assert market.is_personalized is False
        assert recommendations[1].score == pytest.approx(0.015)
        assert recommendations[1].reasons == []

    def test_include_owned(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        engine: RecommendationEngine,
    ) -> None:
        ids = self._seed(registry, catalog)
        recommendations = engine.personalized("B", exclude_owned=False)
        assert ids["own"] in {rec.listing.intelligence_id for rec in recommendations}

    def test_filters_and_count(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        engine: RecommendationEngine,
    ) -> None:
        ids = self._seed(registry, catalog)

        assert engine.personalized("B", min_quality=50) == []
        only_risk = engine.personalized("B", categories=["risk-assessment"])
        assert [rec.listing.intelligence_id for rec in only_risk] == [ids["risk"]]
        assert len(engine.personalized("B", count=1)) == 1
        assert engine.personalized("B", count=0) == []

    def test_strong_specialization_is_personalized(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("S", make_profile())
        registry.register("analyst", make_profile(specialization=["market-analysis"]))
        catalog.list_intelligence("S", make_listing_spec(category="market-analysis"))

        [recommendation] = engine.personalized("analyst")
        assert recommendation.score == pytest.approx(0.415)
        assert recommendation.is_personalized is True

    def test_category_preference_from_purchases(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        engine: RecommendationEngine,
    ) -> None:
        ids = self._seed(registry, catalog)
        ledger.purchase("B", ids["risk"])

        risk = _by_id(engine.personalized("B"), ids["risk"])
        assert risk.score == pytest.approx(0.215)
        assert [reason.type for reason in risk.reasons] == ["category_preference"]
        assert risk.reasons[0].weight == 0.2

    def test_sales_as_seller_do_not_count_as_preference(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        engine: RecommendationEngine,
    ) -> None:
        ids = self._seed(registry, catalog)
        ledger.purchase("S", ids["own"])

        market = _by_id(engine.personalized("B"), ids["market"])
        assert "category_preference" not in [reason.type for reason in market.reasons]

    def test_quality_reason_for_highly_rated_reputable_seller(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("S", make_profile())
        registry.register("B", make_profile())
        registry.register("C", make_profile())
        registry.recompute_reputation(
            [
                Transaction(
                    transaction_id="tx-seed",
                    buyer_id="C",
                    seller_id="S",
                    intelligence_id="intel-seed",
                    price=1.0,
                    timestamp="2026-01-01T00:00:00.000000Z",
                    rating=5,
                )
            ]
        )
        intelligence_id = catalog.list_intelligence("S", make_listing_spec())
        ledger.purchase("C", intelligence_id)
        ledger.rate("C", intelligence_id, 5)

        [recommendation] = engine.personalized("B")

        assert recommendation.score == pytest.approx(0.5)
        quality = recommendation.reasons[-1]
        assert quality.type == "quality_based"
        assert quality.description == "High quality intelligence with 5.0/5 rating"

    def test_trending_reason(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("S", make_profile())
        registry.register("B", make_profile(specialization=["gardening"]))
        registry.register("C", make_profile())
        intelligence_id = catalog.list_intelligence(
            "S", make_listing_spec(category="risk-assessment")
        )
        for _ in range(10):
            ledger.purchase("C", intelligence_id)

        [recommendation] = engine.personalized("B")
        assert [reason.type for reason in recommendation.reasons] == ["trending"]
        assert recommendation.score == pytest.approx(0.015 + 0.1)


@pytest.mark.unit
class TestTrending:
    """Sales and rating weighted popularity."""

    def test_rating_outweighs_raw_sales(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("S", make_profile())
        for buyer in ("b1", "b2", "b3"):
            registry.register(buyer, make_profile())
        popular = catalog.list_intelligence("S", make_listing_spec())
        loved = catalog.list_intelligence("S", make_listing_spec())
        catalog.list_intelligence("S", make_listing_spec())
        for buyer in ("b1", "b2", "b3"):
            ledger.purchase(buyer, popular)
        ledger.purchase("b1", loved)
        ledger.rate("b1", loved, 5)

        trending = engine.trending()

        # popular: 3 * 0.6 = 1.8; loved: 1 * 0.6 + 5 * 0.4 = 2.6
        assert [listing.intelligence_id for listing in trending] == [loved, popular]
        assert [listing.intelligence_id for listing in engine.trending(limit=1)] == [loved]

    def test_nothing_sold(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("S", make_profile())
        catalog.list_intelligence("S", make_listing_spec())
        assert engine.trending() == []


@pytest.mark.unit
class TestSimilarAgentPicks:
    """Purchases by agents with overlapping specializations."""

    def test_picks_by_popularity_among_similar_agents(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        ledger: TransactionLedger,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("S", make_profile(specialization=["oracles"]))
        registry.register("A", make_profile(specialization=["defi-strategy"]))
        registry.register("X", make_profile(specialization=["defi"]))
        registry.register("Y", make_profile(specialization=["risk-assessment"]))
        first = catalog.list_intelligence("S", make_listing_spec())
        second = catalog.list_intelligence("S", make_listing_spec())
        unrelated = catalog.list_intelligence("S", make_listing_spec())
        owned = catalog.list_intelligence("A", make_listing_spec())

        ledger.purchase("X", first)
        ledger.purchase("X", first)
        ledger.purchase("X", second)
        for _ in range(3):
            ledger.purchase("Y", unrelated)
            ledger.purchase("X", owned)

        picks = [listing.intelligence_id for listing in engine.similar_agent_picks("A")]
        assert picks == [first, second]
        limited = engine.similar_agent_picks("A", limit=1)
        assert [listing.intelligence_id for listing in limited] == [first]

    def test_unknown_agent(self, engine: RecommendationEngine) -> None:
        assert engine.similar_agent_picks("ghost") == []

    def test_no_similar_agents(
        self,
        registry: AgentRegistry,
        engine: RecommendationEngine,
    ) -> None:
        registry.register("A", make_profile(specialization=["defi-strategy"]))
        registry.register("Y", make_profile(specialization=["risk-assessment"]))
        assert engine.similar_agent_picks("A") == []
