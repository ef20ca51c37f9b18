"""Service layer components."""

from intel_market.services.agent_registry import AgentRegistry
from intel_market.services.commit_reveal import CommitRevealLedger
from intel_market.services.intelligence_catalog import IntelligenceCatalog
from intel_market.services.marketplace import Marketplace, build_marketplace
from intel_market.services.recommendations import RecommendationEngine
from intel_market.services.transaction_ledger import TransactionLedger

__all__ = [
    "AgentRegistry",
    "CommitRevealLedger",
    "IntelligenceCatalog",
    "Marketplace",
    "RecommendationEngine",
    "TransactionLedger",
    "build_marketplace",
]
