"""Core records and timestamp helpers."""

from intel_market.core.state import (
    AgentProfile,
    AuditResult,
    CommitmentRecord,
    IntelligenceListing,
    MarketStats,
    PurchaseReceipt,
    PurchaseResult,
    Reasoning,
    Recommendation,
    RecommendationReason,
    SearchFilters,
    Transaction,
    TransparencyStats,
)

__all__ = [
    "AgentProfile",
    "AuditResult",
    "CommitmentRecord",
    "IntelligenceListing",
    "MarketStats",
    "PurchaseReceipt",
    "PurchaseResult",
    "Reasoning",
    "Recommendation",
    "RecommendationReason",
    "SearchFilters",
    "Transaction",
    "TransparencyStats",
]
