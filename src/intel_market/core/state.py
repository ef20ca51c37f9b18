"""Marketplace records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

COMMITTED = "committed"
REVEALED = "revealed"
EXPIRED = "expired"


@dataclass
class AgentProfile:
    """A registered marketplace participant."""

    agent_id: str
    name: str
    description: str
    specialization: list[str]
    reputation_score: int
    total_sales: int
    total_earnings: float
    verified: bool
    created_at: str


@dataclass
class IntelligenceListing:
    """A titled, priced, categorized unit of intelligence offered by a seller."""

    intelligence_id: str
    seller_id: str
    title: str
    description: str
    category: str
    price: float
    quality_score: float
    sales_count: int
    rating: float
    created_at: str


@dataclass
class Transaction:
    """A completed purchase. Rating and review are set at most once."""

    transaction_id: str
    buyer_id: str
    seller_id: str
    intelligence_id: str
    price: float
    timestamp: str
    rating: int | None = None
    review: str | None = None


@dataclass
class SearchFilters:
    """Conjunctive catalog filters. Unset fields match everything."""

    category: str | None = None
    max_price: float | None = None
    min_quality: float | None = None
    seller: str | None = None


@dataclass
class PurchaseReceipt:
    """Ledger-level purchase outcome: the recorded transaction and delivered payload."""

    transaction: Transaction
    data: dict[str, Any]


@dataclass
class Reasoning:
    """A decision rationale an agent commits to before acting."""

    decision: str
    factors: list[str]
    confidence: float
    datapoints: list[Any] = field(default_factory=list)
    methodology: str = ""


@dataclass
class CommitmentRecord:
    """
    A sealed commitment. The plaintext reasoning is never stored here;
    the commit-reveal ledger keeps it apart until reveal.
    """

    commitment_id: str
    agent_id: str
    context: str
    commitment_hash: str
    status: str
    created_at: str
    reveal_deadline: str
    transaction_id: str | None = None
    revealed_at: str | None = None


@dataclass
class AuditResult:
    """Public view of whether a transaction was pre-committed and honestly disclosed."""

    transaction_id: str
    has_commitment: bool
    is_revealed: bool
    verification_passed: bool
    reasoning: Reasoning | None = None
    commitment_id: str | None = None
    committed_at: str | None = None
    revealed_at: str | None = None
    reveal_deadline: str | None = None


@dataclass
class AgentTransparency:
    """One agent's reveal rate, used to rank the most transparent agents."""

    agent_id: str
    commitments: int
    reveals: int
    transparency_score: float


@dataclass
class TransparencyStats:
    """Commit-reveal totals."""

    total_commitments: int
    revealed_commitments: int
    expired_commitments: int
    transparency_score: float
    average_reveal_minutes: float
    top_transparent_agents: list[AgentTransparency] = field(default_factory=list)


@dataclass
class AgentAudit:
    """
    Transparency audit of one agent's commitments.

    Decision patterns are drawn from revealed reasoning only.
    """

    agent_id: str
    commitments: int
    reveals: int
    transparency_score: float
    average_confidence: float
    decision_types: dict[str, int]
    common_factors: list[str]
    report: list[str]


@dataclass
class PurchaseResult:
    """Facade-level purchase outcome."""

    success: bool
    data: dict[str, Any]
    transaction_id: str
    shielded_tx_id: str | None = None
    commitment_id: str | None = None


@dataclass
class LedgerTotals:
    """Transaction count, volume and average price from one consistent read."""

    count: int
    total_volume: float
    average_price: float


@dataclass
class MarketStats:
    """Marketplace-wide aggregates."""

    total_intelligence: int
    total_agents: int
    total_transactions: int
    total_volume: float
    avg_price: float
    categories: dict[str, int]


@dataclass
class RecommendationReason:
    """Why a listing was recommended."""

    type: str
    weight: float
    description: str


@dataclass
class Recommendation:
    """A scored listing suggestion for one agent."""

    listing: IntelligenceListing
    score: float
    reasons: list[RecommendationReason]
    is_personalized: bool
