"""Transaction ledger business logic."""

from __future__ import annotations

import copy
from threading import RLock
from typing import TYPE_CHECKING
from uuid import uuid4

from intel_market.core.state import LedgerTotals, PurchaseReceipt, Transaction
from intel_market.core.timestamps import now_iso
from intel_market.exceptions import (
    AGENT_NOT_REGISTERED,
    INTELLIGENCE_NOT_FOUND,
    INVALID_INPUT,
    INVALID_TRANSACTION,
    ServiceError,
)
from intel_market.logging import get_logger
from intel_market.services.sample_payloads import generate_payload

if TYPE_CHECKING:
    from intel_market.services.agent_registry import AgentRegistry
    from intel_market.services.intelligence_catalog import IntelligenceCatalog


class TransactionLedger:
    """
    Append-only record of completed purchases and their ratings.

    The ledger lock is held across each validate-then-mutate sequence.
    Lock order is ledger -> catalog -> registry.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        catalog: IntelligenceCatalog,
        min_rating: int,
        max_rating: int,
        max_review_length: int,
    ) -> None:
        self._lock = RLock()
        self._transactions: list[Transaction] = []
        self._registry = registry
        self._catalog = catalog
        self._min_rating = min_rating
        self._max_rating = max_rating
        self._max_review_length = max_review_length
        self._logger = get_logger(__name__)

    def purchase(self, buyer_id: str, intelligence_id: str) -> PurchaseReceipt:
        """
        Record a purchase and deliver the listing's payload.

        The transaction append, the listing's sales increment, and the
        seller's stats update happen under one critical section.

        Raises:
            ServiceError: AGENT_NOT_REGISTERED, INTELLIGENCE_NOT_FOUND,
                INVALID_TRANSACTION (self-purchase or non-positive price)
        """
        with self._lock:
            if not self._registry.has(buyer_id):
                raise ServiceError(
                    AGENT_NOT_REGISTERED,
                    "Buyer must be registered as an agent first",
                    404,
                    {"buyer_id": buyer_id},
                )

            listing = self._catalog.get(intelligence_id)
            if listing is None:
                raise ServiceError(
                    INTELLIGENCE_NOT_FOUND,
                    "Intelligence listing not found",
                    404,
                    {"intelligence_id": intelligence_id},
                )

            if listing.seller_id == buyer_id:
                raise ServiceError(
                    INVALID_TRANSACTION,
                    "Cannot purchase your own intelligence",
                    409,
                    {"buyer_id": buyer_id, "intelligence_id": intelligence_id},
                )

            if not self._registry.has(listing.seller_id):
                raise ServiceError(
                    AGENT_NOT_REGISTERED,
                    "Seller agent not found",
                    404,
                    {"seller_id": listing.seller_id, "intelligence_id": intelligence_id},
                )

            if listing.price <= 0:
                raise ServiceError(
                    INVALID_TRANSACTION,
                    "Invalid intelligence price",
                    409,
                    {"price": listing.price, "intelligence_id": intelligence_id},
                )

            transaction = Transaction(
                transaction_id=f"tx-{uuid4()}",
                buyer_id=buyer_id,
                seller_id=listing.seller_id,
                intelligence_id=intelligence_id,
                price=listing.price,
                timestamp=now_iso(),
            )
            self._catalog.increment_sales(intelligence_id)
            self._registry.update_stats(listing.seller_id, listing.price)
            self._transactions.append(transaction)
            receipt = PurchaseReceipt(
                transaction=copy.deepcopy(transaction),
                data=generate_payload(listing.category),
            )

        self._logger.info(
            "Purchase completed",
            extra={
                "transaction_id": transaction.transaction_id,
                "buyer_id": buyer_id,
                "seller_id": listing.seller_id,
                "intelligence_id": intelligence_id,
                "price": listing.price,
            },
        )
        return receipt

    def rate(
        self,
        buyer_id: str,
        intelligence_id: str,
        rating: int,
        review: str | None = None,
    ) -> None:
        """
        Rate the buyer's oldest unrated purchase of a listing.

        Only unrated transactions match, so a second rating of the same
        purchase fails.

        Raises:
            ServiceError: INVALID_INPUT (rating out of range, review too long),
                INVALID_TRANSACTION (no unrated purchase found)
        """
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ServiceError(
                INVALID_INPUT,
                "Rating must be an integer",
                400,
                {"rating": rating},
            )
        if not self._min_rating <= rating <= self._max_rating:
            raise ServiceError(
                INVALID_INPUT,
                f"Rating must be between {self._min_rating} and {self._max_rating}",
                400,
                {"rating": rating, "min": self._min_rating, "max": self._max_rating},
            )
        if review is not None and len(review) > self._max_review_length:
            raise ServiceError(
                INVALID_INPUT,
                f"Review cannot exceed {self._max_review_length} characters",
                400,
                {"review_length": len(review), "max_length": self._max_review_length},
            )

        with self._lock:
            transaction = next(
                (
                    tx
                    for tx in self._transactions
                    if tx.buyer_id == buyer_id
                    and tx.intelligence_id == intelligence_id
                    and tx.rating is None
                ),
                None,
            )
            if transaction is None:
                raise ServiceError(
                    INVALID_TRANSACTION,
                    "Transaction not found or already rated",
                    409,
                    {"buyer_id": buyer_id, "intelligence_id": intelligence_id},
                )

            transaction.rating = rating
            transaction.review = review
            listing_rating = self._catalog.apply_rating(intelligence_id, self._transactions)
            self._registry.recompute_reputation(self._transactions)

        self._logger.info(
            "Rating applied",
            extra={
                "transaction_id": transaction.transaction_id,
                "intelligence_id": intelligence_id,
                "rating": rating,
                "listing_rating": listing_rating,
            },
        )

    def get(self, transaction_id: str) -> Transaction | None:
        with self._lock:
            for tx in self._transactions:
                if tx.transaction_id == transaction_id:
                    return copy.deepcopy(tx)
        return None

    def transactions(self) -> list[Transaction]:
        """All transactions in append order, as copies."""
        with self._lock:
            return copy.deepcopy(self._transactions)

    def agent_transactions(self, agent_id: str) -> list[Transaction]:
        """Transactions where the agent is buyer or seller, as copies."""
        with self._lock:
            return copy.deepcopy(
                [tx for tx in self._transactions if agent_id in (tx.buyer_id, tx.seller_id)]
            )

    def count(self) -> int:
        with self._lock:
            return len(self._transactions)

    def total_volume(self) -> float:
        with self._lock:
            return sum(tx.price for tx in self._transactions)

    def average_price(self) -> float:
        return self.aggregates().average_price

    def aggregates(self) -> LedgerTotals:
        """Count, volume and average price read together under one lock."""
        with self._lock:
            count = len(self._transactions)
            volume = sum(tx.price for tx in self._transactions)
        return LedgerTotals(
            count=count,
            total_volume=volume,
            average_price=volume / count if count > 0 else 0.0,
        )
