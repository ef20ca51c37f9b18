"""Intelligence catalog business logic."""

from __future__ import annotations

import copy
from threading import RLock
from typing import TYPE_CHECKING
from uuid import uuid4

from intel_market.core.state import IntelligenceListing, SearchFilters
from intel_market.core.timestamps import now_iso
from intel_market.exceptions import (
    AGENT_NOT_REGISTERED,
    INTELLIGENCE_NOT_FOUND,
    INVALID_INPUT,
    MISSING_REQUIRED_FIELD,
    ServiceError,
)
from intel_market.logging import get_logger
from intel_market.services.scoring import mean_rating, quality_from_reputation, rank_listings

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from intel_market.core.state import Transaction
    from intel_market.services.agent_registry import AgentRegistry


class IntelligenceCatalog:
    """
    Owns listings.

    Sales counts and ratings are only moved by the transaction ledger.
    """

    def __init__(
        self,
        registry: AgentRegistry,
        categories: Iterable[str],
        min_price: float,
        max_price: float,
        max_title_length: int,
        max_description_length: int,
        quality_weight: float,
        recency_weight: float,
    ) -> None:
        self._lock = RLock()
        self._listings: dict[str, IntelligenceListing] = {}
        self._registry = registry
        self._categories = tuple(categories)
        self._min_price = min_price
        self._max_price = max_price
        self._max_title_length = max_title_length
        self._max_description_length = max_description_length
        self._quality_weight = quality_weight
        self._recency_weight = recency_weight
        self._logger = get_logger(__name__)

    @property
    def categories(self) -> tuple[str, ...]:
        return self._categories

    def list_intelligence(self, seller_id: str, spec: Mapping[str, object]) -> str:
        """
        Create a listing owned by seller_id and return its id.

        quality_score is taken from the seller's reputation right now and
        is not updated afterwards.

        Raises:
            ServiceError: AGENT_NOT_REGISTERED, MISSING_REQUIRED_FIELD, INVALID_INPUT
        """
        seller = self._registry.get(seller_id)
        if seller is None:
            raise ServiceError(
                AGENT_NOT_REGISTERED,
                "Seller is not registered",
                404,
                {"seller_id": seller_id},
            )

        title, description, category, price = self._validate_spec(spec)

        intelligence_id = f"intel-{uuid4()}"
        listing = IntelligenceListing(
            intelligence_id=intelligence_id,
            seller_id=seller_id,
            title=title,
            description=description,
            category=category,
            price=price,
            quality_score=quality_from_reputation(seller.reputation_score),
            sales_count=0,
            rating=0.0,
            created_at=now_iso(),
        )

        with self._lock:
            self._listings[intelligence_id] = listing

        self._logger.info(
            "Listing created",
            extra={
                "intelligence_id": intelligence_id,
                "seller_id": seller_id,
                "category": category,
                "price": price,
            },
        )
        return intelligence_id

    def get(self, intelligence_id: str) -> IntelligenceListing | None:
        """Look up a listing. Returns a copy, or None if not found."""
        with self._lock:
            listing = self._listings.get(intelligence_id)
            return copy.deepcopy(listing) if listing is not None else None

    def search(self, filters: SearchFilters | None = None) -> list[IntelligenceListing]:
        """All listings matching every set filter, best discovery score first."""
        criteria = filters if filters is not None else SearchFilters()
        with self._lock:
            matches = [
                listing for listing in self._listings.values() if _matches(listing, criteria)
            ]
            ranked = rank_listings(matches, self._quality_weight, self._recency_weight)
            return copy.deepcopy(ranked)

    def increment_sales(self, intelligence_id: str) -> None:
        with self._lock:
            self._require(intelligence_id).sales_count += 1

    def apply_rating(self, intelligence_id: str, transactions: Iterable[Transaction]) -> float:
        """
        Recompute the mean rating of a listing from all of its rated transactions.

        Returns the new rating.
        """
        ratings = [
            tx.rating
            for tx in transactions
            if tx.intelligence_id == intelligence_id and tx.rating is not None
        ]
        with self._lock:
            listing = self._require(intelligence_id)
            listing.rating = mean_rating(ratings)
            return listing.rating

    def category_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        with self._lock:
            for listing in self._listings.values():
                counts[listing.category] = counts.get(listing.category, 0) + 1
        return counts

    def all_listings(self) -> list[IntelligenceListing]:
        with self._lock:
            return copy.deepcopy(list(self._listings.values()))

    def count(self) -> int:
        with self._lock:
            return len(self._listings)

    def _require(self, intelligence_id: str) -> IntelligenceListing:
        listing = self._listings.get(intelligence_id)
        if listing is None:
            raise ServiceError(
                INTELLIGENCE_NOT_FOUND,
                "Intelligence listing not found",
                404,
                {"intelligence_id": intelligence_id},
            )
        return listing

    def _validate_spec(self, spec: Mapping[str, object]) -> tuple[str, str, str, float]:
        for field_name in ("title", "description", "category"):
            value = spec.get(field_name)
            if value is not None and not isinstance(value, str):
                raise ServiceError(
                    INVALID_INPUT,
                    f"Field '{field_name}' must be a string",
                    400,
                    {"field": field_name},
                )
            if value is None or str(value).strip() == "":
                raise ServiceError(
                    MISSING_REQUIRED_FIELD,
                    f"Field '{field_name}' is required and must be a non-empty string",
                    400,
                    {"field": field_name},
                )

        price = spec.get("price")
        if price is None:
            raise ServiceError(
                MISSING_REQUIRED_FIELD,
                "Field 'price' is required",
                400,
                {"field": "price"},
            )
        # bool is an int subclass
        if isinstance(price, bool) or not isinstance(price, int | float):
            raise ServiceError(
                INVALID_INPUT,
                "Field 'price' must be a number",
                400,
                {"field": "price"},
            )

        title = str(spec["title"])
        description = str(spec["description"])
        category = str(spec["category"])

        if len(title) > self._max_title_length:
            raise ServiceError(
                INVALID_INPUT,
                f"Title exceeds maximum length of {self._max_title_length}",
                400,
                {"max_length": self._max_title_length, "actual_length": len(title)},
            )
        if len(description) > self._max_description_length:
            raise ServiceError(
                INVALID_INPUT,
                f"Description exceeds maximum length of {self._max_description_length}",
                400,
                {"max_length": self._max_description_length, "actual_length": len(description)},
            )
        if category not in self._categories:
            raise ServiceError(
                INVALID_INPUT,
                f"Unknown category '{category}'",
                400,
                {"category": category, "allowed": list(self._categories)},
            )
        if not self._min_price <= price <= self._max_price:
            raise ServiceError(
                INVALID_INPUT,
                f"Price must be between {self._min_price} and {self._max_price}",
                400,
                {"price": price, "min_price": self._min_price, "max_price": self._max_price},
            )

        return title, description, category, float(price)


def _matches(listing: IntelligenceListing, filters: SearchFilters) -> bool:
    if filters.category is not None and listing.category != filters.category:
        return False
    if filters.max_price is not None and listing.price > filters.max_price:
        return False
    if filters.min_quality is not None and listing.quality_score < filters.min_quality:
        return False
    return filters.seller is None or listing.seller_id == filters.seller
