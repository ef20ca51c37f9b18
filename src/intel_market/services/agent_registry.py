"""Agent registry business logic."""

from __future__ import annotations

import copy
from threading import RLock
from typing import TYPE_CHECKING

from intel_market.core.state import AgentProfile
from intel_market.core.timestamps import now_iso
from intel_market.exceptions import (
    AGENT_NOT_REGISTERED,
    INVALID_INPUT,
    MISSING_REQUIRED_FIELD,
    ServiceError,
)
from intel_market.logging import get_logger
from intel_market.services.scoring import compute_reputation

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from intel_market.core.state import Transaction

_REQUIRED_TEXT_FIELDS: tuple[str, ...] = ("name", "description")


class AgentRegistry:
    """
    Owns agent identities, lifetime counters, and reputation.

    Counters are only moved by the transaction ledger; reputation is only
    moved by recompute_reputation().
    """

    def __init__(
        self,
        initial_reputation: int,
        max_reputation: int,
        max_rating: int,
        max_name_length: int,
        max_description_length: int,
        max_top_agents: int,
    ) -> None:
        self._lock = RLock()
        self._agents: dict[str, AgentProfile] = {}
        self._initial_reputation = initial_reputation
        self._max_reputation = max_reputation
        self._max_rating = max_rating
        self._max_name_length = max_name_length
        self._max_description_length = max_description_length
        self._max_top_agents = max_top_agents
        self._logger = get_logger(__name__)

    def register(self, agent_id: str, profile: Mapping[str, object]) -> bool:
        """
        Register an agent, or update the profile of a known one.

        A new agent starts with zero counters and the configured initial
        reputation. Re-registering replaces name, description, specialization
        and verified only; counters, reputation and created_at are kept so
        they stay consistent with the ledger.

        Raises:
            ServiceError: MISSING_REQUIRED_FIELD or INVALID_INPUT
        """
        self._validate_profile(agent_id, profile)

        name = str(profile["name"])
        description = str(profile["description"])
        specialization = [str(tag) for tag in profile["specialization"]]  # type: ignore[attr-defined]
        verified = bool(profile.get("verified", False))

        with self._lock:
            existing = self._agents.get(agent_id)
            if existing is not None:
                existing.name = name
                existing.description = description
                existing.specialization = specialization
                existing.verified = verified
                self._logger.warning(
                    "Agent re-registered, profile fields updated",
                    extra={"agent_id": agent_id},
                )
            else:
                self._agents[agent_id] = AgentProfile(
                    agent_id=agent_id,
                    name=name,
                    description=description,
                    specialization=specialization,
                    reputation_score=self._initial_reputation,
                    total_sales=0,
                    total_earnings=0.0,
                    verified=verified,
                    created_at=now_iso(),
                )

        self._logger.info("Agent registered", extra={"agent_id": agent_id, "name": name})
        return True

    def get(self, agent_id: str) -> AgentProfile | None:
        """Look up an agent. Returns a copy, or None if not registered."""
        with self._lock:
            agent = self._agents.get(agent_id)
            return copy.deepcopy(agent) if agent is not None else None

    def has(self, agent_id: str) -> bool:
        with self._lock:
            return agent_id in self._agents

    def update_stats(self, agent_id: str, earnings_delta: float) -> None:
        """
        Record one completed sale for a seller.

        Raises:
            ServiceError: AGENT_NOT_REGISTERED, INVALID_INPUT (negative earnings)
        """
        if earnings_delta < 0:
            raise ServiceError(
                INVALID_INPUT,
                "Earnings delta must be non-negative",
                400,
                {"earnings_delta": earnings_delta},
            )

        with self._lock:
            agent = self._agents.get(agent_id)
            if agent is None:
                raise ServiceError(
                    AGENT_NOT_REGISTERED,
                    "Agent is not registered",
                    404,
                    {"agent_id": agent_id},
                )
            agent.total_sales += 1
            agent.total_earnings += earnings_delta

    def recompute_reputation(self, transactions: Iterable[Transaction]) -> None:
        """
        Recompute every seller's reputation from its full rating history.

        Agents without rated sales keep their current reputation.
        """
        ratings_by_seller: dict[str, list[int]] = {}
        for tx in transactions:
            if tx.rating is not None:
                ratings_by_seller.setdefault(tx.seller_id, []).append(tx.rating)

        with self._lock:
            for agent_id, agent in self._agents.items():
                reputation = compute_reputation(
                    ratings_by_seller.get(agent_id, []),
                    self._max_rating,
                    self._max_reputation,
                )
                if reputation is not None and reputation != agent.reputation_score:
                    self._logger.info(
                        "Reputation updated",
                        extra={
                            "agent_id": agent_id,
                            "previous": agent.reputation_score,
                            "current": reputation,
                        },
                    )
                    agent.reputation_score = reputation

    def top_agents(self, limit: int = 10) -> list[AgentProfile]:
        """Agents by descending reputation; ties keep registration order."""
        bounded = max(1, min(limit, self._max_top_agents))
        with self._lock:
            ranked = sorted(self._agents.values(), key=lambda a: a.reputation_score, reverse=True)
            return copy.deepcopy(ranked[:bounded])

    def all_agents(self) -> list[AgentProfile]:
        with self._lock:
            return copy.deepcopy(list(self._agents.values()))

    def count(self) -> int:
        with self._lock:
            return len(self._agents)

    def _validate_profile(self, agent_id: object, profile: Mapping[str, object]) -> None:
        """
        Validation order:
        MISSING_REQUIRED_FIELD (id) -> INVALID_INPUT (types) ->
        MISSING_REQUIRED_FIELD (empty values) -> INVALID_INPUT (length bounds)
        """
        if not isinstance(agent_id, str) or agent_id.strip() == "":
            raise ServiceError(
                MISSING_REQUIRED_FIELD,
                "Agent id is required and must be a non-empty string",
                400,
                {"field": "agent_id"},
            )

        for field_name in _REQUIRED_TEXT_FIELDS:
            value = profile.get(field_name)
            if value is not None and not isinstance(value, str):
                raise ServiceError(
                    INVALID_INPUT,
                    f"Field '{field_name}' must be a string",
                    400,
                    {"field": field_name},
                )

        specialization = profile.get("specialization")
        if specialization is not None and (
            not isinstance(specialization, list)
            or any(not isinstance(tag, str) for tag in specialization)
        ):
            raise ServiceError(
                INVALID_INPUT,
                "Field 'specialization' must be a list of strings",
                400,
                {"field": "specialization"},
            )

        verified = profile.get("verified")
        if verified is not None and not isinstance(verified, bool):
            raise ServiceError(
                INVALID_INPUT,
                "Field 'verified' must be a boolean",
                400,
                {"field": "verified"},
            )

        for field_name in _REQUIRED_TEXT_FIELDS:
            value = profile.get(field_name)
            if value is None or str(value).strip() == "":
                raise ServiceError(
                    MISSING_REQUIRED_FIELD,
                    f"Field '{field_name}' is required and must be a non-empty string",
                    400,
                    {"field": field_name},
                )

        if not specialization or any(str(tag).strip() == "" for tag in specialization):
            raise ServiceError(
                MISSING_REQUIRED_FIELD,
                "Field 'specialization' must contain at least one non-empty tag",
                400,
                {"field": "specialization"},
            )

        name = str(profile["name"])
        if len(name) > self._max_name_length:
            raise ServiceError(
                INVALID_INPUT,
                f"Name exceeds maximum length of {self._max_name_length}",
                400,
                {"max_length": self._max_name_length, "actual_length": len(name)},
            )

        description = str(profile["description"])
        if len(description) > self._max_description_length:
            raise ServiceError(
                INVALID_INPUT,
                f"Description exceeds maximum length of {self._max_description_length}",
                400,
                {"max_length": self._max_description_length, "actual_length": len(description)},
            )
