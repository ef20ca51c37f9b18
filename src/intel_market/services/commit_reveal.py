"""
Commit-reveal transparency ledger.

An agent seals a decision rationale with a SHA-256 digest before acting and
discloses it afterwards. Each record moves committed -> revealed or
committed -> expired exactly once; both terminal states are final.
"""

from __future__ import annotations

import copy
import hashlib
import json
from collections import Counter
from dataclasses import asdict
from datetime import UTC, datetime
from threading import RLock
from typing import Any
from uuid import uuid4

from intel_market.core.state import (
    COMMITTED,
    EXPIRED,
    REVEALED,
    AgentAudit,
    AgentTransparency,
    AuditResult,
    CommitmentRecord,
    Reasoning,
    TransparencyStats,
)
from intel_market.core.timestamps import add_seconds, now_iso, parse_iso
from intel_market.exceptions import (
    ALREADY_PROCESSED,
    COMMITMENT_EXPIRED,
    COMMITMENT_NOT_FOUND,
    HASH_MISMATCH,
    INVALID_INPUT,
    MISSING_REQUIRED_FIELD,
    ServiceError,
)
from intel_market.logging import get_logger

VERIFICATION_STEPS: tuple[str, ...] = (
    "1. Check commitment exists before trade execution",
    "2. Verify commitment hash matches revealed reasoning",
    "3. Confirm reveal happened after transaction completion",
    "4. Validate reasoning factors align with market conditions",
)
NO_TRANSPARENCY_STEP = "No transparent reasoning available for this transaction"
RECENT_COMMITMENTS_IN_REPORT = 10
TOP_TRANSPARENT_AGENTS = 5
COMMON_FACTORS_IN_AUDIT = 5


def serialize_reasoning(reasoning: Reasoning) -> str:
    """Canonical JSON of a reasoning payload: sorted keys, compact separators."""
    try:
        return json.dumps(asdict(reasoning), sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise ServiceError(
            INVALID_INPUT,
            "Reasoning datapoints must be JSON-serializable",
            400,
            {"error": str(exc)},
        ) from exc


def commitment_digest(serialized: str, agent_id: str, nonce: str | None) -> str:
    """SHA-256 over the serialized reasoning, agent id, and nonce, NUL-separated."""
    material = "\x00".join((serialized, agent_id, nonce or ""))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def _validate_reasoning(reasoning: Reasoning) -> None:
    if not isinstance(reasoning.decision, str) or reasoning.decision.strip() == "":
        raise ServiceError(
            MISSING_REQUIRED_FIELD,
            "Reasoning decision is required and must be a non-empty string",
            400,
            {"field": "decision"},
        )
    if (
        not isinstance(reasoning.factors, list)
        or len(reasoning.factors) == 0
        or any(not isinstance(factor, str) for factor in reasoning.factors)
    ):
        raise ServiceError(
            MISSING_REQUIRED_FIELD,
            "Reasoning factors must be a non-empty list of strings",
            400,
            {"field": "factors"},
        )
    confidence = reasoning.confidence
    if isinstance(confidence, bool) or not isinstance(confidence, int | float):
        raise ServiceError(
            INVALID_INPUT,
            "Reasoning confidence must be a number",
            400,
            {"field": "confidence"},
        )
    if not 0 <= confidence <= 1:
        raise ServiceError(
            INVALID_INPUT,
            "Reasoning confidence must be between 0 and 1",
            400,
            {"field": "confidence", "confidence": confidence},
        )
    if not isinstance(reasoning.datapoints, list):
        raise ServiceError(
            INVALID_INPUT,
            "Reasoning datapoints must be a list",
            400,
            {"field": "datapoints"},
        )
    if not isinstance(reasoning.methodology, str):
        raise ServiceError(
            INVALID_INPUT,
            "Reasoning methodology must be a string",
            400,
            {"field": "methodology"},
        )


def _parse_bound(name: str, value: str | None) -> datetime | None:
    if value is None:
        return None
    try:
        parsed = parse_iso(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ServiceError(
            INVALID_INPUT,
            f"Audit window {name} must be an ISO 8601 timestamp",
            400,
            {"field": name, "value": value},
        ) from exc
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


class _Sealed:
    """Plaintext held back until reveal. Never returned by read accessors."""

    __slots__ = ("nonce", "reasoning")

    def __init__(self, reasoning: Reasoning, nonce: str | None) -> None:
        self.reasoning = reasoning
        self.nonce = nonce


class CommitRevealLedger:
    """
    Owns commitment records.

    Every status change is a compare-and-set under the ledger lock, so a
    late reveal and a cleanup sweep cannot both move the same record.
    """

    def __init__(self, ttl_seconds: int, explorer_url: str) -> None:
        self._lock = RLock()
        self._records: dict[str, CommitmentRecord] = {}
        self._sealed: dict[str, _Sealed] = {}
        self._revealed: dict[str, Reasoning] = {}
        self._ttl_seconds = ttl_seconds
        self._explorer_url = explorer_url
        self._logger = get_logger(__name__)

    def commit(
        self,
        agent_id: str,
        reasoning: Reasoning,
        context: str,
        nonce: str | None = None,
    ) -> str:
        """
        Seal a reasoning payload and return the new commitment id.

        Raises:
            ServiceError: MISSING_REQUIRED_FIELD or INVALID_INPUT
        """
        if not isinstance(agent_id, str) or agent_id.strip() == "":
            raise ServiceError(
                MISSING_REQUIRED_FIELD,
                "Agent id is required",
                400,
                {"field": "agent_id"},
            )
        _validate_reasoning(reasoning)
        serialized = serialize_reasoning(reasoning)

        commitment_id = f"commit-{uuid4()}"
        created_at = now_iso()
        record = CommitmentRecord(
            commitment_id=commitment_id,
            agent_id=agent_id,
            context=context,
            commitment_hash=commitment_digest(serialized, agent_id, nonce),
            status=COMMITTED,
            created_at=created_at,
            reveal_deadline=add_seconds(created_at, self._ttl_seconds),
        )

        with self._lock:
            self._records[commitment_id] = record
            self._sealed[commitment_id] = _Sealed(copy.deepcopy(reasoning), nonce)

        self._logger.info(
            "Commitment committed",
            extra={
                "commitment_id": commitment_id,
                "agent_id": agent_id,
                "context": context,
                "reveal_deadline": record.reveal_deadline,
            },
        )
        return commitment_id

    def link_to_transaction(self, commitment_id: str, transaction_id: str) -> None:
        """Attach a transaction id to a commitment. Status is unchanged."""
        with self._lock:
            record = self._require(commitment_id)
            record.transaction_id = transaction_id

    def reveal(self, commitment_id: str, nonce: str | None = None) -> Reasoning:
        """
        Disclose a sealed reasoning payload.

        Raises:
            ServiceError: COMMITMENT_NOT_FOUND, ALREADY_PROCESSED,
                COMMITMENT_EXPIRED (status becomes expired), HASH_MISMATCH
        """
        with self._lock:
            record = self._require(commitment_id)

            if record.status != COMMITTED:
                raise ServiceError(
                    ALREADY_PROCESSED,
                    f"Cannot reveal: commitment status is {record.status}",
                    409,
                    {"commitment_id": commitment_id, "status": record.status},
                )

            if datetime.now(UTC) > parse_iso(record.reveal_deadline):
                record.status = EXPIRED
                self._logger.info(
                    "Commitment expired",
                    extra={"commitment_id": commitment_id, "agent_id": record.agent_id},
                )
                raise ServiceError(
                    COMMITMENT_EXPIRED,
                    "Reveal deadline has passed",
                    410,
                    {"commitment_id": commitment_id, "reveal_deadline": record.reveal_deadline},
                )

            sealed = self._sealed[commitment_id]
            recomputed = commitment_digest(
                serialize_reasoning(sealed.reasoning), record.agent_id, nonce
            )
            if recomputed != record.commitment_hash:
                raise ServiceError(
                    HASH_MISMATCH,
                    "Commitment hash verification failed",
                    409,
                    {"commitment_id": commitment_id},
                )

            record.status = REVEALED
            record.revealed_at = now_iso()
            self._revealed[commitment_id] = copy.deepcopy(sealed.reasoning)
            result = copy.deepcopy(sealed.reasoning)

        self._logger.info(
            "Commitment revealed",
            extra={
                "commitment_id": commitment_id,
                "agent_id": record.agent_id,
                "decision": result.decision,
            },
        )
        return result

    def get(self, commitment_id: str) -> CommitmentRecord | None:
        """A copy of the record, without its plaintext, or None."""
        with self._lock:
            record = self._records.get(commitment_id)
            return copy.deepcopy(record) if record is not None else None

    def audit(self, transaction_id: str) -> AuditResult:
        """Report whether a transaction was pre-committed and honestly disclosed."""
        with self._lock:
            record = next(
                (r for r in self._records.values() if r.transaction_id == transaction_id),
                None,
            )
            if record is None:
                return AuditResult(
                    transaction_id=transaction_id,
                    has_commitment=False,
                    is_revealed=False,
                    verification_passed=False,
                )

            revealed = self._revealed.get(record.commitment_id)
            is_revealed = record.status == REVEALED and revealed is not None
            verification_passed = False
            if is_revealed and revealed is not None:
                nonce = self._sealed[record.commitment_id].nonce
                recomputed = commitment_digest(
                    serialize_reasoning(revealed), record.agent_id, nonce
                )
                verification_passed = recomputed == record.commitment_hash

            return AuditResult(
                transaction_id=transaction_id,
                has_commitment=True,
                is_revealed=is_revealed,
                verification_passed=verification_passed,
                reasoning=copy.deepcopy(revealed) if is_revealed else None,
                commitment_id=record.commitment_id,
                committed_at=record.created_at,
                revealed_at=record.revealed_at,
                reveal_deadline=record.reveal_deadline,
            )

    def cleanup_expired(self) -> int:
        """Expire every committed record past its deadline. Returns how many moved."""
        now = datetime.now(UTC)
        expired_ids: list[str] = []
        with self._lock:
            for commitment_id, record in self._records.items():
                if record.status == COMMITTED and now > parse_iso(record.reveal_deadline):
                    record.status = EXPIRED
                    expired_ids.append(commitment_id)

        for commitment_id in expired_ids:
            self._logger.info("Commitment expired", extra={"commitment_id": commitment_id})
        return len(expired_ids)

    def agent_commitments(
        self,
        agent_id: str,
        include_revealed: bool = True,
    ) -> list[CommitmentRecord]:
        """An agent's commitments, newest first."""
        with self._lock:
            records = [
                r
                for r in self._records.values()
                if r.agent_id == agent_id and (include_revealed or r.status != REVEALED)
            ]
            records.sort(key=lambda r: r.created_at, reverse=True)
            return copy.deepcopy(records)

    def stats(self) -> TransparencyStats:
        with self._lock:
            records = list(self._records.values())
            total = len(records)
            revealed = [r for r in records if r.status == REVEALED]
            expired_count = sum(1 for r in records if r.status == EXPIRED)

            reveal_minutes = [
                (parse_iso(r.revealed_at) - parse_iso(r.created_at)).total_seconds() / 60
                for r in revealed
                if r.revealed_at is not None
            ]

            per_agent: dict[str, list[int]] = {}
            for record in records:
                counts = per_agent.setdefault(record.agent_id, [0, 0])
                counts[0] += 1
                if record.status == REVEALED:
                    counts[1] += 1

        ranked = sorted(
            (
                AgentTransparency(
                    agent_id=agent_id,
                    commitments=commitments,
                    reveals=reveals,
                    transparency_score=reveals / commitments * 100,
                )
                for agent_id, (commitments, reveals) in per_agent.items()
            ),
            key=lambda entry: entry.transparency_score,
            reverse=True,
        )

        return TransparencyStats(
            total_commitments=total,
            revealed_commitments=len(revealed),
            expired_commitments=expired_count,
            transparency_score=(len(revealed) / total * 100) if total > 0 else 0.0,
            average_reveal_minutes=(
                sum(reveal_minutes) / len(reveal_minutes) if reveal_minutes else 0.0
            ),
            top_transparent_agents=ranked[:TOP_TRANSPARENT_AGENTS],
        )

    def audit_agent(
        self,
        agent_id: str,
        start: str | None = None,
        end: str | None = None,
    ) -> AgentAudit:
        """
        Audit one agent's commitments, optionally limited to a creation window.

        start and end are inclusive ISO 8601 bounds on created_at. Decision
        patterns come from the revealed reasoning inside the window.

        Raises:
            ServiceError: INVALID_INPUT if a bound is not a valid timestamp
                or start is after end
        """
        window_start = _parse_bound("start", start)
        window_end = _parse_bound("end", end)
        if window_start is not None and window_end is not None and window_start > window_end:
            raise ServiceError(
                INVALID_INPUT,
                "Audit window start must not be after its end",
                400,
                {"start": start, "end": end},
            )

        with self._lock:
            records = [
                r
                for r in self._records.values()
                if r.agent_id == agent_id
                and (window_start is None or parse_iso(r.created_at) >= window_start)
                and (window_end is None or parse_iso(r.created_at) <= window_end)
            ]
            decisions = [
                copy.deepcopy(self._revealed[r.commitment_id])
                for r in records
                if r.status == REVEALED and r.commitment_id in self._revealed
            ]

        commitments = len(records)
        reveals = len(decisions)
        score = reveals / commitments * 100 if commitments > 0 else 0.0
        average_confidence = (
            sum(d.confidence for d in decisions) / reveals if reveals > 0 else 0.0
        )
        decision_types = Counter(d.decision for d in decisions)
        factor_counts = Counter(factor for d in decisions for factor in d.factors)
        common_factors = [
            factor for factor, _ in factor_counts.most_common(COMMON_FACTORS_IN_AUDIT)
        ]
        top_decision = decision_types.most_common(1)[0][0] if decision_types else "None"

        return AgentAudit(
            agent_id=agent_id,
            commitments=commitments,
            reveals=reveals,
            transparency_score=score,
            average_confidence=average_confidence,
            decision_types=dict(decision_types),
            common_factors=common_factors,
            report=[
                f"Agent {agent_id} transparency audit:",
                f"- Total decisions: {commitments}",
                f"- Revealed reasoning: {reveals} ({score:.1f}%)",
                f"- Average confidence: {average_confidence:.2f}",
                f"- Most common decision type: {top_decision}",
            ],
        )

    def public_audit_report(self, transaction_id: str) -> dict[str, Any]:
        """Verification instructions anyone can follow for one transaction."""
        result = self.audit(transaction_id)
        if result.has_commitment and result.is_revealed and result.verification_passed:
            return {
                "audit_url": f"{self._explorer_url}audit/{transaction_id}",
                "is_transparent": True,
                "verification_steps": list(VERIFICATION_STEPS),
            }
        return {
            "audit_url": "",
            "is_transparent": False,
            "verification_steps": [NO_TRANSPARENCY_STEP],
        }

    def transparency_report(self) -> str:
        """Markdown summary: statistics plus the most recent commitments."""
        stats = self.stats()
        with self._lock:
            recent = sorted(self._records.values(), key=lambda r: r.created_at, reverse=True)
            recent = copy.deepcopy(recent[:RECENT_COMMITMENTS_IN_REPORT])
            revealed = {
                r.commitment_id: copy.deepcopy(self._revealed[r.commitment_id])
                for r in recent
                if r.commitment_id in self._revealed
            }

        lines = [
            "# Intelligence Marketplace Transparency Report",
            "",
            f"Generated: {now_iso()}",
            f"Explorer: {self._explorer_url}",
            "",
            "## Statistics",
            f"- Total Commitments: {stats.total_commitments}",
            f"- Revealed: {stats.revealed_commitments}",
            f"- Expired: {stats.expired_commitments}",
            f"- Transparency Score: {stats.transparency_score:.1f}%",
            f"- Average Reveal Time: {stats.average_reveal_minutes:.1f} minutes",
            "",
            "## Recent Commitments",
        ]
        for record in recent:
            lines.append(f"- {record.commitment_id} ({record.status})")
            lines.append(f"  Agent: {record.agent_id}")
            lines.append(f"  Date: {record.created_at}")
            reasoning = revealed.get(record.commitment_id)
            if reasoning is not None:
                lines.append(f"  Decision: {reasoning.decision}")
                lines.append(f"  Confidence: {reasoning.confidence}")
        return "\n".join(lines) + "\n"

    def export(self) -> dict[str, Any]:
        """All records, revealed reasoning by commitment id, and stats."""
        with self._lock:
            commitments = [asdict(r) for r in self._records.values()]
            revealed = {cid: asdict(reasoning) for cid, reasoning in self._revealed.items()}
        return {
            "commitments": commitments,
            "revealed": revealed,
            "stats": asdict(self.stats()),
        }

    def _require(self, commitment_id: str) -> CommitmentRecord:
        record = self._records.get(commitment_id)
        if record is None:
            raise ServiceError(
                COMMITMENT_NOT_FOUND,
                "Commitment not found",
                404,
                {"commitment_id": commitment_id},
            )
        return record
