"""Marketplace error type and error codes."""

from __future__ import annotations

INVALID_INPUT = "INVALID_INPUT"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
AGENT_NOT_REGISTERED = "AGENT_NOT_REGISTERED"
INTELLIGENCE_NOT_FOUND = "INTELLIGENCE_NOT_FOUND"
INVALID_TRANSACTION = "INVALID_TRANSACTION"
COMMITMENT_NOT_FOUND = "COMMITMENT_NOT_FOUND"
ALREADY_PROCESSED = "ALREADY_PROCESSED"
COMMITMENT_EXPIRED = "COMMITMENT_EXPIRED"
HASH_MISMATCH = "HASH_MISMATCH"
PRIVACY_UNAVAILABLE = "PRIVACY_UNAVAILABLE"
MEMORY_UNAVAILABLE = "MEMORY_UNAVAILABLE"

# Commitment failures are refinements of an invalid transaction
_INVALID_TRANSACTION_FAMILY: frozenset[str] = frozenset(
    {INVALID_TRANSACTION, COMMITMENT_NOT_FOUND, ALREADY_PROCESSED, COMMITMENT_EXPIRED, HASH_MISMATCH}
)


class ServiceError(Exception):
    """
    Domain error raised by every marketplace component.

    Attributes:
        error: Stable machine-readable code (one of the constants above).
        message: Human-readable description.
        status_code: HTTP-style class of the failure (400, 404, 409, ...).
        details: Context for the failure (ids, offending values).
    """

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int,
        details: dict[str, object],
    ) -> None:
        super().__init__(message)
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details

    @property
    def is_invalid_transaction(self) -> bool:
        """True for self-purchase, double-rating, and commitment failures."""
        return self.error in _INVALID_TRANSACTION_FAMILY

    def to_dict(self) -> dict[str, object]:
        """Render as the error body an outer surface would return."""
        return {"error": self.error, "message": self.message, "details": self.details}

    def __repr__(self) -> str:
        return f"ServiceError({self.error!r}, {self.message!r}, {self.status_code})"
