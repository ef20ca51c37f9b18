"""UTC ISO 8601 timestamp helpers."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def now_iso() -> str:
    """Return current UTC time as ISO 8601 string with Z suffix."""
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO 8601 string produced by now_iso()."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def add_seconds(base_timestamp: str, seconds: int) -> str:
    """Compute a deadline by adding seconds to a base ISO timestamp."""
    deadline = parse_iso(base_timestamp) + timedelta(seconds=seconds)
    return deadline.isoformat(timespec="microseconds").replace("+00:00", "Z")
