"""Shared builders for marketplace tests."""

from __future__ import annotations

from intel_market.core.state import Reasoning


def make_profile(**overrides: object) -> dict[str, object]:
    """Return a valid agent profile with optional overrides."""
    base: dict[str, object] = {
        "name": "AlphaTrader AI",
        "description": "Specialized in DeFi yield strategies and market analysis",
        "specialization": ["defi-strategy", "market-analysis"],
    }
    base.update(overrides)
    return base


def make_listing_spec(**overrides: object) -> dict[str, object]:
    """Return a valid listing spec with optional overrides."""
    base: dict[str, object] = {
        "title": "Q4 Outlook",
        "description": "Quarterly market outlook for SOL",
        "category": "market-analysis",
        "price": 0.5,
    }
    base.update(overrides)
    return base


def make_reasoning(**overrides: object) -> Reasoning:
    """Return a valid reasoning payload with optional overrides."""
    fields: dict[str, object] = {
        "decision": "buy",
        "factors": ["volume surge", "oversold RSI"],
        "confidence": 0.8,
        "datapoints": [{"rsi": 28}, 98.5],
        "methodology": "technical analysis",
    }
    fields.update(overrides)
    return Reasoning(**fields)  # type: ignore[arg-type]
