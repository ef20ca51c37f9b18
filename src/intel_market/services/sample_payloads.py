"""Representative payloads delivered on purchase, one shape per category."""

from __future__ import annotations

import copy
from typing import Any

_GENERIC_PAYLOAD: dict[str, Any] = {"generic_data": "Intelligence data payload"}

_PAYLOADS: dict[str, dict[str, Any]] = {
    "market-analysis": {
        "data": "SOL price analysis",
        "prediction": "Bullish trend expected over next 24h based on volume patterns",
        "confidence": 0.85,
        "timeframe": "24h",
        "key_indicators": [
            "Volume surge +45%",
            "RSI oversold recovery",
            "Whale accumulation detected",
        ],
    },
    "defi-strategy": {
        "strategy": "Yield farming optimization",
        "pools": ["SOL-USDC", "RAY-SOL", "ORCA-USDC"],
        "expected_apy": "12.5%",
        "risk_level": "Medium",
        "instructions": "Rotate between pools based on TVL changes",
    },
    "price-prediction": {
        "asset": "SOL",
        "current_price": 98.5,
        "predicted_price_24h": 105.2,
        "predicted_price_7d": 115.8,
        "confidence_24h": 0.78,
        "confidence_7d": 0.65,
    },
    "risk-assessment": {
        "asset": "SOL",
        "risk_score": 6.5,
        "factors": ["Market volatility", "Liquidity risk", "Smart contract risk"],
        "recommendation": "Medium risk - suitable for balanced portfolios",
    },
    "trend-analysis": {
        "trend": "Bullish",
        "duration": "7 days",
        "strength": 0.78,
        "indicators": ["Moving averages", "Volume profile", "Social sentiment"],
    },
}


def generate_payload(category: str) -> dict[str, Any]:
    """Return a fresh copy of the payload for a category (generic for unknown ones)."""
    return copy.deepcopy(_PAYLOADS.get(category, _GENERIC_PAYLOAD))
