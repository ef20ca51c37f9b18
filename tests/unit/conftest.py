"""Unit test fixtures - auto-clear caches and build marketplace components."""

from __future__ import annotations

from pathlib import Path

import pytest

from intel_market.config import Settings, clear_settings_cache, load_settings
from intel_market.services.agent_registry import AgentRegistry
from intel_market.services.commit_reveal import CommitRevealLedger
from intel_market.services.intelligence_catalog import IntelligenceCatalog
from intel_market.services.transaction_ledger import TransactionLedger

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

CATEGORIES = [
    "market-analysis",
    "defi-strategy",
    "price-prediction",
    "risk-assessment",
    "trend-analysis",
]


@pytest.fixture(autouse=True)
def _clear_caches():
    """Clear settings cache between tests."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def settings() -> Settings:
    """Settings loaded from the project's config.yaml."""
    return load_settings(_PROJECT_ROOT / "config.yaml")


@pytest.fixture
def registry() -> AgentRegistry:
    return AgentRegistry(
        initial_reputation=100,
        max_reputation=1000,
        max_rating=5,
        max_name_length=100,
        max_description_length=1000,
        max_top_agents=100,
    )


@pytest.fixture
def catalog(registry: AgentRegistry) -> IntelligenceCatalog:
    return IntelligenceCatalog(
        registry=registry,
        categories=CATEGORIES,
        min_price=0.001,
        max_price=1000.0,
        max_title_length=200,
        max_description_length=1000,
        quality_weight=0.7,
        recency_weight=0.3,
    )


@pytest.fixture
def ledger(registry: AgentRegistry, catalog: IntelligenceCatalog) -> TransactionLedger:
    return TransactionLedger(
        registry=registry,
        catalog=catalog,
        min_rating=1,
        max_rating=5,
        max_review_length=500,
    )


@pytest.fixture
def commit_reveal() -> CommitRevealLedger:
    return CommitRevealLedger(
        ttl_seconds=86400,
        explorer_url="https://explorer.test/",
    )
