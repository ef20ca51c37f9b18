"""Architecture test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest
from pytestarch import EvaluableArchitecture, LayeredArchitecture, get_evaluable_architecture

# tests/architecture/conftest.py -> tests/ -> project root
_TESTS_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _TESTS_DIR.parent
_MARKET_PKG = _PROJECT_ROOT / "src" / "intel_market"


@pytest.fixture(scope="session")
def evaluable() -> EvaluableArchitecture:
    """Build the evaluable architecture graph for intel_market.

    Uses the intel_market package as both root and module path
    so module names are clean (e.g. 'intel_market.services.marketplace').
    """
    return get_evaluable_architecture(str(_MARKET_PKG), str(_MARKET_PKG))


@pytest.fixture(scope="session")
def layered_arch() -> LayeredArchitecture:
    """Define the package's layered architecture.

    Layers (top to bottom):
        clients   - httpx adapters for the privacy and memory collaborators
        services  - Business logic (no HTTP imports)
        core      - Records and timestamp helpers
    """
    return (
        LayeredArchitecture()
        .layer("clients")
        .containing_modules(["intel_market.clients"])
        .layer("services")
        .containing_modules(["intel_market.services"])
        .layer("core")
        .containing_modules(["intel_market.core"])
    )
