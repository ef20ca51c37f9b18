"""Architecture import rule tests for the intelligence marketplace.

These tests enforce the package's boundaries:
- Business logic (services/) never depends on the HTTP adapters in clients/
  or on the lifecycle module that wires them in
- Records in core/ depend on nothing above them
- Config, logging, and exceptions remain leaf-like modules
"""

from __future__ import annotations

import pytest
from pytestarch import EvaluableArchitecture, LayeredArchitecture, LayerRule, Rule

# ---------------------------------------------------------------------------
# Module-level rules: services layer independence
# ---------------------------------------------------------------------------


@pytest.mark.architecture
class TestServicesLayerIndependence:
    """The services/ layer talks to collaborators only through its ports."""

    def test_services_must_not_import_clients(
        self,
        evaluable: EvaluableArchitecture,
    ) -> None:
        """Business logic must not depend on concrete HTTP adapters."""
        (
            Rule()
            .modules_that()
            .are_sub_modules_of("intel_market.services")
            .should_not()
            .import_modules_that()
            .are_sub_modules_of("intel_market.clients")
            .assert_applies(evaluable)
        )

    def test_core_must_not_import_services(
        self,
        evaluable: EvaluableArchitecture,
    ) -> None:
        """Records must not depend on business logic."""
        (
            Rule()
            .modules_that()
            .are_sub_modules_of("intel_market.core")
            .should_not()
            .import_modules_that()
            .are_sub_modules_of("intel_market.services")
            .assert_applies(evaluable)
        )

    def test_clients_must_not_import_marketplace(
        self,
        evaluable: EvaluableArchitecture,
    ) -> None:
        """Adapters must not reach back into the facade."""
        (
            Rule()
            .modules_that()
            .are_sub_modules_of("intel_market.clients")
            .should_not()
            .import_modules_that()
            .are_named("intel_market.services.marketplace")
            .assert_applies(evaluable)
        )

    def test_services_must_not_import_lifespan(
        self,
        evaluable: EvaluableArchitecture,
    ) -> None:
        """Only the lifecycle module wires concrete clients into the facade."""
        (
            Rule()
            .modules_that()
            .are_sub_modules_of("intel_market.services")
            .should_not()
            .import_modules_that()
            .are_named("intel_market.lifespan")
            .assert_applies(evaluable)
        )


# ---------------------------------------------------------------------------
# Module-level rules: config, logging, and exceptions are leaf modules
# ---------------------------------------------------------------------------


@pytest.mark.architecture
class TestLeafModules:
    """Config, logging, and exceptions should not depend on package internals."""

    @pytest.mark.parametrize(
        "leaf",
        ["intel_market.config", "intel_market.logging", "intel_market.exceptions"],
    )
    @pytest.mark.parametrize(
        "package",
        ["intel_market.services", "intel_market.clients", "intel_market.core"],
    )
    def test_leaf_must_not_import_package(
        self,
        evaluable: EvaluableArchitecture,
        leaf: str,
        package: str,
    ) -> None:
        (
            Rule()
            .modules_that()
            .are_named(leaf)
            .should_not()
            .import_modules_that()
            .are_sub_modules_of(package)
            .assert_applies(evaluable)
        )

    def test_logging_must_not_import_config(
        self,
        evaluable: EvaluableArchitecture,
    ) -> None:
        """Logging is configured by its caller, never by reading settings itself."""
        (
            Rule()
            .modules_that()
            .are_named("intel_market.logging")
            .should_not()
            .import_modules_that()
            .are_named("intel_market.config")
            .assert_applies(evaluable)
        )


# ---------------------------------------------------------------------------
# Layer-level rules
# ---------------------------------------------------------------------------


@pytest.mark.architecture
class TestLayeredArchitecture:
    """Layer-level dependency rules."""

    def test_services_layer_must_not_access_clients_layer(
        self,
        evaluable: EvaluableArchitecture,
        layered_arch: LayeredArchitecture,
    ) -> None:
        (
            LayerRule()
            .based_on(layered_arch)
            .layers_that()
            .are_named("services")
            .should_not()
            .access_layers_that()
            .are_named("clients")
            .assert_applies(evaluable)
        )

    def test_core_layer_must_not_access_upper_layers(
        self,
        evaluable: EvaluableArchitecture,
        layered_arch: LayeredArchitecture,
    ) -> None:
        """Records sit at the bottom of the stack."""
        (
            LayerRule()
            .based_on(layered_arch)
            .layers_that()
            .are_named("core")
            .should_not()
            .access_layers_that()
            .are_named(["services", "clients"])
            .assert_applies(evaluable)
        )
