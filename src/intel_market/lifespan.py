"""Marketplace lifecycle: settings, logging, collaborator clients, and shutdown."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from intel_market.clients.memory_client import MemoryClient
from intel_market.clients.privacy_client import PrivacyClient
from intel_market.config import get_safe_config, get_settings
from intel_market.logging import ROOT_LOGGER_NAME, get_logger, setup_logging
from intel_market.services.marketplace import build_marketplace

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from intel_market.config import Settings
    from intel_market.services.marketplace import Marketplace


def create_marketplace(settings: Settings | None = None) -> Marketplace:
    """
    Build a marketplace wired to the configured privacy and memory services.

    Loads settings when none are given and configures logging for the
    package namespace. The caller owns the result and must await close().
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings.logging.level, ROOT_LOGGER_NAME, settings.logging.directory)
    logger = get_logger(__name__)

    privacy_client = PrivacyClient(
        base_url=settings.privacy.base_url,
        shield_path=settings.privacy.shield_path,
        reveal_path=settings.privacy.reveal_path,
        timeout_seconds=settings.privacy.timeout_seconds,
        shield_price_threshold=settings.privacy.shield_price_threshold,
        shield_reputation_threshold=settings.privacy.shield_reputation_threshold,
    )
    memory_client = MemoryClient(
        base_url=settings.memory.base_url,
        record_path=settings.memory.record_path,
        search_path=settings.memory.search_path,
        timeout_seconds=settings.memory.timeout_seconds,
    )

    marketplace = build_marketplace(settings, privacy=privacy_client, memory=memory_client)

    logger.info(
        "Service starting",
        extra={
            "service": settings.service.name,
            "version": settings.service.version,
            "privacy_base_url": settings.privacy.base_url,
            "memory_base_url": settings.memory.base_url,
            "config": get_safe_config(settings),
        },
    )
    return marketplace


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[Marketplace]:
    """Yield a wired marketplace and close its HTTP clients on exit."""
    marketplace = create_marketplace(settings)
    logger = get_logger(__name__)

    try:
        yield marketplace
    finally:
        logger.info("Service shutting down")
        await marketplace.close()
