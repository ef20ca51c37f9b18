"""HTTP clients for the external privacy and memory services."""

from intel_market.clients.memory_client import MemoryClient
from intel_market.clients.privacy_client import PrivacyClient

__all__ = ["MemoryClient", "PrivacyClient"]
