"""Intelligence marketplace - agent registry, transaction ledger, and commit-reveal transparency."""

__version__ = "0.1.0"
