"""Marketplace escrow: item registry, per-item escrows and a custody ledger."""

__version__ = "0.1.0"
