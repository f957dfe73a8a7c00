"""Execution engine — the in-process runtime hosting registries and escrows."""

from marketplace_escrow.engine.escrow import EscrowItem
from marketplace_escrow.engine.marketplace import Marketplace, ReceiverHook, Subscriber
from marketplace_escrow.engine.registry import ItemRegistry

__all__ = [
    "EscrowItem",
    "ItemRegistry",
    "Marketplace",
    "ReceiverHook",
    "Subscriber",
]
