"""Persistence boundary."""

from .gateway import BatchCommitResult, InMemoryGateway, PersistenceGateway, StoredItem, item_totals

__all__ = [
    "BatchCommitResult",
    "InMemoryGateway",
    "PersistenceGateway",
    "StoredItem",
    "item_totals",
]
