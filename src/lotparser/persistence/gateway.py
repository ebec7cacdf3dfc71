"""Storage boundary for classified items."""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from ..core.errors import PersistenceFailure
from ..core.models import CENTS, ClassifiedItem

logger = logging.getLogger(__name__)


@dataclass
class BatchCommitResult:
    """What the store did with a batch."""

    inserted_count: int = 0
    updated_count: int = 0
    failed_positions: list[int] = field(default_factory=list)

    @property
    def committed_count(self) -> int:
        return self.inserted_count + self.updated_count


@dataclass(frozen=True)
class StoredItem:
    """An item as held by the store, with storage-time totals."""

    item: ClassifiedItem
    total_cost: Decimal
    cost_per_item: Decimal


class PersistenceGateway(ABC):
    """Abstract base class for item stores."""

    @abstractmethod
    async def upsert_batch(self, invoice_id: str, items: list[ClassifiedItem]) -> BatchCommitResult:
        """
        Insert or update a batch of items keyed by lot id.

        Either the whole batch is committed or the failed positions are
        reported exactly.

        Raises:
            PersistenceFailure: Nothing from the batch was committed
        """
        pass


def item_totals(item: ClassifiedItem) -> tuple[Decimal, Decimal]:
    """Total cost (bid + premium + tax + shipping) and cost per unit."""
    total = sum(
        (amount for amount in (item.bid_amount, item.buyers_premium, item.sales_tax, item.shipping_cost) if amount),
        Decimal("0"),
    ).quantize(CENTS)
    per_item = (total / item.quantity).quantize(CENTS, rounding=ROUND_HALF_UP)
    return total, per_item


class InMemoryGateway(PersistenceGateway):
    """Dictionary-backed store keyed by lot id."""

    def __init__(self):
        self.items: dict[UUID, StoredItem] = {}
        self.commits = 0
        self._lock = asyncio.Lock()
        # Set to make the next upsert_batch raise (used in tests)
        self.fail_next: Exception | None = None

    async def upsert_batch(self, invoice_id: str, items: list[ClassifiedItem]) -> BatchCommitResult:
        async with self._lock:
            if self.fail_next is not None:
                error, self.fail_next = self.fail_next, None
                if isinstance(error, PersistenceFailure):
                    raise error
                raise PersistenceFailure(f"Batch for invoice {invoice_id} not committed: {error}") from error

            result = BatchCommitResult()
            for item in items:
                total, per_item = item_totals(item)
                if item.lot_id in self.items:
                    result.updated_count += 1
                else:
                    result.inserted_count += 1
                self.items[item.lot_id] = StoredItem(item=item, total_cost=total, cost_per_item=per_item)

            self.commits += 1
            logger.info(
                f"Committed invoice {invoice_id}: {result.inserted_count} inserted, "
                f"{result.updated_count} updated"
            )
            return result

    def items_for_invoice(self, invoice_id: str) -> list[StoredItem]:
        """Stored items of one invoice in line order."""
        stored = [s for s in self.items.values() if s.item.invoice_id == invoice_id]
        return sorted(stored, key=lambda s: s.item.line_position)
