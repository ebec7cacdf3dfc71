"""Tests for the in-memory persistence gateway."""

from decimal import Decimal
from uuid import uuid4

import pytest

from lotparser.core.errors import PersistenceFailure
from lotparser.core.models import ClassifiedItem
from lotparser.persistence import item_totals


def make_item(**overrides) -> ClassifiedItem:
    values = {
        "lot_id": uuid4(),
        "invoice_id": "INV-1",
        "line_position": 1,
        "name": "Victorian Teapot",
        "quantity": 2,
        "bid_amount": Decimal("150.00"),
        "buyers_premium": Decimal("30.00"),
        "sales_tax": Decimal("14.40"),
    }
    values.update(overrides)
    return ClassifiedItem(**values)


class TestItemTotals:
    """Test cases for storage-time totals."""

    def test_totals_without_shipping(self):
        total, per_item = item_totals(make_item())

        assert total == Decimal("194.40")
        assert per_item == Decimal("97.20")

    def test_per_item_rounds_to_cents(self):
        total, per_item = item_totals(
            make_item(quantity=3, bid_amount=Decimal("10.00"), buyers_premium=None, sales_tax=None, shipping_cost=Decimal("0.01"))
        )

        assert total == Decimal("10.01")
        assert per_item == Decimal("3.34")


class TestInMemoryGateway:
    """Test cases for InMemoryGateway."""

    @pytest.mark.asyncio
    async def test_insert_then_update(self, gateway):
        """Test that items are keyed by lot id, so a redelivery updates."""
        items = [make_item(), make_item(line_position=2, name="Glass Vase")]

        first = await gateway.upsert_batch("INV-1", items)
        second = await gateway.upsert_batch("INV-1", items)

        assert (first.inserted_count, first.updated_count) == (2, 0)
        assert (second.inserted_count, second.updated_count) == (0, 2)
        assert second.committed_count == 2
        assert len(gateway.items) == 2
        assert [s.item.name for s in gateway.items_for_invoice("INV-1")] == ["Victorian Teapot", "Glass Vase"]

    @pytest.mark.asyncio
    async def test_failure_commits_nothing(self, gateway):
        gateway.fail_next = ConnectionError("database went away")

        with pytest.raises(PersistenceFailure):
            await gateway.upsert_batch("INV-1", [make_item()])

        assert gateway.items == {}
        assert gateway.commits == 0
