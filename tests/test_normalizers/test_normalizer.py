"""Tests for record normalization and auction metadata."""

from datetime import date
from decimal import Decimal

import pytest

from lotparser.core.errors import MissingRequiredHeaders, NormalizationError
from lotparser.core.models import AuctionMetadata, RawLineRecord
from lotparser.normalizers import FieldNormalizer, NormalizationContext, load_auction_metadata


class TestNormalizationContext:
    """Test cases for per-invoice context resolution."""

    def test_defaults_without_metadata(self, settings):
        context = NormalizationContext.resolve("INV-9", settings=settings)

        assert context.buyers_premium_percent == Decimal("20")
        assert context.sales_tax_percent == Decimal("8")
        assert context.auction_id is None
        assert context.acquisition_date is None

    def test_fallback_is_per_field(self, settings):
        """Test that a sheet premium is kept while a missing tax takes the default."""
        metadata = AuctionMetadata(
            invoice_id="INV-1",
            auction_id=1201,
            auction_date=date(2024, 3, 9),
            buyers_premium_percent=Decimal("18"),
        )
        context = NormalizationContext.resolve("INV-1", metadata=metadata, settings=settings)

        assert context.buyers_premium_percent == Decimal("18")
        assert context.sales_tax_percent == Decimal("8")
        assert context.auction_id == 1201
        assert context.acquisition_date == date(2024, 3, 9)

    def test_declared_auction_id_wins(self, settings):
        metadata = AuctionMetadata(invoice_id="INV-1", auction_id=1201)
        context = NormalizationContext.resolve("INV-1", auction_id=77, metadata=metadata, settings=settings)
        assert context.auction_id == 77


class TestFieldNormalizer:
    """Test cases for FieldNormalizer."""

    def setup_method(self):
        """Setup test fixtures."""
        self.normalizer = FieldNormalizer()

    def test_pdf_row(self, pdf_record, context):
        """Test that a PDF row gets bid, premium and tax."""
        item = self.normalizer.normalize(pdf_record, context)

        assert item.name == "Victorian Teapot"
        assert item.bid_amount == Decimal("150.00")
        assert item.buyers_premium == Decimal("30.00")
        assert item.sales_tax == Decimal("14.40")
        assert item.shipping_cost is None
        assert item.quantity == 1
        assert item.source_page == 1
        assert item.line_position == 1
        assert item.invoice_id == "INV-1"
        assert "victorian" in item.keywords

    def test_pdf_quantity_prefix_after_lot_number(self, context):
        """Test that "12 3 x Vase" reads lot 12, quantity 3."""
        record = RawLineRecord(position=2, page=1, description="12 3 x Glass Vase", amount_text="$45.00")

        item = self.normalizer.normalize(record, context)

        assert item.quantity == 3
        assert item.name == "Glass Vase"

    def test_pdf_qty_word_prefix(self, context):
        record = RawLineRecord(position=1, page=1, description="Qty 2 - Brass Andirons", amount_text="85")

        item = self.normalizer.normalize(record, context)

        assert item.quantity == 2
        assert item.description == "Brass Andirons"

    def test_pdf_malformed_amount_raises(self, context):
        """Test that a bad amount becomes a NormalizationError with position and field."""
        record = RawLineRecord(position=4, page=2, description="Glass Vase", amount_text="$4.5.00")

        with pytest.raises(NormalizationError) as exc_info:
            self.normalizer.normalize(record, context)

        assert exc_info.value.position == 4
        assert exc_info.value.field == "bid_amount"

    def test_sheet_row_with_explicit_amounts(self, context):
        """Test that explicit premium, tax and shipping are kept as given."""
        record = RawLineRecord(
            position=1,
            row=2,
            fields={
                "item_name": "Oak Dresser",
                "description": "Four drawers",
                "quantity": "2",
                "bid_amount": "310.5",
                "buyers_premium": "50",
                "sales_tax": "",
                "shipping_cost": "25",
                "category": "Furniture",
            },
        )

        item = self.normalizer.normalize(record, context)

        assert item.bid_amount == Decimal("310.50")
        assert item.buyers_premium == Decimal("50.00")
        # (310.50 + 50.00) * 8 %
        assert item.sales_tax == Decimal("28.84")
        assert item.shipping_cost == Decimal("25.00")
        assert item.quantity == 2
        assert item.source_row == 2
        assert item.category_hint == "Furniture"

    def test_sheet_row_bad_quantity_warns(self, context):
        record = RawLineRecord(
            position=1,
            row=2,
            fields={"item_name": "Teapot", "bid_amount": "10", "quantity": "0"},
        )

        item = self.normalizer.normalize(record, context)

        assert item.quantity == 1
        assert len(item.warnings) == 1

    def test_sheet_row_without_name_raises(self, context):
        record = RawLineRecord(position=3, row=4, fields={"item_name": " ", "bid_amount": "10"})

        with pytest.raises(NormalizationError) as exc_info:
            self.normalizer.normalize(record, context)

        assert exc_info.value.field == "item_name"

    def test_normalize_is_deterministic(self, pdf_record, context):
        assert self.normalizer.normalize(pdf_record, context) == self.normalizer.normalize(pdf_record, context)


class TestLoadAuctionMetadata:
    """Test cases for the auction metadata sheet."""

    def test_loads_rows_by_invoice(self, auctions_xlsx):
        directory = load_auction_metadata(auctions_xlsx, "auctions.xlsx")

        assert set(directory) == {"INV-1", "INV-2"}
        assert directory["INV-1"].auction_id == 1201
        assert directory["INV-1"].auction_date == date(2024, 3, 9)
        assert directory["INV-1"].buyers_premium_percent == Decimal("18")
        assert directory["INV-1"].sales_tax_percent is None
        assert directory["INV-2"].buyers_premium_percent == Decimal("15")
        assert directory["INV-2"].sales_tax_percent == Decimal("7.5")

    def test_missing_auction_column(self, xlsx_factory):
        content = xlsx_factory([["Invoice", "Date"], ["INV-1", "2024-03-09"]])

        with pytest.raises(MissingRequiredHeaders) as exc_info:
            load_auction_metadata(content, "auctions.xlsx")

        assert exc_info.value.missing == ["auction_id"]
