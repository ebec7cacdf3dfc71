"""Record-level normalization of raw line records into candidate items."""

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from ..config import Settings, get_settings
from ..core.errors import NormalizationError
from ..core.models import AuctionMetadata, CandidateItem, RawLineRecord
from .fields import (
    apply_rate,
    clean_description,
    extract_keywords,
    generate_item_name,
    parse_currency,
    parse_quantity,
)

logger = logging.getLogger(__name__)

# "3 x Glass Vase", "Qty 2 - Brass Andirons"
_QTY_PREFIX_RE = re.compile(r"^\s*(?:qty\.?:?\s*(\d+)\s*[-:]?\s+|(\d+)\s*[x×]\s+)", re.IGNORECASE)
_LOT_NUMBER_RE = re.compile(r"^\d+\s+")


@dataclass(frozen=True)
class NormalizationContext:
    """Per-invoice values applied to every record of a document."""

    invoice_id: str
    buyers_premium_percent: Decimal
    sales_tax_percent: Decimal
    auction_id: int | None = None
    acquisition_date: date | None = None

    @classmethod
    def resolve(
        cls,
        invoice_id: str,
        auction_id: int | None = None,
        metadata: AuctionMetadata | None = None,
        settings: Settings | None = None,
    ) -> "NormalizationContext":
        """
        Build the context for an invoice.

        Premium and tax fall back to the configured defaults one field at
        a time: an auction row with a premium but no tax keeps its premium
        and takes the default tax. A declared auction id wins over the one
        on the auction sheet.
        """
        settings = settings or get_settings()

        premium = metadata.buyers_premium_percent if metadata else None
        tax = metadata.sales_tax_percent if metadata else None

        if premium is None:
            premium = settings.default_buyers_premium_percent
            logger.debug(f"Invoice {invoice_id}: using default buyer's premium {premium}%")
        if tax is None:
            tax = settings.default_sales_tax_percent
            logger.debug(f"Invoice {invoice_id}: using default sales tax {tax}%")

        return cls(
            invoice_id=invoice_id,
            auction_id=auction_id if auction_id is not None else (metadata.auction_id if metadata else None),
            acquisition_date=metadata.auction_date if metadata else None,
            buyers_premium_percent=premium,
            sales_tax_percent=tax,
        )


class FieldNormalizer:
    """
    Convert raw records into typed candidate items.

    Side-effect free: the same record and context always give the same
    item. Totals (total cost, cost per item) are left to the storage side.
    """

    def normalize(self, record: RawLineRecord, context: NormalizationContext) -> CandidateItem:
        """
        Normalize one record.

        Raises:
            NormalizationError: If the record cannot become an item
        """
        if record.fields:
            return self._normalize_sheet_row(record, context)
        return self._normalize_pdf_row(record, context)

    def _normalize_pdf_row(self, record: RawLineRecord, context: NormalizationContext) -> CandidateItem:
        warnings: list[str] = []
        description = record.description.strip()
        quantity = 1

        # "3 x Vase" carries a quantity, "12 3 x Vase" a lot number and a quantity
        match = _QTY_PREFIX_RE.match(description)
        if not match:
            without_lot = _LOT_NUMBER_RE.sub("", description, count=1)
            match = _QTY_PREFIX_RE.match(without_lot)
            if match:
                description = without_lot
        if match:
            quantity, warning = parse_quantity(match.group(1) or match.group(2))
            if warning:
                warnings.append(warning)
            description = description[match.end():]

        description = clean_description(description)
        if not description:
            raise NormalizationError(
                f"Line {record.position}: item row has no description",
                position=record.position,
                field="description",
            )

        bid = self._amount(record.amount_text, record.position, "bid_amount")
        if bid is None:
            raise NormalizationError(
                f"Line {record.position}: item row has no bid amount",
                position=record.position,
                field="bid_amount",
            )

        premium = apply_rate(bid, context.buyers_premium_percent)
        tax = apply_rate(bid + premium, context.sales_tax_percent)

        return CandidateItem(
            invoice_id=context.invoice_id,
            auction_id=context.auction_id,
            line_position=record.position,
            source_page=record.page,
            name=generate_item_name(description),
            description=description,
            quantity=quantity,
            bid_amount=bid,
            buyers_premium=premium,
            sales_tax=tax,
            shipping_cost=None,
            acquisition_date=context.acquisition_date,
            keywords=extract_keywords(description),
            warnings=warnings,
        )

    def _normalize_sheet_row(self, record: RawLineRecord, context: NormalizationContext) -> CandidateItem:
        fields = record.fields
        warnings: list[str] = []

        name = " ".join(fields.get("item_name", "").split())
        if not name:
            raise NormalizationError(
                f"Row {record.row}: item_name is empty",
                position=record.position,
                field="item_name",
            )

        description = clean_description(fields.get("description", "")) or None

        quantity, warning = parse_quantity(fields.get("quantity"))
        if warning:
            warnings.append(warning)

        bid = self._amount(fields.get("bid_amount"), record.position, "bid_amount", record.row)
        if bid is None:
            raise NormalizationError(
                f"Row {record.row}: bid_amount is empty",
                position=record.position,
                field="bid_amount",
            )

        premium = self._amount(fields.get("buyers_premium"), record.position, "buyers_premium", record.row)
        if premium is None:
            premium = apply_rate(bid, context.buyers_premium_percent)

        tax = self._amount(fields.get("sales_tax"), record.position, "sales_tax", record.row)
        if tax is None:
            tax = apply_rate(bid + premium, context.sales_tax_percent)

        shipping = self._amount(fields.get("shipping_cost"), record.position, "shipping_cost", record.row)

        return CandidateItem(
            invoice_id=context.invoice_id,
            auction_id=context.auction_id,
            line_position=record.position,
            source_row=record.row,
            name=name,
            description=description,
            quantity=quantity,
            bid_amount=bid,
            buyers_premium=premium,
            sales_tax=tax,
            shipping_cost=shipping,
            acquisition_date=context.acquisition_date,
            keywords=extract_keywords(f"{name} {description or ''}"),
            category_hint=fields.get("category") or None,
            condition_hint=fields.get("condition") or None,
            warnings=warnings,
        )

    def _amount(
        self,
        text: str | None,
        position: int,
        field: str,
        row: int | None = None,
    ) -> Decimal | None:
        """Parse a money field, turning parse failures into record errors."""
        try:
            return parse_currency(text)
        except ValueError as e:
            where = f"Row {row}" if row is not None else f"Line {position}"
            raise NormalizationError(f"{where}: invalid {field}: {e}", position=position, field=field) from e
