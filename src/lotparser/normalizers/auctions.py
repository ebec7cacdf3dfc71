"""Auction metadata sheet loader."""

import logging

from ..core.errors import NoExtractableContent
from ..core.models import AuctionMetadata
from .fields import parse_date, parse_int, parse_percent

logger = logging.getLogger(__name__)


def load_auction_metadata(content: bytes, filename: str | None = None) -> dict[str, AuctionMetadata]:
    """
    Build the invoice id -> auction metadata directory from a spreadsheet.

    Rows with an unusable auction number or percentage are skipped with a
    warning; a later row for the same invoice replaces an earlier one.

    Raises:
        CorruptDocument: If the file is not a readable spreadsheet
        MissingRequiredHeaders: If invoice_id or auction_id columns are absent
    """
    from ..extractors.excel import AUCTION_METADATA_SCHEMA, ExcelExtractor

    extractor = ExcelExtractor(schema=AUCTION_METADATA_SCHEMA)
    try:
        extraction = extractor.extract(content, filename)
    except NoExtractableContent as e:
        logger.warning(f"Auction sheet {filename or ''} has no rows: {e}")
        return {}

    directory: dict[str, AuctionMetadata] = {}
    for record in extraction.records:
        fields = record.fields
        invoice_id = fields.get("invoice_id", "").strip()
        if not invoice_id:
            logger.warning(f"Auction sheet row {record.row}: missing invoice id, skipped")
            continue

        try:
            metadata = AuctionMetadata(
                invoice_id=invoice_id,
                auction_id=parse_int(fields.get("auction_id")),
                auction_date=parse_date(fields.get("date")),
                buyers_premium_percent=parse_percent(fields.get("buyers_premium_percent")),
                sales_tax_percent=parse_percent(fields.get("sales_tax_percent")),
            )
        except ValueError as e:
            logger.warning(f"Auction sheet row {record.row}: {e}, skipped")
            continue

        if invoice_id in directory:
            logger.debug(f"Auction sheet row {record.row}: replaces earlier entry for {invoice_id}")
        directory[invoice_id] = metadata

    logger.info(f"Loaded auction metadata for {len(directory)} invoices")
    return directory
