"""Auction invoice ingestion: PDF and spreadsheet line items to classified inventory."""

__version__ = "0.1.0"
