"""Normalization of raw records into typed line items."""

from .auctions import load_auction_metadata
from .fields import parse_currency, parse_date, parse_percent, parse_quantity
from .normalizer import FieldNormalizer, NormalizationContext

__all__ = [
    "FieldNormalizer",
    "NormalizationContext",
    "load_auction_metadata",
    "parse_currency",
    "parse_date",
    "parse_percent",
    "parse_quantity",
]
