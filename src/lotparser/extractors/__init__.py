"""Document extractors for PDF invoices and spreadsheets."""

from .base import BaseExtractor, ExtractionResult
from .pdf import PDFExtractor


# Lazy import for ExcelExtractor: pandas is only loaded for spreadsheets
def __getattr__(name):
    if name == "ExcelExtractor":
        from .excel import ExcelExtractor
        return ExcelExtractor
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "BaseExtractor",
    "ExcelExtractor",
    "ExtractionResult",
    "PDFExtractor",
]
