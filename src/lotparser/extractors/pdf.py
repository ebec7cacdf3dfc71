"""PDF line-item extractor using PyMuPDF."""

import logging
import re
from dataclasses import dataclass
from statistics import median

import fitz  # PyMuPDF

from ..core.errors import CorruptDocument, NoExtractableContent
from ..core.models import RawLineRecord
from ..utils.file_handlers import FileType
from .base import BaseExtractor, ExtractionResult

logger = logging.getLogger(__name__)

# Item table header, e.g. "LOT  DESCRIPTION  PRICE" or "LEAD  ITEM  PRICE".
# The whole line must be the column header.
HEADER_RE = re.compile(r"^\s*(LOT\b.*|LEAD\b.*\bITEM\b.*)\bPRICE\s*$", re.IGNORECASE)

# First line after the item table
FOOTER_RE = re.compile(r"^\s*(A payment of|SUB\s*-?\s*TOTAL|(GRAND\s+)?TOTAL\b)", re.IGNORECASE)

# Long runs of dashes used as fillers between description and price
FILLER_RE = re.compile(r"-{7,}")

PAGE_FURNITURE_RE = re.compile(r"^page\s+\d+(\s*(of|/)\s*\d+)?$", re.IGNORECASE)

CURRENCY_SYMBOLS = ("$", "€", "£")
CURRENCY_CODES = {"USD", "EUR", "GBP"}

_NUMERIC_START_RE = re.compile(r"^[$€£]?\(?\d")
_DIGIT_SEP_DIGIT_RE = re.compile(r"\d[.,]\d")


@dataclass
class _Word:
    x0: float
    y0: float
    x1: float
    y1: float
    text: str

    @property
    def center_y(self) -> float:
        return (self.y0 + self.y1) / 2

    @property
    def height(self) -> float:
        return self.y1 - self.y0


@dataclass
class _VisualLine:
    page: int
    text: str


def is_amount_token(token: str) -> bool:
    """Check if a token looks like a money amount (possibly malformed).

    Plain integers such as lot numbers do not count: a candidate needs a
    currency symbol or a digit-separator-digit sequence.
    """
    if not _NUMERIC_START_RE.match(token):
        return False
    return token.startswith(CURRENCY_SYMBOLS) or bool(_DIGIT_SEP_DIGIT_RE.search(token))


def is_header_line(text: str) -> bool:
    """Check if a line is the item table's column header (and not an item)."""
    if not HEADER_RE.match(text):
        return False
    return not any(is_amount_token(token) for token in text.split())


def group_words_into_lines(words: list[_Word]) -> list[list[_Word]]:
    """
    Rebuild visual lines from positioned word fragments.

    Words are clustered by vertical centre, then each line is ordered
    left to right. The content stream order of the PDF is ignored.
    """
    if not words:
        return []

    heights = [w.height for w in words if w.height > 0]
    tolerance = max(2.0, 0.5 * median(heights)) if heights else 2.0

    ordered = sorted(words, key=lambda w: (w.center_y, w.x0))
    lines: list[list[_Word]] = []
    current: list[_Word] = []
    current_center = 0.0

    for word in ordered:
        if current and abs(word.center_y - current_center) > tolerance:
            lines.append(current)
            current = []
        current.append(word)
        current_center = sum(w.center_y for w in current) / len(current)

    if current:
        lines.append(current)

    return [sorted(line, key=lambda w: (w.x0, w.y0)) for line in lines]


class PDFExtractor(BaseExtractor):
    """Extract item rows from native (text layer) PDF invoices."""

    SUPPORTED_TYPES = {FileType.PDF}

    def extract(self, content: bytes, filename: str | None = None) -> ExtractionResult:
        """
        Extract item rows from an auction invoice PDF.

        Reading order is rebuilt from word positions on every page. Lines
        ending in a money amount become records; description-only lines
        before them are joined into the record's description.

        Args:
            content: PDF file bytes
            filename: Original filename (logging only)

        Returns:
            ExtractionResult with one record per item row

        Raises:
            CorruptDocument: If PyMuPDF cannot open the document
            NoExtractableContent: If no item rows were found
        """
        lines, page_count, empty_pages = self._read_lines(content, filename)

        warnings: list[str] = []
        if empty_pages:
            warnings.append(
                "Pages without a text layer (scanned images?): "
                + ", ".join(str(p) for p in empty_pages)
            )

        records = self._parse_item_rows(lines, warnings)

        if not records:
            raise NoExtractableContent(
                f"No item rows found in {filename or 'PDF'}",
                low_confidence=bool(empty_pages),
                warnings=warnings,
            )

        logger.info(f"Extracted {len(records)} item rows from {filename or 'PDF'} ({page_count} pages)")

        return ExtractionResult(
            records=records,
            warnings=warnings,
            source_type="pdf_native" if not empty_pages else "pdf_partial_scan",
            page_count=page_count,
            empty_pages=empty_pages,
        )

    def supports_file_type(self, file_type: str) -> bool:
        """Check if this extractor supports the given file type."""
        try:
            ft = FileType(file_type)
            return ft in self.SUPPORTED_TYPES
        except ValueError:
            return False

    def _read_lines(
        self,
        content: bytes,
        filename: str | None,
    ) -> tuple[list[_VisualLine], int, list[int]]:
        """Open the PDF and return its visual lines in reading order."""
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except Exception as e:
            raise CorruptDocument(f"Cannot open {filename or 'PDF'}: {e}") from e

        try:
            if doc.needs_pass:
                raise CorruptDocument(f"{filename or 'PDF'} is password protected")
            if doc.page_count == 0:
                raise CorruptDocument(f"{filename or 'PDF'} has no pages")

            lines: list[_VisualLine] = []
            empty_pages: list[int] = []

            for page_index, page in enumerate(doc):
                page_no = page_index + 1
                # (x0, y0, x1, y1, word, block_no, line_no, word_no)
                words = [
                    _Word(*word_data[:5])
                    for word_data in page.get_text("words")
                    if word_data[4].strip()
                ]
                if not words:
                    empty_pages.append(page_no)
                    logger.warning(f"Page {page_no} of {filename or 'PDF'} has no extractable text")
                    continue

                for line_words in group_words_into_lines(words):
                    text = " ".join(w.text for w in line_words)
                    lines.append(_VisualLine(page=page_no, text=text))

            return lines, doc.page_count, empty_pages
        finally:
            doc.close()

    def _parse_item_rows(self, lines: list[_VisualLine], warnings: list[str]) -> list[RawLineRecord]:
        """Turn visual lines into item records."""
        in_table = not any(is_header_line(line.text) for line in lines)
        if in_table:
            warnings.append("No item table header found, parsing from start of document")

        records: list[RawLineRecord] = []
        pending: list[str] = []

        for line in lines:
            text = line.text.strip()

            # The table is entered once; headers repeated on later pages are skipped
            if is_header_line(text):
                in_table = True
                pending = []
                continue

            if not in_table or not text or PAGE_FURNITURE_RE.match(text):
                continue

            if FOOTER_RE.match(text):
                logger.debug(f"Found footer on page {line.page}, stopping: {text!r}")
                break

            # Long dashes are filler: keep the left part, plus a price after them
            if FILLER_RE.search(text):
                left, right = (part.strip() for part in FILLER_RE.split(text, maxsplit=1))
                right_tokens = right.split()
                if right_tokens and is_amount_token(right_tokens[-1]):
                    left = f"{left} {right}"
                text = left.strip()
                if not text:
                    continue

            tokens = text.split()
            amount, desc_tokens = self._split_amount(tokens)

            if amount is None:
                # Part of a multi-line description
                pending.append(text)
                continue

            description = " ".join(pending + desc_tokens).strip()
            row_tokens = tuple(" ".join(pending).split()) + tuple(tokens)
            pending = []

            if not description:
                logger.debug(f"Skipping amount without description on page {line.page}: {text!r}")
                continue

            records.append(
                RawLineRecord(
                    position=len(records) + 1,
                    page=line.page,
                    tokens=row_tokens,
                    description=description,
                    amount_text=amount,
                )
            )

        # A buffered description without a price is header or note text
        if pending:
            logger.debug(f"Discarding {len(pending)} trailing lines without a price")

        return records

    def _split_amount(self, tokens: list[str]) -> tuple[str | None, list[str]]:
        """Split a trailing money token (with a detached symbol/code) off a line."""
        if not tokens or not is_amount_token(tokens[-1]):
            return None, tokens

        amount = tokens[-1]
        rest = tokens[:-1]
        if rest and (rest[-1] in CURRENCY_SYMBOLS or rest[-1].upper() in CURRENCY_CODES):
            amount = f"{rest[-1]}{amount}"
            rest = rest[:-1]
        return amount, rest
