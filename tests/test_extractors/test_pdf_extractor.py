"""Tests for the PDF line-item extractor."""

import pytest

from lotparser.core.errors import CorruptDocument, NoExtractableContent
from lotparser.extractors import PDFExtractor
from lotparser.extractors.pdf import _Word, group_words_into_lines, is_amount_token, is_header_line


class TestPDFExtractor:
    """Test cases for PDFExtractor."""

    def setup_method(self):
        """Setup test fixtures."""
        self.extractor = PDFExtractor()

    def test_two_line_invoice(self, two_line_invoice_pdf):
        """Test that each priced line becomes one record, in order."""
        result = self.extractor.extract(two_line_invoice_pdf, "two_lines.pdf")

        assert [r.description for r in result.records] == ["Victorian Teapot", "Glass Vase"]
        assert [r.amount_text for r in result.records] == ["$150.00", "$45.00"]
        assert [r.position for r in result.records] == [1, 2]
        assert not result.low_confidence
        assert any("header" in w.lower() for w in result.warnings)

    def test_header_wrapped_lines_and_footer(self, auction_invoice_pdf):
        """Test header skipping, multi-line descriptions and the footer stop."""
        result = self.extractor.extract(auction_invoice_pdf, "auction.pdf")

        assert result.page_count == 2
        assert [r.amount_text for r in result.records] == ["$1,234.56", "$85.00", "$12.50", "$310.00"]
        assert result.records[1].description == "2 Pair of Brass Andirons with dolphin feet"
        assert result.records[3].page == 2
        assert all("Not an item" not in r.description for r in result.records)

    def test_continuation_page_without_header(self, pdf_factory):
        """Test that later pages stay inside the item table even when a line mentions lot and price."""
        content = pdf_factory([
            ["LOT DESCRIPTION PRICE", "1 Oak Chair $10.00"],
            ["2 Brass Lamp $20.00", "3 Pilot pen with price tag $3.00", "4 Teacup $4.00"],
        ])

        result = self.extractor.extract(content, "continued.pdf")

        assert [r.description for r in result.records] == [
            "1 Oak Chair",
            "2 Brass Lamp",
            "3 Pilot pen with price tag",
            "4 Teacup",
        ]
        assert [r.page for r in result.records] == [1, 2, 2, 2]

    def test_item_mentioning_lot_and_price_is_not_a_header(self, pdf_factory):
        content = pdf_factory([["Lot of brass keys, price each $5.00", "Glass Vase $45.00"]])

        result = self.extractor.extract(content, "no_header.pdf")

        assert [r.amount_text for r in result.records] == ["$5.00", "$45.00"]
        assert any("header" in w.lower() for w in result.warnings)

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("LOT DESCRIPTION PRICE", True),
            ("Lead Item Price", True),
            ("LOT  DESCRIPTION  PRICE  $10.00", False),
            ("3 Pilot pen with price tag", False),
            ("Slot machine price list", False),
        ],
    )
    def test_is_header_line(self, text, expected):
        assert is_header_line(text) is expected

    def test_filler_dashes_keep_price(self, pdf_factory):
        content = pdf_factory([["Brass Andirons ---------- $85.00"]])

        result = self.extractor.extract(content, "filler.pdf")

        assert len(result.records) == 1
        assert result.records[0].description == "Brass Andirons"
        assert result.records[0].amount_text == "$85.00"

    def test_empty_page_flags_low_confidence(self, pdf_factory):
        """Test that a page without text is reported, not silently skipped."""
        content = pdf_factory([[], ["Glass Vase $45.00"]])

        result = self.extractor.extract(content, "scan.pdf")

        assert result.empty_pages == [1]
        assert result.low_confidence
        assert len(result.records) == 1

    def test_blank_document_has_no_content(self, pdf_factory):
        content = pdf_factory([[]])

        with pytest.raises(NoExtractableContent) as exc_info:
            self.extractor.extract(content, "blank.pdf")

        assert exc_info.value.low_confidence

    def test_corrupt_bytes(self):
        """Test that unreadable bytes raise CorruptDocument."""
        with pytest.raises(CorruptDocument):
            self.extractor.extract(b"this is not a pdf at all", "broken.pdf")

    def test_extraction_is_deterministic(self, auction_invoice_pdf):
        first = self.extractor.extract(auction_invoice_pdf, "auction.pdf")
        second = self.extractor.extract(auction_invoice_pdf, "auction.pdf")

        assert first.records == second.records

    def test_supports_file_type(self):
        assert self.extractor.supports_file_type("pdf")
        assert not self.extractor.supports_file_type("csv")


class TestLineGrouping:
    """Test cases for rebuilding visual lines from word fragments."""

    def test_out_of_order_fragments(self):
        """Test that words are grouped by height and sorted left to right."""
        words = [
            _Word(200, 100, 240, 112, "$45.00"),
            _Word(72, 80, 120, 92, "Victorian"),
            _Word(72, 101, 100, 113, "Glass"),
            _Word(200, 81, 250, 93, "$150.00"),
            _Word(125, 80, 160, 92, "Teapot"),
            _Word(105, 100, 130, 112, "Vase"),
        ]

        lines = group_words_into_lines(words)

        assert [[w.text for w in line] for line in lines] == [
            ["Victorian", "Teapot", "$150.00"],
            ["Glass", "Vase", "$45.00"],
        ]

    @pytest.mark.parametrize(
        "token,expected",
        [("$150.00", True), ("1,234.56", True), ("$7", True), ("12", False), ("10442", False), ("Vase", False)],
    )
    def test_is_amount_token(self, token, expected):
        assert is_amount_token(token) is expected
