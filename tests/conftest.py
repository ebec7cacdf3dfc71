"""Pytest configuration and fixtures."""

import io
from decimal import Decimal
from pathlib import Path

import fitz
import pytest
from openpyxl import Workbook

from lotparser.config import Settings
from lotparser.core.models import RawLineRecord
from lotparser.normalizers import NormalizationContext
from lotparser.persistence import InMemoryGateway


def build_pdf(pages: list[list[str]]) -> bytes:
    """Create a native PDF with one text line per entry; an empty list is a blank page."""
    doc = fitz.open()
    for lines in pages:
        page = doc.new_page()
        for idx, text in enumerate(lines):
            page.insert_text((72, 72 + idx * 20), text, fontsize=11)
    content = doc.tobytes()
    doc.close()
    return content


def build_xlsx(rows: list[list]) -> bytes:
    """Create an xlsx workbook whose first sheet holds the given rows."""
    wb = Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def pdf_factory():
    return build_pdf


@pytest.fixture
def xlsx_factory():
    return build_xlsx


@pytest.fixture
def two_line_invoice_pdf() -> bytes:
    """The smallest useful invoice: two priced lines, no table header."""
    return build_pdf([["Victorian Teapot $150.00", "Glass Vase $45.00"]])


@pytest.fixture
def auction_invoice_pdf() -> bytes:
    """A two-page auction invoice with header, wrapped description and footer."""
    return build_pdf([
        [
            "Estate Auctions Inc.",
            "Invoice 10442",
            "LOT DESCRIPTION PRICE",
            "1 Sterling Silver Tea Set $1,234.56",
            "2 Pair of Brass Andirons",
            "with dolphin feet $85.00",
            "3 3 x Depression Glass Bowl $12.50",
        ],
        [
            "LOT DESCRIPTION PRICE",
            "4 Oak Dresser, good condition $310.00",
            "SUBTOTAL $1,642.06",
            "5 Not an item $1.00",
        ],
    ])


@pytest.fixture
def inventory_xlsx() -> bytes:
    """Inventory item sheet with one malformed bid amount."""
    return build_xlsx([
        ["Item Name", "Description", "Qty", "Bid", "Shipping", "Category", "Notes"],
        ["Victorian Teapot", "Floral transfer print", 1, 150, None, None, "shelf 3"],
        ["Cut Glass Bowl", None, 2, "12.3.4", None, None, None],
        ["Oak Dresser", "Four drawers", 1, 310.5, 25, "Furniture", None],
    ])


@pytest.fixture
def auctions_xlsx() -> bytes:
    """Auction metadata sheet."""
    return build_xlsx([
        ["Invoice ID", "Auction ID", "Date", "Buyer's Premium %", "Sales Tax %"],
        ["INV-1", 1201, "2024-03-09", 18, None],
        ["INV-2", 1202, "03/16/2024", "0.15", "7.5"],
        ["INV-3", "abc", None, None, None],
    ])


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment and the working directory."""
    return Settings(
        _env_file=None,
        worker_pool_size=2,
        max_attempts=3,
        upload_dir=tmp_path / "uploads",
        seed_state_path=tmp_path / "seed_state.json",
    )


@pytest.fixture
def context() -> NormalizationContext:
    """Default premium and tax for invoice INV-1."""
    return NormalizationContext(
        invoice_id="INV-1",
        auction_id=1201,
        buyers_premium_percent=Decimal("20"),
        sales_tax_percent=Decimal("8"),
    )


@pytest.fixture
def pdf_record() -> RawLineRecord:
    return RawLineRecord(
        position=1,
        page=1,
        tokens=("Victorian", "Teapot", "$150.00"),
        description="Victorian Teapot",
        amount_text="$150.00",
    )


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()
