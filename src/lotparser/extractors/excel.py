"""Excel and CSV extractor using openpyxl and pandas."""

import io
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import pandas as pd
from openpyxl import load_workbook

from ..core.errors import CorruptDocument, MissingRequiredHeaders, NoExtractableContent
from ..core.models import RawLineRecord
from ..utils.file_handlers import FileType, detect_file_type
from .base import BaseExtractor, ExtractionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SheetSchema:
    """Semantic columns a spreadsheet may carry."""

    name: str
    required: tuple[str, ...]
    optional: tuple[str, ...] = ()
    aliases: dict[str, str] = field(default_factory=dict)

    @property
    def fields(self) -> tuple[str, ...]:
        return self.required + self.optional


AUCTION_METADATA_SCHEMA = SheetSchema(
    name="auction metadata",
    required=("invoice_id", "auction_id"),
    optional=("date", "buyers_premium_percent", "sales_tax_percent"),
    aliases={
        "invoice": "invoice_id",
        "invoice_number": "invoice_id",
        "invoice_no": "invoice_id",
        "auction": "auction_id",
        "auction_number": "auction_id",
        "auction_date": "date",
        "buyers_premium": "buyers_premium_percent",
        "buyer_premium_percent": "buyers_premium_percent",
        "premium_percent": "buyers_premium_percent",
        "bp_percent": "buyers_premium_percent",
        "sales_tax": "sales_tax_percent",
        "tax_percent": "sales_tax_percent",
        "tax_rate": "sales_tax_percent",
    },
)

INVENTORY_ITEMS_SCHEMA = SheetSchema(
    name="inventory items",
    required=("item_name", "bid_amount"),
    optional=(
        "description",
        "quantity",
        "buyers_premium",
        "sales_tax",
        "shipping_cost",
        "category",
        "condition",
    ),
    aliases={
        "name": "item_name",
        "item": "item_name",
        "title": "item_name",
        "bid": "bid_amount",
        "hammer_price": "bid_amount",
        "price": "bid_amount",
        "qty": "quantity",
        "premium": "buyers_premium",
        "buyers_premium_amount": "buyers_premium",
        "tax": "sales_tax",
        "shipping": "shipping_cost",
    },
)

_HEADER_JUNK_RE = re.compile(r"[^a-z0-9]+")


def normalize_header(value: Any) -> str:
    """Turn a header cell into a snake_case key ("Buyer's Premium %" -> "buyers_premium_percent")."""
    text = str(value or "").strip().lower().replace("'", "").replace("%", " percent ")
    return _HEADER_JUNK_RE.sub("_", text).strip("_")


def cell_to_text(cell: Any) -> str:
    """Carry a cell value as text without going through binary floats twice."""
    if cell is None:
        return ""
    if isinstance(cell, bool):
        return "true" if cell else "false"
    if isinstance(cell, datetime):
        if cell.time() == datetime.min.time():
            return cell.date().isoformat()
        return cell.isoformat()
    if isinstance(cell, date):
        return cell.isoformat()
    if isinstance(cell, float):
        if cell != cell:  # NaN from pandas
            return ""
        # repr gives the shortest string that round-trips to the same float
        return format(Decimal(repr(cell)).normalize(), "f")
    return str(cell).strip()


class ExcelExtractor(BaseExtractor):
    """Extract rows from Excel and CSV files against a header schema."""

    SUPPORTED_TYPES = {
        FileType.EXCEL_XLSX,
        FileType.EXCEL_XLS,
        FileType.CSV,
    }

    def __init__(self, schema: SheetSchema = INVENTORY_ITEMS_SCHEMA):
        self.schema = schema

    def extract(self, content: bytes, filename: str | None = None) -> ExtractionResult:
        """
        Extract rows from the first sheet of an Excel or CSV file.

        The first non-empty row is the header. Columns are mapped onto the
        schema's semantic fields; unknown columns are ignored.

        Args:
            content: File bytes
            filename: Original filename to determine format

        Returns:
            ExtractionResult with one record per data row

        Raises:
            CorruptDocument: If the file cannot be read as a spreadsheet
            MissingRequiredHeaders: If required schema columns are absent
            NoExtractableContent: If the sheet has a header but no data
        """
        file_type = detect_file_type(content, filename)

        try:
            if file_type == FileType.CSV:
                rows = self._read_csv(content)
                source_type = "csv"
            elif file_type == FileType.EXCEL_XLS:
                rows = self._read_xls(content)
                source_type = "excel_xls"
            else:
                rows = self._read_xlsx(content)
                source_type = "excel_xlsx"
        except Exception as e:
            raise CorruptDocument(f"Cannot read spreadsheet {filename or ''}: {e}".strip()) from e

        if not rows:
            raise NoExtractableContent(f"Spreadsheet {filename or ''} is empty".strip())

        header_row_no, header = rows[0]
        column_map = self._map_columns(header)

        warnings: list[str] = []
        ignored = [str(h) for h in header if h not in (None, "") and normalize_header(h) not in self._lookup]
        if ignored:
            warnings.append(f"Ignored unknown columns: {', '.join(ignored)}")

        records: list[RawLineRecord] = []
        for row_no, row in rows[1:]:
            fields = {
                name: cell_to_text(row[idx]) if idx < len(row) else ""
                for idx, name in column_map.items()
            }
            if not any(fields.values()):
                continue
            records.append(
                RawLineRecord(
                    position=len(records) + 1,
                    row=row_no,
                    tokens=tuple(value for value in fields.values() if value),
                    description=fields.get("description", ""),
                    fields=fields,
                )
            )

        if not records:
            raise NoExtractableContent(
                f"Spreadsheet {filename or ''} has a header (row {header_row_no}) but no data rows".strip(),
                warnings=warnings,
            )

        logger.info(f"Extracted {len(records)} {self.schema.name} rows from {filename or 'spreadsheet'}")

        return ExtractionResult(
            records=records,
            warnings=warnings,
            source_type=source_type,
            page_count=1,
        )

    @property
    def _lookup(self) -> dict[str, str]:
        lookup = {name: name for name in self.schema.fields}
        lookup.update(self.schema.aliases)
        return lookup

    def _map_columns(self, header: list[Any]) -> dict[int, str]:
        """Map column indexes to schema fields, first match wins."""
        lookup = self._lookup
        column_map: dict[int, str] = {}
        seen: set[str] = set()

        for idx, cell in enumerate(header):
            key = lookup.get(normalize_header(cell))
            if key and key not in seen:
                column_map[idx] = key
                seen.add(key)

        missing = [name for name in self.schema.required if name not in seen]
        if missing:
            raise MissingRequiredHeaders(missing, self.schema.name)

        return column_map

    def _read_xlsx(self, content: bytes) -> list[tuple[int, list[Any]]]:
        """Read the first sheet of an XLSX file using openpyxl."""
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        try:
            sheet = wb[wb.sheetnames[0]]
            rows = []
            for row_no, row in enumerate(sheet.iter_rows(values_only=True), start=1):
                # Skip completely empty rows
                if any(cell not in (None, "") for cell in row):
                    rows.append((row_no, list(row)))
            return rows
        finally:
            wb.close()

    def _read_xls(self, content: bytes) -> list[tuple[int, list[Any]]]:
        """Read the first sheet of an XLS file using pandas."""
        df = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=object)
        return self._frame_rows(df)

    def _read_csv(self, content: bytes) -> list[tuple[int, list[Any]]]:
        """Read a CSV file, trying common encodings."""
        for encoding in ["utf-8-sig", "latin-1", "cp1252"]:
            try:
                df = pd.read_csv(
                    io.BytesIO(content),
                    encoding=encoding,
                    header=None,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=False,
                )
                return self._frame_rows(df)
            except UnicodeDecodeError:
                continue

        raise ValueError("Could not decode CSV with any supported encoding")

    def _frame_rows(self, df: pd.DataFrame) -> list[tuple[int, list[Any]]]:
        rows = []
        for row_no, values in enumerate(df.itertuples(index=False, name=None), start=1):
            cells = [None if (isinstance(v, float) and v != v) else v for v in values]
            if any(cell not in (None, "") for cell in cells):
                rows.append((row_no, cells))
        return rows

    def supports_file_type(self, file_type: str) -> bool:
        """Check if this extractor supports the given file type."""
        try:
            ft = FileType(file_type)
            return ft in self.SUPPORTED_TYPES
        except ValueError:
            return False
