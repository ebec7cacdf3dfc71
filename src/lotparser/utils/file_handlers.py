"""File type detection and handling utilities."""

import re
import uuid
from enum import Enum
from pathlib import Path

from ..core.models import FileKind


class FileType(str, Enum):
    """Detected file types."""

    PDF = "pdf"
    EXCEL_XLSX = "excel_xlsx"
    EXCEL_XLS = "excel_xls"
    CSV = "csv"
    UNKNOWN = "unknown"


# MIME type to FileType mapping
MIME_TO_FILETYPE: dict[str, FileType] = {
    "application/pdf": FileType.PDF,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileType.EXCEL_XLSX,
    "application/vnd.ms-excel": FileType.EXCEL_XLS,
    "application/x-ole-storage": FileType.EXCEL_XLS,
    "application/CDFV2": FileType.EXCEL_XLS,
    "text/csv": FileType.CSV,
    "text/plain": FileType.CSV,  # Often CSV files are detected as text/plain
}

# File extensions, checked before content sniffing
EXTENSION_TO_FILETYPE: dict[str, FileType] = {
    ".pdf": FileType.PDF,
    ".xlsx": FileType.EXCEL_XLSX,
    ".xlsm": FileType.EXCEL_XLSX,
    ".xls": FileType.EXCEL_XLS,
    ".csv": FileType.CSV,
}

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def detect_file_type(
    file_content: bytes | None = None,
    filename: str | None = None,
) -> FileType:
    """
    Detect file type from filename and/or content.

    Uses the extension when it is a known one, falls back to libmagic.

    Args:
        file_content: File bytes for magic detection
        filename: Filename for extension-based detection

    Returns:
        Detected FileType
    """
    if filename:
        detected = EXTENSION_TO_FILETYPE.get(Path(filename).suffix.lower())
        if detected is not None:
            return detected

    if file_content:
        if file_content.startswith(b"%PDF"):
            return FileType.PDF

        # Lazy import: libmagic is only needed for files without a known extension
        import magic

        mime = magic.from_buffer(file_content[:8192], mime=True)
        detected = MIME_TO_FILETYPE.get(mime)
        if detected is not None:
            return detected
        # xlsx files are zip containers and are often reported as such
        if mime == "application/zip" and b"xl/" in file_content[:4096]:
            return FileType.EXCEL_XLSX

    return FileType.UNKNOWN


def is_spreadsheet_type(file_type: FileType) -> bool:
    """Check if file type is a spreadsheet (Excel, CSV)."""
    return file_type in {
        FileType.EXCEL_XLSX,
        FileType.EXCEL_XLS,
        FileType.CSV,
    }


def file_kind_for(file_type: FileType) -> FileKind | None:
    """Map a detected file type onto the pipeline's document kind."""
    if file_type == FileType.PDF:
        return FileKind.PDF
    if is_spreadsheet_type(file_type):
        return FileKind.SPREADSHEET
    return None


class FileHandler:
    """Handle file operations for submitted documents."""

    def __init__(self, max_size_bytes: int = 50 * 1024 * 1024):
        self.max_size_bytes = max_size_bytes

    def check_size(self, content: bytes) -> None:
        """
        Reject documents above the configured size.

        Raises:
            ValueError: If file exceeds max size
        """
        if len(content) > self.max_size_bytes:
            raise ValueError(
                f"File size {len(content)} bytes exceeds maximum "
                f"{self.max_size_bytes} bytes"
            )

    def read_source(self, path: Path) -> bytes:
        """Read a source document from disk, enforcing the size limit."""
        content = Path(path).read_bytes()
        self.check_size(content)
        return content

    def save_upload(self, content: bytes, filename: str, upload_dir: Path) -> Path:
        """
        Store uploaded bytes under the upload directory.

        The stored name is prefixed with a random id so that two uploads
        with the same filename do not overwrite each other.

        Returns:
            Path to the stored file
        """
        self.check_size(content)
        upload_dir = Path(upload_dir)
        upload_dir.mkdir(parents=True, exist_ok=True)
        safe_name = _UNSAFE_NAME_CHARS.sub("_", Path(filename).name) or "upload"
        target = upload_dir / f"{uuid.uuid4().hex}_{safe_name}"
        target.write_bytes(content)
        return target
