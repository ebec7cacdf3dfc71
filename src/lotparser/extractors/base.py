"""Base extractor interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..core.models import RawLineRecord


@dataclass
class ExtractionResult:
    """Result from document extraction."""

    # Item rows in source order
    records: list[RawLineRecord] = field(default_factory=list)

    # Any warnings or issues during extraction
    warnings: list[str] = field(default_factory=list)

    # Source type for tracking
    source_type: str = "unknown"

    page_count: int = 0

    # 1-based page numbers without a text layer
    empty_pages: list[int] = field(default_factory=list)

    @property
    def low_confidence(self) -> bool:
        """Check if some pages could not be read (scanned images)."""
        return bool(self.empty_pages)


class BaseExtractor(ABC):
    """Abstract base class for document extractors.

    Extraction is a pure function of the input bytes: extractors hold no
    per-document state, so re-running on the same bytes yields the same
    records.
    """

    @abstractmethod
    def extract(self, content: bytes, filename: str | None = None) -> ExtractionResult:
        """
        Extract raw line records from a document.

        Args:
            content: Raw file bytes
            filename: Original filename (optional, for hints)

        Returns:
            ExtractionResult with records in source order

        Raises:
            CorruptDocument: If the container format cannot be parsed
            NoExtractableContent: If the document is valid but has no rows
        """

    @abstractmethod
    def supports_file_type(self, file_type: str) -> bool:
        """
        Check if this extractor supports the given file type.

        Args:
            file_type: FileType enum value as string

        Returns:
            True if supported
        """
