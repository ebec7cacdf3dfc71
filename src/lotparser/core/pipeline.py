"""Extract -> normalize -> classify pipeline for one source document."""

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable
from uuid import NAMESPACE_URL, UUID, uuid5

from ..classifiers import Classification, KeywordClassifier
from ..config import get_settings
from ..extractors import ExtractionResult, PDFExtractor
from ..normalizers import FieldNormalizer, NormalizationContext
from .errors import JobCancelled, NoExtractableContent, NormalizationError
from .models import CandidateItem, ClassifiedItem, FileKind, ItemCategory, ItemCondition, RecordError

# Lazy import for ExcelExtractor: pandas is only loaded for spreadsheets
if TYPE_CHECKING:
    from ..extractors.excel import ExcelExtractor

logger = logging.getLogger(__name__)

# Namespace for deterministic lot ids
LOT_NAMESPACE = uuid5(NAMESPACE_URL, "lotparser:lot")


def _get_excel_extractor():
    """Lazy load ExcelExtractor to avoid pandas import at module load."""
    from ..extractors.excel import ExcelExtractor
    return ExcelExtractor()


def lot_id_for(fingerprint: str, position: int) -> UUID:
    """Stable lot id: the same document and line always map to the same id."""
    return uuid5(LOT_NAMESPACE, f"{fingerprint}:{position}")


@dataclass
class PipelineOutcome:
    """Items and per-record problems produced from one document."""

    items: list[ClassifiedItem] = field(default_factory=list)
    errors: list[RecordError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    low_confidence: bool = False
    empty_pages: list[int] = field(default_factory=list)
    records_seen: int = 0
    processing_time_ms: int = 0


class IngestionPipeline:
    """
    Main document ingestion pipeline.

    Orchestrates: Extraction -> Normalization -> Classification -> Items

    Synchronous and free of I/O other than parsing the given bytes, so the
    orchestrator runs it in a worker thread.
    """

    def __init__(
        self,
        pdf_extractor: PDFExtractor | None = None,
        excel_extractor: "ExcelExtractor | None" = None,
        normalizer: FieldNormalizer | None = None,
        classifier: KeywordClassifier | None = None,
    ):
        """
        Initialize pipeline with its stages.

        If not provided, creates default instances. The classifier reads
        its rules from the configured rules file when one is set.
        """
        settings = get_settings()

        self.pdf_extractor = pdf_extractor or PDFExtractor()
        self._excel_extractor = excel_extractor  # Lazy loaded
        self.normalizer = normalizer or FieldNormalizer()

        if classifier is None:
            if settings.classifier_rules_file:
                classifier = KeywordClassifier.from_file(settings.classifier_rules_file)
            else:
                classifier = KeywordClassifier()
        self.classifier = classifier

    @property
    def excel_extractor(self):
        """Lazy load ExcelExtractor on first access."""
        if self._excel_extractor is None:
            self._excel_extractor = _get_excel_extractor()
        return self._excel_extractor

    def run(
        self,
        content: bytes,
        file_kind: FileKind,
        filename: str,
        context: NormalizationContext,
        fingerprint: str,
        should_stop: Callable[[], bool] | None = None,
    ) -> PipelineOutcome:
        """
        Process a document into classified items.

        Records are handled in source order. A record that fails to
        normalize is reported in ``errors`` and the rest go on.

        Args:
            content: Raw file bytes
            file_kind: PDF or spreadsheet
            filename: Original filename
            context: Per-invoice normalization values
            fingerprint: Document fingerprint, used for lot ids
            should_stop: Polled between records; True stops processing

        Returns:
            PipelineOutcome with items, record errors and warnings

        Raises:
            CorruptDocument: If the document cannot be parsed
            MissingRequiredHeaders: If a spreadsheet lacks required columns
            JobCancelled: If should_stop returned True (carries the partial outcome)
        """
        start_time = time.time()
        outcome = PipelineOutcome()

        logger.info(f"Processing {filename} as {file_kind.value}")

        try:
            extraction = self._extract(content, file_kind, filename)
        except NoExtractableContent as e:
            # A valid document without rows is a warning, not a failure
            logger.warning(f"{filename}: {e}")
            outcome.warnings.extend(e.warnings)
            outcome.warnings.append(str(e))
            outcome.low_confidence = e.low_confidence
            outcome.processing_time_ms = int((time.time() - start_time) * 1000)
            return outcome

        outcome.warnings.extend(extraction.warnings)
        outcome.low_confidence = extraction.low_confidence
        outcome.empty_pages = list(extraction.empty_pages)

        for record in extraction.records:
            if should_stop is not None and should_stop():
                outcome.processing_time_ms = int((time.time() - start_time) * 1000)
                logger.info(f"{filename}: stopped after {outcome.records_seen} records")
                raise JobCancelled(
                    f"Cancelled after {outcome.records_seen} of {len(extraction.records)} records",
                    outcome=outcome,
                )

            outcome.records_seen += 1
            try:
                candidate = self.normalizer.normalize(record, context)
            except NormalizationError as e:
                logger.warning(f"{filename}: {e.message}")
                outcome.errors.append(
                    RecordError(position=e.position, field=e.field, code=e.code, message=e.message)
                )
                continue

            for warning in candidate.warnings:
                outcome.warnings.append(f"Line {candidate.line_position}: {warning}")

            outcome.items.append(self._classify(candidate, fingerprint))

        outcome.processing_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"{filename}: {len(outcome.items)} items, {len(outcome.errors)} record errors "
            f"in {outcome.processing_time_ms}ms"
        )
        return outcome

    def _extract(self, content: bytes, file_kind: FileKind, filename: str) -> ExtractionResult:
        """Route content to the extractor for its kind."""
        if file_kind == FileKind.PDF:
            return self.pdf_extractor.extract(content, filename)
        return self.excel_extractor.extract(content, filename)

    def _classify(self, candidate: CandidateItem, fingerprint: str) -> ClassifiedItem:
        """Attach category, condition and lot id to a candidate."""
        category = _enum_or_none(ItemCategory, candidate.category_hint)
        condition = _enum_or_none(ItemCondition, candidate.condition_hint)

        if category is not None and condition is not None:
            classification = Classification(category=category, condition=condition, confidence=1.0)
        else:
            classification = self.classifier.classify(candidate.name, candidate.description)
            if category is not None:
                classification = Classification(
                    category=category,
                    condition=classification.condition,
                    confidence=1.0,
                    matched_keywords=classification.matched_keywords,
                )
            elif condition is not None:
                classification = Classification(
                    category=classification.category,
                    condition=condition,
                    confidence=classification.confidence,
                    matched_keywords=classification.matched_keywords,
                )

        return ClassifiedItem(
            **candidate.model_dump(),
            lot_id=lot_id_for(fingerprint, candidate.line_position),
            category=classification.category,
            condition=classification.condition,
            confidence=classification.confidence,
            matched_keywords=classification.matched_keywords,
        )


def _enum_or_none(enum_cls, value: str | None):
    """Match a free-text sheet value against an enum ("Very Good" -> very_good)."""
    if not value:
        return None
    key = "_".join(value.strip().lower().replace("-", " ").split())
    try:
        return enum_cls(key)
    except ValueError:
        return None
