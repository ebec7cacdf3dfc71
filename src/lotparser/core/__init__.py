"""Core module - models, errors and pipeline."""

from .errors import (
    CorruptDocument,
    ExtractionError,
    InvalidTransition,
    JobCancelled,
    JobNotFound,
    LotParserError,
    MissingRequiredHeaders,
    NoExtractableContent,
    NormalizationError,
    PersistenceFailure,
)
from .models import (
    AuctionMetadata,
    CandidateItem,
    ClassifiedItem,
    FileKind,
    ImportJob,
    ItemCategory,
    ItemCondition,
    JobOptions,
    JobPriority,
    JobResult,
    JobStatus,
    JobStatusView,
    RawLineRecord,
    SourceRef,
)

__all__ = [
    "AuctionMetadata",
    "CandidateItem",
    "ClassifiedItem",
    "CorruptDocument",
    "ExtractionError",
    "FileKind",
    "ImportJob",
    "InvalidTransition",
    "ItemCategory",
    "ItemCondition",
    "JobCancelled",
    "JobNotFound",
    "JobOptions",
    "JobPriority",
    "JobResult",
    "JobStatus",
    "JobStatusView",
    "LotParserError",
    "MissingRequiredHeaders",
    "NoExtractableContent",
    "NormalizationError",
    "PersistenceFailure",
    "RawLineRecord",
    "SourceRef",
]
