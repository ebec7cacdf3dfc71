"""Pydantic models for line items and import jobs."""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

# Monetary amounts are carried as cents-quantized Decimals
CENTS = Decimal("0.01")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ItemCategory(str, Enum):
    """Inventory category assigned to an item."""

    ANTIQUES = "antiques"
    ART = "art"
    BOOKS = "books"
    CERAMICS = "ceramics"
    CHINA = "china"
    CLOTHING = "clothing"
    COINS = "coins"
    COLLECTIBLES = "collectibles"
    ELECTRONICS = "electronics"
    FURNITURE = "furniture"
    GLASS = "glass"
    JEWELRY = "jewelry"
    LINENS = "linens"
    MEMORABILIA = "memorabilia"
    MUSICAL = "musical"
    POTTERY = "pottery"
    SILVER = "silver"
    STAMPS = "stamps"
    TOOLS = "tools"
    TOYS = "toys"
    VINTAGE = "vintage"
    OTHER = "other"


class ItemCondition(str, Enum):
    """Physical condition assigned to an item."""

    MINT = "mint"
    EXCELLENT = "excellent"
    VERY_GOOD = "very_good"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    RESTORATION = "restoration"
    PARTS = "parts"
    UNKNOWN = "unknown"


class FileKind(str, Enum):
    """Kind of source document."""

    PDF = "pdf"
    SPREADSHEET = "spreadsheet"


class JobStatus(str, Enum):
    """Lifecycle status of an import job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD = "dead"


class JobPriority(int, Enum):
    """Queue tier. Lower values are dequeued first."""

    HIGH = 0
    NORMAL = 1
    LOW = 2


class RawLineRecord(BaseModel):
    """One logical row of a source document, before any typing."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(..., ge=1, description="1-based ordinal within the document")
    page: int | None = Field(default=None, description="1-based PDF page number")
    row: int | None = Field(default=None, description="1-based spreadsheet row number")
    tokens: tuple[str, ...] = Field(default=(), description="Text fragments in reading order")
    description: str = Field(default="", description="Descriptive text run")
    amount_text: str | None = Field(default=None, description="Trailing numeric token")
    fields: dict[str, str] = Field(
        default_factory=dict,
        description="Spreadsheet cells keyed by semantic field name",
    )

    @property
    def text(self) -> str:
        return " ".join(self.tokens)


class AuctionMetadata(BaseModel):
    """Per-invoice auction details from the auction spreadsheet."""

    invoice_id: str
    auction_id: int | None = None
    auction_date: date | None = None
    buyers_premium_percent: Decimal | None = Field(default=None, ge=0, le=100)
    sales_tax_percent: Decimal | None = Field(default=None, ge=0, le=100)


class CandidateItem(BaseModel):
    """A normalized line item. Amounts are either valid or None."""

    invoice_id: str
    auction_id: int | None = None
    line_position: int = Field(..., ge=1)
    source_page: int | None = None
    source_row: int | None = None
    name: str = Field(..., min_length=1)
    description: str | None = None
    quantity: int = Field(default=1, ge=1)
    bid_amount: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    buyers_premium: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    sales_tax: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    shipping_cost: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    acquisition_date: date | None = None
    keywords: list[str] = Field(default_factory=list)
    category_hint: str | None = Field(default=None, description="Category given by the source")
    condition_hint: str | None = Field(default=None, description="Condition given by the source")
    warnings: list[str] = Field(default_factory=list)


class ClassifiedItem(CandidateItem):
    """A candidate item with its category and condition. Immutable."""

    model_config = ConfigDict(frozen=True)

    lot_id: UUID
    category: ItemCategory = Field(default=ItemCategory.OTHER)
    condition: ItemCondition = Field(default=ItemCondition.UNKNOWN)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    matched_keywords: list[str] = Field(default_factory=list)


class RecordError(BaseModel):
    """A record-level problem reported on the job result."""

    position: int | None = None
    field: str | None = None
    code: str = "normalization_error"
    message: str


class JobOptions(BaseModel):
    """Submission options for an import job."""

    force: bool = Field(default=False, description="Reprocess even if already imported")
    dry_run: bool = Field(default=False, description="Run the pipeline without committing")
    priority: JobPriority = Field(default=JobPriority.NORMAL)


class SourceRef(BaseModel):
    """Where a job's document lives and what it claims to be."""

    path: Path
    invoice_id: str = Field(..., min_length=1)
    auction_id: int | None = None
    file_kind: FileKind | None = Field(default=None, description="Detected when not given")

    @property
    def filename(self) -> str:
        return self.path.name


class JobResult(BaseModel):
    """Outcome payload of an import job."""

    items_produced: int = 0
    inserted_count: int = 0
    updated_count: int = 0
    items: list[ClassifiedItem] = Field(default_factory=list)
    errors: list[RecordError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    low_confidence: bool = False
    empty_pages: list[int] = Field(default_factory=list)
    committed_positions: list[int] = Field(default_factory=list)
    duplicate_of: UUID | None = Field(default=None, description="Job whose result was reused")
    dry_run: bool = False
    processing_time_ms: int | None = None


class JobError(BaseModel):
    """Batch-level failure of the latest attempt."""

    code: str
    message: str
    retryable: bool = False


class ImportJob(BaseModel):
    """An import job and its lifecycle state."""

    job_id: UUID = Field(default_factory=uuid4)
    source: SourceRef
    options: JobOptions = Field(default_factory=JobOptions)
    status: JobStatus = Field(default=JobStatus.PENDING)
    attempts: int = Field(default=0, ge=0)
    sequence: int = Field(default=0, description="Enqueue order, used for FIFO")
    idempotency_key: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    cancel_requested: bool = False
    result: JobResult | None = None
    error: JobError | None = None


class JobStatusView(BaseModel):
    """What a caller polling a job gets back."""

    job_id: UUID
    status: JobStatus
    attempts: int
    result: JobResult | None = None
    error: JobError | None = None


class SeedOutcome(BaseModel):
    """Last known outcome for one source document fingerprint."""

    fingerprint: str
    invoice_id: str
    source_name: str
    job_id: UUID
    status: JobStatus = JobStatus.COMPLETED
    recorded_at: datetime = Field(default_factory=utc_now)
    result: JobResult
