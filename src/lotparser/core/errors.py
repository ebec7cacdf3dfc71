"""Exception hierarchy for the ingestion core."""


class LotParserError(Exception):
    """Base class for all ingestion errors."""

    #: Error code recorded on the job result.
    code = "error"

    #: Whether running the same job again could succeed.
    retryable = False


class ExtractionError(LotParserError):
    """The document could not be turned into raw records."""

    code = "extraction_error"


class CorruptDocument(ExtractionError):
    """The container format could not be parsed. Same bytes fail again."""

    code = "corrupt_document"


class MissingRequiredHeaders(ExtractionError):
    """A spreadsheet header row lacks one or more required columns."""

    code = "missing_required_headers"

    def __init__(self, missing: list[str], schema: str):
        self.missing = missing
        self.schema = schema
        super().__init__(
            f"Spreadsheet is missing required {schema} columns: {', '.join(missing)}"
        )


class NoExtractableContent(ExtractionError):
    """A valid document without any item rows. Not fatal for the job."""

    code = "no_extractable_content"

    def __init__(self, message: str, low_confidence: bool = False, warnings: list[str] | None = None):
        super().__init__(message)
        self.low_confidence = low_confidence
        self.warnings = list(warnings or [])


class NormalizationError(LotParserError):
    """One record could not be normalized. Recorded, never fatal."""

    code = "normalization_error"

    def __init__(self, message: str, position: int | None = None, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.position = position
        self.field = field


class PersistenceFailure(LotParserError):
    """The storage collaborator rejected or lost the batch."""

    code = "persistence_failure"
    retryable = True


class JobCancelled(LotParserError):
    """Processing stopped on a cancellation request."""

    code = "cancelled"
    retryable = True

    def __init__(self, message: str = "Job cancelled", outcome=None):
        super().__init__(message)
        #: Partial pipeline outcome produced before the stop, if any.
        self.outcome = outcome


class JobNotFound(LotParserError):
    """No job with the requested id exists."""

    code = "job_not_found"


class InvalidTransition(LotParserError):
    """A job status change that the state machine does not allow."""

    code = "invalid_transition"
