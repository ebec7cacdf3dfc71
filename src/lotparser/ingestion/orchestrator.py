"""Import job orchestration: queueing, claiming, retries and commits."""

import asyncio
import hashlib
import logging
import threading
from pathlib import Path
from uuid import UUID

from ..config import Settings, get_settings
from ..core.errors import (
    CorruptDocument,
    InvalidTransition,
    JobCancelled,
    JobNotFound,
    LotParserError,
    PersistenceFailure,
)
from ..core.models import (
    AuctionMetadata,
    FileKind,
    ImportJob,
    JobError,
    JobOptions,
    JobResult,
    JobStatus,
    JobStatusView,
    RecordError,
    SeedOutcome,
    SourceRef,
    utc_now,
)
from ..core.pipeline import IngestionPipeline, PipelineOutcome
from ..normalizers import NormalizationContext, load_auction_metadata
from ..persistence import PersistenceGateway
from ..utils.file_handlers import FileHandler, detect_file_type, file_kind_for
from .queue import JobQueue
from .status import TERMINAL_STATUSES, check_transition
from .stores import InMemoryJobStore, InMemorySeedState, JobStore, SeedStateStore

logger = logging.getLogger(__name__)


def fingerprint_for(content: bytes, invoice_id: str) -> str:
    """SHA-256 over the document bytes and the declared invoice id."""
    digest = hashlib.sha256()
    digest.update(content)
    digest.update(b"\x00")
    digest.update(invoice_id.encode("utf-8"))
    return digest.hexdigest()


def _outcome_to_result(outcome: PipelineOutcome | None, dry_run: bool = False) -> JobResult:
    if outcome is None:
        return JobResult(dry_run=dry_run)
    return JobResult(
        items_produced=len(outcome.items),
        items=outcome.items,
        errors=outcome.errors,
        warnings=outcome.warnings,
        low_confidence=outcome.low_confidence,
        empty_pages=outcome.empty_pages,
        dry_run=dry_run,
        processing_time_ms=outcome.processing_time_ms,
    )


class IngestionOrchestrator:
    """
    Runs import jobs through the pipeline on a fixed pool of asyncio workers.

    Job status moves pending -> processing -> completed / failed / dead.
    Claims and seed-state checks are serialized by one lock; pipeline work
    runs in a thread so the event loop stays responsive.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        job_store: JobStore | None = None,
        seed_state: SeedStateStore | None = None,
        pipeline: IngestionPipeline | None = None,
        settings: Settings | None = None,
        auctions: dict[str, AuctionMetadata] | None = None,
    ):
        self.settings = settings or get_settings()
        self.gateway = gateway
        self.job_store = job_store or InMemoryJobStore()
        self.seed_state = seed_state or InMemorySeedState()
        self.pipeline = pipeline or IngestionPipeline()
        self.file_handler = FileHandler(self.settings.max_file_size_bytes)
        self.auctions: dict[str, AuctionMetadata] = dict(auctions or {})

        self.queue = JobQueue()
        self._lock = asyncio.Lock()
        self._workers: list[asyncio.Task] = []
        self._sequence = max((job.sequence for job in self.job_store.all()), default=0)
        self._in_flight: dict[str, UUID] = {}
        self._deferred: dict[str, list[UUID]] = {}
        self._cancel_events: dict[UUID, threading.Event] = {}
        self._queued_here: set[UUID] = set()
        self._active: dict[int, UUID] = {}
        self._recovered = False

    # Auction metadata

    def set_auction_metadata(self, metadata: AuctionMetadata) -> None:
        self.auctions[metadata.invoice_id] = metadata

    def load_auctions(self, content: bytes, filename: str | None = None) -> int:
        """Load the auction sheet; returns the number of invoices it covers."""
        self.auctions.update(load_auction_metadata(content, filename))
        return len(self.auctions)

    # Submission

    async def enqueue(
        self,
        source: Path,
        invoice_id: str,
        auction_id: int | None = None,
        options: JobOptions | None = None,
        file_kind: FileKind | None = None,
    ) -> UUID:
        """
        Submit a document for import.

        Returns:
            The new job id. Poll ``get_status`` for progress.
        """
        async with self._lock:
            self._sequence += 1
            job = ImportJob(
                source=SourceRef(
                    path=Path(source),
                    invoice_id=invoice_id,
                    auction_id=auction_id,
                    file_kind=file_kind,
                ),
                options=options or JobOptions(),
                sequence=self._sequence,
            )
            self.job_store.save(job)
            self.queue.put(job)
            self._queued_here.add(job.job_id)

        logger.info(f"Enqueued job {job.job_id} for invoice {invoice_id} ({job.source.filename})")
        return job.job_id

    async def enqueue_bytes(
        self,
        content: bytes,
        filename: str,
        invoice_id: str,
        auction_id: int | None = None,
        options: JobOptions | None = None,
    ) -> UUID:
        """Store uploaded bytes under the upload directory, then enqueue them."""
        path = await asyncio.to_thread(
            self.file_handler.save_upload, content, filename, self.settings.upload_dir
        )
        return await self.enqueue(path, invoice_id, auction_id=auction_id, options=options)

    # Queries and control

    def get_status(self, job_id: UUID) -> JobStatusView:
        job = self._get_job(job_id)
        return JobStatusView(
            job_id=job.job_id,
            status=job.status,
            attempts=job.attempts,
            result=job.result,
            error=job.error,
        )

    async def claim(self, job_id: UUID) -> ImportJob:
        """
        Move a pending job to processing.

        Claiming a job that is already processing is a no-op returning it
        unchanged.

        Raises:
            JobNotFound: If the job does not exist
            InvalidTransition: If the job is neither pending nor processing
        """
        async with self._lock:
            return self._claim_locked(self._get_job(job_id))

    async def retry(self, job_id: UUID) -> JobStatusView:
        """
        Requeue a failed job.

        Raises:
            InvalidTransition: If the job is not failed, its error is not
                retryable, or its attempts are used up
        """
        async with self._lock:
            job = self._get_job(job_id)
            check_transition(job.status, JobStatus.PENDING)
            if job.error is not None and not job.error.retryable:
                raise InvalidTransition(f"Job {job_id} failed with {job.error.code}, which is not retryable")
            if job.attempts > self.settings.max_attempts:
                raise InvalidTransition(f"Job {job_id} used all {self.settings.max_attempts} retries")

            self._sequence += 1
            job.status = JobStatus.PENDING
            job.sequence = self._sequence
            job.cancel_requested = False
            job.completed_at = None
            self.job_store.save(job)
            self.queue.put(job)
            self._queued_here.add(job.job_id)

        logger.info(f"Job {job_id} requeued (retry {job.attempts}/{self.settings.max_attempts})")
        return self.get_status(job_id)

    async def cancel(self, job_id: UUID) -> JobStatusView:
        """
        Cancel a job.

        Pending jobs fail immediately; processing jobs stop after the
        current record. Finished jobs are left as they are.
        """
        async with self._lock:
            job = self._get_job(job_id)
            if job.status in TERMINAL_STATUSES:
                logger.info(f"Job {job_id} is already {job.status.value}, nothing to cancel")
            elif job.status == JobStatus.PENDING:
                job.status = JobStatus.FAILED
                job.error = JobError(code=JobCancelled.code, message="Cancelled before processing", retryable=True)
                job.completed_at = utc_now()
                self.job_store.save(job)
                logger.info(f"Job {job_id} cancelled while pending")
            elif job.status == JobStatus.PROCESSING:
                job.cancel_requested = True
                self.job_store.save(job)
                event = self._cancel_events.get(job_id)
                if event is not None:
                    event.set()
                logger.info(f"Cancellation requested for job {job_id}")
        return self.get_status(job_id)

    async def recover(self) -> None:
        """
        Restore queue state from the job store after a restart.

        Pending jobs are queued again; jobs left processing are marked
        failed as interrupted so they can be retried.
        """
        async with self._lock:
            if self._recovered:
                return
            self._recovered = True
            requeued = interrupted = 0
            for job in self.job_store.all():
                if job.status == JobStatus.PENDING:
                    if job.job_id not in self._queued_here:
                        self.queue.put(job)
                        requeued += 1
                elif job.status == JobStatus.PROCESSING:
                    self._mark_interrupted(job)
                    interrupted += 1
        if requeued or interrupted:
            logger.info(f"Recovered job store: {requeued} requeued, {interrupted} interrupted")

    async def start(self) -> None:
        """Recover stored jobs and start the worker pool."""
        if self._workers:
            return
        await self.recover()
        for idx in range(self.settings.worker_pool_size):
            self._workers.append(asyncio.create_task(self._worker(idx), name=f"lotparser-worker-{idx}"))
        logger.info(f"Started {len(self._workers)} workers")

    async def join(self) -> None:
        """Wait until every queued job has been processed."""
        await self.queue.join()

    async def stop(self) -> None:
        """
        Stop the workers. Jobs still queued stay pending in the store.

        Jobs a worker had claimed are marked failed as interrupted; jobs
        taken off the queue but not yet claimed are queued again.
        """
        for event in self._cancel_events.values():
            event.set()
        active = list(self._active.values())
        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        async with self._lock:
            for job_id in active:
                job = self.job_store.get(job_id)
                if job is None:
                    continue
                if job.status == JobStatus.PROCESSING:
                    self._mark_interrupted(job)
                elif job.status == JobStatus.PENDING:
                    self.queue.put(job)
        logger.info(f"Workers stopped ({len(active)} jobs were active)")

    # Processing

    async def _worker(self, idx: int) -> None:
        while True:
            job_id = await self.queue.get()
            self._active[idx] = job_id
            try:
                await self._process(job_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(f"Worker {idx}: unexpected error on job {job_id}")
                await self._finish_failed(job_id, "internal_error", str(e), retryable=True)
            finally:
                self._active.pop(idx, None)
                self.queue.task_done()

    async def _process(self, job_id: UUID) -> None:
        job = self.job_store.get(job_id)
        if job is None or job.status != JobStatus.PENDING:
            # Cancelled or already handled since it was queued
            return

        try:
            content = await asyncio.to_thread(self.file_handler.read_source, job.source.path)
        except OSError as e:
            await self._finish_failed(job_id, "source_unreadable", f"Cannot read {job.source.path}: {e}", retryable=True)
            return
        except ValueError as e:
            await self._finish_failed(job_id, "file_too_large", str(e), retryable=False)
            return

        fingerprint = fingerprint_for(content, job.source.invoice_id)

        async with self._lock:
            job = self._get_job(job_id)
            if job.status != JobStatus.PENDING:
                return

            owner = self._in_flight.get(fingerprint)
            if owner is not None:
                logger.info(f"Job {job_id} deferred: same document in flight as job {owner}")
                self._deferred.setdefault(fingerprint, []).append(job_id)
                return

            job = self._claim_locked(job)
            job.idempotency_key = fingerprint
            self.job_store.save(job)

            prior = None if job.options.force else self.seed_state.lookup(fingerprint)
            if prior is not None and prior.status == JobStatus.COMPLETED:
                job.status = JobStatus.COMPLETED
                job.result = prior.result.model_copy(update={"duplicate_of": prior.job_id})
                job.completed_at = utc_now()
                self.job_store.save(job)
                logger.info(f"Job {job_id}: {job.source.filename} already imported by job {prior.job_id}, skipped")
                return

            self._in_flight[fingerprint] = job_id
            cancel_event = threading.Event()
            self._cancel_events[job_id] = cancel_event

        try:
            await self._run_claimed(job, content, fingerprint, cancel_event)
        finally:
            async with self._lock:
                self._in_flight.pop(fingerprint, None)
                self._cancel_events.pop(job_id, None)
                for deferred_id in self._deferred.pop(fingerprint, []):
                    deferred = self.job_store.get(deferred_id)
                    if deferred is not None and deferred.status == JobStatus.PENDING:
                        self.queue.put(deferred)

    async def _run_claimed(
        self,
        job: ImportJob,
        content: bytes,
        fingerprint: str,
        cancel_event: threading.Event,
    ) -> None:
        source = job.source
        outcome: PipelineOutcome | None = None
        result: JobResult | None = None

        try:
            file_kind = source.file_kind or file_kind_for(detect_file_type(content, source.filename))
            if file_kind is None:
                raise CorruptDocument(f"Unsupported file type: {source.filename}")

            context = NormalizationContext.resolve(
                source.invoice_id,
                auction_id=source.auction_id,
                metadata=self.auctions.get(source.invoice_id),
                settings=self.settings,
            )

            outcome = await asyncio.to_thread(
                self.pipeline.run,
                content,
                file_kind,
                source.filename,
                context,
                fingerprint,
                cancel_event.is_set,
            )

            if cancel_event.is_set():
                raise JobCancelled("Cancelled before commit", outcome=outcome)

            result = _outcome_to_result(outcome, dry_run=job.options.dry_run)
            if job.options.dry_run:
                logger.info(f"Job {job.job_id}: dry run, {len(outcome.items)} items not committed")
            elif outcome.items:
                await self._commit(source.invoice_id, outcome, result)

        except JobCancelled as e:
            await self._finish_failed(
                job.job_id,
                e.code,
                str(e),
                retryable=True,
                result=_outcome_to_result(e.outcome or outcome),
                allow_dead=False,
            )
            return
        except LotParserError as e:
            logger.error(f"Job {job.job_id} failed: {e}")
            await self._finish_failed(
                job.job_id,
                e.code,
                str(e),
                retryable=e.retryable,
                result=result or _outcome_to_result(outcome, dry_run=job.options.dry_run),
            )
            return

        async with self._lock:
            job = self._get_job(job.job_id)
            check_transition(job.status, JobStatus.COMPLETED)
            job.status = JobStatus.COMPLETED
            job.result = result
            job.error = None
            job.completed_at = utc_now()
            self.job_store.save(job)

            if not job.options.dry_run:
                self.seed_state.record(
                    fingerprint,
                    SeedOutcome(
                        fingerprint=fingerprint,
                        invoice_id=source.invoice_id,
                        source_name=source.filename,
                        job_id=job.job_id,
                        result=result,
                    ),
                )

        logger.info(
            f"Job {job.job_id} completed: {result.items_produced} items, "
            f"{len(result.errors)} record errors"
        )

    async def _commit(self, invoice_id: str, outcome: PipelineOutcome, result: JobResult) -> None:
        """
        Hand the items to the gateway and fold its report into the result.

        Raises:
            PersistenceFailure: If the gateway stored only part of the batch.
                The result keeps the committed positions; a retry upserts
                the same lot ids.
        """
        commit = await self.gateway.upsert_batch(invoice_id, outcome.items)

        failed = set(commit.failed_positions)
        result.inserted_count = commit.inserted_count
        result.updated_count = commit.updated_count
        result.committed_positions = [
            item.line_position for item in outcome.items if item.line_position not in failed
        ]
        if not failed:
            return

        for position in sorted(failed):
            result.errors.append(
                RecordError(
                    position=position,
                    code=PersistenceFailure.code,
                    message=f"Line {position} was not stored",
                )
            )
        raise PersistenceFailure(
            f"Invoice {invoice_id}: {commit.committed_count} of {len(outcome.items)} items stored, "
            f"lines {', '.join(str(p) for p in sorted(failed))} failed"
        )

    async def _finish_failed(
        self,
        job_id: UUID,
        code: str,
        message: str,
        retryable: bool,
        result: JobResult | None = None,
        allow_dead: bool = True,
    ) -> None:
        """Record a failed attempt; a failure once the retries are used up makes the job dead."""
        async with self._lock:
            job = self.job_store.get(job_id)
            if job is None or job.status not in (JobStatus.PENDING, JobStatus.PROCESSING):
                return
            if job.status == JobStatus.PENDING:
                # Failed before it could be claimed
                job.attempts += 1
                job.status = JobStatus.PROCESSING

            status = JobStatus.FAILED
            if allow_dead and retryable and job.attempts > self.settings.max_attempts:
                status = JobStatus.DEAD

            check_transition(job.status, status)
            job.status = status
            job.error = JobError(code=code, message=message, retryable=retryable)
            if result is not None:
                job.result = result
            job.completed_at = utc_now()
            self.job_store.save(job)

        if status == JobStatus.DEAD:
            logger.error(f"Job {job_id} is dead after {job.attempts} attempts: {message}")
        else:
            logger.warning(f"Job {job_id} failed ({code}): {message}")

    def _claim_locked(self, job: ImportJob) -> ImportJob:
        if job.status == JobStatus.PROCESSING:
            return job
        check_transition(job.status, JobStatus.PROCESSING)
        job.status = JobStatus.PROCESSING
        job.attempts += 1
        job.started_at = utc_now()
        job.error = None
        self.job_store.save(job)
        logger.info(f"Claimed job {job.job_id} (attempt {job.attempts}, {self.settings.max_attempts} retries allowed)")
        return job

    def _mark_interrupted(self, job: ImportJob) -> None:
        job.status = JobStatus.FAILED
        job.error = JobError(code="interrupted", message="Processing was interrupted", retryable=True)
        job.completed_at = utc_now()
        self.job_store.save(job)
        logger.warning(f"Job {job.job_id} interrupted while processing")

    def _get_job(self, job_id: UUID) -> ImportJob:
        job = self.job_store.get(job_id)
        if job is None:
            raise JobNotFound(f"Job {job_id} not found")
        return job
