"""Job and seed-state stores.

Both come in an in-memory flavour and a JSON-file flavour. The file
stores rewrite the whole file on every change (write to a temp file, then
rename), which is fine for the few hundred invoices of a seeding run.
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from uuid import UUID

from ..core.models import ImportJob, SeedOutcome

logger = logging.getLogger(__name__)


def _write_json_atomic(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    os.replace(tmp_path, path)


def _read_json(path: Path) -> dict:
    if not path.exists():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    return json.loads(text)


class JobStore(ABC):
    """Abstract base class for import job stores."""

    @abstractmethod
    def get(self, job_id: UUID) -> ImportJob | None:
        """Return a copy of the job, or None if unknown."""

    @abstractmethod
    def save(self, job: ImportJob) -> None:
        """Insert or replace a job."""

    @abstractmethod
    def all(self) -> list[ImportJob]:
        """All jobs in enqueue order."""


class InMemoryJobStore(JobStore):
    """Job store kept in a dictionary."""

    def __init__(self):
        self._jobs: dict[UUID, ImportJob] = {}
        self._lock = threading.Lock()

    def get(self, job_id: UUID) -> ImportJob | None:
        with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    def save(self, job: ImportJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = job.model_copy(deep=True)

    def all(self) -> list[ImportJob]:
        with self._lock:
            jobs = [job.model_copy(deep=True) for job in self._jobs.values()]
        return sorted(jobs, key=lambda j: j.sequence)


class JsonFileJobStore(InMemoryJobStore):
    """Job store persisted to a JSON file, loaded on construction."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        for raw in _read_json(self.path).get("jobs", []):
            job = ImportJob.model_validate(raw)
            self._jobs[job.job_id] = job
        if self._jobs:
            logger.info(f"Loaded {len(self._jobs)} jobs from {self.path}")

    def save(self, job: ImportJob) -> None:
        with self._lock:
            self._jobs[job.job_id] = job.model_copy(deep=True)
            payload = {"jobs": [j.model_dump(mode="json") for j in self._jobs.values()]}
            _write_json_atomic(self.path, payload)


class SeedStateStore(ABC):
    """Record of which documents were already imported, by fingerprint."""

    @abstractmethod
    def lookup(self, fingerprint: str) -> SeedOutcome | None:
        """Last recorded outcome for a fingerprint."""

    @abstractmethod
    def record(self, fingerprint: str, outcome: SeedOutcome) -> None:
        """Store the outcome of a finished import."""


class InMemorySeedState(SeedStateStore):
    """Seed state kept in a dictionary."""

    def __init__(self):
        self._outcomes: dict[str, SeedOutcome] = {}
        self._lock = threading.Lock()

    def lookup(self, fingerprint: str) -> SeedOutcome | None:
        with self._lock:
            return self._outcomes.get(fingerprint)

    def record(self, fingerprint: str, outcome: SeedOutcome) -> None:
        with self._lock:
            self._outcomes[fingerprint] = outcome

    def __len__(self) -> int:
        return len(self._outcomes)


class JsonFileSeedState(InMemorySeedState):
    """Seed state persisted to a JSON file so reruns skip finished invoices."""

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)
        for fingerprint, raw in _read_json(self.path).get("outcomes", {}).items():
            self._outcomes[fingerprint] = SeedOutcome.model_validate(raw)
        if self._outcomes:
            logger.info(f"Loaded seed state for {len(self._outcomes)} documents from {self.path}")

    def record(self, fingerprint: str, outcome: SeedOutcome) -> None:
        with self._lock:
            self._outcomes[fingerprint] = outcome
            payload = {
                "outcomes": {fp: o.model_dump(mode="json") for fp, o in self._outcomes.items()}
            }
            _write_json_atomic(self.path, payload)
