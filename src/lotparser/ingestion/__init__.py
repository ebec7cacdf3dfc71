"""Import job orchestration."""

from .orchestrator import IngestionOrchestrator, fingerprint_for
from .queue import JobQueue
from .status import ALLOWED_TRANSITIONS, can_transition
from .stores import (
    InMemoryJobStore,
    InMemorySeedState,
    JobStore,
    JsonFileJobStore,
    JsonFileSeedState,
    SeedStateStore,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "InMemoryJobStore",
    "InMemorySeedState",
    "IngestionOrchestrator",
    "JobQueue",
    "JobStore",
    "JsonFileJobStore",
    "JsonFileSeedState",
    "SeedStateStore",
    "can_transition",
    "fingerprint_for",
]
