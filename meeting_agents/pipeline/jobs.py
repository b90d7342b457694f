"""Job records and the keyed store the orchestrator writes to and the HTTP layer polls."""
import copy
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from meeting_agents.core.errors import InvalidTransitionError, NotFoundError
from meeting_agents.stages.base import StageResult, utc_now

PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"
TERMINAL_STATUSES = frozenset({COMPLETED, FAILED})


@dataclass
class Job:
    """One audio submission: job_id, status (processing | completed | failed), created_at, error (set iff failed)
    and stages (stage name -> StageResult, in execution order, only for attempted stages)."""

    job_id: str
    audio_path: str
    status: str = PROCESSING
    created_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    stages: Dict[str, StageResult] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id,
            "audio_file": self.audio_path.replace("\\", "/").rsplit("/", 1)[-1],
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
            "stages": {name: result.to_dict() for name, result in self.stages.items()},
        }

    def summary(self) -> Dict[str, Any]:
        """Listing view: no payloads, one availability flag per stage."""
        return {
            "job_id": self.job_id,
            "audio_file": self.audio_path.replace("\\", "/").rsplit("/", 1)[-1],
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "error": self.error,
            "stages": {name: result.success for name, result in self.stages.items()},
        }


class JobStore(ABC):
    """Keyed job store. Reads return snapshots; only the orchestrator calls the mutators."""

    @abstractmethod
    def create(self, audio_path: str) -> Job:
        raise NotImplementedError

    @abstractmethod
    def get(self, job_id: str) -> Job:
        raise NotImplementedError

    @abstractmethod
    def list(self) -> List[Job]:
        raise NotImplementedError

    @abstractmethod
    def record_stage(self, job_id: str, stage: str, result: StageResult) -> None:
        raise NotImplementedError

    @abstractmethod
    def finish(self, job_id: str, status: str, error: Optional[str] = None) -> Job:
        raise NotImplementedError


class InMemoryJobStore(JobStore):
    """Process-lifetime store (no eviction). A single lock keeps each read and write atomic."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def _get_locked(self, job_id: str) -> Job:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError("job", job_id, f"Job not found: {job_id}")
        return job

    def create(self, audio_path: str) -> Job:
        job = Job(job_id=str(uuid.uuid4()), audio_path=str(audio_path))
        with self._lock:
            self._jobs[job.job_id] = job
            return copy.deepcopy(job)

    def get(self, job_id: str) -> Job:
        with self._lock:
            return copy.deepcopy(self._get_locked(job_id))

    def list(self) -> List[Job]:
        with self._lock:
            jobs = [copy.deepcopy(j) for j in self._jobs.values()]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def record_stage(self, job_id: str, stage: str, result: StageResult) -> None:
        with self._lock:
            job = self._get_locked(job_id)
            if job.status in TERMINAL_STATUSES:
                raise InvalidTransitionError(f"Job {job_id} is already {job.status}")
            job.stages[stage] = copy.deepcopy(result)

    def finish(self, job_id: str, status: str, error: Optional[str] = None) -> Job:
        if status not in TERMINAL_STATUSES:
            raise InvalidTransitionError(f"Cannot finish a job with status {status!r}")
        with self._lock:
            job = self._get_locked(job_id)
            if job.status in TERMINAL_STATUSES:
                raise InvalidTransitionError(f"Job {job_id} is already {job.status}")
            job.status = status
            job.error = error if status == FAILED else None
            job.finished_at = utc_now()
            return copy.deepcopy(job)
