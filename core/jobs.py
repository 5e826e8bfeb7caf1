import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Job:
    id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: int = 0
    video_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.PROCESSING

    def to_dict(self) -> dict:
        data = {"status": self.status.value, "progress": self.progress}
        if self.video_url is not None:
            data["videoUrl"] = self.video_url
        if self.error is not None:
            data["error"] = self.error
        return data


class JobRegistry(ABC):
    """Keyed store of job state.

    Exactly one orchestrator run mutates a given job, so implementations only
    need atomic read-modify-write per job id. Terminal transitions are
    write-once: after ``complete`` or ``fail`` every further mutation for that
    id is ignored. Mutators return whether the change was applied.
    """

    @abstractmethod
    def create(self) -> str:
        ...

    @abstractmethod
    def get(self, job_id: str) -> Optional[Job]:
        ...

    @abstractmethod
    def set_progress(self, job_id: str, progress: int) -> bool:
        ...

    @abstractmethod
    def complete(self, job_id: str, video_url: str) -> bool:
        ...

    @abstractmethod
    def fail(self, job_id: str, error: str) -> bool:
        ...


class InMemoryJobRegistry(JobRegistry):
    """Process-lifetime registry; state is lost on restart."""

    def __init__(self):
        self._jobs: Dict[str, Job] = {}
        self._lock = threading.Lock()

    def create(self) -> str:
        job_id = str(uuid.uuid4())
        with self._lock:
            self._jobs[job_id] = Job(id=job_id)
        return job_id

    def get(self, job_id: str) -> Optional[Job]:
        # Jobs are frozen, so handing out the stored instance is a snapshot
        with self._lock:
            return self._jobs.get(job_id)

    def set_progress(self, job_id: str, progress: int) -> bool:
        progress = max(0, min(100, int(progress)))
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal or progress <= job.progress:
                return False
            self._jobs[job_id] = replace(job, progress=progress)
            return True

    def complete(self, job_id: str, video_url: str) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return False
            self._jobs[job_id] = replace(
                job, status=JobStatus.COMPLETED, progress=100, video_url=video_url
            )
            return True

    def fail(self, job_id: str, error: str) -> bool:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return False
            self._jobs[job_id] = replace(job, status=JobStatus.FAILED, error=error)
            return True

    def __len__(self):
        with self._lock:
            return len(self._jobs)
