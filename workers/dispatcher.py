import logging
import threading
from typing import Dict, Optional

from config import settings as default_settings
from core.engine import FFmpegEngine
from core.jobs import InMemoryJobRegistry, JobRegistry
from core.pipeline import JobRequest, PipelineOrchestrator
from utils.fetcher import MediaFetcher
from utils.storage import StoragePublisher

logger = logging.getLogger(__name__)


class JobDispatcher:
    """Creates jobs and runs each one on its own daemon thread.

    There is no queue: every submission starts work immediately and the
    caller never waits on it.
    """

    def __init__(self, registry: JobRegistry, orchestrator: PipelineOrchestrator):
        self.registry = registry
        self.orchestrator = orchestrator
        self._threads: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()

    def submit(self, request: JobRequest) -> str:
        job_id = self.registry.create()
        thread = threading.Thread(
            target=self.orchestrator.run,
            args=(job_id, request),
            name=f"job-{job_id[:8]}",
            daemon=True,
        )
        with self._lock:
            self._threads = {k: t for k, t in self._threads.items() if t.is_alive()}
            self._threads[job_id] = thread
        thread.start()
        logger.info("Dispatched job %s", job_id)
        return job_id

    def wait(self, job_id: str, timeout: Optional[float] = None) -> bool:
        """Block until the job's thread exits; True if it is no longer running."""
        with self._lock:
            thread = self._threads.get(job_id)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()


def create_dispatcher(settings=default_settings, registry: Optional[JobRegistry] = None) -> JobDispatcher:
    registry = registry if registry is not None else InMemoryJobRegistry()
    orchestrator = PipelineOrchestrator(
        registry=registry,
        fetcher=MediaFetcher(timeout=settings.download_timeout),
        engine=FFmpegEngine(settings),
        publisher=StoragePublisher(settings),
        settings=settings,
    )
    return JobDispatcher(registry, orchestrator)
