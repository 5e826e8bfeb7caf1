import logging
from dataclasses import dataclass
from typing import Optional

from config import settings as default_settings
from core.concat import ConcatenationStrategy
from core.engine import MediaTransformEngine
from core.errors import PipelineError
from core.jobs import JobRegistry
from core.layout import CaptionSpec, layout_caption
from utils.fetcher import MediaFetcher
from utils.storage import StoragePublisher
from utils.tempfiles import TempAssetStore

logger = logging.getLogger(__name__)

# Fixed checkpoints, not a measurement of work done
PROGRESS_STARTED = 10
PROGRESS_SOURCE_FETCHED = 30
PROGRESS_OVERLAY_FETCHED = 50
PROGRESS_CAPTIONED = 70
PROGRESS_CONCATENATED = 85
PROGRESS_PUBLISHED = 95
PROGRESS_DONE = 100


@dataclass(frozen=True)
class JobRequest:
    source_clip_url: str
    overlay_clip_url: str
    caption: CaptionSpec


class PipelineOrchestrator:
    """Runs one job: fetch, caption, concatenate, publish, clean up.

    Stages run strictly in sequence. The first failing stage ends the run with
    ``registry.fail``; the per-run temp directory is removed either way.
    """

    def __init__(self, registry: JobRegistry, fetcher: MediaFetcher,
                 engine: MediaTransformEngine, publisher: StoragePublisher,
                 settings=default_settings,
                 concat: Optional[ConcatenationStrategy] = None):
        self.registry = registry
        self.fetcher = fetcher
        self.engine = engine
        self.publisher = publisher
        self.settings = settings
        self.concat = concat or ConcatenationStrategy(engine)

    def run(self, job_id: str, request: JobRequest) -> Optional[str]:
        logger.info("Starting processing for job %s", job_id)
        store = None
        error = None
        try:
            store = TempAssetStore(self.settings.temp_dir, prefix=f"job-{job_id}-")
            video_url = self._process(job_id, request, store)
        except PipelineError as e:
            logger.error("Video processing failed for job %s: %s", job_id, e)
            error = str(e) or type(e).__name__
        except Exception as e:
            logger.exception("Unexpected failure in job %s", job_id)
            error = f"Unexpected error: {e}"
        finally:
            if store is not None:
                store.cleanup()

        if error is not None:
            self.registry.fail(job_id, error)
            return None

        self.registry.set_progress(job_id, PROGRESS_DONE)
        self.registry.complete(job_id, video_url)
        logger.info("Video processing completed for job %s: %s", job_id, video_url)
        return video_url

    def _process(self, job_id: str, request: JobRequest, store: TempAssetStore) -> str:
        s = self.settings
        self.registry.set_progress(job_id, PROGRESS_STARTED)

        source = store.path("source.mp4")
        self.fetcher.fetch(request.source_clip_url, source)
        self.registry.set_progress(job_id, PROGRESS_SOURCE_FETCHED)

        overlay = store.path("overlay.mp4")
        self.fetcher.fetch(request.overlay_clip_url, overlay)
        self.registry.set_progress(job_id, PROGRESS_OVERLAY_FETCHED)

        lines = layout_caption(
            request.caption,
            max_chars_per_line=s.caption_max_chars,
            max_lines=s.caption_max_lines,
            line_spacing=s.caption_line_spacing,
            max_length=s.caption_max_length,
        )
        if not lines:
            logger.warning("Job %s: caption empty after cleaning, no text drawn", job_id)
        captioned = store.path("captioned.mp4")
        self.engine.overlay_text(source, captioned, lines)
        self.registry.set_progress(job_id, PROGRESS_CAPTIONED)

        merged = store.path("final.mp4")
        result = self.concat.merge(captioned, overlay, merged, store)
        if result.degraded:
            logger.warning("Job %s: publishing captioned clip without the second clip", job_id)
        self.registry.set_progress(job_id, PROGRESS_CONCATENATED)

        video_url = self.publisher.publish(merged, f"generated-{job_id}.mp4")
        self.registry.set_progress(job_id, PROGRESS_PUBLISHED)
        return video_url
