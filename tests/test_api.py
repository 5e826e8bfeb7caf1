"""Tests for the HTTP layer and the background dispatcher."""

import threading

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from core.jobs import InMemoryJobRegistry, JobStatus
from core.pipeline import PipelineOrchestrator
from workers.dispatcher import JobDispatcher

from tests.conftest import OVERLAY_URL, SOURCE_URL

PAYLOAD = {
    "sourceClipUrl": SOURCE_URL,
    "overlayClipUrl": OVERLAY_URL,
    "captionText": "This changed my morning routine",
    "alignment": "top",
}


class GatedOrchestrator(PipelineOrchestrator):
    """Holds every run until the test opens the gate."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = threading.Event()

    def run(self, job_id, request):
        self.gate.wait(timeout=5)
        return super().run(job_id, request)


@pytest.fixture
def gated(registry, fetcher, engine, publisher, settings):
    return GatedOrchestrator(registry, fetcher, engine, publisher, settings=settings)


@pytest.fixture
def dispatcher(registry, gated):
    return JobDispatcher(registry, gated)


@pytest.fixture
def client(dispatcher):
    with TestClient(create_app(dispatcher)) as client:
        yield client


class TestSubmit:
    def test_returns_job_id_immediately(self, client, dispatcher, gated):
        response = client.post("/process-video", json=PAYLOAD)
        assert response.status_code == 200
        job_id = response.json()["jobId"]

        status = client.get(f"/job-status/{job_id}")
        assert status.status_code == 200
        assert status.json() == {"status": "processing", "progress": 0}

        gated.gate.set()
        assert dispatcher.wait(job_id, timeout=5)

    def test_job_runs_to_completion(self, client, dispatcher, gated):
        gated.gate.set()
        job_id = client.post("/process-video", json=PAYLOAD).json()["jobId"]
        assert dispatcher.wait(job_id, timeout=5)

        body = client.get(f"/job-status/{job_id}").json()
        assert body["status"] == "completed"
        assert body["progress"] == 100
        assert body["videoUrl"].endswith(f"/generated-videos/generated-{job_id}.mp4")
        assert "error" not in body

    def test_failed_job_reports_error(self, client, dispatcher, gated):
        gated.gate.set()
        payload = dict(PAYLOAD, sourceClipUrl="https://media.example.com/missing.mp4")
        job_id = client.post("/process-video", json=payload).json()["jobId"]
        assert dispatcher.wait(job_id, timeout=5)

        body = client.get(f"/job-status/{job_id}").json()
        assert body["status"] == "failed"
        assert "404" in body["error"]
        assert "videoUrl" not in body

    def test_accepts_original_field_names(self, client, gated):
        gated.gate.set()
        response = client.post("/process-video", json={
            "ugcVideoUrl": SOURCE_URL,
            "productDemoUrl": OVERLAY_URL,
            "hook": "Wait for it",
            "textAlignment": "bottom",
        })
        assert response.status_code == 200

    def test_unique_ids(self, client, gated):
        gated.gate.set()
        ids = {client.post("/process-video", json=PAYLOAD).json()["jobId"] for _ in range(5)}
        assert len(ids) == 5

    @pytest.mark.parametrize("field", ["sourceClipUrl", "overlayClipUrl", "captionText", "alignment"])
    def test_missing_field_rejected(self, client, field):
        payload = {k: v for k, v in PAYLOAD.items() if k != field}
        response = client.post("/process-video", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": "Missing required parameters"}

    def test_empty_caption_rejected(self, client):
        response = client.post("/process-video", json=dict(PAYLOAD, captionText=""))
        assert response.status_code == 400

    def test_invalid_alignment_rejected(self, client):
        payload = dict(PAYLOAD, alignment="left")
        assert client.post("/process-video", json=payload).status_code == 422


class TestStatus:
    def test_unknown_job(self, client):
        response = client.get("/job-status/does-not-exist")
        assert response.status_code == 404
        assert response.json() == {"detail": "Job not found"}


class TestHealth:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "OK"
        assert "timestamp" in body


class TestDispatcher:
    def test_submit_does_not_block(self, registry, dispatcher, gated):
        from core.layout import CaptionSpec
        from core.pipeline import JobRequest

        job_id = dispatcher.submit(JobRequest(SOURCE_URL, OVERLAY_URL, CaptionSpec("hi")))
        assert registry.get(job_id).status == JobStatus.PROCESSING
        gated.gate.set()
        assert dispatcher.wait(job_id, timeout=5)
        assert registry.get(job_id).status == JobStatus.COMPLETED

    def test_wait_on_unknown_job(self, dispatcher):
        assert dispatcher.wait("nope") is True

    def test_default_registry(self):
        from workers.dispatcher import create_dispatcher

        dispatcher = create_dispatcher()
        assert isinstance(dispatcher.registry, InMemoryJobRegistry)
        assert dispatcher.orchestrator.registry is dispatcher.registry
