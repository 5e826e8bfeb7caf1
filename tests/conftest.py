"""
Pytest fixtures for the caption pipeline tests.

No test here shells out to ffmpeg or touches the network: the engine,
fetcher and publisher are replaced by in-process fakes that write plain bytes.
"""

import shutil
from pathlib import Path

import pytest

from config import Settings
from core.engine import MediaTransformEngine
from core.errors import DownloadError, TransformError, UploadError
from core.jobs import InMemoryJobRegistry
from core.pipeline import PipelineOrchestrator

SOURCE_URL = "https://media.example.com/ugc.mp4"
OVERLAY_URL = "https://media.example.com/demo.mp4"
PUBLIC_BASE = "https://cdn.example.com"


class FakeEngine(MediaTransformEngine):
    """Byte-level stand-in for ffmpeg.

    ``fail_on`` names operations that raise; ``empty_on`` names operations that
    report success but write a zero-byte file.
    """

    def __init__(self, fail_on=(), empty_on=()):
        self.fail_on = set(fail_on)
        self.empty_on = set(empty_on)
        self.calls = []

    def _write(self, op, dst, data):
        self.calls.append(op)
        if op in self.fail_on:
            raise TransformError(f"{op} failed")
        Path(dst).write_bytes(b"" if op in self.empty_on else data)

    def overlay_text(self, src, dst, lines):
        caption = "|".join(line.text for line in lines).encode()
        self._write("overlay_text", dst, Path(src).read_bytes() + caption)

    def normalize(self, src, dst):
        self._write("normalize", dst, b"N" + Path(src).read_bytes())

    def concat_copy(self, inputs, dst):
        self._write("concat_copy", dst, b"".join(Path(p).read_bytes() for p in inputs))

    def concat_filter(self, inputs, dst):
        self._write("concat_filter", dst, b"F" + b"".join(Path(p).read_bytes() for p in inputs))


class FakeFetcher:
    def __init__(self, payloads=None):
        self.payloads = payloads if payloads is not None else {
            SOURCE_URL: b"source-bytes" * 10,
            OVERLAY_URL: b"overlay-bytes" * 10,
        }
        self.fetched = []

    def fetch(self, url, destination):
        self.fetched.append(url)
        if url not in self.payloads:
            raise DownloadError(f"HTTP 404: Not Found ({url})")
        Path(destination).write_bytes(self.payloads[url])


class FakePublisher:
    def __init__(self, error=None):
        self.error = error
        self.published = {}

    def publish(self, local_path, logical_name):
        if self.error is not None:
            raise self.error
        self.published[logical_name] = Path(local_path).read_bytes()
        return f"{PUBLIC_BASE}/generated-videos/{logical_name}"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        temp_dir=str(tmp_path / "work"),
        s3_bucket="videos",
        s3_endpoint="https://account.r2.cloudflarestorage.com",
        s3_access_key="key",
        s3_secret_key="secret",
        public_base_url=PUBLIC_BASE + "/",
    )


@pytest.fixture
def registry():
    return InMemoryJobRegistry()


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def orchestrator(registry, fetcher, engine, publisher, settings):
    return PipelineOrchestrator(registry, fetcher, engine, publisher, settings=settings)


@pytest.fixture
def workdir(settings):
    path = Path(settings.temp_dir)
    path.mkdir(parents=True, exist_ok=True)
    yield path
    shutil.rmtree(path, ignore_errors=True)


def leftover_files(root):
    root = Path(root)
    if not root.exists():
        return []
    return [p for p in root.rglob("*")]


@pytest.fixture
def upload_error():
    return UploadError("Storage upload failed: AccessDenied")
