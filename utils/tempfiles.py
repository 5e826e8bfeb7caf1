import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)


class TempAssetStore:
    """Per-run working directory for intermediate media files.

    Every path handed out lives under one directory owned by a single job run,
    so cleanup is one recursive delete. Cleanup never raises.
    """

    def __init__(self, root: str, prefix: str = "job-"):
        os.makedirs(root, exist_ok=True)
        self.directory = Path(tempfile.mkdtemp(prefix=prefix, dir=root))
        self._created: List[Path] = []

    def path(self, name: str) -> Path:
        path = self.directory / name
        self._created.append(path)
        return path

    @property
    def created(self) -> List[Path]:
        return list(self._created)

    def discard(self, path: Optional[Path]):
        if path is None:
            return
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temp asset %s: %s", path, e)

    def cleanup(self):
        if not self.directory.exists():
            return
        try:
            shutil.rmtree(self.directory)
        except OSError as e:
            logger.warning("Temp cleanup failed for %s: %s", self.directory, e)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False
