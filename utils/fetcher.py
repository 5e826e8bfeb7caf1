import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from config import settings
from core.errors import DownloadError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def is_absolute_http_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class MediaFetcher:
    """Streams a remote asset to a local path. No retries."""

    def __init__(self, timeout: Optional[float] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self.timeout = timeout if timeout is not None else settings.download_timeout
        self.transport = transport

    def fetch(self, url: str, destination) -> None:
        if not isinstance(url, str) or not is_absolute_http_url(url):
            raise DownloadError(f"Invalid source URL: {url!r}")

        destination = Path(destination)
        logger.info("Downloading: %s", url)
        try:
            with httpx.Client(timeout=self.timeout, follow_redirects=True,
                              transport=self.transport) as client:
                with client.stream("GET", url) as response:
                    if not response.is_success:
                        raise DownloadError(
                            f"HTTP {response.status_code}: {response.reason_phrase} ({url})"
                        )
                    with open(destination, "wb") as f:
                        for chunk in response.iter_bytes(CHUNK_SIZE):
                            f.write(chunk)
        except DownloadError:
            destination.unlink(missing_ok=True)
            raise
        except (httpx.HTTPError, OSError) as e:
            destination.unlink(missing_ok=True)
            raise DownloadError(f"Download failed for {url}: {e}") from e

        logger.info("Download completed: %s (%d bytes)", url, destination.stat().st_size)
