import logging
from pathlib import Path

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from config import settings as default_settings
from core.errors import ConfigurationError, UploadError

logger = logging.getLogger(__name__)


def build_s3_client(settings=default_settings):
    return boto3.client(
        's3',
        endpoint_url=settings.s3_endpoint,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
        config=Config(
            signature_version='s3v4',
            connect_timeout=settings.upload_connect_timeout,
            read_timeout=settings.upload_read_timeout,
        )
    )


class StoragePublisher:
    """Writes finished videos to the bucket under ``storage_prefix``."""

    content_type = "video/mp4"

    def __init__(self, settings=default_settings, client=None):
        self.settings = settings
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = build_s3_client(self.settings)
        return self._client

    def object_key(self, logical_name: str) -> str:
        prefix = self.settings.storage_prefix.strip("/")
        return f"{prefix}/{logical_name}" if prefix else logical_name

    def public_url(self, logical_name: str) -> str:
        base = self.settings.public_base_url.rstrip("/")
        return f"{base}/{self.object_key(logical_name)}"

    def _check_configured(self):
        missing = [
            name for name in ("s3_bucket", "public_base_url")
            if not getattr(self.settings, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Storage destination not configured: missing {', '.join(missing)}"
            )

    def publish(self, local_path, logical_name: str) -> str:
        self._check_configured()
        key = self.object_key(logical_name)
        logger.info("Uploading to storage: %s", key)
        try:
            with open(Path(local_path), "rb") as body:
                self.client.put_object(
                    Bucket=self.settings.s3_bucket,
                    Key=key,
                    Body=body,
                    ContentType=self.content_type,
                )
        except (BotoCoreError, ClientError, OSError) as e:
            raise UploadError(f"Storage upload failed: {e}") from e

        url = self.public_url(logical_name)
        logger.info("Upload completed: %s", url)
        return url
