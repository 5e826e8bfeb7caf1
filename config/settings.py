from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # Object storage (Cloudflare R2 / any S3-compatible endpoint)
    s3_endpoint: Optional[str] = None
    s3_bucket: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    s3_region: str = "auto"
    public_base_url: Optional[str] = None
    storage_prefix: str = "generated-videos"

    # Core settings
    temp_dir: str = "/tmp"
    api_port: int = 3001
    log_level: str = "INFO"
    cors_origins: str = "*"

    # Stage deadlines in seconds
    download_timeout: float = 120.0
    transform_timeout: float = 600.0
    upload_connect_timeout: float = 10.0
    upload_read_timeout: float = 300.0

    # Encoder configs
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    video_preset: str = "ultrafast"  # Fast encoding, less CPU
    video_crf: int = 28
    canonical_width: int = 720
    canonical_height: int = 1280
    canonical_fps: int = 30
    audio_sample_rate: int = 44100
    audio_channels: int = 2
    audio_bitrate: str = "128k"

    # Caption configs
    caption_font_size: int = 32
    caption_border_width: int = 2
    caption_line_spacing: int = 40  # Pixels between consecutive caption baselines
    caption_max_chars: int = 25
    caption_max_lines: int = 3
    caption_max_length: int = 100  # Raw text is clipped before wrapping

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def cors_origin_list(self) -> list:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


try:
    settings = Settings()
except Exception:
    settings = Settings(_env_file=None)
