import json
import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from config import settings as default_settings
from core.errors import TransformError
from core.layout import CaptionLine

logger = logging.getLogger(__name__)

STDERR_TAIL = 2000


class MediaTransformEngine(ABC):
    """Capabilities the pipeline needs from a media toolchain.

    Each operation either produces ``dst`` or raises :class:`TransformError`.
    """

    @abstractmethod
    def overlay_text(self, src: Path, dst: Path, lines: Sequence[CaptionLine]):
        ...

    @abstractmethod
    def normalize(self, src: Path, dst: Path):
        ...

    @abstractmethod
    def concat_copy(self, inputs: Sequence[Path], dst: Path):
        ...

    @abstractmethod
    def concat_filter(self, inputs: Sequence[Path], dst: Path):
        ...


@dataclass
class MediaInfo:
    duration: float
    has_audio: bool


def escape_drawtext(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("'", "'\\''").replace(":", "\\:")
    return f"'{escaped}'"


def channel_layout(channels: int) -> str:
    return {1: "mono", 2: "stereo"}.get(channels, f"{channels}c")


class FFmpegEngine(MediaTransformEngine):
    def __init__(self, settings=default_settings):
        self.settings = settings

    # -- helpers -----------------------------------------------------------

    def _run(self, cmd: List[str], action: str) -> subprocess.CompletedProcess:
        logger.debug("%s: %s", action, " ".join(cmd))
        try:
            return subprocess.run(
                cmd, check=True, capture_output=True,
                timeout=self.settings.transform_timeout
            )
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or b"").decode("utf-8", errors="replace")
            raise TransformError(f"{action} failed: {stderr[-STDERR_TAIL:].strip()}") from e
        except subprocess.TimeoutExpired as e:
            raise TransformError(
                f"{action} timed out after {self.settings.transform_timeout}s"
            ) from e
        except FileNotFoundError as e:
            raise TransformError(f"{action} failed: {cmd[0]} not available") from e

    def _scale_pad(self) -> str:
        s = self.settings
        w, h = s.canonical_width, s.canonical_height
        return (f"scale={w}:{h}:force_original_aspect_ratio=decrease,"
                f"pad={w}:{h}:(ow-iw)/2:(oh-ih)/2,setsar=1,"
                f"fps={s.canonical_fps},format=yuv420p")

    def _silence_input(self, duration: float) -> List[str]:
        s = self.settings
        layout = channel_layout(s.audio_channels)
        return ["-f", "lavfi", "-t", f"{duration:.3f}",
                "-i", f"anullsrc=channel_layout={layout}:sample_rate={s.audio_sample_rate}"]

    def _video_codec(self) -> List[str]:
        return ["-c:v", "libx264", "-preset", self.settings.video_preset,
                "-crf", str(self.settings.video_crf)]

    def _audio_codec(self) -> List[str]:
        s = self.settings
        return ["-c:a", "aac", "-ar", str(s.audio_sample_rate),
                "-ac", str(s.audio_channels), "-b:a", s.audio_bitrate]

    def probe(self, path: Path) -> MediaInfo:
        result = self._run(
            [self.settings.ffprobe_binary, "-v", "error",
             "-show_entries", "format=duration:stream=codec_type",
             "-of", "json", str(path)],
            f"Probe of {Path(path).name}"
        )
        try:
            data = json.loads(result.stdout or b"{}")
            duration = float(data.get("format", {}).get("duration") or 0.0)
        except (ValueError, TypeError) as e:
            raise TransformError(f"Unreadable probe output for {path}") from e
        streams = data.get("streams", [])
        has_audio = any(stream.get("codec_type") == "audio" for stream in streams)
        return MediaInfo(duration=duration, has_audio=has_audio)

    # -- operations --------------------------------------------------------

    def overlay_text(self, src: Path, dst: Path, lines: Sequence[CaptionLine]):
        if not lines:
            try:
                shutil.copyfile(src, dst)
            except OSError as e:
                raise TransformError(f"Text overlay failed: {e}") from e
            return
        s = self.settings
        filters = [
            f"drawtext=text={escape_drawtext(line.text)}"
            f":fontsize={s.caption_font_size}:fontcolor=white"
            f":borderw={s.caption_border_width}:bordercolor=black"
            f":x={line.x_expression()}:y={line.y_expression()}"
            for line in lines
        ]
        self._run(
            [s.ffmpeg_binary, "-y", "-i", str(src), "-vf", ",".join(filters),
             *self._video_codec(), "-c:a", "copy", str(dst)],
            "Text overlay"
        )
        if not Path(dst).exists():
            raise TransformError("Text overlay produced no output")

    def normalize(self, src: Path, dst: Path):
        info = self.probe(src)
        cmd = [self.settings.ffmpeg_binary, "-y", "-i", str(src)]
        if info.has_audio:
            audio_map = "0:a:0"
        else:
            cmd += self._silence_input(info.duration)
            audio_map = "1:a:0"
        cmd += ["-map", "0:v:0", "-map", audio_map, "-vf", self._scale_pad(),
                *self._video_codec(), *self._audio_codec(),
                "-movflags", "+faststart", str(dst)]
        self._run(cmd, f"Normalize of {Path(src).name}")

    def concat_copy(self, inputs: Sequence[Path], dst: Path):
        list_path = Path(f"{dst}.list")
        entries = []
        for path in inputs:
            quoted = str(Path(path).resolve()).replace("'", "'\\''")
            entries.append(f"file '{quoted}'")
        list_path.write_text("\n".join(entries) + "\n")
        try:
            self._run(
                [self.settings.ffmpeg_binary, "-y", "-f", "concat", "-safe", "0",
                 "-i", str(list_path), "-c", "copy",
                 "-avoid_negative_ts", "make_zero", str(dst)],
                "Stream-copy concatenation"
            )
        finally:
            list_path.unlink(missing_ok=True)

    def concat_filter(self, inputs: Sequence[Path], dst: Path):
        s = self.settings
        cmd = [s.ffmpeg_binary, "-y"]
        for path in inputs:
            cmd += ["-i", str(path)]

        filters = []
        pairs = []
        extra_index = len(inputs)
        layout = channel_layout(s.audio_channels)
        for i, path in enumerate(inputs):
            info = self.probe(path)
            if info.has_audio:
                audio_source = f"{i}:a"
            else:
                cmd += self._silence_input(info.duration)
                audio_source = f"{extra_index}:a"
                extra_index += 1
            filters.append(f"[{i}:v]{self._scale_pad()}[v{i}]")
            filters.append(
                f"[{audio_source}]aresample={s.audio_sample_rate},"
                f"aformat=channel_layouts={layout}[a{i}]"
            )
            pairs.append(f"[v{i}][a{i}]")
        filters.append(f"{''.join(pairs)}concat=n={len(inputs)}:v=1:a=1[outv][outa]")

        cmd += ["-filter_complex", ";".join(filters),
                "-map", "[outv]", "-map", "[outa]",
                *self._video_codec(), *self._audio_codec(),
                "-movflags", "+faststart", str(dst)]
        self._run(cmd, "Filter-graph concatenation")
