"""Merging the captioned clip with the second clip.

Tiers are tried in order until one yields a valid output:

1. normalize both clips to the canonical format, then stream-copy concat
2. single-pass filter-graph concat of the raw clips
3. copy the captioned clip alone (the job still succeeds, without clip B)

A tier "fails" when the engine raises or when its output does not pass
:func:`is_valid_output`. Only exhaustion of every tier raises.
"""
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from core.engine import MediaTransformEngine
from core.errors import TransformError
from utils.tempfiles import TempAssetStore

logger = logging.getLogger(__name__)

Scratch = Callable[[str], Path]


def is_valid_output(output: Path, first: Path) -> bool:
    """A merge must exist and be strictly larger than the first clip alone."""
    output, first = Path(output), Path(first)
    if not output.is_file():
        return False
    return output.stat().st_size > first.stat().st_size


def normalize_then_copy(engine: MediaTransformEngine, first: Path, second: Path,
                        dst: Path, scratch: Scratch):
    normalized_first = scratch("first.mp4")
    normalized_second = scratch("second.mp4")
    engine.normalize(first, normalized_first)
    engine.normalize(second, normalized_second)
    engine.concat_copy([normalized_first, normalized_second], dst)


def filter_graph(engine: MediaTransformEngine, first: Path, second: Path,
                 dst: Path, scratch: Scratch):
    engine.concat_filter([first, second], dst)


def first_only(engine: MediaTransformEngine, first: Path, second: Path,
               dst: Path, scratch: Scratch):
    try:
        shutil.copyfile(first, dst)
    except OSError as e:
        raise TransformError(f"Could not copy captioned clip: {e}") from e


@dataclass(frozen=True)
class ConcatTier:
    name: str
    run: Callable[[MediaTransformEngine, Path, Path, Path, Scratch], None]
    validate: bool = True
    degraded: bool = False


DEFAULT_TIERS = (
    ConcatTier("normalize-copy", normalize_then_copy),
    ConcatTier("filter-graph", filter_graph),
    ConcatTier("first-only", first_only, validate=False, degraded=True),
)


@dataclass(frozen=True)
class ConcatResult:
    tier: str
    output: Path
    degraded: bool = False


class ConcatenationStrategy:
    def __init__(self, engine: MediaTransformEngine, tiers=DEFAULT_TIERS):
        self.engine = engine
        self.tiers: List[ConcatTier] = list(tiers)

    def merge(self, first: Path, second: Path, output: Path,
              store: TempAssetStore) -> ConcatResult:
        last_error: Optional[Exception] = None
        for tier in self.tiers:
            candidate = store.path(f"merged-{tier.name}.mp4")
            scratch_paths: List[Path] = []

            def scratch(name: str, _tier=tier) -> Path:
                path = store.path(f"{_tier.name}-{name}")
                scratch_paths.append(path)
                return path

            try:
                tier.run(self.engine, first, second, candidate, scratch)
            except (TransformError, OSError) as e:
                logger.warning("Concatenation tier '%s' failed: %s", tier.name, e)
                last_error = e
                store.discard(candidate)
                continue
            finally:
                for path in scratch_paths:
                    store.discard(path)

            if tier.validate and not is_valid_output(candidate, first):
                logger.warning("Concatenation tier '%s' produced an invalid output", tier.name)
                last_error = TransformError(f"Tier '{tier.name}' output invalid")
                store.discard(candidate)
                continue

            os.replace(candidate, output)
            if tier.degraded:
                logger.warning("Concatenation degraded to '%s'; second clip omitted", tier.name)
            else:
                logger.info("Concatenation completed with tier '%s'", tier.name)
            return ConcatResult(tier=tier.name, output=Path(output), degraded=tier.degraded)

        raise TransformError(f"All concatenation strategies failed: {last_error}")
