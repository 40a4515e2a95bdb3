"""Bring an episode's subtitle into the pipeline's native ASS syntax.

The subtitle of an episode lives alone in ``<episode>/<language>/``. Its format
is decided by extension once, then either relocated as-is (already ASS/SSA) or
parsed into a :class:`SubtitleDocument` and re-emitted as ASS with the fixed
presentation profile. The result is always staged at
``<episode>/subtitle.ass``.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from ..config import STAGED_SUBTITLE_NAME
from ..errors import (
    AmbiguousSubtitleError,
    SubtitleCodecError,
    SubtitleDirectoryEmptyError,
    UnknownSubtitleFormatError,
)
from ..util.types import Episode, SubtitleFormat
from .subtitles import parse_subtitle_file, write_subtitle


log = logging.getLogger(__name__)

NATIVE_FORMAT = SubtitleFormat.ASS


@dataclass
class NormalizationResult:
    """Outcome of normalizing one episode's subtitle."""
    source: Path
    staged: Path
    source_format: SubtitleFormat
    converted: bool


def locate_subtitle_file(episode: Episode, language: str) -> Path:
    """Return the single subtitle file in ``<episode>/<language>/``.

    Hidden files are ignored. No file raises
    :class:`SubtitleDirectoryEmptyError`; several raise
    :class:`AmbiguousSubtitleError` instead of picking one arbitrarily.
    """
    subtitle_dir = episode.path / language
    if not subtitle_dir.is_dir():
        raise SubtitleDirectoryEmptyError(
            f"Subtitle directory {subtitle_dir} of {episode.display_name} does not exist"
        )

    candidates = sorted(p for p in subtitle_dir.iterdir() if p.is_file() and not p.name.startswith("."))
    if not candidates:
        raise SubtitleDirectoryEmptyError(f"Subtitle directory {subtitle_dir} is empty")
    if len(candidates) > 1:
        names = ", ".join(p.name for p in candidates)
        raise AmbiguousSubtitleError(f"Subtitle directory {subtitle_dir} holds several files: {names}")
    return candidates[0]


def detect_subtitle_format(path: Path) -> SubtitleFormat:
    """Map the file extension (case-insensitive) to a :class:`SubtitleFormat`."""
    fmt = SubtitleFormat.from_extension(path.suffix)
    if fmt is None:
        raise UnknownSubtitleFormatError(f"Unsupported subtitle extension: {path}")
    return fmt


def staged_subtitle_path(episode: Episode) -> Path:
    return episode.path / STAGED_SUBTITLE_NAME


def normalize_subtitle(episode: Episode, language: str) -> NormalizationResult:
    """Stage the episode's subtitle as native ASS and return where it went.

    An already-native file is copied; the source file is never moved.
    """
    source = locate_subtitle_file(episode, language)
    fmt = detect_subtitle_format(source)
    staged = staged_subtitle_path(episode)

    if fmt is NATIVE_FORMAT:
        log.info("Copying native subtitle %s -> %s", source, staged)
        try:
            shutil.copyfile(source, staged)
        except OSError as exc:
            raise SubtitleCodecError(f"Failed to stage subtitle {source}: {exc}") from exc
        return NormalizationResult(source=source, staged=staged, source_format=fmt, converted=False)

    log.info("Converting %s subtitle %s -> %s", fmt.value, source, staged)
    try:
        doc = parse_subtitle_file(source, fmt)
    except OSError as exc:
        raise SubtitleCodecError(f"Failed to read subtitle {source}: {exc}") from exc
    write_subtitle(doc, staged, NATIVE_FORMAT)
    return NormalizationResult(source=source, staged=staged, source_format=fmt, converted=True)
