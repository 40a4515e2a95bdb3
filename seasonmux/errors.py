"""Error taxonomy for the episode compilation pipeline."""

from __future__ import annotations

from typing import Optional


class SeasonMuxError(Exception):
    """Base error for everything the pipeline reports to its caller."""


class MetadataError(SeasonMuxError):
    """Raised when a season or episode cannot be resolved from disk."""


class MissingDescriptorError(MetadataError, FileNotFoundError):
    """Raised when an episode directory has no entry.json."""


class InvalidDescriptorError(MetadataError, ValueError):
    """Raised when entry.json is not valid JSON or lacks required fields."""


class EmptySeasonError(MetadataError):
    """Raised when a season directory contains no episode directories."""


class SubtitleError(SeasonMuxError):
    """Raised when an episode's subtitle cannot be located or converted."""


class SubtitleDirectoryEmptyError(SubtitleError):
    """Raised when the language subtitle directory is missing or has no files."""


class AmbiguousSubtitleError(SubtitleError):
    """Raised when the language subtitle directory holds more than one file."""


class UnknownSubtitleFormatError(SubtitleError):
    """Raised when a subtitle file extension maps to no supported format."""


class SubtitleCodecError(SubtitleError):
    """Raised when subtitle text cannot be parsed or serialized."""


class MuxError(SeasonMuxError):
    """Raised when video, audio and subtitle cannot be merged."""


class MissingStreamError(MuxError, FileNotFoundError):
    """Raised when the raw video or audio stream of an episode is absent."""


class MuxSpawnError(MuxError):
    """Raised when the ffmpeg process cannot be started at all."""


class MuxExternalFailure(MuxError):
    """Raised when ffmpeg exits with a non-zero status."""

    def __init__(self, returncode: int, stderr: Optional[str] = None, output: Optional[str] = None):
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        message = f"ffmpeg exited with status {returncode}"
        if output:
            message += f" while writing {output}"
        if self.stderr:
            message += f": {self.stderr.splitlines()[-1]}"
        super().__init__(message)


class PackagingError(SeasonMuxError, OSError):
    """Raised when a muxed episode cannot be copied or moved into the library."""
