"""Run-wide configuration for the compile pipeline and on-disk naming constants.

Defaults can be overridden via environment variables:
- SEASONMUX_FFMPEG: ffmpeg executable used for muxing (defaults to ``ffmpeg``)
- SEASONMUX_LANGUAGE: subtitle language tag (defaults to ``en``)
- SEASONMUX_WORKERS: worker count for parallel compilation (defaults to CPU count)
- SEASONMUX_LOG_LEVEL: log level used by the CLI (defaults to ``WARNING``)
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final


def _env_int(name: str, default: int) -> int:
	"""Return a positive integer from the environment, or ``default`` when unset/invalid."""
	raw = os.getenv(name, "").strip()
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value > 0 else default


FFMPEG_BINARY: Final[str] = os.getenv("SEASONMUX_FFMPEG", "ffmpeg")
DEFAULT_LANGUAGE: Final[str] = os.getenv("SEASONMUX_LANGUAGE", "en")
DEFAULT_WORKERS: Final[int] = _env_int("SEASONMUX_WORKERS", os.cpu_count() or 1)
LOG_LEVEL: Final[str] = os.getenv("SEASONMUX_LOG_LEVEL", "WARNING").upper()

# Download layout: <season>/<episode>/entry.json, <episode>/<type_tag>/{video,audio}.*
ENTRY_FILENAME: Final[str] = "entry.json"
VIDEO_STEM: Final[str] = "video"
AUDIO_STEM: Final[str] = "audio"
PREFERRED_STREAM_EXT: Final[str] = ".m4s"

# Intermediate files written next to the raw streams
STAGED_SUBTITLE_NAME: Final[str] = "subtitle.ass"
MUXED_FILENAME: Final[str] = "episode.mkv"
OUTPUT_EXT: Final[str] = ".mkv"


class SubtitleMode(str, Enum):
	"""How the subtitle ends up in the output container."""

	HARD = "hard"  # burned into the video frames
	SOFT = "soft"  # separate, selectable subtitle track


@dataclass(frozen=True)
class PipelineConfig:
	"""Immutable per-run configuration handed to every pipeline stage."""

	output_root: Path
	language: str = DEFAULT_LANGUAGE
	subtitle_mode: SubtitleMode = SubtitleMode.SOFT
	copy: bool = False
	parallel: bool = False
	max_workers: int = DEFAULT_WORKERS
	ffmpeg_binary: str = FFMPEG_BINARY
