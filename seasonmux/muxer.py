"""Merge an episode's video, audio and subtitle into one Matroska file with ffmpeg.

Soft mode stream-copies video and audio and adds the subtitle as the default
subtitle track. Hard mode burns the subtitle into the video (the only stream
that gets re-encoded) and copies the audio.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

import babelfish  # type: ignore

from .config import AUDIO_STEM, FFMPEG_BINARY, MUXED_FILENAME, PREFERRED_STREAM_EXT, VIDEO_STEM, PipelineConfig, SubtitleMode
from .errors import MissingStreamError, MuxExternalFailure, MuxSpawnError
from .util.types import Episode


log = logging.getLogger(__name__)

FFMPEG_GLOBAL_FLAGS = ["-y", "-hide_banner", "-loglevel", "error"]

# Characters escaped at the option level, then at the filtergraph level
_FILTER_OPTION_SPECIAL = "\\':"
_FILTER_GRAPH_SPECIAL = "\\'[],;"


def find_stream(episode: Episode, stem: str) -> Optional[Path]:
    """Return ``<episode>/<type_tag>/<stem>.*``, preferring ``.m4s``; None when absent."""
    stream_dir = episode.stream_dir
    if not stream_dir.is_dir():
        return None
    candidates = sorted(p for p in stream_dir.glob(f"{stem}.*") if p.is_file())
    if not candidates:
        return None
    for p in candidates:
        if p.suffix.lower() == PREFERRED_STREAM_EXT:
            return p
    return candidates[0]


def muxed_output_path(episode: Episode) -> Path:
    return episode.stream_dir / MUXED_FILENAME


def metadata_language(tag: str) -> str:
    """Return the ISO 639-2 code for an IETF/alpha2 tag (``en`` -> ``eng``), else ``tag``."""
    try:
        return babelfish.Language.fromietf(tag).alpha3
    except (ValueError, babelfish.Error):
        return tag


def _escape(value: str, special: str) -> str:
    return "".join(f"\\{ch}" if ch in special else ch for ch in value)


def subtitles_filter(subtitle: Path) -> str:
    """Build the ``subtitles=`` video filter for ``subtitle``, escaped for ffmpeg's filtergraph parser."""
    path = _escape(_escape(str(subtitle), _FILTER_OPTION_SPECIAL), _FILTER_GRAPH_SPECIAL)
    return f"subtitles={path}"


def build_mux_command(
    video: Path,
    audio: Path,
    subtitle: Path,
    output: Path,
    mode: SubtitleMode,
    language: str,
    *,
    ffmpeg: str = FFMPEG_BINARY,
) -> List[str]:
    """Return the ffmpeg argument vector for the given subtitle mode."""
    cmd = [ffmpeg, *FFMPEG_GLOBAL_FLAGS, "-i", str(video), "-i", str(audio)]
    if mode is SubtitleMode.HARD:
        cmd += [
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-vf", subtitles_filter(subtitle),
            "-c:a", "copy",
        ]
    else:
        cmd += [
            "-i", str(subtitle),
            "-map", "0",
            "-map", "1:a:0",
            "-map", "2",
            "-metadata:s:s:0", f"language={metadata_language(language)}",
            "-disposition:s:0", "default",
            "-c", "copy",
        ]
    cmd.append(str(output))
    return cmd


def run_mux(cmd: List[str]) -> int:
    """Run an ffmpeg command line; return 0 or raise a :class:`MuxError`."""
    log.debug("Running %s", shlex.join(cmd))
    try:
        proc = subprocess.run(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.PIPE, text=True)
    except OSError as exc:
        raise MuxSpawnError(f"Could not start {cmd[0]}: {exc}") from exc
    if proc.returncode != 0:
        raise MuxExternalFailure(proc.returncode, proc.stderr, output=cmd[-1])
    return proc.returncode


def mux_episode(episode: Episode, subtitle: Path, config: PipelineConfig) -> Path:
    """Mux one episode into ``<episode>/<type_tag>/episode.mkv`` and return that path."""
    video = find_stream(episode, VIDEO_STEM)
    audio = find_stream(episode, AUDIO_STEM)
    if video is None:
        raise MissingStreamError(f"No video stream for {episode.display_name} in {episode.stream_dir}")
    if audio is None:
        raise MissingStreamError(f"No audio stream for {episode.display_name} in {episode.stream_dir}")

    output = muxed_output_path(episode)
    cmd = build_mux_command(
        video,
        audio,
        subtitle,
        output,
        config.subtitle_mode,
        config.language,
        ffmpeg=config.ffmpeg_binary,
    )
    run_mux(cmd)
    return output
