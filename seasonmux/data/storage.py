"""Library naming convention for compiled episodes.

Finished episodes land in ``<output_root>/<season title>/<season title> <episode>.<ext>``
where ``<episode>`` is ``EP`` plus a two-digit ordinal for Normal episodes and
the label verbatim for Special ones.
"""

from __future__ import annotations

import re
from pathlib import Path

from ..config import OUTPUT_EXT
from ..util.types import Episode


_unsafe_component_re = re.compile(r"[/\\\x00]")


def safe_component(text: str) -> str:
	"""Return ``text`` usable as a single path component.

	- Replaces path separators and NUL with ``_``
	- Strips surrounding whitespace
	- Falls back to ``untitled`` when nothing is left
	"""
	cleaned = _unsafe_component_re.sub("_", text).strip()
	return cleaned or "untitled"


def determine_output_path(output_root: Path, season_title: str, episode: Episode, ext: str = OUTPUT_EXT) -> Path:
	"""Compute the library path of ``episode``. This function does not create directories."""
	season = safe_component(season_title)
	name = safe_component(f"{season} {episode.identity.display}")
	return output_root / season / f"{name}{ext}"


def ensure_parent_dir(path: Path) -> None:
	"""Ensure the parent directory for ``path`` exists (idempotent, safe under concurrent callers)."""
	path.parent.mkdir(parents=True, exist_ok=True)
