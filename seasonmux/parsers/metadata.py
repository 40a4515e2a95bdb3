"""Resolve the Season -> Episode hierarchy of a download folder.

Layout::

    <root>/<season>/<episode>/entry.json
    <root>/<season>/<episode>/<type_tag>/video.m4s, audio.m4s
    <root>/<season>/<episode>/<language>/<subtitle file>

Each ``entry.json`` carries ``{"title", "ep": {"index_title", "index"}, "type_tag"}``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..config import ENTRY_FILENAME
from ..errors import EmptySeasonError, InvalidDescriptorError, MetadataError, MissingDescriptorError
from ..util.types import DownloadFolder, Episode, EpisodeIdentity, Season


log = logging.getLogger(__name__)


def _subdirectories(path: Path) -> List[Path]:
    """Immediate sub-directories of ``path`` in name order (listing order is not portable)."""
    return sorted((p for p in path.iterdir() if p.is_dir()), key=lambda p: p.name)


def read_descriptor(episode_dir: Path) -> Dict[str, Any]:
    """Load and validate ``entry.json`` of one episode directory."""
    entry_path = episode_dir / ENTRY_FILENAME
    if not entry_path.is_file():
        raise MissingDescriptorError(f"No {ENTRY_FILENAME} found in {episode_dir}")

    try:
        entry = json.loads(entry_path.read_text(encoding="utf-8-sig"))
    except OSError as exc:
        raise InvalidDescriptorError(f"Cannot read descriptor {entry_path}: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidDescriptorError(f"Malformed descriptor {entry_path}: {exc}") from exc

    if not isinstance(entry, dict):
        raise InvalidDescriptorError(f"Descriptor {entry_path} is not a JSON object")
    ep = entry.get("ep")
    if not isinstance(ep, dict):
        raise InvalidDescriptorError(f"Descriptor {entry_path} has no 'ep' object")
    for key, value in (("title", entry.get("title")), ("type_tag", entry.get("type_tag")), ("ep.index", ep.get("index"))):
        if not isinstance(value, str):
            raise InvalidDescriptorError(f"Descriptor {entry_path} has no string '{key}'")
    if not isinstance(ep.get("index_title", ""), str):
        raise InvalidDescriptorError(f"Descriptor {entry_path} has a non-string 'ep.index_title'")
    return entry


def episode_from_descriptor(entry: Dict[str, Any], episode_dir: Path) -> Episode:
    """Build an :class:`Episode` from a validated descriptor."""
    ep = entry["ep"]
    return Episode(
        title=entry["title"],
        identity=EpisodeIdentity.parse(ep["index"]),
        path=episode_dir,
        type_tag=entry["type_tag"],
        index_title=ep.get("index_title", ""),
    )


def resolve_episode(episode_dir: Path) -> Episode:
    return episode_from_descriptor(read_descriptor(episode_dir), episode_dir)


def resolve_season(season_dir: Path) -> Season:
    """Resolve every episode directory under ``season_dir``.

    The season title comes from the first episode descriptor (by directory
    name). Any unreadable episode fails the whole season, and so do two
    episodes with the same identity. A season without episode directories
    raises :class:`EmptySeasonError`.
    """
    if not season_dir.is_dir():
        raise MetadataError(f"Season directory not found: {season_dir}")

    episode_dirs = _subdirectories(season_dir)
    if not episode_dirs:
        raise EmptySeasonError(f"No episodes found in {season_dir}")

    resolved = [resolve_episode(d) for d in episode_dirs]
    seen: Dict[EpisodeIdentity, Episode] = {}
    for episode in resolved:
        other = seen.setdefault(episode.identity, episode)
        if other is not episode:
            raise InvalidDescriptorError(
                f"Episodes {other.path.name} and {episode.path.name} in {season_dir} "
                f"share the index {episode.identity.display}"
            )

    season = Season(
        title=resolved[0].title,
        path=season_dir,
        episodes=sorted(resolved, key=lambda e: e.identity),
    )
    log.debug("Resolved season %r with %d episode(s) from %s", season.title, len(resolved), season_dir)
    return season


def resolve_download_folder(root: Path) -> DownloadFolder:
    """Resolve every season under ``root``, skipping seasons that fail to resolve.

    A season raising :class:`MetadataError` is logged and skipped. Seasons
    are sorted by title.
    """
    if not root.is_dir():
        raise MetadataError(f"Download folder not found: {root}")

    seasons: List[Season] = []
    for season_dir in _subdirectories(root):
        try:
            seasons.append(resolve_season(season_dir))
        except MetadataError as exc:
            log.warning("Skipping %s: %s", season_dir, exc)
            continue

    seasons.sort(key=lambda s: (s.title, s.path.name))
    return DownloadFolder(path=root, seasons=seasons)
