"""Move or copy muxed episodes into the output library."""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path
from typing import List

from .data.storage import determine_output_path, ensure_parent_dir
from .errors import PackagingError
from .muxer import muxed_output_path
from .util.types import Episode, Season


log = logging.getLogger(__name__)


class Packager:
    """Places finished containers under ``output_root`` following the library naming convention.

    Both policies are idempotent: packaging the same episode twice leaves a
    single file at the destination.
    """

    def __init__(self, output_root: Path, copy: bool = False):
        self.output_root = output_root
        self.copy = copy

    def destination(self, season: Season, episode: Episode) -> Path:
        source = muxed_output_path(episode)
        return determine_output_path(self.output_root, season.title, episode, ext=source.suffix)

    def package_episode(self, season: Season, episode: Episode) -> Path:
        """Copy or move the muxed file of ``episode`` and return its library path."""
        source = muxed_output_path(episode)
        dest = self.destination(season, episode)

        if not source.is_file():
            if not self.copy and dest.is_file():
                log.info("%s already packaged at %s", episode.display_name, dest)
                return dest
            raise PackagingError(f"Muxed file for {episode.display_name} not found: {source}")

        try:
            ensure_parent_dir(dest)
            if self.copy:
                shutil.copyfile(source, dest)
            else:
                self._move(source, dest)
        except OSError as exc:
            raise PackagingError(f"Failed to package {source} -> {dest}: {exc}") from exc

        log.info("Packaged %s -> %s", episode.display_name, dest)
        return dest

    @staticmethod
    def _move(source: Path, dest: Path) -> None:
        try:
            os.replace(source, dest)
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise
            # different filesystem: replace() cannot rename across devices
            shutil.copyfile(source, dest)
            source.unlink()

    def expected_outputs(self, season: Season) -> List[Path]:
        return [self.destination(season, e) for e in season.episodes]

    def verify_season(self, season: Season) -> List[Path]:
        """Return every library path of ``season``; raise if any episode is missing."""
        outputs = self.expected_outputs(season)
        missing = [p for p in outputs if not p.is_file()]
        if missing:
            names = ", ".join(p.name for p in missing)
            raise PackagingError(f"Season {season.title!r} is incomplete, missing: {names}")
        return outputs
