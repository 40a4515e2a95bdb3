"""Episode compilation pipeline.

Each episode moves strictly through
``RESOLVED -> SUBTITLE_NORMALIZED -> MUXED -> PACKAGED``; a failure at any
stage is that episode's failure. A season compiles its Normal episodes, then
its Special episodes, either one at a time (fail-fast) or on a thread pool.

Concurrent mode is fail-fast at dispatch granularity: at most ``max_workers``
episodes are in flight, nothing new is dispatched after the first failure,
episodes already running are allowed to finish, and the first failure
observed is raised.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console

from ..config import PipelineConfig
from ..errors import SeasonMuxError
from ..muxer import mux_episode
from ..packager import Packager
from ..parsers.normalization import normalize_subtitle
from ..util.types import DownloadFolder, Episode, Season, SubtitleFormat


log = logging.getLogger(__name__)


class EpisodeStage(str, Enum):
    """Per-episode compilation states, in order."""
    RESOLVED = "resolved"
    SUBTITLE_NORMALIZED = "subtitle_normalized"
    MUXED = "muxed"
    PACKAGED = "packaged"


@dataclass
class EpisodeResult:
    """Result of compiling one episode."""
    episode: Episode
    stage: EpisodeStage
    output_path: Optional[Path] = None
    subtitle_format: Optional[SubtitleFormat] = None
    subtitle_converted: bool = False
    elapsed_seconds: float = 0.0


@dataclass
class SeasonResult:
    """Result of compiling a whole season."""
    season: Season
    episodes: List[EpisodeResult] = field(default_factory=list)
    outputs: List[Path] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def complete(self) -> bool:
        return len(self.outputs) == len(self.season.episodes)


class CompilePipeline:
    """Drives subtitle normalization, muxing and packaging for seasons of episodes."""

    def __init__(self, config: PipelineConfig, console: Optional[Console] = None):
        self.config = config
        self.console = console
        self.packager = Packager(config.output_root, copy=config.copy)

    def compile_folder(self, folder: DownloadFolder) -> List[SeasonResult]:
        """Compile every season of ``folder`` in order; the first failing season aborts the run."""
        return [self.compile_season(season) for season in folder.seasons]

    def compile_season(self, season: Season) -> SeasonResult:
        """Compile the Normal group, then the Special group, then verify the packaged season."""
        start_time = time.time()
        self._log_progress(f"Compiling {season.title} ({len(season.episodes)} episode(s))...")

        results: List[EpisodeResult] = []
        for group in (season.normal_episodes, season.special_episodes):
            if not group:
                continue
            if self.config.parallel:
                results.extend(self._compile_concurrently(season, group))
            else:
                results.extend(self._compile_sequentially(season, group))

        outputs = self.packager.verify_season(season)
        elapsed = time.time() - start_time
        self._log_success(f"Compiled {season.title} in {elapsed:.1f}s")
        return SeasonResult(season=season, episodes=results, outputs=outputs, elapsed_seconds=elapsed)

    def compile_episode(self, season: Season, episode: Episode) -> EpisodeResult:
        """Run one episode through every stage, stopping at the first failure."""
        start_time = time.time()
        result = EpisodeResult(episode=episode, stage=EpisodeStage.RESOLVED)
        self._log_progress(f"Compiling {episode.display_name}...")

        try:
            normalized = normalize_subtitle(episode, self.config.language)
            result.subtitle_format = normalized.source_format
            result.subtitle_converted = normalized.converted
            result.stage = EpisodeStage.SUBTITLE_NORMALIZED

            mux_episode(episode, normalized.staged, self.config)
            result.stage = EpisodeStage.MUXED

            result.output_path = self.packager.package_episode(season, episode)
            result.stage = EpisodeStage.PACKAGED
        except SeasonMuxError as e:
            log.error("%s failed after stage %s: %s", episode.display_name, result.stage.value, e)
            self._log_error(f"✘ {episode.display_name}: {e}")
            raise

        result.elapsed_seconds = time.time() - start_time
        self._log_success(f"✔ Compiled {episode.display_name}")
        return result

    def _compile_sequentially(self, season: Season, episodes: List[Episode]) -> List[EpisodeResult]:
        return [self.compile_episode(season, e) for e in episodes]

    def _compile_concurrently(self, season: Season, episodes: List[Episode]) -> List[EpisodeResult]:
        """Compile ``episodes`` on a bounded thread pool, fail-fast at dispatch granularity."""
        workers = max(1, min(self.config.max_workers, len(episodes)))
        pending = list(episodes)
        in_flight: Dict[Future, Episode] = {}
        results: Dict[Episode, EpisodeResult] = {}
        first_error: Optional[BaseException] = None

        with ThreadPoolExecutor(max_workers=workers) as pool:
            while pending or in_flight:
                while pending and first_error is None and len(in_flight) < workers:
                    episode = pending.pop(0)
                    in_flight[pool.submit(self.compile_episode, season, episode)] = episode
                if not in_flight:
                    break

                done, _ = wait(set(in_flight), return_when=FIRST_COMPLETED)
                for future in done:
                    episode = in_flight.pop(future)
                    try:
                        results[episode] = future.result()
                    except SeasonMuxError as e:
                        if first_error is None:
                            first_error = e
                        else:
                            log.warning("Additional failure while draining %s: %s", episode.display_name, e)

        if first_error is not None:
            if pending:
                log.warning(
                    "Not dispatched after failure: %s",
                    ", ".join(e.display_name for e in pending),
                )
            raise first_error
        return [results[e] for e in episodes]

    def _log_progress(self, message: str) -> None:
        if self.console:
            self.console.print(f"[blue]{message}[/blue]")

    def _log_success(self, message: str) -> None:
        if self.console:
            self.console.print(f"[green]{message}[/green]")

    def _log_error(self, message: str) -> None:
        if self.console:
            self.console.print(f"[red]{message}[/red]")
