"""Pipeline modules for orchestrating episode compilation."""

from .compile_pipeline import CompilePipeline, EpisodeResult, EpisodeStage, SeasonResult

__all__ = [
    "CompilePipeline",
    "EpisodeResult",
    "EpisodeStage",
    "SeasonResult",
]
