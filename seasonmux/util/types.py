"""Core data types for the seasonmux episode compilation pipeline.

This module defines the season/episode hierarchy reconstructed from a download
folder and the format-agnostic subtitle document every subtitle syntax is
converted through.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from pathlib import Path
from typing import List, Optional, Tuple


_ORDINAL_RE = re.compile(r"[0-9]+")


@total_ordering
@dataclass(frozen=True)
class EpisodeIdentity:
    """Identity of an episode inside its season: a number or a label.

    Normal episodes carry a non-negative ``ordinal``; Special episodes carry an
    opaque ``label`` such as ``"OVA 1"`` or ``"SP1"``. Exactly one of the two
    is set.

    Ordering: every Normal episode sorts before every Special episode. Normal
    episodes order by ordinal, Special episodes order by label.
    """
    ordinal: Optional[int] = None
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.ordinal is None) == (self.label is None):
            raise ValueError("EpisodeIdentity needs exactly one of ordinal or label")
        if self.ordinal is not None and self.ordinal < 0:
            raise ValueError(f"Episode ordinal must be non-negative, got {self.ordinal}")

    @classmethod
    def normal(cls, ordinal: int) -> EpisodeIdentity:
        return cls(ordinal=ordinal)

    @classmethod
    def special(cls, label: str) -> EpisodeIdentity:
        return cls(label=label)

    @classmethod
    def parse(cls, token: str) -> EpisodeIdentity:
        """Classify a descriptor index token.

        ``"3"`` and ``"03"`` become Normal episode 3; anything that is not made
        of ASCII digits only (``"SP1"``, ``"OVA 1"``, ``"1.5"``) becomes a
        Special episode labelled with the token verbatim.
        """
        if _ORDINAL_RE.fullmatch(token):
            return cls.normal(int(token))
        return cls.special(token)

    @property
    def is_normal(self) -> bool:
        return self.ordinal is not None

    @property
    def kind(self) -> str:
        return "normal" if self.is_normal else "special"

    @property
    def display(self) -> str:
        """Library-name form: ``EP01`` for Normal, the label for Special."""
        if self.ordinal is not None:
            return f"EP{self.ordinal:02d}"
        return str(self.label)

    @property
    def full_display(self) -> str:
        if self.ordinal is not None:
            return f"Episode {self.ordinal:02d}"
        return str(self.label)

    def sort_key(self) -> Tuple[int, int, str]:
        if self.ordinal is not None:
            return (0, self.ordinal, "")
        return (1, 0, str(self.label))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, EpisodeIdentity):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        return self.display


@dataclass(frozen=True)
class Episode:
    """One playable unit as found on disk.

    Attributes:
        title: Season/series title copied from the episode descriptor
        identity: Normal ordinal or Special label
        path: Episode directory (the one holding entry.json); authoritative
        type_tag: Name of the sub-directory holding the raw video/audio streams
        index_title: Free-form episode title from the descriptor, may be empty
    """
    title: str
    identity: EpisodeIdentity
    path: Path
    type_tag: str
    index_title: str = ""

    @property
    def stream_dir(self) -> Path:
        return self.path / self.type_tag

    @property
    def display_name(self) -> str:
        """Human name used in progress output and library file names."""
        return f"{self.title} {self.identity.display}"


@dataclass
class Season:
    """A season directory and its episodes, sorted by identity.

    Invariant: ``episodes`` is non-empty and sorted by ``EpisodeIdentity``.
    """
    title: str
    path: Path
    episodes: List[Episode] = field(default_factory=list)

    @property
    def normal_episodes(self) -> List[Episode]:
        return [e for e in self.episodes if e.identity.is_normal]

    @property
    def special_episodes(self) -> List[Episode]:
        return [e for e in self.episodes if not e.identity.is_normal]


@dataclass
class DownloadFolder:
    """Root aggregate of a scan: every season that resolved, sorted by title."""
    path: Path
    seasons: List[Season] = field(default_factory=list)


class SubtitleFormat(str, Enum):
    """On-disk subtitle syntaxes the pipeline understands."""
    JSON = "json"
    ASS = "ass"
    SRT = "srt"
    VTT = "vtt"

    @classmethod
    def from_extension(cls, ext: str) -> Optional[SubtitleFormat]:
        """Map a file extension (with or without dot, any case) to a format."""
        return _EXTENSION_FORMATS.get(ext.lower().lstrip("."))

    @property
    def extension(self) -> str:
        return f".{self.value}"


_EXTENSION_FORMATS = {
    "json": SubtitleFormat.JSON,
    "ass": SubtitleFormat.ASS,
    "ssa": SubtitleFormat.ASS,
    "srt": SubtitleFormat.SRT,
    "vtt": SubtitleFormat.VTT,
}


@dataclass(frozen=True)
class Cue:
    """A single timed subtitle line.

    Times are whole milliseconds from the start of the media. ``text`` keeps
    embedded line breaks as ``\\n``.
    """
    start_ms: int
    end_ms: int
    text: str


@dataclass
class SubtitleDocument:
    """Format-agnostic cue list every subtitle syntax is converted through.

    Attributes:
        cues: Cues in source order
        source_file: Path or identifier of the file the cues were read from
    """
    cues: List[Cue] = field(default_factory=list)
    source_file: Optional[str] = None

    def __len__(self) -> int:
        return len(self.cues)

    @property
    def start_times(self) -> List[int]:
        return [c.start_ms for c in self.cues]
