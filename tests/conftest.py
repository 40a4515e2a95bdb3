"""Shared pytest fixtures: on-disk download trees and a fake ffmpeg."""

import json
import subprocess
from pathlib import Path
from typing import Optional

import pytest

from seasonmux import muxer


JSON_SUBTITLE = {
    "font_size": 0.4,
    "body": [
        {"from": 0.0, "to": 1.2, "location": 2, "content": "A"},
        {"from": 1.5, "to": 3.0, "location": 2, "content": "B\nC"},
    ],
}


def write_episode(
    season_dir: Path,
    name: str,
    *,
    title: str = "Show",
    index: str = "1",
    type_tag: str = "64",
    language: str = "en",
    subtitle_name: Optional[str] = "sub.json",
    subtitle: Optional[str] = None,
    streams: bool = True,
) -> Path:
    """Create ``<season_dir>/<name>`` laid out like a downloaded episode."""
    episode_dir = season_dir / name
    episode_dir.mkdir(parents=True)
    entry = {
        "title": title,
        "ep": {"index_title": f"Episode title {index}", "index": index},
        "type_tag": type_tag,
    }
    (episode_dir / "entry.json").write_text(json.dumps(entry), encoding="utf-8")

    if streams:
        stream_dir = episode_dir / type_tag
        stream_dir.mkdir()
        (stream_dir / "video.m4s").write_bytes(b"video")
        (stream_dir / "audio.m4s").write_bytes(b"audio")

    if subtitle_name is not None:
        subtitle_dir = episode_dir / language
        subtitle_dir.mkdir()
        content = subtitle if subtitle is not None else json.dumps(JSON_SUBTITLE)
        (subtitle_dir / subtitle_name).write_text(content, encoding="utf-8")
    return episode_dir


@pytest.fixture
def download_root(tmp_path):
    root = tmp_path / "download"
    root.mkdir()
    return root


@pytest.fixture
def output_root(tmp_path):
    return tmp_path / "library"


class FakeFFmpeg:
    """Stands in for ``subprocess.run``: records commands and writes the output file.

    Any command whose output path contains a directory named in ``fail_on``
    exits with status 1.
    """

    def __init__(self):
        self.calls = []
        self.fail_on = set()

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        output = Path(cmd[-1])
        if self.fail_on.intersection(output.parts):
            return subprocess.CompletedProcess(cmd, 1, stdout=None, stderr="Conversion failed!\n")
        output.write_bytes(b"matroska")
        return subprocess.CompletedProcess(cmd, 0, stdout=None, stderr="")

    def outputs(self):
        return [Path(c[-1]) for c in self.calls]


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    fake = FakeFFmpeg()
    monkeypatch.setattr(muxer.subprocess, "run", fake)
    return fake
