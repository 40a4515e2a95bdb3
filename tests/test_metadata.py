"""Tests for resolving seasons and episodes from entry.json descriptors."""

from pathlib import Path

import pytest

from seasonmux.errors import (
    EmptySeasonError,
    InvalidDescriptorError,
    MetadataError,
    MissingDescriptorError,
)
from seasonmux.parsers.metadata import resolve_download_folder, resolve_episode, resolve_season

from conftest import write_episode


def test_resolve_episode_reads_descriptor(download_root):
    episode_dir = write_episode(download_root / "s_1", "377500", index="1", type_tag="80")
    episode = resolve_episode(episode_dir)
    assert episode.title == "Show"
    assert episode.identity.ordinal == 1
    assert episode.type_tag == "80"
    assert episode.index_title == "Episode title 1"
    assert episode.path == episode_dir
    assert episode.stream_dir == episode_dir / "80"


def test_resolve_season_sorts_by_identity(download_root):
    season_dir = download_root / "s_1"
    write_episode(season_dir, "a", index="10")
    write_episode(season_dir, "b", index="SP1")
    write_episode(season_dir, "c", index="2")
    write_episode(season_dir, "d", index="1")

    season = resolve_season(season_dir)

    assert len(season.episodes) == 4
    assert [e.identity.display for e in season.episodes] == ["EP01", "EP02", "EP10", "SP1"]
    assert [e.identity.display for e in season.normal_episodes] == ["EP01", "EP02", "EP10"]
    assert [e.identity.display for e in season.special_episodes] == ["SP1"]
    assert season.path == season_dir


def test_resolve_season_title_from_first_episode(download_root):
    season_dir = download_root / "s_1"
    write_episode(season_dir, "a", title="First Title", index="2")
    write_episode(season_dir, "b", title="Other Title", index="1")
    assert resolve_season(season_dir).title == "First Title"


def test_resolve_season_ignores_files(download_root):
    season_dir = download_root / "s_1"
    write_episode(season_dir, "a", index="1")
    (season_dir / ".DS_Store").write_bytes(b"")
    assert len(resolve_season(season_dir).episodes) == 1


def test_empty_season_fails(download_root):
    season_dir = download_root / "empty"
    season_dir.mkdir()
    with pytest.raises(EmptySeasonError):
        resolve_season(season_dir)


def test_missing_descriptor(download_root):
    episode_dir = download_root / "s_1" / "a"
    episode_dir.mkdir(parents=True)
    with pytest.raises(MissingDescriptorError) as excinfo:
        resolve_season(download_root / "s_1")
    assert isinstance(excinfo.value, FileNotFoundError)


def test_malformed_descriptor(download_root):
    episode_dir = write_episode(download_root / "s_1", "a")
    (episode_dir / "entry.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(InvalidDescriptorError):
        resolve_episode(episode_dir)


@pytest.mark.parametrize(
    "payload",
    [
        '[]',
        '{"title": "Show", "type_tag": "64"}',
        '{"title": "Show", "ep": {"index": 1}, "type_tag": "64"}',
        '{"ep": {"index": "1"}, "type_tag": "64"}',
        '{"title": "Show", "ep": {"index": "1"}}',
    ],
)
def test_descriptor_missing_fields(download_root, payload):
    episode_dir = write_episode(download_root / "s_1", "a")
    (episode_dir / "entry.json").write_text(payload, encoding="utf-8")
    with pytest.raises(InvalidDescriptorError):
        resolve_episode(episode_dir)


def test_one_bad_episode_fails_its_season(download_root):
    season_dir = download_root / "s_1"
    write_episode(season_dir, "a", index="1")
    (season_dir / "b").mkdir()
    with pytest.raises(MetadataError):
        resolve_season(season_dir)


def test_download_folder_skips_bad_seasons(download_root):
    write_episode(download_root / "s_2", "a", title="Zeta", index="1")
    write_episode(download_root / "s_3", "a", title="Alpha", index="1")
    (download_root / "s_1").mkdir()
    broken = write_episode(download_root / "s_4", "a", title="Broken")
    (broken / "entry.json").write_text("{", encoding="utf-8")

    folder = resolve_download_folder(download_root)

    assert [s.title for s in folder.seasons] == ["Alpha", "Zeta"]


def test_download_folder_missing_root(tmp_path):
    with pytest.raises(MetadataError):
        resolve_download_folder(tmp_path / "nope")


@pytest.mark.parametrize("indices", [("1", "01"), ("OVA", "OVA")])
def test_duplicate_identity_fails_season(download_root, indices):
    season_dir = download_root / "s_1"
    write_episode(season_dir, "a", index=indices[0])
    write_episode(season_dir, "b", index=indices[1])

    with pytest.raises(InvalidDescriptorError, match="a and b"):
        resolve_season(season_dir)


def test_unreadable_descriptor_skips_its_season(download_root, monkeypatch):
    write_episode(download_root / "s_1", "a", title="Readable")
    locked = write_episode(download_root / "s_2", "locked", title="Locked")
    original_read_text = Path.read_text

    def read_text(self, *args, **kwargs):
        if self.parent == locked:
            raise PermissionError(13, "Permission denied", str(self))
        return original_read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", read_text)

    with pytest.raises(InvalidDescriptorError):
        resolve_episode(locked)
    assert [s.title for s in resolve_download_folder(download_root).seasons] == ["Readable"]
