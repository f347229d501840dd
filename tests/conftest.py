"""Shared fakes for the pipeline tests."""

from unittest.mock import patch

import pytest

from rd_autoadd.config import AutoAddConfig, Limits, QualityPreferences, TraktSource
from rd_autoadd.models import Candidate, MediaItem

GB = 1024 ** 3


def make_hash(n: int) -> str:
    return f"{n:040x}"


def make_candidate(title: str, size_gb: float, n: int = 1, available: bool = False) -> Candidate:
    return Candidate(title=title, size_bytes=int(size_gb * GB), content_hash=make_hash(n), available=available)


def make_stream(title: str, size: str, n: int) -> dict:
    return {"title": f"{title}\n👤 120 💾 {size} ⚙️ TorrentGalaxy", "infoHash": make_hash(n).upper()}


class FakeCache:
    """In-memory stand-in for RealDebridClient."""

    def __init__(self, cached=(), torrents=()):
        self.cached = set(cached)
        self.torrents = list(torrents)
        self.probe_calls = []
        self.added = []
        self.selected = []
        self.deleted = []
        self.add_errors = []
        self.delete_errors = []
        self.select_errors = []
        self.calls = []

    def probe_availability(self, hashes):
        self.probe_calls.append(list(hashes))
        return {h: h in self.cached for h in hashes}

    def add_magnet(self, info_hash):
        self.calls.append(("add", info_hash))
        if self.add_errors:
            raise self.add_errors.pop(0)
        self.added.append(info_hash)
        return f"T{len(self.added)}"

    def select_all_files(self, torrent_id):
        self.calls.append(("select", torrent_id))
        if self.select_errors:
            raise self.select_errors.pop(0)
        self.selected.append(torrent_id)

    def delete_torrent(self, torrent_id):
        self.calls.append(("delete", torrent_id))
        if self.delete_errors:
            raise self.delete_errors.pop(0)
        self.deleted.append(torrent_id)
        return True

    def list_torrents(self):
        return list(self.torrents)

    @property
    def mutations(self):
        return self.added + self.selected + self.deleted


class FakeIndex:
    """Torrentio stand-in keyed by IMDb id."""

    def __init__(self, streams=None):
        self.streams = streams or {}
        self.searched = []

    def search(self, external_id, media_type):
        self.searched.append(external_id)
        return self.streams.get(external_id, [])


class FakeCatalog:
    def __init__(self, trending=(), popular=()):
        self.trending = list(trending)
        self.popular = list(popular)

    def list_trending(self, media_type, limit=20):
        return [i for i in self.trending if i.media_type == media_type][:limit]

    def list_popular(self, media_type, limit=20):
        return [i for i in self.popular if i.media_type == media_type][:limit]

    def list_by_custom_list(self, owner, slug):
        return []

    def list_watchlist(self, owner):
        return []


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("time.sleep") as sleep:
        yield sleep


@pytest.fixture
def dune():
    return MediaItem("tt15239678", "Dune: Part Two", 2024, "movie")


@pytest.fixture
def make_config():
    def _make(**overrides):
        quality = overrides.pop("quality", QualityPreferences())
        limits = overrides.pop("limits", Limits())
        trakt = overrides.pop("trakt", TraktSource(enabled=True))
        return AutoAddConfig(quality=quality, limits=limits, trakt=trakt, **overrides)
    return _make
