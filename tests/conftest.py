"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path

from channel_downloader.channel.models import DownloadOutcome, DownloadResponse, RemoteItem, RemoteListing
from channel_downloader.channel.tree import GlobalLocations, ResolvedLeaf, normalize_group_name
from channel_downloader.exceptions import FetchError
from channel_downloader.utils.helpers import key_to_name


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture
def locations(temp_dir):
    """Global locations rooted in the temporary directory"""
    return GlobalLocations(storage=temp_dir, video=temp_dir / "Videos", music=temp_dir / "Music")


@pytest.fixture
def make_leaf(temp_dir):
    """Factory for resolved channels with an existing output folder"""
    def factory(key="TEST_CHANNEL", **overrides):
        output_folder = Path(overrides.pop('output_folder', temp_dir / "output" / key))
        output_folder.mkdir(parents=True, exist_ok=True)
        values = dict(
            key=key,
            index=0,
            name=key_to_name(key),
            active=True,
            ancestors=(),
            memberships=frozenset({normalize_group_name(key)}),
            group_tags=frozenset(),
            url=None,
            remote_list_id="PLtest123",
            output_folder=output_folder,
            playlist_file=None,
            save_as_audio=False,
            save_playlist=False,
            reverse_playlist=False,
            ignore_global_locations=True,
            keep_clean=False,
            segment_skip_policy=None,
            error=None,
        )
        values.update(overrides)
        return ResolvedLeaf(**values)
    return factory


@pytest.fixture
def remote_items():
    """Three remote items in remote order"""
    return [
        RemoteItem(id="vid1", title="First Video", published_at="20230101"),
        RemoteItem(id="vid2", title="Second Video", published_at="20230201"),
        RemoteItem(id="vid3", title="Third Video", published_at="20230301"),
    ]


class FakeLister:
    """Lister returning canned listings by channel key"""

    def __init__(self, listings=None, failing=()):
        self.listings = listings or {}
        self.failing = set(failing)
        self.calls = []

    def list_items(self, leaf):
        self.calls.append(leaf.key)
        if leaf.key in self.failing:
            raise FetchError(f"listing failed for {leaf.key}")
        listing = self.listings.get(leaf.key)
        if isinstance(listing, RemoteListing):
            return listing
        return RemoteListing(items=list(listing or []))


class FakeFetcher:
    """Fetcher writing a small file on success, with per-id outcomes"""

    def __init__(self, outcomes=None, content=b"media-data"):
        self.outcomes = outcomes or {}
        self.content = content
        self.calls = []

    def fetch(self, item, audio, policy=None):
        self.calls.append((item.id, audio, policy))
        outcome = self.outcomes.get(item.id, DownloadOutcome.SUCCESS)
        if outcome is DownloadOutcome.SUCCESS:
            item.output_path.parent.mkdir(parents=True, exist_ok=True)
            item.output_path.write_bytes(self.content)
            return DownloadResponse(outcome, file_size=len(self.content))
        return DownloadResponse(outcome, message=f"{outcome.value} for {item.id}")


@pytest.fixture
def fake_lister():
    return FakeLister


@pytest.fixture
def fake_fetcher():
    return FakeFetcher
