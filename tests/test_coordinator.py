"""Test download queue processing"""

import json
import pytest
from collections import OrderedDict

from channel_downloader.channel.models import DownloadOutcome, LocalItem
from channel_downloader.channel.sponsorblock import PolicyScope, SegmentSkipPolicy
from channel_downloader.config.settings import FlagsConfig
from channel_downloader.sync.coordinator import DownloadCoordinator
from channel_downloader.sync.keystore import IdentifierStore
from channel_downloader.sync.state import ChannelState


@pytest.fixture
def leaf(make_leaf):
    return make_leaf()


@pytest.fixture
def video_map(leaf, remote_items):
    return OrderedDict(
        (item.id, LocalItem.from_remote(item, leaf.output_folder, leaf.save_as_audio)) for item in remote_items
    )


@pytest.fixture
def state(leaf, temp_dir):
    state = ChannelState.load(temp_dir / "data", leaf.key)
    state.queued = ["vid1", "vid2", "vid3"]
    return state


@pytest.fixture
def store():
    return IdentifierStore()


class TestDownloadCoordinator:
    """Test DownloadCoordinator"""

    def test_outcomes(self, leaf, state, store, video_map, fake_fetcher):
        fetcher = fake_fetcher({"vid2": DownloadOutcome.ERROR, "vid3": DownloadOutcome.FAILURE})
        coordinator = DownloadCoordinator(fetcher, show_progress=False)

        stats = coordinator.download(leaf, state, store, video_map)

        assert state.saved == ["vid1"]
        assert state.blocked == ["vid2"]
        assert state.queued == []
        assert "vid3" not in state.saved and "vid3" not in state.blocked
        assert store.get("vid1") == leaf.output_folder / "First Video.mp4"
        assert "vid2" not in store

        assert stats.video_downloads == 1
        assert stats.video_bytes == len(b"media-data")
        assert stats.video_failures == 2
        assert stats.audio_downloads == 0

    def test_audio_channel(self, make_leaf, temp_dir, store, remote_items, fake_fetcher):
        leaf = make_leaf("AUDIO", save_as_audio=True)
        video_map = OrderedDict((item.id, LocalItem.from_remote(item, leaf.output_folder, True))
                                for item in remote_items[:1])
        state = ChannelState(key="AUDIO", queued=["vid1"])
        fetcher = fake_fetcher()

        stats = DownloadCoordinator(fetcher, show_progress=False).download(leaf, state, store, video_map)

        assert fetcher.calls[0][:2] == ("vid1", True)
        assert stats.audio_downloads == 1
        assert (leaf.output_folder / "First Video.mp3").exists()

    def test_prevent_download(self, leaf, state, store, video_map, fake_fetcher):
        fetcher = fake_fetcher()
        coordinator = DownloadCoordinator(fetcher, flags=FlagsConfig(prevent_download=True), show_progress=False)

        stats = coordinator.download(leaf, state, store, video_map)

        assert fetcher.calls == []
        assert state.queued == []
        assert state.saved == []
        assert stats.total_downloads == 0

    def test_state_saved_after_each_item(self, leaf, state, store, video_map, fake_fetcher):
        """An interruption keeps every item finished before it"""
        class InterruptingFetcher(fake_fetcher):
            def fetch(self, item, audio, policy=None):
                if item.id == "vid2":
                    raise KeyboardInterrupt
                return super().fetch(item, audio, policy)

        coordinator = DownloadCoordinator(InterruptingFetcher(), show_progress=False)
        with pytest.raises(KeyboardInterrupt):
            coordinator.download(leaf, state, store, video_map)

        saved = json.loads(state.path.read_text(encoding='utf-8'))
        assert saved['saved'] == ["vid1"]
        assert saved['queued'] == ["vid2", "vid3"]

    def test_unknown_queued_id_is_dropped(self, leaf, state, store, video_map, fake_fetcher):
        state.queued = ["missing", "vid1"]
        fetcher = fake_fetcher()

        DownloadCoordinator(fetcher, show_progress=False).download(leaf, state, store, video_map)

        assert [call[0] for call in fetcher.calls] == ["vid1"]
        assert state.queued == []

    def test_empty_queue(self, leaf, store, video_map, fake_fetcher):
        fetcher = fake_fetcher()
        stats = DownloadCoordinator(fetcher, show_progress=False).download(
            leaf, ChannelState(key=leaf.key), store, video_map
        )
        assert fetcher.calls == []
        assert stats.total_downloads == 0

    def test_effective_policy_passed_to_fetcher(self, make_leaf, store, video_map, fake_fetcher):
        local = SegmentSkipPolicy(scope=PolicyScope.LOCAL, skip_intro=True)
        leaf = make_leaf(segment_skip_policy=local)
        global_policy = SegmentSkipPolicy(scope=PolicyScope.GLOBAL, skip_sponsor=True, force_globally=True)
        fetcher = fake_fetcher()
        state = ChannelState(key=leaf.key, queued=["vid1"])

        DownloadCoordinator(fetcher, global_policy=global_policy, show_progress=False).download(
            leaf, state, store, video_map
        )

        policy = fetcher.calls[0][2]
        assert policy.scope is PolicyScope.GLOBAL
        assert policy.categories == ("sponsor",)
