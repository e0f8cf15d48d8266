"""Test playlist file generation"""

import pytest
from collections import OrderedDict

from channel_downloader.channel.models import LocalItem
from channel_downloader.config.settings import FlagsConfig
from channel_downloader.sync.playlist import PlaylistWriter
from channel_downloader.sync.state import ChannelState


@pytest.fixture
def playlist_leaf(make_leaf, temp_dir):
    def factory(**overrides):
        overrides.setdefault('playlist_file', temp_dir / "output" / "TEST_CHANNEL.m3u")
        overrides.setdefault('save_playlist', True)
        return make_leaf(**overrides)
    return factory


def _video_map(leaf, remote_items):
    return OrderedDict(
        (item.id, LocalItem.from_remote(item, leaf.output_folder, leaf.save_as_audio)) for item in remote_items
    )


class TestPlaylistWriter:
    """Test PlaylistWriter"""

    @pytest.mark.parametrize("remote_list_id,reverse,expected", [
        ("PLtest123", False, ["vid1", "vid2", "vid3"]),
        ("PLtest123", True, ["vid3", "vid2", "vid1"]),
        ("UUtest123", False, ["vid3", "vid2", "vid1"]),
        ("UUtest123", True, ["vid1", "vid2", "vid3"]),
    ])
    def test_ordering(self, playlist_leaf, remote_items, remote_list_id, reverse, expected):
        """Channel upload lists default to oldest first, reversePlaylist flips the default"""
        leaf = playlist_leaf(remote_list_id=remote_list_id, reverse_playlist=reverse)
        video_map = _video_map(leaf, remote_items)
        state = ChannelState(key=leaf.key, saved=["vid3", "vid1", "vid2"])

        lines = PlaylistWriter().build_lines(leaf, state, video_map)

        titles = {item.id: item.output_path.name for item in video_map.values()}
        assert lines == [f"TEST_CHANNEL/{titles[i]}" for i in expected]

    def test_only_saved_items(self, playlist_leaf, remote_items):
        leaf = playlist_leaf()
        state = ChannelState(key=leaf.key, saved=["vid2"], queued=["vid1"], blocked=["vid3"])

        lines = PlaylistWriter().build_lines(leaf, state, _video_map(leaf, remote_items))

        assert lines == ["TEST_CHANNEL/Second Video.mp4"]

    def test_playlist_inside_folder(self, playlist_leaf, remote_items, temp_dir):
        leaf = playlist_leaf(playlist_file=temp_dir / "output" / "TEST_CHANNEL" / "list.m3u")
        state = ChannelState(key=leaf.key, saved=["vid1"])

        lines = PlaylistWriter().build_lines(leaf, state, _video_map(leaf, remote_items))

        assert lines == ["First Video.mp4"]

    def test_write_and_unchanged(self, playlist_leaf, remote_items):
        leaf = playlist_leaf()
        video_map = _video_map(leaf, remote_items)
        state = ChannelState(key=leaf.key, saved=["vid1", "vid2"])
        writer = PlaylistWriter()

        assert writer.write(leaf, state, video_map) is True
        assert leaf.playlist_file.read_text(encoding='utf-8') == (
            "TEST_CHANNEL/First Video.mp4\nTEST_CHANNEL/Second Video.mp4\n"
        )
        assert writer.write(leaf, state, video_map) is False

    def test_no_playlist_file(self, make_leaf, remote_items):
        leaf = make_leaf()
        state = ChannelState(key=leaf.key, saved=["vid1"])
        assert PlaylistWriter().write(leaf, state, _video_map(leaf, remote_items)) is False

    def test_error_flag_suppresses_write(self, playlist_leaf, remote_items):
        leaf = playlist_leaf()
        state = ChannelState(key=leaf.key, saved=["vid1"], error_flag=True)

        assert PlaylistWriter().write(leaf, state, _video_map(leaf, remote_items)) is False
        assert not leaf.playlist_file.exists()

    def test_prevent_playlist_edit(self, playlist_leaf, remote_items):
        leaf = playlist_leaf()
        state = ChannelState(key=leaf.key, saved=["vid1"])
        writer = PlaylistWriter(FlagsConfig(prevent_playlist_edit=True))

        assert writer.write(leaf, state, _video_map(leaf, remote_items)) is True
        assert not leaf.playlist_file.exists()
