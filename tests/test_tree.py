"""Test channel tree parsing, resolution and selection"""

import pytest
from pathlib import Path

from channel_downloader.channel.models import ChannelType
from channel_downloader.channel.sponsorblock import PolicyScope
from channel_downloader.channel.tree import Group, Leaf, load_tree, parse_tree, resolve, select_leaves
from channel_downloader.exceptions import ConfigurationError


def _by_key(leaves):
    return {leaf.key: leaf for leaf in leaves}


class TestParsing:
    """Test channel document parsing"""

    def test_group_and_leaf_detection(self):
        """A node with 'channels' is a group, anything else a channel"""
        tree = parse_tree([
            {'key': 'MUSIC', 'channels': [{'key': 'ARTIST', 'playlistId': 'PLabc'}]},
            {'key': 'SOLO', 'playlistId': 'PLdef'},
        ])

        assert isinstance(tree.roots[0], Group)
        assert isinstance(tree.roots[0].children[0], Leaf)
        assert isinstance(tree.roots[1], Leaf)
        assert tree.keys() == ['MUSIC', 'ARTIST', 'SOLO']

    def test_empty_group_is_still_a_group(self):
        tree = parse_tree([{'key': 'EMPTY', 'channels': []}])
        assert isinstance(tree.roots[0], Group)
        assert resolve(tree) == []

    def test_duplicate_key_rejected(self):
        """Keys must be unique across the whole tree"""
        with pytest.raises(ConfigurationError, match="Duplicate"):
            parse_tree([
                {'key': 'GROUP', 'channels': [{'key': 'SAME', 'playlistId': 'PLa'}]},
                {'key': 'SAME', 'playlistId': 'PLb'},
            ])

    def test_missing_key_rejected(self):
        with pytest.raises(ConfigurationError, match="key"):
            parse_tree([{'playlistId': 'PLabc'}])

    def test_key_normalization(self):
        tree = parse_tree([{'key': 'My Channel', 'playlistId': 'PLabc'}])
        assert tree.keys() == ['My_Channel']

    def test_non_boolean_flag_rejected(self):
        with pytest.raises(ConfigurationError, match="saveAsMp3"):
            parse_tree([{'key': 'A', 'playlistId': 'PLa', 'saveAsMp3': 'yes'}])

    def test_document_mapping_with_hooks(self):
        tree = parse_tree({
            'channels': [{'key': 'A', 'playlistId': 'PLa'}],
            'hooks': {'a b': {'pre': [{'append': ' (Live)'}]}},
        })
        assert tree.keys() == ['A']
        assert 'a_b' in tree.hooks

    def test_channel_id_becomes_uploads_list(self, locations):
        """A UC channel id is turned into the UU uploads list id"""
        tree = parse_tree([{'key': 'CREATOR', 'playlistId': 'UCxyz123', 'outputFolder': 'Creator'}])
        leaf = resolve(tree, locations)[0]

        assert leaf.remote_list_id == 'UUxyz123'
        assert leaf.channel_type is ChannelType.CHANNEL
        assert leaf.is_channel
        assert leaf.url == 'https://www.youtube.com/channel/UCxyz123'

    def test_playlist_url(self, locations):
        tree = parse_tree([{'key': 'LIST', 'playlistId': 'PLabc', 'outputFolder': 'List'}])
        leaf = resolve(tree, locations)[0]

        assert leaf.channel_type is ChannelType.PLAYLIST
        assert not leaf.is_channel
        assert leaf.url == 'https://www.youtube.com/playlist?list=PLabc'

    def test_load_tree_from_yaml(self, temp_dir):
        document = temp_dir / "channels.yaml"
        document.write_text(
            "channels:\n"
            "  - key: MUSIC\n"
            "    saveAsMp3: true\n"
            "    channels:\n"
            "      - key: ARTIST\n"
            "        playlistId: PLabc\n"
            "        outputFolder: Artist\n",
            encoding='utf-8'
        )

        tree = load_tree(document)
        assert tree.keys() == ['MUSIC', 'ARTIST']

    def test_load_tree_missing_file(self, temp_dir):
        with pytest.raises(ConfigurationError, match="not found"):
            load_tree(temp_dir / "missing.yaml")

    def test_walk_reports_depth_and_active(self):
        tree = parse_tree([
            {'key': 'OUTER', 'active': False, 'channels': [
                {'key': 'INNER', 'channels': [{'key': 'LEAF', 'playlistId': 'PLa'}]},
            ]},
        ])

        walked = [(node.key, depth, active) for node, depth, active in tree.walk()]
        assert walked == [('OUTER', 0, False), ('INNER', 1, False), ('LEAF', 2, False)]


class TestInheritance:
    """Test setting inheritance and path resolution"""

    def test_settings_inherited_from_nearest_ancestor(self, locations):
        tree = parse_tree([
            {'key': 'MUSIC', 'saveAsMp3': True, 'keepClean': True, 'outputFolder': 'Music', 'channels': [
                {'key': 'ARTIST', 'playlistId': 'PLabc', 'outputFolder': '~ - Artist'},
                {'key': 'VIDEOS', 'playlistId': 'PLdef', 'saveAsMp3': False, 'outputFolder': 'Clips'},
            ]},
        ])
        leaves = _by_key(resolve(tree, locations))

        artist = leaves['ARTIST']
        assert artist.save_as_audio is True
        assert artist.keep_clean is True
        assert artist.output_folder == locations.music / "Music - Artist"

        videos = leaves['VIDEOS']
        assert videos.save_as_audio is False
        assert videos.keep_clean is True
        assert videos.output_folder == locations.video / "Clips"

    def test_defaults(self, locations):
        tree = parse_tree([{'key': 'MY_CHANNEL', 'playlistId': 'PLabc', 'outputFolder': 'Mine'}])
        leaf = resolve(tree, locations)[0]

        assert leaf.name == 'My Channel'
        assert leaf.active is True
        assert leaf.save_as_audio is False
        assert leaf.reverse_playlist is False
        assert leaf.keep_clean is False
        assert leaf.save_playlist is False
        assert leaf.playlist_file is None
        assert leaf.error is None

    def test_active_is_and_composed(self, locations):
        """An inactive group deactivates its channels even if they say active"""
        tree = parse_tree([
            {'key': 'OFF', 'active': False, 'channels': [
                {'key': 'CHILD', 'active': True, 'playlistId': 'PLa', 'outputFolder': 'Child'},
            ]},
            {'key': 'ON', 'channels': [
                {'key': 'OFF_CHILD', 'active': False, 'playlistId': 'PLb', 'outputFolder': 'Other'},
            ]},
        ])
        leaves = _by_key(resolve(tree, locations))

        assert leaves['CHILD'].active is False
        assert leaves['OFF_CHILD'].active is False

    def test_save_playlist_defaults_to_folder_playlist(self, locations):
        tree = parse_tree([{'key': 'A', 'playlistId': 'PLa', 'outputFolder': 'Folder A', 'savePlaylist': True}])
        leaf = resolve(tree, locations)[0]

        assert leaf.save_playlist is True
        assert leaf.playlist_file == Path(f"{locations.video / 'Folder A'}.m3u")

    def test_playlist_file_tilde_and_extension_collapse(self, locations):
        tree = parse_tree([
            {'key': 'GROUP', 'playlistFile': '~.m3u.m3u', 'channels': [
                {'key': 'A', 'playlistId': 'PLa', 'outputFolder': 'Channel A'},
            ]},
        ])
        leaf = resolve(tree, locations)[0]

        assert leaf.playlist_file == locations.video / "Channel A.m3u"
        assert leaf.save_playlist is True

    def test_placeholders_with_ignore_global_locations(self, locations):
        tree = parse_tree([{
            'key': 'SPECIAL',
            'playlistId': 'PLa',
            'outputFolder': '${V}/Special',
            'ignoreGlobalLocations': True,
        }])
        leaf = resolve(tree, locations)[0]

        assert leaf.error is None
        assert leaf.output_folder == locations.video / "Special"

    def test_relative_path_with_ignore_global_locations_is_an_error(self, locations):
        tree = parse_tree([{
            'key': 'BROKEN',
            'playlistId': 'PLa',
            'outputFolder': 'relative/folder',
            'ignoreGlobalLocations': True,
        }])
        leaf = resolve(tree, locations)[0]

        assert leaf.error is not None
        assert select_leaves([leaf]) == []

    def test_missing_remote_id_is_an_error(self, locations):
        tree = parse_tree([{'key': 'NO_ID', 'outputFolder': 'Somewhere'}])
        leaf = resolve(tree, locations)[0]

        assert 'remoteListId' in leaf.error
        assert not leaf.is_processable

    def test_unrecognized_remote_id_is_an_error(self, locations):
        tree = parse_tree([{'key': 'WATCH_LATER', 'playlistId': 'WL', 'outputFolder': 'Somewhere'}])
        leaf = resolve(tree, locations)[0]

        assert 'Unrecognized remote list id' in leaf.error
        assert not leaf.is_processable

    def test_missing_output_folder_is_an_error(self, locations):
        tree = parse_tree([{'key': 'NO_FOLDER', 'playlistId': 'PLa'}])
        leaf = resolve(tree, locations)[0]

        assert 'outputFolder' in leaf.error

    def test_sponsorblock_policy_inherited(self, locations):
        tree = parse_tree([
            {'key': 'GROUP', 'sponsorBlock': {'skipSponsor': True, 'overrideGlobal': True}, 'channels': [
                {'key': 'A', 'playlistId': 'PLa', 'outputFolder': 'A'},
            ]},
        ])
        leaf = resolve(tree, locations)[0]

        assert leaf.segment_skip_policy.scope is PolicyScope.LOCAL
        assert leaf.segment_skip_policy.override_global is True
        assert leaf.segment_skip_policy.categories == ['sponsor']

    def test_ancestors_recorded(self, locations):
        tree = parse_tree([
            {'key': 'OUTER', 'channels': [
                {'key': 'INNER', 'channels': [{'key': 'LEAF', 'playlistId': 'PLa', 'outputFolder': 'L'}]},
            ]},
        ])
        leaf = resolve(tree, locations)[0]
        assert leaf.ancestors == ('OUTER', 'INNER')


class TestSelection:
    """Test channel selection for a run"""

    @pytest.fixture
    def leaves(self, locations):
        tree = parse_tree([
            {'key': 'MUSIC_VIDEOS', 'outputFolder': 'Music', 'channels': [
                {'key': 'ARTIST_ONE', 'playlistId': 'PLa', 'outputFolder': '~/One', 'group': 'Favorites, Chill'},
                {'key': 'ARTIST_TWO', 'playlistId': 'PLb', 'outputFolder': '~/Two'},
            ]},
            {'key': 'NEWS', 'playlistId': 'PLc', 'outputFolder': 'News'},
            {'key': 'OLD', 'active': False, 'playlistId': 'PLd', 'outputFolder': 'Old'},
            {'key': 'SCIENCE', 'playlistId': 'PLe', 'outputFolder': 'Science'},
        ])
        return resolve(tree, locations)

    def test_all_active(self, leaves):
        keys = [leaf.key for leaf in select_leaves(leaves)]
        assert keys == ['ARTIST_ONE', 'ARTIST_TWO', 'NEWS', 'SCIENCE']

    def test_single_channel(self, leaves):
        assert [leaf.key for leaf in select_leaves(leaves, channel='NEWS')] == ['NEWS']

    def test_group_by_ancestor_key(self, leaves):
        """Group names are compared loosely: case, separators and plural 's'"""
        keys = [leaf.key for leaf in select_leaves(leaves, group='Music Videos')]
        assert keys == ['ARTIST_ONE', 'ARTIST_TWO']

    def test_group_by_tag(self, leaves):
        assert [leaf.key for leaf in select_leaves(leaves, group='favorite')] == ['ARTIST_ONE']
        assert [leaf.key for leaf in select_leaves(leaves, group=['chill', 'news'])] == ['ARTIST_ONE', 'NEWS']

    def test_start_stop_window(self, leaves):
        keys = [leaf.key for leaf in select_leaves(leaves, start_at='ARTIST_TWO', stop_at='OLD')]
        assert keys == ['ARTIST_TWO', 'NEWS']

    def test_unknown_key_rejected(self, leaves):
        with pytest.raises(ConfigurationError, match="Unknown channel key"):
            select_leaves(leaves, channel='MISSING')
        with pytest.raises(ConfigurationError):
            select_leaves(leaves, start_at='MISSING')

    def test_example_document(self, locations):
        """The shipped example channel document is valid"""
        import channel_downloader
        from channel_downloader.sync.hooks import HookRegistry

        document = Path(channel_downloader.__file__).parent / "config" / "channels.example.yaml"
        tree = load_tree(document)
        leaves = resolve(tree, locations)

        assert [leaf.key for leaf in select_leaves(leaves)] == [
            'SOME_ARTIST', 'LIVE_SESSIONS', 'SCIENCE', 'LONG_PODCAST', 'LONG_PODCAST_P2'
        ]
        assert leaves[0].playlist_file == locations.music / "Music Videos" / "Some Artist.m3u"
        assert leaves[3].output_folder == locations.storage / "Podcasts" / "Long Podcast"
        assert HookRegistry.from_config(tree.hooks).keys() == ['LIVE_SESSIONS', 'SOME_ARTIST']
