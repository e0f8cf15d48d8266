"""
Playlist file writer

Keeps a channel's .m3u file in step with its saved items: one path per line,
relative to the playlist's directory, in remote order. Channel upload lists
are listed newest first remotely, so their default is the reverse order
(oldest first); reversePlaylist toggles whichever default applies.
"""

from pathlib import Path
from typing import List, Mapping, Optional

from ..channel.models import LocalItem
from ..config.settings import FlagsConfig
from ..exceptions import FilesystemError
from ..utils.helpers import atomic_write_lines, read_lines, relative_posix_path
from ..utils.logger import get_logger
from .state import ChannelState


logger = get_logger(__name__)


class PlaylistWriter:
    """Rewrites a channel's playlist file when its content changes"""

    def __init__(self, flags: Optional[FlagsConfig] = None):
        self.flags = flags or FlagsConfig()

    def build_lines(self, leaf, state: ChannelState, video_map: Mapping[str, LocalItem]) -> List[str]:
        """Compute the playlist lines for the saved items of a channel"""
        playlist_dir = Path(leaf.playlist_file).parent
        saved = set(state.saved)
        lines = [relative_posix_path(item.output_path, playlist_dir)
                 for identifier, item in video_map.items() if identifier in saved]

        if leaf.is_channel ^ leaf.reverse_playlist:
            lines.reverse()
        return lines

    def write(self, leaf, state: ChannelState, video_map: Mapping[str, LocalItem]) -> bool:
        """
        Update the playlist file of a channel

        Nothing is written when the channel has no playlist file, carries an
        error flag, or when the content is unchanged.

        Returns:
            True if the playlist file was (or, with editing prevented, would have been) changed

        Raises:
            FilesystemError: If the playlist file cannot be read or written
        """
        if leaf.playlist_file is None:
            return False
        if state.error_flag:
            logger.info(f"{leaf.key}: error flag set, not updating playlist {leaf.playlist_file}")
            return False

        playlist_file = Path(leaf.playlist_file)
        lines = self.build_lines(leaf, state, video_map)

        try:
            existing = read_lines(playlist_file)
        except (OSError, UnicodeDecodeError) as e:
            raise FilesystemError(f"Failed to read playlist {playlist_file}: {e}",
                                  details={'path': str(playlist_file), 'original_error': e}) from e

        if existing == lines:
            logger.debug(f"{leaf.key}: playlist unchanged ({len(lines)} entries)")
            return False

        if self.flags.prevent_playlist_edit:
            logger.console_info(f"Would have updated playlist: {playlist_file} ({len(lines)} entries)")
            return True

        try:
            atomic_write_lines(playlist_file, lines)
        except OSError as e:
            raise FilesystemError(f"Failed to write playlist {playlist_file}: {e}",
                                  details={'path': str(playlist_file), 'original_error': e}) from e

        logger.console_info(f"Updated playlist: {playlist_file.name} ({len(lines)} entries)")
        return True
