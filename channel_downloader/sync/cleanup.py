"""
Output folder cleanup for channels with keepClean

Removes files from a channel's output folder that no longer belong to any
saved item. Long sources are sometimes split over several channels that
share one folder (SOURCE, SOURCE_P2, SOURCE_P3, ...); those siblings form a
single cleanup domain, so a file saved by any of them is kept.
"""

import re
import shutil
from pathlib import Path
from typing import Iterable, Mapping, Optional, Set

from ..channel.models import RunStats
from ..config.settings import FlagsConfig
from ..utils.helpers import create_backup_filename, ensure_directory, get_format, is_audio_format, is_partial_download
from ..utils.logger import get_logger
from .keystore import IdentifierStore
from .state import ChannelState


logger = get_logger(__name__)

_PART_SUFFIX = re.compile(r'_P\d+$')


def base_key(key: str) -> str:
    """Strip a numbered part suffix from a channel key (SOURCE_P2 -> SOURCE)"""
    return _PART_SUFFIX.sub('', key)


def sibling_keys(key: str, keys: Iterable[str]) -> list:
    """Keys sharing the cleanup domain of a channel, the channel itself included"""
    pattern = re.compile(re.escape(base_key(key)) + r'(?:_P\d+)?')
    return [other for other in keys if pattern.fullmatch(other)]


class CleanupEngine:
    """Deletes or recycles files no sibling channel has saved"""

    def __init__(self, flags: Optional[FlagsConfig] = None, recycle_directory: Optional[Path] = None):
        """
        Initialize cleanup engine

        Args:
            flags: Run flags (prevent_deletion, delete_to_recycling_bin)
            recycle_directory: Where files go when deleting to the recycling bin
        """
        self.flags = flags or FlagsConfig()
        self.recycle_directory = Path(recycle_directory).expanduser() if recycle_directory else None

    def saved_paths(self, states: Iterable[ChannelState], store: IdentifierStore) -> Set[Path]:
        """Resolved paths of every saved id of the given states"""
        paths = set()
        for state in states:
            for identifier in state.saved:
                path = store.get(identifier)
                if path is not None:
                    paths.add(path.resolve())
        return paths

    def clean(self, leaf, sibling_states: Mapping[str, ChannelState], store: IdentifierStore,
              stats: Optional[RunStats] = None) -> RunStats:
        """
        Clean a channel's output folder

        Args:
            leaf: Resolved channel
            sibling_states: States of the channel and its part siblings, by key
            store: Identifier store used to map saved ids to paths
            stats: Counters to update, a new RunStats when omitted

        Returns:
            The updated counters
        """
        stats = stats if stats is not None else RunStats()
        own_state = sibling_states.get(leaf.key)
        if not leaf.keep_clean:
            return stats
        if own_state is not None and own_state.error_flag:
            logger.info(f"{leaf.key}: error flag set, skipping cleanup")
            return stats

        folder = Path(leaf.output_folder)
        if not folder.is_dir():
            return stats

        domain = [sibling_states[key] for key in sibling_keys(leaf.key, sibling_states)]
        keep = self.saved_paths(domain, store)
        playlist = Path(leaf.playlist_file).resolve() if leaf.playlist_file else None

        for path in sorted(p for p in folder.iterdir() if p.is_file()):
            resolved = path.resolve()
            if resolved in keep or resolved == playlist:
                continue
            self._remove(leaf, path, stats)

        return stats

    def _remove(self, leaf, path: Path, stats: RunStats) -> None:
        partial = is_partial_download(path.name)
        audio = is_audio_format(get_format(path))

        if self.flags.prevent_deletion:
            logger.console_info(f"Would have deleted: '{path.name}' ({leaf.key})")
            return

        try:
            if self.flags.delete_to_recycling_bin and self.recycle_directory is not None:
                target = ensure_directory(self.recycle_directory) / path.name
                if target.exists():
                    target = create_backup_filename(target)
                shutil.move(str(path), str(target))
                logger.console_info(f"Recycled: '{path.name}' ({leaf.key})")
            else:
                path.unlink()
                logger.console_info(f"Deleted: '{path.name}' ({leaf.key})")
        except OSError as e:
            logger.error(f"{leaf.key}: failed to delete '{path.name}': {e}")
            return

        stats.count_deletion(audio, partial)
