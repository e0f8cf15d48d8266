"""
Reconciliation of a remote item list against the local output folder

For one channel, the remote list is turned into an ordered video map
(id -> LocalItem) and every entry is classified:

- saved: its file is present under the canonical name, or was found under
  an older name and renamed to the canonical one
- blocked: it failed permanently on an earlier run and is left alone
- queued: nothing local corresponds to it, it must be fetched

Renamed titles are the common case (a creator edits a title, a hook
reformats titles), so before queuing an item the engine looks for its
previous file: first at the path remembered in the identifier store, then
by scanning the output folder for a single file whose name matches the
title in the same media family. Anything ambiguous is queued rather than
guessed.
"""

import os
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from ..channel.models import LocalItem, RemoteItem
from ..config.settings import FlagsConfig
from ..exceptions import FilesystemError
from ..utils.helpers import (
    exists_exactly,
    get_format,
    get_title_key,
    is_audio_format,
    is_partial_download,
    same_media_family,
)
from ..utils.logger import get_logger
from .hooks import HookRegistry
from .keystore import IdentifierStore
from .state import ChannelState


logger = get_logger(__name__)


@dataclass
class ReconcileResult:
    """
    Output of one reconciliation pass

    Attributes:
        video_map: Ordered id -> LocalItem map after hooks and renames
        renames: (old path, new path) pairs of renames performed on disk
        duplicates: Ids dropped because an earlier item had the same title
    """
    video_map: "OrderedDict[str, LocalItem]" = field(default_factory=OrderedDict)
    renames: List[Tuple[Path, Path]] = field(default_factory=list)
    duplicates: List[str] = field(default_factory=list)

    @property
    def audio_renames(self) -> int:
        return sum(1 for _, new in self.renames if is_audio_format(get_format(new)))

    @property
    def video_renames(self) -> int:
        return len(self.renames) - self.audio_renames


class ReconciliationEngine:
    """Classifies a channel's remote items as saved, queued or blocked"""

    def __init__(self, hooks: Optional[HookRegistry] = None, flags: Optional[FlagsConfig] = None):
        """
        Initialize reconciliation engine

        Args:
            hooks: Pre/post hook registry, an empty one when omitted
            flags: Run flags (retry_previous_failures, prevent_renaming)
        """
        self.hooks = hooks or HookRegistry()
        self.flags = flags or FlagsConfig()

    def build_video_map(self, leaf, remote_items: Sequence[RemoteItem]) -> ReconcileResult:
        """
        Build the ordered video map, keeping the first item of each title

        Args:
            leaf: Resolved channel
            remote_items: Remote items in remote order

        Returns:
            ReconcileResult with video_map and duplicates filled in
        """
        result = ReconcileResult()
        titles = {}
        for remote in remote_items:
            if remote.id in result.video_map:
                continue
            item = LocalItem.from_remote(remote, leaf.output_folder, leaf.save_as_audio)
            title_key = item.title.casefold()
            if title_key in titles:
                logger.warning(f"{leaf.key}: '{item.title}' ({item.id}) has the same title as "
                               f"{titles[title_key]}, only the first one is kept")
                result.duplicates.append(item.id)
                continue
            titles[title_key] = item.id
            result.video_map[item.id] = item
        return result

    def reconcile(self, leaf, state: ChannelState, store: IdentifierStore,
                  remote_items: Sequence[RemoteItem]) -> ReconcileResult:
        """
        Reconcile a channel's remote items with its output folder

        Mutates state (queued/saved/blocked) and store, performs renames on
        disk and saves the state before returning.

        Args:
            leaf: Resolved channel
            state: Channel state, loaded by the caller
            store: Identifier store shared by all channels
            remote_items: Non-empty remote item list, in remote order

        Returns:
            ReconcileResult with the final video map and the renames performed

        Raises:
            HookError: If a hook fails
            FilesystemError: If the state cannot be saved
        """
        state.queued.clear()
        if self.flags.retry_previous_failures and state.blocked:
            logger.info(f"{leaf.key}: retrying {len(state.blocked)} previously failed items")
            state.blocked.clear()

        result = self.build_video_map(leaf, remote_items)
        video_map = result.video_map

        self.hooks.run_pre(leaf, video_map, state)

        for identifier, item in video_map.items():
            state.unsave(identifier)

            if exists_exactly(item.output_path):
                state.mark_saved(identifier)
                state.unblock(identifier)
                store.put(identifier, item.output_path)
                continue

            if state.is_blocked(identifier):
                logger.debug(f"{leaf.key}: {identifier} '{item.title}' is blocked, skipping")
                continue

            previous = self.find_previous_file(leaf, item, store)
            if previous is None:
                logger.debug(f"{leaf.key}: queued {identifier} '{item.title}'")
                state.queue(identifier)
                continue

            renamed = self._adopt(leaf, item, previous)
            if renamed is not None:
                result.renames.append(renamed)
            state.mark_saved(identifier)
            store.put(identifier, item.output_path)

        self.hooks.run_post(leaf, video_map, state)

        state.save()
        logger.info(f"{leaf.key}: {len(video_map)} remote items, {len(state.saved)} saved, "
                    f"{len(state.queued)} queued, {len(state.blocked)} blocked, {len(result.renames)} renamed")
        return result

    def find_previous_file(self, leaf, item: LocalItem, store: IdentifierStore) -> Optional[Path]:
        """
        Locate an item's file under a non-canonical name

        The identifier store is consulted first. Its entry is only trusted
        when the file still exists in this channel's output folder in the
        same media family. Otherwise the output folder is scanned for a
        single non-empty file whose name (case-insensitively) equals the
        title; zero or several candidates mean no match.

        Returns:
            Path of the previous file, or None
        """
        expected_format = item.output_format
        folder = Path(item.output_folder)

        stored = store.get(item.id)
        if stored is not None and stored.is_file() and stored.parent == folder \
                and self._same_family(stored, expected_format):
            return stored

        if not folder.is_dir():
            return None

        title_key = item.title.casefold()
        candidates = []
        try:
            for entry in os.scandir(folder):
                if not entry.is_file() or is_partial_download(entry.name):
                    continue
                if get_title_key(entry.name).casefold() != title_key:
                    continue
                if entry.stat().st_size == 0 or not self._same_family(Path(entry.path), expected_format):
                    continue
                candidates.append(Path(entry.path))
        except OSError as e:
            logger.warning(f"{leaf.key}: could not scan {folder}: {e}")
            return None

        if len(candidates) > 1:
            logger.warning(f"{leaf.key}: {len(candidates)} files could belong to {item.id} '{item.title}', "
                           f"queuing it instead of guessing")
            return None
        return candidates[0] if candidates else None

    @staticmethod
    def _same_family(path: Path, expected_format: str) -> bool:
        return same_media_family(get_format(path), expected_format)

    def _adopt(self, leaf, item: LocalItem, previous: Path) -> Optional[Tuple[Path, Path]]:
        """
        Take over a previous file, renaming it to the canonical title

        Returns:
            (old, new) when a rename happened on disk, else None
        """
        target = item.output_folder / f"{item.title}.{get_format(previous)}"

        if previous.name == target.name:
            item.update_output(previous)
            return None

        if self.flags.prevent_renaming:
            logger.console_info(f"Would have renamed: '{previous.name}' -> '{target.name}' ({item.id})")
            item.update_output(previous)
            return None

        try:
            if exists_exactly(target):
                raise FilesystemError(f"Cannot rename '{previous.name}': '{target.name}' already exists",
                                      details={'id': item.id, 'source': str(previous), 'target': str(target)})
            try:
                previous.rename(target)
            except OSError as e:
                raise FilesystemError(f"Failed to rename '{previous.name}' to '{target.name}': {e}",
                                      details={'id': item.id, 'original_error': e}) from e
        except FilesystemError as e:
            logger.error(f"{leaf.key}: {e}")
            item.update_output(previous)
            return None

        logger.console_info(f"Renamed: '{previous.name}' -> '{target.name}' ({item.id})")
        item.update_output(target)
        return previous, target
