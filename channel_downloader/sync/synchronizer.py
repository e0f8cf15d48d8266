"""
Channel Synchronization Engine

Runs the full pipeline for each selected channel, strictly one channel at a
time and in configuration order:

    list remote items -> reconcile (pre-hooks, diff, post-hooks)
    -> download queue -> playlist file -> cleanup -> save identifier store

Architecture Overview:
    - **ChannelOutcome**: What happened to one channel in a run
    - **RunResult**: Run-level counters plus the per-channel outcomes
    - **ChannelSynchronizer**: Orchestrator wiring the collaborators together

Collaborators are injected: the lister (remote list), the fetcher (one
download), the hook registry and the identifier store. Nothing here reads
global settings, which keeps every step testable with in-memory fixtures;
create_synchronizer() builds the production wiring from Settings.

Error handling:
    - FetchError while listing: the channel is skipped, its state untouched
    - FetchError while downloading, HookError or FilesystemError: the channel
      is reported failed, state already flushed stays on disk, the run continues
    - An incomplete listing raises the channel's error flag, which keeps the
      playlist and the cleanup pass from acting on partial information
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..channel.models import RunStats
from ..channel.sponsorblock import PolicyScope, SegmentSkipPolicy
from ..config.settings import FlagsConfig
from ..exceptions import FetchError, FilesystemError, HookError
from ..utils.helpers import get_format, is_audio_format
from ..utils.logger import get_logger
from ..youtube.fetcher import YoutubeFetcher
from ..youtube.lister import YoutubeLister
from .cleanup import CleanupEngine, sibling_keys
from .coordinator import DownloadCoordinator
from .hooks import HookRegistry
from .keystore import IdentifierStore
from .playlist import PlaylistWriter
from .reconciler import ReconciliationEngine
from .state import ChannelState


logger = get_logger(__name__)


class ChannelStatus(Enum):
    """Final status of a channel in a run"""
    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ChannelOutcome:
    """What happened to one channel"""
    key: str
    status: ChannelStatus
    message: str = ""
    remote_items: int = 0
    queued: int = 0
    renamed: int = 0


@dataclass
class RunResult:
    """
    Result of a synchronization run

    Attributes:
        stats: Counters summed over every channel
        outcomes: One entry per selected channel, in processing order
    """
    stats: RunStats = field(default_factory=RunStats)
    outcomes: List[ChannelOutcome] = field(default_factory=list)

    @property
    def failed(self) -> List[ChannelOutcome]:
        return [o for o in self.outcomes if o.status is ChannelStatus.FAILED]

    @property
    def success(self) -> bool:
        return not self.failed

    def summary(self) -> str:
        lines = ["Synchronization summary:"]
        lines.extend(f"  {line}" for line in self.stats.summary_lines())
        for outcome in self.failed:
            lines.append(f"  Failed: {outcome.key} - {outcome.message}")
        return "\n".join(lines)


class ChannelSynchronizer:
    """Processes channels through the whole synchronization pipeline"""

    def __init__(
        self,
        lister,
        fetcher,
        store: Optional[IdentifierStore] = None,
        hooks: Optional[HookRegistry] = None,
        flags: Optional[FlagsConfig] = None,
        global_policy: Optional[SegmentSkipPolicy] = None,
        data_directory: Optional[Path] = None,
        recycle_directory: Optional[Path] = None,
        show_progress: bool = True,
    ):
        """
        Initialize channel synchronizer

        Args:
            lister: Object with list_items(leaf) -> RemoteListing
            fetcher: Object with fetch(item, audio, policy) -> DownloadResponse
            store: Identifier store, in-memory when omitted
            hooks: Pre/post hook registry
            flags: Run flags
            global_policy: SponsorBlock policy from the application settings
            data_directory: Where channel states are kept, in-memory states when omitted
            recycle_directory: Target of deletions when deleting to the recycling bin
            show_progress: Draw progress bars while downloading
        """
        self.lister = lister
        self.store = store if store is not None else IdentifierStore()
        self.flags = flags or FlagsConfig()
        self.data_directory = Path(data_directory) if data_directory else None

        self.reconciler = ReconciliationEngine(hooks, self.flags)
        self.coordinator = DownloadCoordinator(fetcher, self.flags, global_policy, show_progress)
        self.playlist_writer = PlaylistWriter(self.flags)
        self.cleanup = CleanupEngine(self.flags, recycle_directory)

        # States touched during this run, reused as cleanup siblings
        self._states: Dict[str, ChannelState] = {}

    def load_state(self, key: str) -> ChannelState:
        if key in self._states:
            return self._states[key]
        if self.data_directory is None:
            state = ChannelState(key=key)
        else:
            state = ChannelState.load(self.data_directory, key)
        self._states[key] = state
        return state

    def run(self, leaves: Sequence, all_keys: Optional[Sequence[str]] = None) -> RunResult:
        """
        Synchronize the given channels in order

        Args:
            leaves: Selected ResolvedLeaf objects, in configuration order
            all_keys: Every channel key of the tree, used to find cleanup siblings
                outside the selection

        Returns:
            RunResult with counters and per-channel outcomes
        """
        result = RunResult()
        keys = list(all_keys) if all_keys is not None else [leaf.key for leaf in leaves]

        logger.console_info(f"Synchronizing {len(leaves)} channel(s)")
        for position, leaf in enumerate(leaves, start=1):
            logger.console_info(f"[{position}/{len(leaves)}] {leaf.display_name}")
            outcome = self.sync_channel(leaf, result.stats, keys)
            result.outcomes.append(outcome)

        logger.info(str(result.stats))
        return result

    def sync_channel(self, leaf, stats: RunStats, all_keys: Sequence[str] = ()) -> ChannelOutcome:
        """
        Run the pipeline for one channel

        Args:
            leaf: Resolved channel
            stats: Run counters to update
            all_keys: Every channel key of the tree

        Returns:
            ChannelOutcome describing what happened
        """
        if self.flags.prevent_process:
            logger.console_info(f"Would have processed: {leaf.key}")
            return ChannelOutcome(leaf.key, ChannelStatus.SKIPPED, "processing prevented")

        try:
            state = self.load_state(leaf.key)
            state.error_flag = False

            try:
                listing = self.lister.list_items(leaf)
            except FetchError as e:
                logger.error(f"{leaf.key}: could not list remote items: {e}")
                stats.channels_failed += 1
                return ChannelOutcome(leaf.key, ChannelStatus.FAILED, str(e))

            if not listing.complete:
                logger.warning(f"{leaf.key}: remote list is incomplete, playlist and cleanup are suspended")
                state.error_flag = True

            reconciled = self.reconciler.reconcile(leaf, state, self.store, listing.items)
            for _, new in reconciled.renames:
                stats.count_rename(is_audio_format(get_format(new)))
            queued = len(state.queued)

            self.coordinator.download(leaf, state, self.store, reconciled.video_map, stats)

            if self.playlist_writer.write(leaf, state, reconciled.video_map):
                stats.playlists_updated += 1

            siblings = {key: self.load_state(key) for key in sibling_keys(leaf.key, all_keys or [leaf.key])}
            siblings[leaf.key] = state
            self.cleanup.clean(leaf, siblings, self.store, stats)

            state.save()
            self.store.save()
        except (FetchError, HookError, FilesystemError) as e:
            logger.error(f"{leaf.key}: {e}")
            stats.channels_failed += 1
            return ChannelOutcome(leaf.key, ChannelStatus.FAILED, str(e))

        stats.channels_processed += 1
        return ChannelOutcome(
            leaf.key,
            ChannelStatus.SYNCED,
            remote_items=len(reconciled.video_map),
            queued=queued,
            renamed=len(reconciled.renames),
        )


def create_synchronizer(settings, hooks: Optional[HookRegistry] = None, flags: Optional[FlagsConfig] = None,
                        show_progress: bool = True) -> ChannelSynchronizer:
    """
    Build a synchronizer wired with the yt-dlp collaborators and settings

    Args:
        settings: Application Settings
        hooks: Hook registry built from the channel document
        flags: Run flags overriding the ones from the settings

    Returns:
        ChannelSynchronizer bound to the persistent store and data directory
    """
    return ChannelSynchronizer(
        lister=YoutubeLister(settings.download),
        fetcher=YoutubeFetcher(settings.download),
        store=IdentifierStore.load(settings.get_identifier_store_path()),
        hooks=hooks,
        flags=flags or settings.flags,
        global_policy=SegmentSkipPolicy.from_config(settings.sponsorblock or None, PolicyScope.GLOBAL),
        data_directory=settings.get_data_directory(),
        recycle_directory=settings.get_recycle_directory(),
        show_progress=show_progress,
    )
