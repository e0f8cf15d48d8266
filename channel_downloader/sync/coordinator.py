"""
Download queue processing

Consumes a channel's queue one item at a time, asks the fetcher for each
item and records the outcome:

- SUCCESS: the id moves to saved and its path goes into the identifier store
- ERROR: the id moves to blocked and is not retried unless failures are retried
- FAILURE: the id is only dequeued; the next reconciliation queues it again

The state is saved after every item so an interrupted run loses at most the
item in flight.
"""

from typing import Mapping, Optional

from ..channel.models import DownloadOutcome, LocalItem, RunStats
from ..channel.sponsorblock import SegmentSkipPolicy, resolve_policy
from ..config.settings import FlagsConfig
from ..utils.logger import create_operation_logger, get_logger
from .keystore import IdentifierStore
from .state import ChannelState


logger = get_logger(__name__)


class DownloadCoordinator:
    """Drives the fetcher over a channel's queue and classifies the results"""

    def __init__(self, fetcher, flags: Optional[FlagsConfig] = None,
                 global_policy: Optional[SegmentSkipPolicy] = None, show_progress: bool = True):
        """
        Initialize download coordinator

        Args:
            fetcher: Object with fetch(item, audio, policy) -> DownloadResponse
            flags: Run flags (prevent_download)
            global_policy: SponsorBlock policy from the application settings
            show_progress: Draw a progress bar over the queue
        """
        self.fetcher = fetcher
        self.flags = flags or FlagsConfig()
        self.global_policy = global_policy
        self.show_progress = show_progress

    def download(self, leaf, state: ChannelState, store: IdentifierStore,
                 video_map: Mapping[str, LocalItem], stats: Optional[RunStats] = None) -> RunStats:
        """
        Process every queued id of a channel

        Args:
            leaf: Resolved channel
            state: Channel state with the queue produced by reconciliation
            store: Identifier store
            video_map: Video map produced by reconciliation
            stats: Counters to update, a new RunStats when omitted

        Returns:
            The updated counters
        """
        stats = stats if stats is not None else RunStats()
        queue = list(state.queued)
        if not queue:
            return stats

        policy = resolve_policy(self.global_policy, leaf.segment_skip_policy)
        if policy.is_active:
            logger.debug(f"{leaf.key}: skipping segments {', '.join(policy.categories)} "
                         f"({policy.scope.value} policy)")

        operation = create_operation_logger(__name__, f"Downloading {leaf.name}", self.show_progress)
        operation.start(len(queue))
        try:
            for identifier in queue:
                item = video_map.get(identifier)
                if item is None:
                    logger.warning(f"{leaf.key}: queued id {identifier} is not in the remote list, dropping it")
                elif self.flags.prevent_download:
                    logger.console_info(f"Would have downloaded: '{item.title}' ({identifier})")
                else:
                    self._fetch(leaf, state, store, item, policy, stats)

                state.dequeue(identifier)
                state.save()
                operation.advance(identifier)
        finally:
            operation.complete()

        return stats

    def _fetch(self, leaf, state, store, item: LocalItem, policy, stats: RunStats) -> None:
        audio = leaf.save_as_audio
        logger.console_info(f"Downloading {'audio' if audio else 'video'}: '{item.title}' ({item.id})")

        response = self.fetcher.fetch(item, audio, policy)

        if response.outcome is DownloadOutcome.SUCCESS:
            state.mark_saved(item.id)
            store.put(item.id, item.output_path)
            stats.count_download(audio, response.file_size)
            logger.console_info(f"Saved '{item.output_path.name}' ({response.file_size_str})")
        elif response.outcome is DownloadOutcome.ERROR:
            state.block(item.id)
            stats.count_failure(audio)
            logger.error(f"{leaf.key}: failed to download '{item.title}' ({item.id}), blocking it: "
                         f"{response.message}")
        else:
            stats.count_failure(audio)
            logger.warning(f"{leaf.key}: failed to download '{item.title}' ({item.id}), "
                           f"will retry next run: {response.message}")
