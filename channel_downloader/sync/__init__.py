"""
Synchronization package

Everything that happens to a channel once its configuration is resolved:

1. **keystore.py / state.py**: persistent data
   - IdentifierStore: global id -> last known local path map
   - ChannelState: per-channel queued/saved/blocked ids and error flag

2. **reconciler.py**: diff of the remote list against the output folder,
   including rename detection, with pre-hooks before and post-hooks after

3. **coordinator.py**: download queue processing and outcome classification

4. **playlist.py / cleanup.py**: playlist file upkeep and keepClean deletions

5. **synchronizer.py**: the per-run orchestrator tying the steps together

6. **hooks.py**: per-channel rename and filter hooks
"""

from .cleanup import CleanupEngine
from .coordinator import DownloadCoordinator
from .hooks import HookRegistry
from .keystore import IdentifierStore
from .playlist import PlaylistWriter
from .reconciler import ReconcileResult, ReconciliationEngine
from .state import ChannelState
from .synchronizer import ChannelOutcome, ChannelStatus, ChannelSynchronizer, RunResult, create_synchronizer

__all__ = [
    'CleanupEngine',
    'DownloadCoordinator',
    'HookRegistry',
    'IdentifierStore',
    'PlaylistWriter',
    'ReconcileResult',
    'ReconciliationEngine',
    'ChannelState',
    'ChannelOutcome',
    'ChannelStatus',
    'ChannelSynchronizer',
    'RunResult',
    'create_synchronizer',
]
