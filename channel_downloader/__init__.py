"""
Channel-Downloader: keep local video and music folders in sync with YouTube channels and playlists

Channels are described once in a hierarchical document where groups share
settings with the channels below them. Each run lists every selected
channel's remote list, reconciles it with the files already on disk
(detecting renamed titles instead of downloading again), downloads what is
missing with yt-dlp, keeps an .m3u playlist per channel and optionally
removes files that no longer belong to the channel.

### Primary Modules:

**Configuration (`channel_downloader/config/`)**
- YAML settings with environment variable overrides for the global locations

**Channel tree (`channel_downloader/channel/`)**
- Group/channel document, inheritance, path resolution and selection
- SponsorBlock policy precedence between global and channel level

**Synchronization (`channel_downloader/sync/`)**
- Identifier store, channel state, reconciliation, downloads, playlists, cleanup

**yt-dlp collaborators (`channel_downloader/youtube/`)**
- Remote list extraction and single item downloads

**Utilities (`channel_downloader/utils/`)**
- Title cleaning, path helpers, logging and validation
"""

__version__ = "1.0.0"

__author__ = "Verryx-02"

__all__ = [
    "__version__",
    "__author__",
]
