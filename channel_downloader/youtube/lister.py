"""
Remote list extraction with yt-dlp

Lists the entries of a channel's remote list (channel uploads, playlist or
album) without downloading anything. Only ids, titles and publish dates are
needed, so yt-dlp's flat playlist extraction is used: one request per page
instead of one per video.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import yt_dlp
from yt_dlp.utils import YoutubeDLError

from ..channel.models import RemoteItem, RemoteListing
from ..config.settings import DownloadConfig
from ..exceptions import FetchError
from ..utils.logger import get_logger


# Titles yt-dlp reports for entries that exist in the list but cannot be fetched
UNAVAILABLE_TITLES = ('[Private video]', '[Deleted video]', '[Unavailable video]')


def playlist_url(remote_list_id: str) -> str:
    return f"https://www.youtube.com/playlist?list={remote_list_id}"


class YoutubeLister:
    """Lists the items of a remote list through yt-dlp"""

    def __init__(self, config: Optional[DownloadConfig] = None):
        """
        Initialize remote lister

        Args:
            config: Download settings (timeout and retries are used)
        """
        self.config = config or DownloadConfig()
        self.logger = get_logger(__name__)

    def _get_ydl_options(self) -> Dict[str, Any]:
        return {
            'extract_flat': 'in_playlist',
            'skip_download': True,
            'quiet': True,
            'no_warnings': True,
            'noprogress': True,
            'ignoreerrors': False,
            'socket_timeout': self.config.timeout,
            'retries': self.config.retry_attempts,
            'geo_bypass': self.config.geo_bypass,
            'cachedir': False,
        }

    def list_items(self, leaf) -> RemoteListing:
        """
        List a channel's remote items in remote order

        Entries without an id and private or deleted placeholders are
        skipped. The listing is marked incomplete only when yt-dlp returned
        fewer entries than the playlist_count it announced.

        Args:
            leaf: Resolved channel with a remote list id

        Returns:
            RemoteListing with the items and a completeness flag

        Raises:
            FetchError: If yt-dlp fails or the list is empty
        """
        url = playlist_url(leaf.remote_list_id)
        self.logger.debug(f"Listing {leaf.key}: {url}")

        try:
            with yt_dlp.YoutubeDL(self._get_ydl_options()) as ydl:
                info = ydl.extract_info(url, download=False)
        except YoutubeDLError as e:
            raise FetchError(f"Failed to list {leaf.remote_list_id}: {e}",
                             details={'key': leaf.key, 'url': url, 'original_error': e}) from e

        info = info or {}
        entries = list(info.get('entries') or [])
        expected = info.get('playlist_count')

        listing = RemoteListing()
        if expected is not None and len(entries) < expected:
            self.logger.warning(f"{leaf.key}: yt-dlp returned {len(entries)} of {expected} entries")
            listing.complete = False

        for entry in entries:
            if not entry or not entry.get('id'):
                continue
            title = entry.get('title') or ''
            if title in UNAVAILABLE_TITLES:
                self.logger.debug(f"{leaf.key}: skipping unavailable entry {entry['id']} {title}")
                continue
            listing.items.append(RemoteItem(
                id=entry['id'],
                title=title,
                published_at=self._published_at(entry),
            ))

        if not listing.items:
            raise FetchError(f"Remote list {leaf.remote_list_id} returned no items",
                             details={'key': leaf.key, 'url': url})

        self.logger.info(f"{leaf.key}: listed {len(listing.items)} remote items"
                         f"{'' if listing.complete else ' (incomplete)'}")
        return listing

    @staticmethod
    def _published_at(entry: Dict[str, Any]) -> Optional[str]:
        if entry.get('upload_date'):
            return str(entry['upload_date'])
        timestamp = entry.get('timestamp') or entry.get('release_timestamp')
        if timestamp:
            return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime('%Y%m%d')
        return None
