"""
Data models for remote items, local items, download outcomes and run statistics
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..utils.helpers import clean_title, format_file_size, get_format


class ChannelType(Enum):
    """
    Kind of remote list a channel is bound to

    The kind is derived from the remote list id prefix: channel upload lists
    start with 'U', curated playlists with 'PL' and auto-generated albums
    with 'OLAK'.
    """
    CHANNEL = "channel"
    PLAYLIST = "playlist"
    ALBUM = "album"

    @classmethod
    def determine(cls, remote_list_id: Optional[str]) -> Optional["ChannelType"]:
        if not remote_list_id or not remote_list_id.strip():
            return None
        if remote_list_id.startswith('U'):
            return cls.CHANNEL
        if remote_list_id.startswith('PL'):
            return cls.PLAYLIST
        if remote_list_id.startswith('OLAK'):
            return cls.ALBUM
        return None


class DownloadOutcome(Enum):
    """
    Classification of a single fetch attempt

    - SUCCESS: the file was saved
    - FAILURE: transient problem, the item is simply retried on the next run
    - ERROR: permanent-looking problem, the item is blocked until failures are retried
    """
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


@dataclass
class RemoteItem:
    """One entry of a remote item list, in remote order"""
    id: str
    title: str
    published_at: Optional[str] = None
    original_title: Optional[str] = None

    def __post_init__(self):
        if self.original_title is None:
            self.original_title = self.title


@dataclass
class RemoteListing:
    """
    Result of listing a remote list

    Attributes:
        items: Remote items in remote order
        complete: False when some entries could not be listed (private or deleted placeholders)
    """
    items: List[RemoteItem] = field(default_factory=list)
    complete: bool = True

    def __len__(self) -> int:
        return len(self.items)


@dataclass
class LocalItem:
    """
    Local materialization of a remote item for one channel

    Owned by the reconciliation pass of a single channel and discarded once
    that channel has been processed.

    Attributes:
        id: Remote content identifier
        title: Cleaned title used as the file name stem
        original_title: Title exactly as reported by the remote source
        published_at: Remote publish date string, if known
        output_folder: Channel output folder
        output_path: Canonical expected file path (title plus media extension)
        download_path: Path handed to the fetcher, without extension
    """
    id: str
    title: str
    original_title: str
    published_at: Optional[str]
    output_folder: Path
    output_path: Path
    download_path: Path

    @classmethod
    def from_remote(cls, item: RemoteItem, output_folder: Path, save_as_audio: bool) -> "LocalItem":
        title = clean_title(item.title)
        extension = 'mp3' if save_as_audio else 'mp4'
        return cls(
            id=item.id,
            title=title,
            original_title=item.original_title or item.title,
            published_at=item.published_at,
            output_folder=Path(output_folder),
            output_path=Path(output_folder) / f"{title}.{extension}",
            download_path=Path(output_folder) / title,
        )

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.id}"

    @property
    def output_format(self) -> str:
        return get_format(self.output_path)

    def update_title(self, title: str) -> None:
        """Retitle the item, keeping the current output extension"""
        self.title = clean_title(title)
        self.download_path = self.output_folder / self.title
        self.output_path = self.output_folder / f"{self.title}.{self.output_format}"

    def update_output(self, output_path: Path) -> None:
        """Adopt an existing file as this item's output"""
        output_path = Path(output_path)
        self.title = output_path.name.rsplit('.', 1)[0] if '.' in output_path.name else output_path.name
        self.download_path = self.output_folder / self.title
        self.output_path = self.output_folder / output_path.name


@dataclass
class DownloadResponse:
    """Result of one fetch attempt"""
    outcome: DownloadOutcome
    message: str = ""
    file_size: int = 0

    @property
    def file_size_str(self) -> str:
        return format_file_size(self.file_size)


@dataclass
class RunStats:
    """
    Run-level counters for reporting

    Every counter is split between audio and video channels so the summary
    can show both kinds of libraries separately. Deletions of in-progress
    download artifacts are counted on their own.
    """
    channels_processed: int = 0
    channels_failed: int = 0
    video_renames: int = 0
    audio_renames: int = 0
    video_deletions: int = 0
    audio_deletions: int = 0
    partial_deletions: int = 0
    video_downloads: int = 0
    audio_downloads: int = 0
    video_failures: int = 0
    audio_failures: int = 0
    video_bytes: int = 0
    audio_bytes: int = 0
    playlists_updated: int = 0

    def count_rename(self, audio: bool) -> None:
        if audio:
            self.audio_renames += 1
        else:
            self.video_renames += 1

    def count_deletion(self, audio: bool, partial: bool = False) -> None:
        if partial:
            self.partial_deletions += 1
        elif audio:
            self.audio_deletions += 1
        else:
            self.video_deletions += 1

    def count_download(self, audio: bool, size: int) -> None:
        if audio:
            self.audio_downloads += 1
            self.audio_bytes += size
        else:
            self.video_downloads += 1
            self.video_bytes += size

    def count_failure(self, audio: bool) -> None:
        if audio:
            self.audio_failures += 1
        else:
            self.video_failures += 1

    @property
    def total_downloads(self) -> int:
        return self.video_downloads + self.audio_downloads

    @property
    def total_failures(self) -> int:
        return self.video_failures + self.audio_failures

    @property
    def total_bytes(self) -> int:
        return self.video_bytes + self.audio_bytes

    def summary_lines(self) -> list:
        """Human-readable summary, one line per category"""
        return [
            f"Channels processed: {self.channels_processed} ({self.channels_failed} failed)",
            f"Downloads: {self.video_downloads} video, {self.audio_downloads} audio "
            f"({format_file_size(self.video_bytes)} / {format_file_size(self.audio_bytes)})",
            f"Failures: {self.video_failures} video, {self.audio_failures} audio",
            f"Renames: {self.video_renames} video, {self.audio_renames} audio",
            f"Deletions: {self.video_deletions} video, {self.audio_deletions} audio, "
            f"{self.partial_deletions} partial",
            f"Playlists updated: {self.playlists_updated}",
        ]

    def __str__(self) -> str:
        return (f"RunStats(downloads={self.total_downloads}, failures={self.total_failures}, "
                f"renames={self.video_renames + self.audio_renames}, "
                f"data={format_file_size(self.total_bytes)})")
