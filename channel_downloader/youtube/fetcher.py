"""
Single item download with yt-dlp

Downloads one video as an mp4 (or its audio as an mp3) to the item's
canonical location and classifies the outcome:

- SUCCESS: the expected file exists after the download
- FAILURE: a transient problem (network, throttling, missing sign-in or a
  missing ffmpeg); the item is retried on the next run
- ERROR: anything else yt-dlp reports (removed, geo-blocked, age-gated
  content, ...); the item is blocked until failures are retried

SponsorBlock segments are removed through yt-dlp's SponsorBlock and
ModifyChapters postprocessors when the effective policy asks for it.
"""

import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

import yt_dlp
from yt_dlp.utils import DownloadError, YoutubeDLError

from ..channel.models import DownloadOutcome, DownloadResponse, LocalItem
from ..channel.sponsorblock import ALL_CATEGORIES, SEGMENT_CATEGORIES, EffectivePolicy
from ..config.settings import DownloadConfig
from ..exceptions import FetchError
from ..utils.helpers import AUDIO_FORMATS, VIDEO_FORMATS, ensure_directory, format_file_size
from ..utils.logger import get_logger


# Error fragments of transient failures, matched case-insensitively
NON_CRITICAL_ERRORS = [
    "giving up after 10",
    "urlopen error",
    "sign in to",
    "please install or provide the path",
]


class DownloadProgressHook:
    """
    Progress hook for yt-dlp downloads

    Records the last reported status and byte counts and logs the final file
    name once yt-dlp reports the download finished.
    """

    def __init__(self, video_id: str):
        self.video_id = video_id
        self.logger = get_logger(__name__)
        self.status = "starting"
        self.downloaded_bytes = 0
        self.total_bytes = None

    def __call__(self, d: Dict[str, Any]) -> None:
        self.status = d.get('status', self.status)
        if self.status == 'downloading':
            self.total_bytes = d.get('total_bytes') or d.get('total_bytes_estimate')
            self.downloaded_bytes = d.get('downloaded_bytes', 0)
        elif self.status == 'finished':
            self.logger.debug(f"Download finished: {self.video_id} -> {d.get('filename')} "
                              f"({format_file_size(d.get('total_bytes') or self.downloaded_bytes)})")


def is_non_critical(message: str) -> bool:
    message = message.lower()
    return any(fragment in message for fragment in NON_CRITICAL_ERRORS)


def expand_categories(categories) -> List[str]:
    """Turn ['all'] into every known SponsorBlock category"""
    if ALL_CATEGORIES in categories:
        return [category for _, category in SEGMENT_CATEGORIES]
    return list(categories)


class YoutubeFetcher:
    """Downloads single items through yt-dlp"""

    def __init__(self, config: Optional[DownloadConfig] = None):
        """
        Initialize fetcher

        Args:
            config: Download settings (timeout, retries, audio bitrate, geo bypass)
        """
        self.config = config or DownloadConfig()
        self.logger = get_logger(__name__)

    def _get_ydl_options(self, item: LocalItem, audio: bool, policy: Optional[EffectivePolicy],
                         progress_hook: Optional[DownloadProgressHook] = None) -> Dict[str, Any]:
        """
        Build the yt-dlp options for one download

        Args:
            item: Item to download
            audio: Extract the audio to mp3 instead of keeping an mp4 video
            policy: Effective SponsorBlock policy, None or inactive for no skipping
            progress_hook: Optional progress hook

        Returns:
            yt-dlp options dictionary

        Options:
        1. Output: '<download path>.%(ext)s' so the final name is the title
           plus the media extension ('%' in titles is escaped)
        2. Format: best audio for mp3 extraction, best video+audio merged
           into mp4 otherwise
        3. Postprocessors: audio extraction or remux, then SponsorBlock and
           ModifyChapters when segments are skipped
        """
        outtmpl = str(item.download_path).replace('%', '%%') + '.%(ext)s'

        options = {
            'outtmpl': outtmpl,
            'noplaylist': True,
            'quiet': True,
            'no_warnings': True,
            'noprogress': True,
            'ignoreerrors': False,
            'geo_bypass': self.config.geo_bypass,
            'cachedir': False,
            'socket_timeout': self.config.timeout,
            'retries': self.config.retry_attempts,
            'fragment_retries': self.config.retry_attempts,
            'file_access_retries': self.config.retry_attempts,
            'logtostderr': False,
            'consoletitle': False,
        }

        ffmpeg_location = shutil.which('ffmpeg')
        if ffmpeg_location:
            options['ffmpeg_location'] = ffmpeg_location

        if progress_hook:
            options['progress_hooks'] = [progress_hook]

        if audio:
            options['format'] = 'bestaudio/best'
            postprocessors = [{
                'key': 'FFmpegExtractAudio',
                'preferredcodec': 'mp3',
                'preferredquality': str(self.config.audio_bitrate),
            }]
        else:
            options['format'] = 'bv*+ba/b'
            options['merge_output_format'] = 'mp4'
            postprocessors = [{
                'key': 'FFmpegVideoRemuxer',
                'preferedformat': 'mp4',
            }]

        if policy is not None and policy.is_active:
            categories = expand_categories(policy.categories)
            postprocessors = [
                {'key': 'SponsorBlock', 'categories': categories},
                {'key': 'ModifyChapters', 'remove_sponsor_segments': categories},
            ] + postprocessors

        options['postprocessors'] = postprocessors
        return options

    def fetch(self, item: LocalItem, audio: bool, policy: Optional[EffectivePolicy] = None) -> DownloadResponse:
        """
        Download one item to its canonical location

        Args:
            item: Item to download; its output path is updated if yt-dlp
                produced a different media extension
            audio: Save as mp3 instead of mp4
            policy: Effective SponsorBlock policy

        Returns:
            DownloadResponse with the outcome and the saved file size

        Raises:
            FetchError: If yt-dlp fails in an unexpected way
        """
        ensure_directory(item.output_folder)
        progress_hook = DownloadProgressHook(item.id)
        options = self._get_ydl_options(item, audio, policy, progress_hook)

        self.logger.debug(f"Starting download: {item.id} -> {item.output_path}")
        try:
            with yt_dlp.YoutubeDL(options) as ydl:
                ydl.download([item.url])
        except DownloadError as e:
            message = str(e)
            outcome = DownloadOutcome.FAILURE if is_non_critical(message) else DownloadOutcome.ERROR
            self.logger.debug(f"Download of {item.id} ended with {outcome.value}: {message}")
            return DownloadResponse(outcome, message)
        except (YoutubeDLError, OSError) as e:
            raise FetchError(f"Failed to download {item.id}: {e}",
                             details={'id': item.id, 'original_error': e}) from e

        output = self._find_output(item, audio)
        if output is None:
            return DownloadResponse(DownloadOutcome.FAILURE, f"Downloaded file not found: {item.output_path.name}")

        if output != item.output_path:
            item.update_output(output)
        return DownloadResponse(DownloadOutcome.SUCCESS, file_size=output.stat().st_size)

    @staticmethod
    def _find_output(item: LocalItem, audio: bool) -> Optional[Path]:
        if item.output_path.is_file():
            return item.output_path
        formats = AUDIO_FORMATS if audio else VIDEO_FORMATS
        for extension in sorted(formats):
            candidate = item.output_folder / f"{item.title}.{extension}"
            if candidate.is_file():
                return candidate
        return None
