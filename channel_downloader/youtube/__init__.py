"""
yt-dlp collaborators

- YoutubeLister: lists a remote list's items (flat extraction, no download)
- YoutubeFetcher: downloads one item as mp4 or mp3 and classifies the outcome
"""

from .fetcher import NON_CRITICAL_ERRORS, YoutubeFetcher
from .lister import YoutubeLister

__all__ = [
    'NON_CRITICAL_ERRORS',
    'YoutubeFetcher',
    'YoutubeLister',
]
