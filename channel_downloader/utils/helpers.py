"""
Utility functions and helpers for Channel-Downloader
Common functions for title cleaning, path handling and media file classification
"""

import os
import re
import unicodedata
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union


VIDEO_FORMATS = frozenset({'3gp', 'flv', 'mp4', 'webm', 'mkv'})
AUDIO_FORMATS = frozenset({'aac', 'm4a', 'mp3', 'ogg', 'wav', 'opus'})
PARTIAL_FORMATS = frozenset({'part', 'ytdl', 'temp'})

PLAYLIST_FORMAT = 'm3u'

# Characters substituted before the non-ASCII sweep in clean_title
_TITLE_REPLACEMENTS = [
    ('\\', '-'), ('/', '-'), (':', '-'), ('*', '-'), ('?', ''), ('"', "'"),
    ('<', '-'), ('>', '-'), ('|', '-'), ('‒', '-'), (' ', ' '), ('&amp;', '&'),
]
_TITLE_CHAR_MAP = {
    'С': 'C', '¹': '1', '²': '2', '³': '3',
    '×': 'x', '÷': '%', '⋯': '...',
}


def clean_title(title: str) -> str:
    """
    Clean a remote title into a name that is safe to use as a file name

    Diacritics are stripped, path separators and reserved characters are
    replaced, typographic dashes and quotes are normalized and any remaining
    non-ASCII character becomes '+'. Trailing punctuation and repeated
    separators are collapsed.

    Args:
        title: Title as reported by the remote source

    Returns:
        Cleaned title
    """
    if not title:
        return ""

    title = unicodedata.normalize('NFD', title)
    title = ''.join(c for c in title if not unicodedata.combining(c))

    for search, replace in _TITLE_REPLACEMENTS:
        title = title.replace(search, replace)

    title = re.sub(r'^#(sh[oa]rts?)', r'\1 - ', title, flags=re.IGNORECASE)
    title = title.replace('#', '- ')
    title = re.sub(r'[—–-]', '-', title)
    title = re.sub(r'[’‘]', "'", title)
    title = re.sub(r'[™©®†]', '', title)
    for search, replace in _TITLE_CHAR_MAP.items():
        title = title.replace(search, replace)

    title = re.sub(r'[^\x00-\x7F]', '+', title)
    title = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', title)
    title = re.sub(r'\s*[.!\-]+$', '', title)
    title = re.sub(r'(?:\+\s+)+', '+ ', title)
    title = re.sub(r'\++', '+', title)
    title = re.sub(r'^\s*\+\s*', '', title)
    title = re.sub(r'(?:-\s+)+', '- ', title)
    title = re.sub(r'-+', '-', title)
    title = re.sub(r'^\s*-\s*', '', title)
    title = title.replace('+-', '+ -')
    title = title.strip()
    title = re.sub(r'(^-\s*)+|(\s*-)+$', '', title)
    title = re.sub(r'!(?:\s*!)+', '!', title)
    title = re.sub(r'\s+', ' ', title)
    title = re.sub(r'\$+', '$', title)
    return title.strip()


def clean_file_path(path: str) -> str:
    """
    Clean a configured path string

    Reserved characters become ' - ' and whitespace runs collapse to one space.

    Args:
        path: Path string from the channel document

    Returns:
        Cleaned path string
    """
    path = re.sub(r'[:*?"<>|]', ' - ', path)
    return re.sub(r'\s+', ' ', path).strip()


def format_identifier(identifier: str) -> str:
    """
    Normalize a channel key

    Removes '.' and '|' and turns whitespace runs into underscores.

    Args:
        identifier: Key as written in the channel document

    Returns:
        Normalized key
    """
    identifier = identifier.replace('.', '').replace('|', '')
    return re.sub(r'\s+', '_', identifier.strip())


def key_to_name(key: str) -> str:
    """
    Derive a display name from an upper-snake-case key

    Example:
        key_to_name("MY_FAVORITE_CHANNEL") -> "My Favorite Channel"
    """
    words = [word for word in key.split('_') if word]
    return ' '.join(word[:1].upper() + word[1:].lower() for word in words)


def get_format(file_name: Union[str, Path]) -> str:
    """Return the lowercase extension of a file name without the dot"""
    name = Path(file_name).name
    if '.' not in name:
        return ''
    return name.rsplit('.', 1)[1].lower()


def set_format(file_name: str, file_format: str) -> str:
    """Replace (or add) the extension of a file name"""
    stem = file_name.rsplit('.', 1)[0] if '.' in file_name else file_name
    return f"{stem}.{file_format}" if file_format else stem


def get_title_key(file_name: Union[str, Path]) -> str:
    """Return the file name without its extension"""
    name = Path(file_name).name
    return name.rsplit('.', 1)[0] if '.' in name else name


def is_video_format(file_format: str) -> bool:
    return file_format.lower() in VIDEO_FORMATS


def is_audio_format(file_format: str) -> bool:
    return file_format.lower() in AUDIO_FORMATS


def is_partial_download(file_name: Union[str, Path]) -> bool:
    """Check if a file is an in-progress download artifact"""
    return get_format(file_name) in PARTIAL_FORMATS


def same_media_family(format_a: str, format_b: str) -> bool:
    """
    Check if two formats are identical or belong to the same media family

    Args:
        format_a: First extension
        format_b: Second extension

    Returns:
        True when both are the same format, both video or both audio
    """
    format_a, format_b = format_a.lower(), format_b.lower()
    if format_a == format_b:
        return bool(format_a)
    return ((is_video_format(format_a) and is_video_format(format_b)) or
            (is_audio_format(format_a) and is_audio_format(format_b)))


def exists_exactly(path: Union[str, Path]) -> bool:
    """
    Check that a file exists with exactly this name

    On case-insensitive filesystems Path.exists() also matches a differently
    cased name; this check compares against the directory listing.

    Args:
        path: Expected file path

    Returns:
        True if a regular file with this exact name exists
    """
    path = Path(path)
    if not path.is_file():
        return False
    try:
        return path.name in os.listdir(path.parent)
    except OSError:
        return False


def relative_posix_path(path: Union[str, Path], start: Union[str, Path]) -> str:
    """
    Express a path relative to a directory using forward slashes

    Args:
        path: Target path
        start: Directory the result is relative to

    Returns:
        Relative path string
    """
    return Path(os.path.relpath(os.path.abspath(path), os.path.abspath(start))).as_posix()


def atomic_write_lines(path: Union[str, Path], lines: Iterable[str]) -> Path:
    """
    Write lines to a file atomically (temp file then replace)

    Args:
        path: Destination file
        lines: Lines without trailing newlines

    Returns:
        Destination path
    """
    target = Path(path)
    return atomic_write_text(target, ''.join(f"{line}\n" for line in lines))


def atomic_write_text(path: Union[str, Path], content: str) -> Path:
    """Write text to a file atomically (temp file then replace)"""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.parent / f".{target.name}.tmp"
    temp_path.write_text(content, encoding='utf-8')
    temp_path.replace(target)
    return target


def read_lines(path: Union[str, Path]) -> list:
    """Read non-empty lines of a text file, empty list if it does not exist"""
    path = Path(path)
    if not path.exists():
        return []
    return [line.rstrip('\r') for line in path.read_text(encoding='utf-8').split('\n') if line.strip()]


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable string

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string
    """
    if size_bytes < 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    size = float(size_bytes)
    unit_index = 0

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{int(size)} {units[unit_index]}"
    return f"{size:.1f} {units[unit_index]}"


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure directory exists, create if necessary

    Args:
        path: Directory path

    Returns:
        Path object
    """
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a remote publish date

    Accepts ISO timestamps ('2023-04-01T10:00:00Z') and yt-dlp upload dates
    ('20230401').

    Returns:
        datetime or None if the value is empty or unparseable
    """
    if not value:
        return None
    value = str(value).strip()
    if re.fullmatch(r'\d{8}', value):
        return datetime.strptime(value, '%Y%m%d')
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00').replace('T', ' '))
    except ValueError:
        return None


def create_backup_filename(original_path: Union[str, Path]) -> Path:
    """
    Create a timestamped sibling name for a file

    Args:
        original_path: Original file path

    Returns:
        Backup file path
    """
    path = Path(original_path)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    if path.suffix:
        backup_name = f"{path.stem}.backup_{timestamp}{path.suffix}"
    else:
        backup_name = f"{path.name}.backup_{timestamp}"

    return path.parent / backup_name
