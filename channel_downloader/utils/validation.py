"""
Input validation utilities for Channel-Downloader
Checks for values supplied on the command line or in configuration files
"""

import re
from pathlib import Path
from typing import Optional, Tuple

from .helpers import format_identifier


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
AUDIO_BITRATES = (64, 96, 128, 160, 192, 256, 320)


def validate_channel_key(key: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a channel key

    Args:
        key: Key as typed by the user

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not key or not key.strip():
        return False, "Channel key cannot be empty"

    if not re.match(r'^[A-Za-z0-9_\-]+$', format_identifier(key)):
        return False, f"Invalid channel key: {key}"

    return True, None


def validate_remote_list_id(remote_list_id: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a remote list id

    Channel upload lists start with 'UU' (or 'UC' for the channel id itself),
    playlists with 'PL' and albums with 'OLAK'.

    Args:
        remote_list_id: Remote list id

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not remote_list_id:
        return False, "Remote list id cannot be empty"

    if not re.match(r'^(UU|UC|PL|OLAK)[A-Za-z0-9_\-]+$', remote_list_id):
        return False, f"Unrecognized remote list id: {remote_list_id}"

    return True, None


def validate_output_directory(path: str) -> Tuple[bool, Optional[str]]:
    """
    Validate output directory path

    Args:
        path: Directory path to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not path:
        return False, "Output directory cannot be empty"

    path_obj = Path(path).expanduser()
    if path_obj.exists() and not path_obj.is_dir():
        return False, f"Not a directory: {path_obj}"

    return True, None


def validate_audio_bitrate(bitrate: int) -> Tuple[bool, Optional[str]]:
    """
    Validate mp3 bitrate

    Args:
        bitrate: Bitrate in kbps

    Returns:
        Tuple of (is_valid, error_message)
    """
    if bitrate not in AUDIO_BITRATES:
        return False, f"Invalid audio bitrate: {bitrate}. Valid options: {', '.join(map(str, AUDIO_BITRATES))}"

    return True, None


def validate_log_level(level: str) -> Tuple[bool, Optional[str]]:
    if not level or level.upper() not in LOG_LEVELS:
        return False, f"Invalid logging level: {level}"
    return True, None
