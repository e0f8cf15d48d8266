"""
Exception classes for Channel-Downloader.

This module defines the custom exceptions used throughout the application.
Each exception distinguishes a failure mode with a different blast radius:
some abort the whole run, some only the channel being processed, and some
only a single file operation.

Exception Hierarchy:
    ChannelDownloaderError (base)
        ConfigurationError - Channel tree or settings issues (aborts the run)
        FetchError - Remote listing or downloader invocation failed (aborts one channel)
        FilesystemError - Rename, delete or state write denied (item state preserved)
        HookError - A rename or filter hook could not be applied
"""

from typing import Any, Dict, Optional


class ChannelDownloaderError(Exception):
    """
    Base exception for all Channel-Downloader errors.

    All custom exceptions in this project inherit from this class, allowing
    callers to catch every application error with a single except clause.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (channel key, path, video id).

    Example:
        try:
            synchronizer.run(leaves)
        except ChannelDownloaderError as e:
            logger.error(f"Run failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary containing additional context. Common keys:
                     - 'key': channel key involved in the error
                     - 'path': file path involved in the error
                     - 'original_error': the underlying exception when wrapping
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigurationError(ChannelDownloaderError):
    """
    Raised when the channel tree or the application settings are invalid.

    This is a CRITICAL error: it is raised while loading, before any channel
    is touched, and stops the run.

    Common causes:
        - A node without a 'key'
        - The same key used twice anywhere in the tree
        - A channel document that is not valid YAML
        - An unknown hook operation or a misplaced policy flag

    Example:
        raise ConfigurationError(
            "Duplicate channel key: MY_CHANNEL",
            details={'key': 'MY_CHANNEL'}
        )
    """
    pass


class FetchError(ChannelDownloaderError):
    """
    Raised when the remote item list cannot be obtained or the downloader
    could not be invoked at all.

    This error aborts only the channel being processed. State that was
    already flushed stays on disk and the run continues with the next channel.

    Example:
        raise FetchError(
            "Failed to list remote items",
            details={'key': 'MY_CHANNEL', 'url': 'https://www.youtube.com/playlist?list=PL...'}
        )
    """
    pass


class FilesystemError(ChannelDownloaderError):
    """
    Raised when a rename, deletion or state write is denied by the filesystem.

    Callers log it and keep the affected item's prior state: nothing is
    recorded as renamed or deleted unless the operation actually happened.
    """
    pass


class HookError(ChannelDownloaderError):
    """
    Raised when a rename or filter hook cannot be applied, for example a
    strict title pattern that does not match a remote title.
    """
    pass
