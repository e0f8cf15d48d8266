"""
Configuration management for Channel-Downloader

This module handles loading, validation, and management of application settings
from YAML files and environment variables. It provides a centralized
configuration object shared by the CLI, while every engine component also
accepts its settings explicitly so it can be exercised in isolation.

The configuration is organized into logical sections using dataclasses:
- Global locations (storage drive, video and music roots)
- Data storage (state directory, channel tree document, identifier store)
- Channel selection filters (single channel, groups, start/stop window)
- Run flags (retry failures, prevent downloads/deletions/renames/playlist edits)
- Cleanup, download and SponsorBlock defaults
- Logging output settings

Location overrides can be supplied through environment variables (or a .env
file) so the same configuration file can be shared between machines.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple, Union
from dataclasses import dataclass, asdict
from dotenv import load_dotenv

# Load environment variables from .env file if present
load_dotenv()


@dataclass
class LocationsConfig:
    """
    Global storage locations

    The three roots substituted for the ${D}, ${V} and ${M} placeholders in
    channel paths. Channels that do not ignore global locations have their
    output folder prefixed with the music root (audio channels) or the video
    root (video channels).
    """
    storage_drive: str = "~"
    video_directory: str = "~/Videos"
    music_directory: str = "~/Music"


@dataclass
class DataConfig:
    """
    Persistent data locations

    Where channel state files and the identifier store are kept, and which
    document describes the channel tree.
    """
    data_directory: str = "~/.channel-downloader/data"
    channels_file: str = "channels.yaml"
    identifier_store_file: str = "identifiers.json"


@dataclass
class FilterConfig:
    """
    Channel selection for a run

    Each value may be empty (no restriction). 'channel' and 'group' accept a
    single value or a list.
    """
    channel: Union[str, List[str], None] = None
    group: Union[str, List[str], None] = None
    start_at: Optional[str] = None
    stop_at: Optional[str] = None


@dataclass
class FlagsConfig:
    """
    Run flags

    Administrative switches that disable destructive steps. A disabled step
    logs what it would have done instead of doing it.
    """
    retry_previous_failures: bool = False
    prevent_download: bool = False
    prevent_deletion: bool = False
    prevent_renaming: bool = False
    prevent_playlist_edit: bool = False
    delete_to_recycling_bin: bool = False
    prevent_process: bool = False


@dataclass
class CleanupConfig:
    """Cleanup policy settings"""
    recycle_directory: str = "~/.channel-downloader/recycle"


@dataclass
class DownloadConfig:
    """
    Download settings passed to yt-dlp

    Controls network timeouts, retries and the bitrate used when audio is
    extracted to mp3.
    """
    timeout: int = 300
    retry_attempts: int = 3
    audio_bitrate: int = 192
    geo_bypass: bool = True


@dataclass
class LoggingConfig:
    """
    Logging configuration and output settings

    Controls application logging behavior including log levels, file output,
    rotation, and console formatting.
    """
    level: str = "INFO"
    file: str = ""
    max_size: str = "50MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


class Settings:
    """
    Main settings class that manages all configuration

    This class serves as the central configuration manager, loading settings
    from a YAML file, applying environment overrides and providing a unified
    interface for accessing configuration throughout the application.

    The global SponsorBlock policy is kept as its raw mapping here and is
    parsed by the channel package when the tree is resolved.
    """

    def __init__(self, config_path: Optional[str] = None, create_directories: bool = True):
        """
        Initialize settings from config file or environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
            create_directories: Whether to create the data directory on load
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".channel-downloader"
        self.loaded_from: Optional[Path] = None

        # Initialize all configuration objects with default values
        self.locations = LocationsConfig()
        self.data = DataConfig()
        self.filter = FilterConfig()
        self.flags = FlagsConfig()
        self.cleanup = CleanupConfig()
        self.download = DownloadConfig()
        self.logging = LoggingConfig()
        self.sponsorblock: Dict[str, Any] = {}

        # Load configuration from various sources in order of precedence
        self._load_config()
        self._load_environment_variables()
        if create_directories:
            self._create_directories()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        Searches for configuration files in multiple locations in order of
        precedence. The first file found will be used.
        """
        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config/config.yaml"),
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        config_data = yaml.safe_load(f) or {}
                    self.loaded_from = Path(path)
                    break
                except (OSError, yaml.YAMLError) as e:
                    print(f"Warning: Failed to load config from {path}: {e}")

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Maps configuration sections from the YAML file to the appropriate
        dataclass instances, updating only the attributes that exist in
        both the config file and the dataclass definition.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = {
            'locations': self.locations,
            'data': self.data,
            'filter': self.filter,
            'flags': self.flags,
            'cleanup': self.cleanup,
            'download': self.download,
            'logging': self.logging,
        }

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, value)
            elif section_name == 'sponsorblock' and isinstance(section_data, dict):
                self.sponsorblock = dict(section_data)

    def _load_environment_variables(self) -> None:
        """
        Load location overrides from environment variables

        Environment variables take precedence over file-based configuration.
        """
        env_mappings = {
            'CHANNEL_DL_STORAGE_DRIVE': lambda v: setattr(self.locations, 'storage_drive', v),
            'CHANNEL_DL_VIDEO_DIR': lambda v: setattr(self.locations, 'video_directory', v),
            'CHANNEL_DL_MUSIC_DIR': lambda v: setattr(self.locations, 'music_directory', v),
            'CHANNEL_DL_DATA_DIR': lambda v: setattr(self.data, 'data_directory', v),
            'CHANNEL_DL_CHANNELS_FILE': lambda v: setattr(self.data, 'channels_file', v),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def _create_directories(self) -> None:
        """
        Create the data directory if it does not exist

        Handles permission errors gracefully with warnings.
        """
        directory = self.get_data_directory()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Warning: Failed to create directory {directory}: {e}")

    def get_data_directory(self) -> Path:
        """Get the expanded data directory path"""
        return Path(self.data.data_directory).expanduser()

    def get_config_directory(self) -> Path:
        """Get the expanded config directory path"""
        return self.config_dir

    def get_channels_file(self) -> Path:
        """
        Get the channel tree document path

        A relative path is resolved against the directory of the loaded
        settings file when there is one, else against the working directory.

        Returns:
            Path object for the channel tree document
        """
        path = Path(self.data.channels_file).expanduser()
        if not path.is_absolute() and self.loaded_from is not None:
            path = self.loaded_from.parent / path
        return path

    def get_identifier_store_path(self) -> Path:
        """Get the identifier store file path"""
        return self.get_data_directory() / self.data.identifier_store_file

    def get_recycle_directory(self) -> Path:
        """Get the expanded recycle directory path"""
        return Path(self.cleanup.recycle_directory).expanduser()

    def get_global_locations(self) -> Dict[str, Path]:
        """
        Get the three global location roots

        Returns:
            Mapping with 'storage', 'video' and 'music' keys
        """
        return {
            'storage': Path(self.locations.storage_drive).expanduser(),
            'video': Path(self.locations.video_directory).expanduser(),
            'music': Path(self.locations.music_directory).expanduser(),
        }

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to file

        Args:
            path: Custom path to save config, defaults to user config directory

        Returns:
            Path the configuration was written to
        """
        target = Path(path) if path else self.get_config_directory() / "config.yaml"

        config_data = {
            'locations': asdict(self.locations),
            'data': asdict(self.data),
            'filter': asdict(self.filter),
            'flags': asdict(self.flags),
            'cleanup': asdict(self.cleanup),
            'download': asdict(self.download),
            'logging': asdict(self.logging),
            'sponsorblock': dict(self.sponsorblock),
        }

        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, 'w', encoding='utf-8') as f:
            yaml.safe_dump(config_data, f, default_flow_style=False, indent=2, sort_keys=False)
        return target

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate current configuration

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        from ..utils.validation import validate_audio_bitrate, validate_log_level, validate_output_directory

        errors = []

        for is_valid, message in (
            validate_log_level(self.logging.level),
            validate_audio_bitrate(self.download.audio_bitrate),
            validate_output_directory(self.data.data_directory),
        ):
            if not is_valid:
                errors.append(message)

        if self.download.retry_attempts < 0:
            errors.append("download.retry_attempts cannot be negative")

        if self.download.timeout <= 0:
            errors.append("download.timeout must be positive")

        if not self.data.identifier_store_file:
            errors.append("data.identifier_store_file cannot be empty")

        if 'overrideGlobal' in self.sponsorblock:
            errors.append("sponsorblock.overrideGlobal is only valid on a channel policy")

        return (not errors), errors

    def __str__(self) -> str:
        """String summary of key configuration values"""
        sections = [
            f"Data: {self.data.data_directory}",
            f"Channels: {self.data.channels_file}",
            f"Video: {self.locations.video_directory}",
            f"Music: {self.locations.music_directory}",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance for singleton pattern
settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    return settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Creates a new settings instance with updated configuration from files
    and environment variables.

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global settings
    settings = Settings(config_path)
    return settings
