# tests/test_utils.py
"""Test utilities and helpers"""

import logging
import pytest
from datetime import datetime
from pathlib import Path

from channel_downloader.utils.helpers import (
    atomic_write_lines,
    clean_file_path,
    clean_title,
    exists_exactly,
    format_file_size,
    format_identifier,
    get_format,
    get_title_key,
    is_partial_download,
    key_to_name,
    parse_date,
    read_lines,
    relative_posix_path,
    same_media_family,
    set_format,
)
from channel_downloader.utils.logger import ConsoleMessageFilter, parse_size, setup_logging
from channel_downloader.utils.validation import (
    validate_audio_bitrate,
    validate_channel_key,
    validate_log_level,
    validate_output_directory,
    validate_remote_list_id,
)


class TestHelpers:
    """Test helper functions"""

    def test_clean_title(self):
        """Test title cleaning"""
        assert clean_title("AC/DC: Live?") == "AC-DC- Live"
        assert clean_title('Say "Hello"') == "Say 'Hello'"
        assert clean_title("Café Olé") == "Cafe Ole"
        assert clean_title("Song -- Title!!!") == "Song - Title"
        assert clean_title("Tom &amp; Jerry") == "Tom & Jerry"
        assert clean_title("") == ""

    def test_clean_file_path(self):
        assert clean_file_path("Music:  Videos") == "Music - Videos"

    def test_format_identifier(self):
        assert format_identifier(" my  channel ") == "my_channel"
        assert format_identifier("A.B|C") == "ABC"

    def test_key_to_name(self):
        assert key_to_name("MY_FAVORITE_CHANNEL") == "My Favorite Channel"
        assert key_to_name("A__B") == "A B"

    def test_formats(self):
        """Test extension helpers"""
        assert get_format("Title.MP4") == "mp4"
        assert get_format("no extension") == ""
        assert set_format("Title.webm", "mp4") == "Title.mp4"
        assert get_title_key(Path("/music/Some.Title.mp3")) == "Some.Title"
        assert is_partial_download("Title.mp4.part")
        assert not is_partial_download("Title.mp4")

    def test_same_media_family(self):
        assert same_media_family("mp4", "webm")
        assert same_media_family("mp3", "m4a")
        assert not same_media_family("mp4", "mp3")
        assert not same_media_family("", "")

    def test_exists_exactly(self, temp_dir):
        path = temp_dir / "Exact.mp4"
        path.write_bytes(b"x")

        assert exists_exactly(path)
        assert not exists_exactly(temp_dir / "Missing.mp4")
        assert not exists_exactly(temp_dir)

    def test_relative_posix_path(self, temp_dir):
        assert relative_posix_path(temp_dir / "a" / "b.mp4", temp_dir) == "a/b.mp4"
        assert relative_posix_path(temp_dir / "b.mp4", temp_dir / "a") == "../b.mp4"

    def test_atomic_write_and_read_lines(self, temp_dir):
        path = temp_dir / "nested" / "list.m3u"
        atomic_write_lines(path, ["one", "two"])

        assert path.read_text(encoding='utf-8') == "one\ntwo\n"
        assert read_lines(path) == ["one", "two"]
        assert read_lines(temp_dir / "missing") == []

    def test_format_file_size(self):
        """Test file size formatting"""
        assert format_file_size(1024) == "1.0 KB"
        assert format_file_size(1048576) == "1.0 MB"
        assert format_file_size(512) == "512 B"

    def test_parse_date(self):
        assert parse_date("20230401") == datetime(2023, 4, 1)
        assert parse_date("2023-04-01") == datetime(2023, 4, 1)
        assert parse_date("2023-04-01T10:00:00Z").hour == 10
        assert parse_date("yesterday") is None
        assert parse_date(None) is None

    def test_parse_size(self):
        assert parse_size("50MB") == 50 * 1024 * 1024
        assert parse_size("1KB") == 1024


class TestLogging:
    """Test logging setup"""

    @pytest.fixture(autouse=True)
    def reset_logging(self):
        yield
        setup_logging(console_output=False)

    def _record(self, level):
        return logging.LogRecord("test", level, __file__, 1, "message", (), None)

    def test_default_console_shows_warnings_only(self, temp_dir):
        setup_logging(level="INFO", log_file=str(temp_dir / "run.log"), colored_output=False)

        console, log_file = logging.getLogger().handlers
        console_filter = next(f for f in console.filters if isinstance(f, ConsoleMessageFilter))
        assert not console_filter.filter(self._record(logging.INFO))
        assert console_filter.filter(self._record(logging.WARNING))
        assert log_file.level == logging.INFO

    def test_verbose_lowers_levels(self, temp_dir):
        setup_logging(level="WARNING", log_file=str(temp_dir / "run.log"), colored_output=False, verbose=True)

        console, log_file = logging.getLogger().handlers
        console_filter = next(f for f in console.filters if isinstance(f, ConsoleMessageFilter))
        assert console_filter.filter(self._record(logging.INFO))
        assert not console_filter.filter(self._record(logging.DEBUG))
        assert log_file.level == logging.DEBUG


class TestValidation:
    """Test input validation"""

    def test_validate_channel_key(self):
        assert validate_channel_key("MY_CHANNEL") == (True, None)
        assert validate_channel_key("my channel")[0]
        assert not validate_channel_key("")[0]
        assert not validate_channel_key("bad/key")[0]

    @pytest.mark.parametrize("remote_list_id,valid", [
        ("UUabc_123", True),
        ("UCabc-123", True),
        ("PLxyz", True),
        ("OLAK5uy_abc", True),
        ("XXabc", False),
        ("", False),
    ])
    def test_validate_remote_list_id(self, remote_list_id, valid):
        assert validate_remote_list_id(remote_list_id)[0] is valid

    def test_validate_output_directory(self, temp_dir):
        file_path = temp_dir / "file.txt"
        file_path.write_text("x")

        assert validate_output_directory(str(temp_dir))[0]
        assert validate_output_directory(str(temp_dir / "not-yet"))[0]
        assert not validate_output_directory(str(file_path))[0]
        assert not validate_output_directory("")[0]

    def test_validate_audio_bitrate(self):
        assert validate_audio_bitrate(192)[0]
        assert not validate_audio_bitrate(200)[0]

    def test_validate_log_level(self):
        assert validate_log_level("debug")[0]
        assert not validate_log_level("LOUD")[0]
