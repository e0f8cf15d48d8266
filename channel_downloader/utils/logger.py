"""
Logging configuration and utilities for Channel-Downloader
Colored console output for the operator and a detailed rotating log file for auditing a run
"""

import logging
import logging.handlers
import re
import sys
import time
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Back, Style
from tqdm import tqdm

from ..config.settings import get_settings


# Initialize colorama for Windows compatibility
colorama.init()

FILE_LOG_FORMAT = '%(asctime)s | %(name)-36s | %(levelname)-8s | %(funcName)-20s | %(message)s'

# Third-party loggers that would otherwise flood the console
EXTERNAL_LOGGERS = ['yt_dlp', 'urllib3', 'urllib3.connectionpool']


class ConsoleMessageFilter(logging.Filter):
    """Let through records at min_level or above and records explicitly flagged for the console"""

    def __init__(self, min_level: int = logging.WARNING):
        super().__init__()
        self.min_level = min_level

    def filter(self, record):
        if record.levelno >= self.min_level:
            return True
        return bool(getattr(record, 'console_output', False))


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name for console output"""

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.RED + Back.WHITE + Style.BRIGHT,
    }

    def __init__(self, fmt: Optional[str] = None, use_colors: bool = True):
        """
        Initialize colored formatter

        Args:
            fmt: Log format string
            use_colors: Whether to use colored output
        """
        super().__init__()
        self.use_colors = use_colors
        self.fmt = fmt or '%(message)s'

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, coloring the level name when enabled"""
        formatter = logging.Formatter(self.fmt)
        if not (self.use_colors and record.levelname in self.COLORS):
            return formatter.format(record)

        # Work on a copy so the file handler still sees the plain level name
        record_copy = logging.makeLogRecord(record.__dict__)
        record_copy.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{Style.RESET_ALL}"
        return formatter.format(record_copy)


class ProgressHandler(logging.Handler):
    """Console handler that writes through tqdm so log lines do not break a progress bar"""

    def __init__(self, stream=None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            tqdm.write(self.format(record), file=self.stream)
        except Exception:
            self.handleError(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    colored_output: bool = True,
    max_size: str = "10MB",
    backup_count: int = 3,
    verbose: bool = False
) -> None:
    """
    Setup application logging with separated console and file output

    The console shows operator-facing messages only (warnings, errors and
    records flagged with console_output). The file receives every record at
    the configured level with module and function context.

    Args:
        level: Logging level for the file handler (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None to disable file logging)
        console_output: Enable console logging
        colored_output: Enable colored console output
        max_size: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep
        verbose: Show INFO records on the console and write DEBUG records to the file
    """
    numeric_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture everything, filter at handler level

    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    if console_output:
        console_handler = ProgressHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)  # Let the filter decide
        console_handler.addFilter(ConsoleMessageFilter(logging.INFO if verbose else logging.WARNING))
        console_handler.setFormatter(ColoredFormatter(fmt='%(message)s', use_colors=colored_output))
        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=parse_size(max_size),
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        root_logger.addHandler(file_handler)

    for lib in EXTERNAL_LOGGERS:
        lib_logger = logging.getLogger(lib)
        lib_logger.setLevel(logging.CRITICAL)
        lib_logger.propagate = False

    logging.getLogger('channel-downloader').info(
        f"Logging initialized - Level: {level}, Console: {console_output}, File: {log_file}"
    )


def get_current_log_file() -> Optional[Path]:
    """
    Get the current log file path from the active file handler

    Returns:
        Path to current log file or None if no file logging
    """
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            return Path(handler.baseFilename)
    return None


def parse_size(size_str: str) -> int:
    """
    Parse size string to bytes

    Args:
        size_str: Size string like "10MB", "1GB", "500KB"

    Returns:
        Size in bytes

    Raises:
        ValueError: If the string is not a size
    """
    multipliers = {
        'B': 1,
        'KB': 1024,
        'MB': 1024 ** 2,
        'GB': 1024 ** 3,
        'TB': 1024 ** 4,
    }

    match = re.match(r'^(\d+(?:\.\d+)?)\s*([KMGT]?B)$', size_str.upper().strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str}")

    number, unit = match.groups()
    return int(float(number) * multipliers[unit])


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance for a module

    The returned logger carries a console_info helper for messages the
    operator should see even below WARNING.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance with console_info attached
    """
    logger = logging.getLogger(name)

    def console_info(message: str):
        """Log message that should appear on console for the operator"""
        record = logger.makeRecord(logger.name, logging.INFO, '', 0, message, (), None)
        record.console_output = True
        logger.handle(record)

    logger.console_info = console_info

    return logger


def configure_from_settings(verbose: bool = False) -> None:
    """Configure logging from application settings, optionally in verbose mode"""
    settings = get_settings()

    log_file_path = None
    if settings.logging.file:
        if Path(settings.logging.file).expanduser().is_absolute():
            log_file_path = Path(settings.logging.file).expanduser()
        else:
            log_file_path = settings.get_data_directory() / settings.logging.file

    setup_logging(
        level=settings.logging.level,
        log_file=str(log_file_path) if log_file_path else None,
        console_output=settings.logging.console_output,
        colored_output=settings.logging.colored_output,
        max_size=settings.logging.max_size,
        backup_count=settings.logging.backup_count,
        verbose=verbose
    )


class OperationLogger:
    """Tracks a long-running operation over a known number of items with a progress bar"""

    def __init__(self, logger: logging.Logger, operation_name: str, show_progress: bool = True):
        """
        Initialize operation logger

        Args:
            logger: Logger created by get_logger
            operation_name: Name of the operation shown on the bar
            show_progress: Draw a tqdm bar on the console
        """
        self.logger = logger
        self.operation_name = operation_name
        self.show_progress = show_progress
        self.start_time = None
        self.progress_bar = None

    def start(self, total: int) -> None:
        """Start tracking and open the progress bar"""
        self.start_time = time.time()
        self.logger.info(f"Operation started: {self.operation_name} ({total} items)")
        if self.show_progress and total > 0:
            self.progress_bar = tqdm(
                total=total,
                desc=self.operation_name,
                bar_format="{desc} {n}/{total} {bar} {percentage:3.0f}%",
                ncols=100,
                colour='cyan',
                leave=False
            )

    def advance(self, message: str) -> None:
        """Record one finished item"""
        self.logger.debug(f"{self.operation_name}: {message}")
        if self.progress_bar is not None:
            self.progress_bar.update(1)

    def complete(self) -> None:
        """Close the progress bar and log the duration"""
        if self.progress_bar is not None:
            self.progress_bar.close()
            self.progress_bar = None

        if self.start_time is not None:
            duration = time.time() - self.start_time
            self.logger.info(f"Operation completed: {self.operation_name} in {duration:.2f}s")


def create_operation_logger(name: str, operation: str, show_progress: bool = True) -> OperationLogger:
    """
    Create operation logger for tracking long-running tasks

    Args:
        name: Logger name
        operation: Operation description
        show_progress: Draw a progress bar

    Returns:
        OperationLogger instance
    """
    return OperationLogger(get_logger(name), operation, show_progress)
