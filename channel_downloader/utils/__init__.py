"""
Utilities package
Title cleaning, path helpers, logging and input validation
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    OperationLogger,
    create_operation_logger,
    get_current_log_file
)
from .helpers import (
    clean_title,
    clean_file_path,
    format_identifier,
    key_to_name,
    format_file_size,
    ensure_directory,
    relative_posix_path,
    same_media_family,
    is_partial_download,
)
from .validation import (
    validate_channel_key,
    validate_remote_list_id,
    validate_output_directory,
)

__all__ = [
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'OperationLogger',
    'create_operation_logger',
    'get_current_log_file',
    'clean_title',
    'clean_file_path',
    'format_identifier',
    'key_to_name',
    'format_file_size',
    'ensure_directory',
    'relative_posix_path',
    'same_media_family',
    'is_partial_download',
    'validate_channel_key',
    'validate_remote_list_id',
    'validate_output_directory',
]
