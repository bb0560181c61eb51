"""
Utility Module for the Lab Report Extraction Pipeline.

Common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Small helpers
"""

from .logger import setup_logger, setup_logger_from_config, set_level, get_logger
from .helpers import generate_timestamp, format_file_size, is_number

__all__ = [
    'setup_logger',
    'setup_logger_from_config',
    'set_level',
    'get_logger',
    'generate_timestamp',
    'format_file_size',
    'is_number',
]
