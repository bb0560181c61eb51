"""
Helper Utilities Module.

Small generic helpers shared across the pipeline.

Functions:
    - generate_timestamp: ISO-8601 UTC timestamps
    - format_file_size: Human-readable byte counts
    - is_number: Numeric check that rejects booleans
"""

import math
from datetime import datetime, timezone
from typing import Any


def generate_timestamp() -> str:
    """
    Generate an ISO-8601 timestamp in UTC.

    Returns:
        Timestamp string.

    Example:
        >>> generate_timestamp()
        "2026-01-21T14:30:22.123456+00:00"
    """
    return datetime.now(timezone.utc).isoformat()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Example:
        >>> format_file_size(1536)
        "1.5 KB"
    """
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"


def is_number(value: Any) -> bool:
    """
    Return True for ints and floats that are finite as floats.

    Booleans and ints too large for a float are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False
