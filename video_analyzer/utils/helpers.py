"""
Helper utility functions for the video analyzer application.
"""

import os
import json
import re
import uuid
from typing import Dict, Any, Optional, Tuple


def random_suffix(length: int = 8) -> str:
    """Short random token used to make generated file names unique."""
    return uuid.uuid4().hex[:length]


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as mm:ss, or hh:mm:ss past the hour.

    Args:
        seconds: Offset into the video

    Returns:
        Formatted timestamp string
    """
    total = int(max(seconds, 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def save_json(data: Dict[str, Any], filepath: str, pretty: bool = True) -> None:
    """
    Save data to a JSON file.

    The file is written next to its destination first and then moved into
    place, so readers never see a half-written document.

    Args:
        data: Data to save
        filepath: Path to save the file
        pretty: Whether to format the JSON for readability
    """
    tmp_path = f"{filepath}.tmp"
    with open(tmp_path, 'w', encoding='utf-8') as f:
        if pretty:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
        else:
            json.dump(data, f, ensure_ascii=False, default=str)
    os.replace(tmp_path, filepath)


def load_json(filepath: str) -> Dict[str, Any]:
    """
    Load data from a JSON file.

    Args:
        filepath: Path to the JSON file

    Returns:
        Loaded JSON data
    """
    with open(filepath, 'r', encoding='utf-8') as f:
        return json.load(f)


def ensure_dir(directory: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        directory: Directory path to ensure exists
    """
    os.makedirs(directory, exist_ok=True)


def parse_range_header(range_header: Optional[str], file_size: int) -> Optional[Tuple[int, int]]:
    """
    Parse a single-range HTTP ``Range`` header.

    Args:
        range_header: Raw header value, e.g. ``bytes=0-1023`` or ``bytes=-500``
        file_size: Size of the resource in bytes

    Returns:
        Inclusive ``(start, end)`` byte offsets, or None when no range was asked for

    Raises:
        ValueError: If the header is malformed or cannot be satisfied
    """
    if not range_header:
        return None

    match = re.fullmatch(r"\s*bytes=(\d*)-(\d*)\s*", range_header)
    if not match or (not match.group(1) and not match.group(2)):
        raise ValueError(f"Unsupported range header: {range_header}")

    start_text, end_text = match.groups()
    if not start_text:
        # Suffix range: the last N bytes
        length = int(end_text)
        if length == 0:
            raise ValueError("Empty suffix range")
        start = max(file_size - length, 0)
        end = file_size - 1
    else:
        start = int(start_text)
        end = int(end_text) if end_text else file_size - 1
        end = min(end, file_size - 1)

    if start >= file_size or start > end:
        raise ValueError(f"Range not satisfiable: {range_header}")
    return start, end


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: Text to truncate
        max_length: Maximum length
        suffix: Suffix to add if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
