"""
Utility functions for spot-exporter.

This module provides common helpers used across the application:
    - Chunking id lists to the provider's batch ceilings
    - File name sanitization for exported playlists
    - Path helpers

Usage:
    from spot_exporter.utils import chunked, playlist_file_name, ensure_directory
"""

import re
from pathlib import Path
from typing import Iterable, TypeVar

T = TypeVar("T")

# Characters that are invalid in file names on at least one platform
_INVALID_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')
_WHITESPACE_RUN = re.compile(r"\s+")


def chunked(items: Iterable[T], size: int) -> list[list[T]]:
    """
    Split items into consecutive chunks of at most size elements.

    Example:
        chunked(["a", "b", "c"], 2)  # [["a", "b"], ["c"]]
    """
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")

    chunks: list[list[T]] = []
    current: list[T] = []
    for item in items:
        current.append(item)
        if len(current) == size:
            chunks.append(current)
            current = []
    if current:
        chunks.append(current)
    return chunks


def playlist_file_name(name: str) -> str:
    """
    Turn a playlist name into a file name stem.

    Strips / \\ : * ? " < > | and replaces every whitespace run with
    a single underscore.

    Examples:
        playlist_file_name("Road Trip")       # "Road_Trip"
        playlist_file_name("AC/DC: Best Of")  # "ACDC_Best_Of"
    """
    return _WHITESPACE_RUN.sub("_", _INVALID_FILENAME_CHARS.sub("", name))


def ensure_directory(path: Path) -> Path:
    """
    Ensure a directory exists, creating it and its parents if necessary.

    Returns:
        The same path (for chaining).

    Raises:
        OSError: If directory cannot be created (permissions, etc.)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path
