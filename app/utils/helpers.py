"""
Helper utilities for the comic tag watcher.

Common functions used across domains.
"""

import re
from pathlib import Path

ILLEGAL_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


def sanitize_filename(filename: str) -> str:
    """Remove characters that are illegal in file names, then trim whitespace."""
    return ILLEGAL_FILENAME_CHARS.sub('', filename).strip()


def normalise_path(path: Path) -> Path:
    """Return a resolved version of ``path`` without forcing existence."""

    try:
        return path.expanduser().resolve()
    except FileNotFoundError:
        return path.expanduser().absolute()


def has_extension(path: Path, extension: str) -> bool:
    """Case-insensitive check of ``path`` against a dotted extension."""
    return path.suffix.lower() == extension.lower()


def is_hidden(path: Path) -> bool:
    """Check if path is hidden (starts with dot)."""
    return path.name.startswith('.')
