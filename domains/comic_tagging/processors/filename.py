"""Target filename construction and the collision-aware rename."""

import os
from pathlib import Path

from loguru import logger

from app.models.schemas import MetadataRecord
from app.utils.config import CollisionPolicy
from app.utils.helpers import sanitize_filename
from domains.comic_tagging.errors import RenameFailed


class FilenameBuilder:
    """Builds ``"<series>[ Vol.<volume>] #<issue> (<year>)<ext>"``."""

    def build(self, record: MetadataRecord, extension: str) -> str:
        """
        Compose the target filename.

        Args:
            record: Parsed metadata
            extension: File extension, with or without the leading dot

        Returns:
            Filename without directory
        """
        series = sanitize_filename(record.series)
        issue = sanitize_filename(record.issue)
        year = sanitize_filename(record.year)
        volume = sanitize_filename(record.volume) if record.volume else ""

        if extension and not extension.startswith('.'):
            extension = f".{extension}"

        volume_part = f" Vol.{volume}" if volume else ""
        return f"{series}{volume_part} #{issue} ({year}){extension}"


def rename_to_target(source: Path, target_name: str, policy: CollisionPolicy) -> bool:
    """
    Rename ``source`` to ``target_name`` inside the same directory.

    Args:
        source: Current file path
        target_name: New filename
        policy: Collision policy for an existing target

    Returns:
        True if renamed, False if skipped because the target exists

    Raises:
        RenameFailed: The filesystem refused the rename
    """
    target = source.with_name(target_name)

    # samefile: a case-only rename on a case-insensitive filesystem
    if target.exists() and not target.samefile(source):
        if policy is CollisionPolicy.SKIP:
            return False
        logger.warning(f"Overwriting existing file: {target}")

    try:
        os.replace(source, target)
    except OSError as e:
        raise RenameFailed(f"{source.name} -> {target_name}: {e}") from e

    return True
