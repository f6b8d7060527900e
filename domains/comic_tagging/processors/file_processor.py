"""
Single-file processing pipeline.

settle -> tag -> read metadata -> parse -> build filename -> rename

Any TaggingError on the way degrades to the untagged fallback: the file is
renamed to "<name> [untagged]<ext>" and left for the retry cycle. No
exception leaves ``FileProcessor.process``.
"""

import time
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from app.models.schemas import OutcomeKind, ProcessOutcome
from app.utils.config import Settings, get_settings
from domains.comic_tagging.comic_file import ComicFile
from domains.comic_tagging.errors import RenameFailed, TaggingError
from domains.comic_tagging.processors.filename import FilenameBuilder, rename_to_target
from domains.comic_tagging.processors.metadata import MetadataParser
from domains.comic_tagging.processors.tagger import ComicTaggerClient


class FileProcessor:
    """Tags a comic archive and renames it from its metadata."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        tagger: Optional[ComicTaggerClient] = None,
        parser: Optional[MetadataParser] = None,
        builder: Optional[FilenameBuilder] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize file processor.

        Args:
            settings: Application settings
            tagger: Tagger client, built from settings when omitted
            parser: Metadata parser
            builder: Filename builder
            sleep: Used for the settle delay
        """
        self.settings = settings or get_settings()
        self.tagger = tagger or ComicTaggerClient(self.settings)
        self.parser = parser or MetadataParser()
        self.builder = builder or FilenameBuilder()
        self.sleep = sleep

    def process(self, path: Path) -> ProcessOutcome:
        """
        Process one archive.

        Args:
            path: Archive in the watched directory

        Returns:
            Outcome describing where the file ended up
        """
        path = Path(path)
        comic = ComicFile.from_path(path)

        if self.settings.settle_delay > 0:
            self.sleep(self.settings.settle_delay)

        if not path.exists():
            logger.warning(f"File disappeared before processing: {path}")
            return ProcessOutcome(kind=OutcomeKind.FAILED, path=path, reason="FileMissing")

        logger.info(f"Processing {path.name}")

        try:
            return self._tag_and_rename(path)
        except TaggingError as e:
            logger.warning(f"{e.code} for {path.name}: {e}")
            return self._mark_untagged(comic, e.code)
        except Exception as e:
            logger.exception(f"Unexpected error processing {path.name}: {e}")
            return self._mark_untagged(comic, type(e).__name__)

    def _tag_and_rename(self, path: Path) -> ProcessOutcome:
        self.tagger.tag(path)
        raw_output = self.tagger.read(path)
        record = self.parser.parse(raw_output)

        target_name = self.builder.build(record, path.suffix)
        if target_name == path.name:
            logger.info(f"Already named correctly: {path.name}")
            return ProcessOutcome(kind=OutcomeKind.RENAMED, path=path, new_name=target_name)

        if not rename_to_target(path, target_name, self.settings.collision_policy):
            logger.warning(f"Target exists, leaving {path.name} in place: {target_name}")
            return ProcessOutcome(
                kind=OutcomeKind.SKIPPED_EXISTS,
                path=path,
                new_name=target_name,
                reason="TargetExists",
            )

        logger.success(f"Renamed {path.name} -> {target_name}")
        return ProcessOutcome(
            kind=OutcomeKind.RENAMED,
            path=path.with_name(target_name),
            new_name=target_name,
        )

    def _mark_untagged(self, comic: ComicFile, reason: str) -> ProcessOutcome:
        try:
            marked = comic.mark_untagged()
        except RenameFailed as e:
            logger.error(f"RenameFailed while marking {comic.path.name} untagged ({reason}): {e}")
            return ProcessOutcome(kind=OutcomeKind.FAILED, path=comic.path, reason=RenameFailed.code)

        logger.warning(f"Marked untagged ({reason}): {marked.path.name}")
        return ProcessOutcome(kind=OutcomeKind.MARKED_UNTAGGED, path=marked.path, reason=reason)
