"""
Retry cycle for files marked " [untagged]".

Each cycle strips the marker, runs the file through the FileProcessor again
and puts the marker back if the file is still left bare. A failed retry
therefore always ends with exactly one marker on the file.
"""

import threading
from pathlib import Path
from typing import List, Optional

from loguru import logger

from app.models.schemas import OutcomeKind, RetrySummary
from app.utils.config import Settings, get_settings
from app.utils.helpers import has_extension
from domains.comic_tagging.comic_file import ComicFile
from domains.comic_tagging.errors import RenameFailed
from domains.comic_tagging.locks import PathLocks
from domains.comic_tagging.processors.file_processor import FileProcessor


class RetryCoordinator:
    """Periodically resubmits untagged files."""

    def __init__(
        self,
        processor: FileProcessor,
        locks: PathLocks,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize retry coordinator.

        Args:
            processor: Processor used for each retried file
            locks: Per-file locks shared with the processing queue
            settings: Application settings
        """
        self.settings = settings or get_settings()
        self.processor = processor
        self.locks = locks
        self.extension = self.settings.get_extension()

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def scan(self) -> List[Path]:
        """
        List marked files in the watched directory (non-recursive).

        Returns:
            Sorted paths of files carrying the untagged marker
        """
        watch_dir = self.settings.watch_dir
        return sorted(
            path for path in watch_dir.iterdir()
            if path.is_file()
            and has_extension(path, self.extension)
            and ComicFile.from_path(path).is_marked_untagged
        )

    def run_cycle(self) -> RetrySummary:
        """
        Retry every marked file once.

        Returns:
            Summary of attempted, recovered and remaining files
        """
        summary = RetrySummary()
        candidates = self.scan()

        if candidates:
            logger.info(f"Retrying {len(candidates)} untagged file(s)")

        for marked_path in candidates:
            summary.attempted += 1
            with self.locks.hold(marked_path):
                if self._retry_one(ComicFile.from_path(marked_path)):
                    summary.recovered += 1

        summary.remaining = len(self.scan())
        logger.info(f"Retry cycle complete: {summary.remaining} file(s) still untagged")
        return summary

    def _retry_one(self, marked: ComicFile) -> bool:
        if not marked.path.exists():
            logger.debug(f"Skipping {marked.path.name}, no longer present")
            return False

        if marked.bare_path.exists():
            logger.warning(
                f"Cannot retry {marked.path.name}: {marked.bare_path.name} already exists"
            )
            return False

        try:
            bare = marked.strip_marker()
        except RenameFailed as e:
            logger.error(f"RenameFailed while stripping marker from {marked.path.name}: {e}")
            return False

        try:
            outcome = self.processor.process(bare.path)
        except Exception as e:
            logger.exception(f"Retry of {bare.path.name} raised: {e}")
            outcome = None

        if outcome is not None and outcome.kind is OutcomeKind.SKIPPED_EXISTS:
            logger.warning(
                f"{bare.path.name} left unmarked, target {outcome.new_name} exists; "
                f"it leaves the retry set"
            )
            return False
        if outcome is not None and outcome.kind is not OutcomeKind.FAILED:
            return outcome.kind is OutcomeKind.RENAMED

        # Processing could not mark the file itself; restore the marker
        if bare.path.exists():
            try:
                bare.mark_untagged()
            except RenameFailed as e:
                logger.error(f"RenameFailed while re-marking {bare.path.name}: {e}")
        return False

    def _loop(self) -> None:
        interval = self.settings.retry_interval
        logger.info(f"Retry loop started, interval {interval}s")
        while not self._stop_event.wait(interval):
            try:
                self.run_cycle()
            except Exception as e:
                logger.exception(f"Retry cycle failed: {e}")

    def start(self) -> None:
        """Run ``run_cycle`` every ``retry_interval`` seconds in a background thread."""
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name="comic-retry", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop the background loop; an in-flight cycle finishes first."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        logger.info("Retry loop stopped")
