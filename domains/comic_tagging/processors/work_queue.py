"""
Bounded work queue between event delivery and processing.

The watchdog thread only calls ``submit``; worker threads drain the queue
and run the FileProcessor under the per-file lock so a file is never
processed twice at the same time.
"""

import queue
import threading
from pathlib import Path
from typing import Callable, List, Optional, Set

from loguru import logger

from app.models.schemas import ProcessOutcome
from app.utils.config import Settings, get_settings
from domains.comic_tagging.comic_file import ComicFile
from domains.comic_tagging.errors import RenameFailed
from domains.comic_tagging.locks import PathLocks
from domains.comic_tagging.processors.file_processor import FileProcessor

_STOP = object()


class ProcessingQueue:
    """Worker pool fed by the directory watcher."""

    def __init__(
        self,
        processor: FileProcessor,
        locks: PathLocks,
        settings: Optional[Settings] = None,
        on_outcome: Optional[Callable[[ProcessOutcome], None]] = None,
    ):
        self.settings = settings or get_settings()
        self.processor = processor
        self.locks = locks
        self.on_outcome = on_outcome

        self._queue: queue.Queue = queue.Queue(maxsize=self.settings.queue_size)
        self._pending: Set[str] = set()
        self._pending_lock = threading.Lock()
        self._workers: List[threading.Thread] = []

    def submit(self, path: Path) -> bool:
        """
        Enqueue a file for processing.

        Args:
            path: Newly created archive

        Returns:
            True if queued, False if already pending or the queue is full
        """
        path = Path(path)
        key = str(path)

        with self._pending_lock:
            if key in self._pending:
                logger.debug(f"Already queued: {path.name}")
                return False
            self._pending.add(key)

        try:
            self._queue.put_nowait(path)
        except queue.Full:
            with self._pending_lock:
                self._pending.discard(key)
            logger.error(f"Work queue full, deferring {path.name} to the retry cycle")
            self._defer(path)
            return False

        logger.debug(f"Queued {path.name} ({self._queue.qsize()} pending)")
        return True

    def _defer(self, path: Path) -> None:
        # Runs on the event thread, so a busy lock is never waited for
        with self.locks.hold(path, blocking=False) as acquired:
            if not acquired:
                logger.warning(f"{path.name} is being processed, not deferring it")
                return
            try:
                ComicFile.from_path(path).mark_untagged()
            except RenameFailed as e:
                logger.error(f"RenameFailed while deferring {path.name}: {e}")

    def start(self) -> None:
        """Start worker threads."""
        for index in range(max(1, self.settings.worker_threads)):
            worker = threading.Thread(
                target=self._work, name=f"comic-worker-{index}", daemon=True
            )
            worker.start()
            self._workers.append(worker)
        logger.info(f"Started {len(self._workers)} processing workers")

    def _work(self) -> None:
        while True:
            path = self._queue.get()
            try:
                if path is _STOP:
                    return
                self._handle(path)
            except Exception as e:
                logger.exception(f"Worker error for {path}: {e}")
            finally:
                self._queue.task_done()

    def _handle(self, path: Path) -> None:
        with self._pending_lock:
            self._pending.discard(str(path))

        with self.locks.hold(path):
            if not path.exists():
                logger.debug(f"Skipping {path.name}, no longer present")
                return
            outcome = self.processor.process(path)

        logger.debug(f"{path.name}: {outcome.kind.value}")
        if self.on_outcome is not None:
            self.on_outcome(outcome)

    def join(self) -> None:
        """Block until every queued file has been processed."""
        self._queue.join()

    def stop(self) -> None:
        """Finish queued work, then stop the workers."""
        for _ in self._workers:
            self._queue.put(_STOP)
        for worker in self._workers:
            worker.join()
        self._workers.clear()
        logger.info("Processing workers stopped")
