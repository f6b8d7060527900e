"""
Directory watcher for the Comic Tagging domain.

Monitors the incoming directory (non-recursive) for new comic archives and
hands them to the processing queue. Uses the watchdog library for
cross-platform file system event monitoring.
"""

from pathlib import Path
from typing import Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.utils.config import Settings, get_settings
from app.utils.helpers import has_extension, is_hidden
from domains.comic_tagging.comic_file import ComicFile
from domains.comic_tagging.processors.work_queue import ProcessingQueue


class ComicEventHandler(FileSystemEventHandler):
    """Watchdog handler that enqueues newly arrived archives."""

    def __init__(self, work_queue: ProcessingQueue, extension: str):
        """
        Initialize event handler.

        Args:
            work_queue: Queue drained by the processing workers
            extension: Tracked extension with leading dot
        """
        super().__init__()
        self.work_queue = work_queue
        self.extension = extension

    def should_process(self, path: str) -> bool:
        """
        Check if path is a new archive we should tag.

        Marked files belong to the retry cycle and are ignored here.
        """
        path_obj = Path(path)

        if is_hidden(path_obj):
            return False

        if not has_extension(path_obj, self.extension):
            return False

        return not ComicFile.from_path(path_obj).is_marked_untagged

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory or not self.should_process(event.src_path):
            return

        logger.info(f"Detected: {event.src_path}")
        self.work_queue.submit(Path(event.src_path))

    def on_moved(self, event: FileSystemEvent):
        """Handle a download renamed into place (e.g. ``.part`` -> ``.cbz``)."""
        if event.is_directory:
            return

        # Renames between tracked names are our own work
        if has_extension(Path(event.src_path), self.extension):
            return

        dest = getattr(event, "dest_path", None)
        if not dest or not self.should_process(dest):
            return

        logger.info(f"Detected (moved in): {dest}")
        self.work_queue.submit(Path(dest))


class DirectoryWatcher:
    """Observer lifecycle for the watched directory."""

    def __init__(self, work_queue: ProcessingQueue, settings: Optional[Settings] = None):
        """Initialize directory watcher."""
        self.settings = settings or get_settings()
        self.watch_dir = self.settings.watch_dir
        self.event_handler = ComicEventHandler(work_queue, self.settings.get_extension())
        self.observer = Observer()

    def start(self):
        """Start watching the configured directory."""
        self.observer.schedule(self.event_handler, str(self.watch_dir), recursive=False)
        self.observer.daemon = True
        self.observer.start()
        logger.success(f"Watching {self.watch_dir} for *{self.settings.get_extension()}")

    def stop(self):
        """Stop watching."""
        self.observer.stop()
        self.observer.join()
        logger.info("Directory observer stopped")
