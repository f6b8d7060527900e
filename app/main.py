"""
Comic Tag Watcher - service entry point

Watches a directory for new comic archives and:
- Tags them online with the external tagger
- Renames them to "<series>[ Vol.<volume>] #<issue> (<year>)<ext>"
- Marks failures " [untagged]" and retries them on a fixed interval
"""

import argparse
import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

from app.utils.config import CollisionPolicy, Settings, get_settings
from app.utils.helpers import normalise_path
from app.utils.logging_config import configure_logging
from domains.comic_tagging.collectors.retry import RetryCoordinator
from domains.comic_tagging.collectors.watcher import DirectoryWatcher
from domains.comic_tagging.locks import PathLocks
from domains.comic_tagging.processors.file_processor import FileProcessor
from domains.comic_tagging.processors.work_queue import ProcessingQueue


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(
        description="Tag and rename comic archives dropped into a directory.",
    )
    parser.add_argument("--watch-dir", type=Path, help="Directory to watch.")
    parser.add_argument("--extension", help="Tracked file extension (default: .cbz).")
    parser.add_argument("--tagger", type=Path, help="Path to the tagging executable.")
    parser.add_argument("--log-file", type=Path, help="Append-only log file.")
    parser.add_argument(
        "--retry-interval",
        type=float,
        help="Seconds between retries of untagged files.",
    )
    parser.add_argument(
        "--settle-delay",
        type=float,
        help="Seconds to wait before touching a new file.",
    )
    parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite an existing file with the target name instead of skipping.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run one retry cycle over untagged files and exit (no watch loop).",
    )

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with CLI flags applied on top."""
    overrides: Dict[str, Any] = {}
    if args.watch_dir is not None:
        overrides["watch_dir"] = args.watch_dir
    if args.extension is not None:
        overrides["file_extension"] = args.extension
    if args.tagger is not None:
        overrides["tagger_path"] = args.tagger
    if args.log_file is not None:
        overrides["log_file"] = args.log_file
    if args.retry_interval is not None:
        overrides["retry_interval"] = args.retry_interval
    if args.settle_delay is not None:
        overrides["settle_delay"] = args.settle_delay
    if args.overwrite:
        overrides["collision_policy"] = CollisionPolicy.OVERWRITE

    return settings.model_copy(update=overrides)


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the CLI."""

    args = parse_args(argv)
    settings = apply_overrides(get_settings(), args)
    configure_logging(settings)

    watch_dir = normalise_path(settings.watch_dir)
    if not watch_dir.is_dir():
        logger.error(f"Watched directory is not accessible: {watch_dir}")
        return 1
    settings = settings.model_copy(update={"watch_dir": watch_dir})

    logger.info(
        f"Comic tag watcher starting: dir={watch_dir} tagger={settings.tagger_path} "
        f"policy={settings.collision_policy.value}"
    )

    locks = PathLocks()
    processor = FileProcessor(settings)
    retry = RetryCoordinator(processor, locks, settings)

    if args.once:
        retry.run_cycle()
        return 0

    work_queue = ProcessingQueue(processor, locks, settings)
    watcher = DirectoryWatcher(work_queue, settings)

    try:
        work_queue.start()
        watcher.start()
        retry.start()
    except OSError as e:
        logger.error(f"Failed to start watching {watch_dir}: {e}")
        return 1

    stop_event = threading.Event()

    def _signal_handler(signum, frame):  # noqa: D401
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        while not stop_event.is_set():
            stop_event.wait(1.0)
    finally:
        watcher.stop()
        retry.stop()
        work_queue.stop()

    logger.info("Comic tag watcher stopped.")
    logger.complete()
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI bridge
    sys.exit(main())
