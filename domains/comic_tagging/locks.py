"""Per-file mutual exclusion shared by the watcher workers and the retry cycle."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List

from domains.comic_tagging.comic_file import ComicFile


class PathLocks:
    """Hands out one lock per comic file.

    Locks are keyed on the marker-stripped path, so ``Saga.cbz`` and
    ``Saga [untagged].cbz`` serialise against each other. Idle entries are
    dropped once no thread holds or waits on them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, List] = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, path: Path, blocking: bool = True) -> Iterator[bool]:
        """Hold the lock for ``path``; yields whether it was acquired.

        With ``blocking=False`` a busy lock is not waited for and False is
        yielded instead.
        """
        key = ComicFile.from_path(path).key
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1

        lock = entry[0]
        acquired = lock.acquire(blocking)
        try:
            yield acquired
        finally:
            if acquired:
                lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
