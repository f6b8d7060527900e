import threading
import time
from pathlib import Path

from app.models.schemas import OutcomeKind, ProcessOutcome
from domains.comic_tagging.locks import PathLocks
from domains.comic_tagging.processors.file_processor import FileProcessor
from domains.comic_tagging.processors.work_queue import ProcessingQueue
from tests.fakes import FakeTagger

SAGA_OUTPUT = '{"md":{"series":"Saga","issue":"1","year":2013}}'


class SlowProcessor:
    """Tracks how many calls run at once per file."""

    def __init__(self):
        self.active: dict[str, int] = {}
        self.max_active = 0
        self.guard = threading.Lock()

    def process(self, path: Path) -> ProcessOutcome:
        key = path.name.replace(" [untagged]", "")
        with self.guard:
            self.active[key] = self.active.get(key, 0) + 1
            self.max_active = max(self.max_active, self.active[key])
        time.sleep(0.05)
        with self.guard:
            self.active[key] -= 1
        return ProcessOutcome(kind=OutcomeKind.RENAMED, path=path)


def test_queued_files_are_processed(tmp_path, make_settings):
    settings = make_settings()
    archive = tmp_path / "incoming.cbz"
    archive.write_text("archive")
    outcomes = []
    processor = FileProcessor(settings=settings, tagger=FakeTagger(SAGA_OUTPUT))
    work_queue = ProcessingQueue(processor, PathLocks(), settings, on_outcome=outcomes.append)

    work_queue.start()
    assert work_queue.submit(archive) is True
    work_queue.join()
    work_queue.stop()

    assert [o.kind for o in outcomes] == [OutcomeKind.RENAMED]
    assert (tmp_path / "Saga #1 (2013).cbz").exists()


def test_duplicate_submission_is_ignored(tmp_path, make_settings):
    archive = tmp_path / "incoming.cbz"
    archive.write_text("archive")
    work_queue = ProcessingQueue(SlowProcessor(), PathLocks(), make_settings())

    assert work_queue.submit(archive) is True
    assert work_queue.submit(archive) is False


def test_full_queue_defers_to_retry_cycle(tmp_path, make_settings):
    first = tmp_path / "first.cbz"
    second = tmp_path / "second.cbz"
    first.write_text("a")
    second.write_text("b")
    work_queue = ProcessingQueue(SlowProcessor(), PathLocks(), make_settings(queue_size=1))

    assert work_queue.submit(first) is True
    assert work_queue.submit(second) is False

    assert first.exists()
    assert (tmp_path / "second [untagged].cbz").exists()


def test_vanished_file_is_dropped(tmp_path, make_settings):
    outcomes = []
    processor = SlowProcessor()
    work_queue = ProcessingQueue(processor, PathLocks(), make_settings(), on_outcome=outcomes.append)

    work_queue.start()
    work_queue.submit(tmp_path / "gone.cbz")
    work_queue.join()
    work_queue.stop()

    assert outcomes == []
    assert processor.max_active == 0


def test_same_file_is_never_processed_concurrently(tmp_path, make_settings):
    archive = tmp_path / "incoming.cbz"
    archive.write_text("archive")
    processor = SlowProcessor()
    locks = PathLocks()
    work_queue = ProcessingQueue(processor, locks, make_settings(worker_threads=4))

    work_queue.start()
    work_queue.submit(archive)

    # A retry holding the marked name must wait for the worker
    def retry_side():
        with locks.hold(tmp_path / "incoming [untagged].cbz"):
            processor.process(archive)

    others = [threading.Thread(target=retry_side) for _ in range(3)]
    for thread in others:
        thread.start()
    for thread in others:
        thread.join()
    work_queue.join()
    work_queue.stop()

    assert processor.max_active == 1
    assert len(locks) == 0


def test_full_queue_does_not_wait_for_a_busy_file(tmp_path, make_settings):
    first = tmp_path / "first.cbz"
    second = tmp_path / "second.cbz"
    first.write_text("a")
    second.write_text("b")
    locks = PathLocks()
    work_queue = ProcessingQueue(SlowProcessor(), locks, make_settings(queue_size=1))
    work_queue.submit(first)

    with locks.hold(second):
        started = time.monotonic()
        assert work_queue.submit(second) is False
        elapsed = time.monotonic() - started

    assert elapsed < 1.0
    assert second.exists()
    assert not (tmp_path / "second [untagged].cbz").exists()


def test_unexpected_tagger_error_marks_file_untagged(tmp_path, make_settings):
    settings = make_settings()
    archive = tmp_path / "saga.cbz"
    archive.write_text("archive")

    def explode(path):
        raise RuntimeError("tagger crashed")

    outcomes = []
    processor = FileProcessor(settings=settings, tagger=FakeTagger(explode))
    work_queue = ProcessingQueue(processor, PathLocks(), settings, on_outcome=outcomes.append)

    work_queue.start()
    work_queue.submit(archive)
    work_queue.join()
    work_queue.stop()

    assert [o.kind for o in outcomes] == [OutcomeKind.MARKED_UNTAGGED]
    assert outcomes[0].reason == "RuntimeError"
    assert not archive.exists()
    assert (tmp_path / "saga [untagged].cbz").exists()
