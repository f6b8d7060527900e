from datetime import datetime

import pytest

from app.models.schemas import OutcomeKind
from app.utils.config import CollisionPolicy
from domains.comic_tagging.errors import TagInvocationError
from domains.comic_tagging.processors.file_processor import FileProcessor
from domains.comic_tagging.processors.metadata import MetadataParser
from tests.fakes import FakeTagger

SAGA_OUTPUT = 'Loading...\n{"md":{"series":"Saga","volume":2,"issue":"01","year":2013}}\nDone'


@pytest.fixture
def archive(tmp_path):
    path = tmp_path / "saga_002_001.cbz"
    path.write_text("archive")
    return path


def make_processor(settings, tagger, **kwargs):
    return FileProcessor(settings=settings, tagger=tagger, **kwargs)


def test_renames_from_metadata(make_settings, archive):
    tagger = FakeTagger(SAGA_OUTPUT)

    outcome = make_processor(make_settings(), tagger).process(archive)

    assert outcome.kind is OutcomeKind.RENAMED
    assert outcome.new_name == "Saga Vol.2 #1 (2013).cbz"
    assert outcome.path == archive.with_name("Saga Vol.2 #1 (2013).cbz")
    assert outcome.path.read_text() == "archive"
    assert not archive.exists()
    assert [call[0] for call in tagger.calls] == ["tag", "read"]


def test_missing_issue_marks_untagged(make_settings, archive):
    tagger = FakeTagger('{"md":{"series":"Saga","year":2013}}')

    outcome = make_processor(make_settings(), tagger).process(archive)

    assert outcome.kind is OutcomeKind.MARKED_UNTAGGED
    assert outcome.reason == "MissingIssue"
    assert outcome.path == archive.with_name("saga_002_001 [untagged].cbz")
    assert outcome.path.exists()
    assert not archive.exists()


def test_tag_failure_marks_untagged_without_reading(make_settings, archive):
    tagger = FakeTagger(SAGA_OUTPUT, tag_error=TagInvocationError("exit 1"))

    outcome = make_processor(make_settings(), tagger).process(archive)

    assert outcome.kind is OutcomeKind.MARKED_UNTAGGED
    assert outcome.reason == "TagInvocationError"
    assert [call[0] for call in tagger.calls] == ["tag"]


@pytest.mark.parametrize(
    "output, reason",
    [
        ("banner only", "NoJsonFound"),
        ("{broken", "NoJsonFound"),
        ("{broken}", "InvalidJson"),
        ('{"notmd": {}}', "UnrecognizedStructure"),
        ('{"md": {"issue": "1"}}', "MissingSeries"),
    ],
)
def test_metadata_failures_are_classified(make_settings, archive, output, reason):
    outcome = make_processor(make_settings(), FakeTagger(output)).process(archive)

    assert outcome.kind is OutcomeKind.MARKED_UNTAGGED
    assert outcome.reason == reason


def test_existing_target_is_skipped(make_settings, archive, log_messages):
    target = archive.with_name("Saga Vol.2 #1 (2013).cbz")
    target.write_text("already here")

    outcome = make_processor(make_settings(), FakeTagger(SAGA_OUTPUT)).process(archive)

    assert outcome.kind is OutcomeKind.SKIPPED_EXISTS
    assert outcome.path == archive
    assert archive.read_text() == "archive"
    assert target.read_text() == "already here"
    assert any("Target exists" in message for message in log_messages)


def test_existing_target_is_overwritten_when_opted_in(make_settings, archive):
    target = archive.with_name("Saga Vol.2 #1 (2013).cbz")
    target.write_text("already here")
    settings = make_settings(collision_policy=CollisionPolicy.OVERWRITE)

    outcome = make_processor(settings, FakeTagger(SAGA_OUTPUT)).process(archive)

    assert outcome.kind is OutcomeKind.RENAMED
    assert target.read_text() == "archive"
    assert not archive.exists()


def test_already_correctly_named(make_settings, tmp_path):
    path = tmp_path / "Saga Vol.2 #1 (2013).cbz"
    path.write_text("archive")

    outcome = make_processor(make_settings(), FakeTagger(SAGA_OUTPUT)).process(path)

    assert outcome.kind is OutcomeKind.RENAMED
    assert outcome.path == path
    assert path.exists()


def test_default_year_uses_injected_clock(make_settings, archive):
    parser = MetadataParser(clock=lambda: datetime(2030, 1, 1))
    tagger = FakeTagger('{"series": "Saga", "issue": "5"}')

    outcome = make_processor(make_settings(), tagger, parser=parser).process(archive)

    assert outcome.new_name == "Saga #5 (2030).cbz"


def test_settle_delay_before_tagging(make_settings, archive):
    slept = []
    settings = make_settings(settle_delay=2.5)

    make_processor(settings, FakeTagger(SAGA_OUTPUT), sleep=slept.append).process(archive)

    assert slept == [2.5]


def test_missing_file_fails_without_tagging(make_settings, tmp_path):
    tagger = FakeTagger(SAGA_OUTPUT)

    outcome = make_processor(make_settings(), tagger).process(tmp_path / "gone.cbz")

    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.reason == "FileMissing"
    assert tagger.calls == []


def test_unexpected_error_never_escapes(make_settings, archive):
    def explode(path):
        raise RuntimeError("boom")

    outcome = make_processor(make_settings(), FakeTagger(explode)).process(archive)

    assert outcome.kind is OutcomeKind.MARKED_UNTAGGED
    assert outcome.reason == "RuntimeError"
    assert outcome.path == archive.with_name("saga_002_001 [untagged].cbz")
    assert outcome.path.exists()
    assert not archive.exists()


def test_fallback_rename_failure_is_reported(make_settings, archive):
    archive.with_name("saga_002_001 [untagged].cbz").write_text("older copy")

    outcome = make_processor(make_settings(), FakeTagger("no json")).process(archive)

    assert outcome.kind is OutcomeKind.FAILED
    assert outcome.reason == "RenameFailed"
    assert archive.exists()
