"""
Filename-encoded tagging state.

A comic archive in the watched directory is in one of two states:

- ``UNMARKED``: plain name, either newly arrived or being processed.
- ``UNTAGGED``: name ends with the ``" [untagged]"`` marker before the
  extension; tagging failed and the file waits for the retry cycle.

The marker is the only persisted state, so it survives restarts. All
marker handling lives here; transitions rename the file on disk and return
the new ``ComicFile``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from domains.comic_tagging.errors import RenameFailed

UNTAGGED_MARKER = " [untagged]"


class TagState(str, Enum):
    UNMARKED = "unmarked"
    UNTAGGED = "untagged"


@dataclass(frozen=True, slots=True)
class ComicFile:
    """A comic archive on disk, described independently of its marker."""

    directory: Path
    bare_stem: str
    extension: str
    state: TagState

    @classmethod
    def from_path(cls, path: Path) -> ComicFile:
        stem = path.stem
        if stem.endswith(UNTAGGED_MARKER) and len(stem) > len(UNTAGGED_MARKER):
            return cls(path.parent, stem[: -len(UNTAGGED_MARKER)], path.suffix, TagState.UNTAGGED)
        return cls(path.parent, stem, path.suffix, TagState.UNMARKED)

    @property
    def bare_path(self) -> Path:
        return self.directory / f"{self.bare_stem}{self.extension}"

    @property
    def marked_path(self) -> Path:
        return self.directory / f"{self.bare_stem}{UNTAGGED_MARKER}{self.extension}"

    @property
    def path(self) -> Path:
        """Where the file currently lives."""
        return self.marked_path if self.is_marked_untagged else self.bare_path

    @property
    def is_marked_untagged(self) -> bool:
        return self.state is TagState.UNTAGGED

    @property
    def key(self) -> str:
        """Identity shared by both states of the same file."""
        return str(self.bare_path)

    def mark_untagged(self) -> ComicFile:
        """Append the marker. A file that already carries it is left alone."""
        if self.is_marked_untagged:
            return self
        _rename(self.bare_path, self.marked_path)
        return replace(self, state=TagState.UNTAGGED)

    def strip_marker(self) -> ComicFile:
        """Remove the marker so the file can be processed again."""
        if not self.is_marked_untagged:
            return self
        _rename(self.marked_path, self.bare_path)
        return replace(self, state=TagState.UNMARKED)


def _rename(src: Path, dst: Path) -> None:
    if dst.exists():
        raise RenameFailed(f"{dst.name} already exists")
    try:
        src.rename(dst)
    except OSError as e:
        raise RenameFailed(f"{src.name} -> {dst.name}: {e}") from e
