"""
External tagger invocation.

Wraps the ComicTagger command line: one call that looks metadata up online
and embeds it into the archive, one call that dumps the embedded metadata
as JSON.
"""

import subprocess
from pathlib import Path
from typing import Optional

from loguru import logger

from app.utils.config import Settings, get_settings
from domains.comic_tagging.errors import TagInvocationError


class ComicTaggerClient:
    """Thin subprocess wrapper around the tagging executable."""

    def __init__(self, settings: Optional[Settings] = None):
        """Initialize tagger client."""
        self.settings = settings or get_settings()
        self.executable = str(self.settings.tagger_path)
        self.write_args = self.settings.get_tagger_write_args()
        self.read_args = self.settings.get_tagger_read_args()

    def _run(self, args: list[str], path: Path) -> subprocess.CompletedProcess:
        command = [self.executable, *args, str(path)]
        logger.debug(f"Running tagger: {command}")
        try:
            return subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise TagInvocationError(f"could not run {self.executable}: {e}") from e

    def tag(self, path: Path) -> None:
        """
        Look up metadata online and embed it into the archive.

        Args:
            path: Archive to tag

        Raises:
            TagInvocationError: The tagger could not be started or exited non-zero
        """
        result = self._run(self.write_args, path)
        if result.returncode != 0:
            tail = (result.stdout or "").strip().splitlines()[-1:] or [""]
            raise TagInvocationError(
                f"tagger exited with {result.returncode} for {path.name}: {tail[0]}"
            )
        logger.info(f"Tagged {path.name}")

    def read(self, path: Path) -> str:
        """
        Dump the archive's embedded metadata.

        Args:
            path: Archive to read

        Returns:
            Combined stdout and stderr; may contain text around the JSON payload

        Raises:
            TagInvocationError: The tagger could not be started
        """
        result = self._run(self.read_args, path)
        if result.returncode != 0:
            logger.debug(f"Tagger read exited with {result.returncode} for {path.name}")
        return result.stdout or ""
