"""
Pydantic models for the comic tag watcher.

Shared data models across the application.
"""

from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, field_validator


# =====================================================
# Metadata Models
# =====================================================

class MetadataRecord(BaseModel):
    """Normalized bibliographic fields extracted from tagger output."""
    series: str
    volume: Optional[str] = None
    issue: str
    year: str

    @field_validator("series", "issue")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


# =====================================================
# Processing Models
# =====================================================

class OutcomeKind(str, Enum):
    """Result of processing a single file."""
    RENAMED = "renamed"
    SKIPPED_EXISTS = "skipped_exists"
    MARKED_UNTAGGED = "marked_untagged"
    FAILED = "failed"


class ProcessOutcome(BaseModel):
    """Outcome of one FileProcessor run."""
    kind: OutcomeKind
    path: Path  # where the file lives after processing
    new_name: Optional[str] = None
    reason: Optional[str] = None


class RetrySummary(BaseModel):
    """Counts reported at the end of a retry cycle."""
    attempted: int = 0
    recovered: int = 0
    remaining: int = 0
