"""
Metadata extraction from tagger output.

The tagger prints banner and log lines around its JSON dump, and the JSON
shape and key casing differ between tagger versions and metadata sources.
The parser therefore:

1. Cuts the JSON out of the raw text by brace scanning (a list wrapping
   the object is only used for the ``[{"metadata": ...}]`` shape).
2. Decodes the metadata object through an ordered list of envelope shapes.
3. Reads each field through an ordered list of candidate keys.

The order of envelopes and candidate keys is significant: the first match
wins and later candidates are never consulted.
"""

import json
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict

from app.models.schemas import MetadataRecord
from app.utils.helpers import sanitize_filename
from domains.comic_tagging.errors import (
    InvalidJson,
    MissingIssue,
    MissingSeries,
    NoJsonFound,
    UnrecognizedStructure,
)

SERIES_KEYS = ("series", "Series", "SERIES")
VOLUME_KEYS = ("volume", "Volume", "VOLUME")
ISSUE_KEYS = ("issue", "Issue", "ISSUE", "number", "Number")
YEAR_KEYS = ("year", "Year", "YEAR", "coverYear", "publicationYear")

# Zeros are only stripped before a non-zero digit or a decimal point ("000" stays)
LEADING_ZEROS = re.compile(r'^0+(?=[1-9.])')


# =====================================================
# Envelope shapes
# =====================================================

class MdEnvelope(BaseModel):
    """``{"md": {...}}``"""
    md: Dict[str, Any]


class MetadataEnvelope(BaseModel):
    """First element of ``[{"metadata": {...}}, ...]``"""
    metadata: Dict[str, Any]


class BareMetadata(BaseModel):
    """The metadata object itself, recognised by its ``series`` key."""
    model_config = ConfigDict(extra="allow")
    series: Any


def _decode_md(data: Any) -> Dict[str, Any]:
    return MdEnvelope.model_validate(data).md


def _decode_sequence(data: Any) -> Dict[str, Any]:
    if not isinstance(data, list) or not data:
        raise ValueError("not a non-empty sequence")
    return MetadataEnvelope.model_validate(data[0]).metadata


def _sequence_or_none(data: Any) -> Optional[Dict[str, Any]]:
    try:
        return _decode_sequence(data)
    except ValueError:
        return None


def _decode_bare(data: Any) -> Dict[str, Any]:
    BareMetadata.model_validate(data)
    return data


ENVELOPE_DECODERS = (
    ("md", _decode_md),
    ("sequence", _decode_sequence),
    ("bare", _decode_bare),
)


# =====================================================
# Field helpers
# =====================================================

def _as_text(value: Any) -> Optional[str]:
    """Return a trimmed string for str/number values, None for anything else or blank."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


def first_value(md: Dict[str, Any], candidates: Sequence[str]) -> Optional[str]:
    """Value of the first candidate key that is present and non-blank."""
    for key in candidates:
        value = _as_text(md.get(key))
        if value is not None:
            return value
    return None


def clean_issue(issue: str) -> str:
    """Trim and drop leading zeros: "007" -> "7", "012.5" -> "12.5", "0.5" -> ".5"."""
    return LEADING_ZEROS.sub('', issue.strip())


def extract_json(raw_output: str) -> Any:
    """
    Locate and decode the JSON payload embedded in tagger output.

    Args:
        raw_output: Combined stdout/stderr of the tagger

    Returns:
        Decoded JSON value

    Raises:
        NoJsonFound: No ``{ ... }`` span in the output
        InvalidJson: The span is not valid JSON
    """
    start = raw_output.find('{')
    end = raw_output.rfind('}')
    if start == -1 or end == -1 or end < start:
        raise NoJsonFound("no JSON object in tagger output")

    try:
        return json.loads(raw_output[start:end + 1])
    except json.JSONDecodeError as e:
        raise InvalidJson(f"tagger output is not valid JSON: {e}") from e


def extract_json_list(raw_output: str) -> Optional[List[Any]]:
    """
    Decode a list payload wrapping the first JSON object, if there is one.

    Only a '[' separated from the first '{' by whitespace, closed by a ']'
    after the last '}', counts. Returns None otherwise.
    """
    start = raw_output.find('{')
    end = raw_output.rfind('}')
    if start == -1 or end < start:
        return None

    bracket = raw_output.rfind('[', 0, start)
    if bracket == -1 or raw_output[bracket + 1:start].strip():
        return None
    closing = raw_output.rfind(']')
    if closing < end:
        return None

    try:
        data = json.loads(raw_output[bracket:closing + 1])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, list) else None


def locate_metadata(data: Any) -> Dict[str, Any]:
    """
    Decode the metadata object from the known envelope shapes, in order.

    Raises:
        UnrecognizedStructure: No envelope shape matched
    """
    for name, decode in ENVELOPE_DECODERS:
        try:
            md = decode(data)
        except ValueError:
            continue
        logger.debug(f"Metadata located via {name} envelope")
        return md

    raise UnrecognizedStructure("no md, metadata or series property found")


class MetadataParser:
    """Turns raw tagger output into a MetadataRecord."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """
        Initialize metadata parser.

        Args:
            clock: Source of the current time, used for the default year
        """
        self.clock = clock

    def parse(self, raw_output: str) -> MetadataRecord:
        """
        Parse tagger output.

        Args:
            raw_output: Combined stdout/stderr of the read-mode tagger call

        Returns:
            Normalized metadata record

        Raises:
            MetadataError: One of NoJsonFound, InvalidJson,
                UnrecognizedStructure, MissingSeries, MissingIssue
        """
        md = self._locate(raw_output)

        series = first_value(md, SERIES_KEYS)
        series = sanitize_filename(series) if series else ""
        if not series:
            raise MissingSeries("series not found in metadata")

        volume = first_value(md, VOLUME_KEYS)

        issue = first_value(md, ISSUE_KEYS)
        if issue is None:
            raise MissingIssue("issue not found in metadata")
        issue = clean_issue(issue)

        year = first_value(md, YEAR_KEYS)
        if year is None:
            year = str(self.clock().year)
            logger.debug(f"No year in metadata, defaulting to {year}")

        return MetadataRecord(series=series, volume=volume, issue=issue, year=year)

    @staticmethod
    def _locate(raw_output: str) -> Dict[str, Any]:
        # The object slice wins; a wrapping list is only consulted for the
        # [{"metadata": {...}}] shape when the slice yields nothing usable
        try:
            return locate_metadata(extract_json(raw_output))
        except (InvalidJson, UnrecognizedStructure):
            items = extract_json_list(raw_output)
            md = _sequence_or_none(items) if items is not None else None
            if md is None:
                raise
            logger.debug("Metadata located via sequence envelope")
            return md
