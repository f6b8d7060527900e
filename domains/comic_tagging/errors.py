"""
Error taxonomy for the comic tagging pipeline.

Every error carries a short ``code`` that is used as the outcome reason
in logs and in ``ProcessOutcome.reason``.
"""


class TaggingError(Exception):
    """Base class for recoverable per-file failures."""

    code = "TaggingError"


class TagInvocationError(TaggingError):
    """The external tagger could not be run or returned a failure."""

    code = "TagInvocationError"


class MetadataError(TaggingError):
    """Metadata could not be extracted from the tagger output."""

    code = "MetadataError"


class NoJsonFound(MetadataError):
    code = "NoJsonFound"


class InvalidJson(MetadataError):
    code = "InvalidJson"


class UnrecognizedStructure(MetadataError):
    code = "UnrecognizedStructure"


class MissingSeries(MetadataError):
    code = "MissingSeries"


class MissingIssue(MetadataError):
    code = "MissingIssue"


class RenameFailed(TaggingError):
    """A rename inside the watched directory failed (permissions, file in use)."""

    code = "RenameFailed"
