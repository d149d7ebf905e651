"""Exception hierarchy for healthfold.

Every fatal condition in the pipeline is a HealthfoldError subclass, so the
CLI can report it and exit non-zero without catching unrelated bugs.
"""

from __future__ import annotations


class HealthfoldError(Exception):
    """Base class for all healthfold errors."""


class ConfigError(HealthfoldError):
    """Invalid configuration file or value."""


# --- Archive Reader ---


class ArchiveError(HealthfoldError):
    """The export archive or its export member could not be read."""


class OpenError(ArchiveError):
    """The archive file is missing, unreadable, or not a zip container."""


class EntryNotFoundError(ArchiveError):
    """The archive does not contain the expected export member."""

    def __init__(self, archive_path: str, member: str):
        super().__init__(f"{archive_path} has no member named {member!r}")
        self.archive_path = archive_path
        self.member = member


class DecodeError(ArchiveError):
    """The export member is not valid text in the expected encoding."""


# --- Record Extractor ---


class ExtractError(HealthfoldError):
    """The export document could not be turned into records."""


class ParseError(ExtractError):
    """The export document is not well-formed XML."""


class MissingContainerError(ExtractError):
    """The document element is not the expected HealthData container."""

    def __init__(self, found: str, expected: str = "HealthData"):
        super().__init__(f"No {expected} element: document element is <{found}>")
        self.found = found
        self.expected = expected


class ProjectionError(ExtractError):
    """A flat record could not be projected onto the fixed record schema."""


class MissingFieldError(ProjectionError):
    """A record lacks one or more required attributes."""

    def __init__(self, missing: list[str], index: int | None = None):
        where = f"Record #{index}" if index is not None else "Record"
        super().__init__(f"{where} is missing required attribute(s): {', '.join(missing)}")
        self.missing = list(missing)
        self.index = index


# --- Tabular Emitter ---


class EmitError(HealthfoldError):
    """Rows could not be written to the output sink."""


class EmptySequenceError(EmitError):
    """Schema-less output needs at least one record to derive its header."""


class SinkError(EmitError):
    """The output sink stopped accepting writes."""
