"""Exceptions raised by the ownership-resolution engine."""

from __future__ import annotations


class OwnershipError(Exception):
    pass


class MalformedRecordError(OwnershipError):
    """A MAINTAINERS line that yields neither an email nor a handle."""

    def __init__(self, line: str) -> None:
        super().__init__(f"Incorrect maintainer format: {line!r}")
        self.line = line


class FileFormatError(OwnershipError):
    """A MAINTAINERS file containing at least one malformed record."""

    def __init__(self, path: str, line_number: int, cause: MalformedRecordError) -> None:
        super().__init__(f"{path}:{line_number}: {cause}")
        self.path = path
        self.line_number = line_number
        self.cause = cause


class TreeReadError(OwnershipError):
    """A directory (or declaration file) in the tree could not be read."""

    def __init__(self, path: str, cause: OSError | UnicodeDecodeError | None = None) -> None:
        detail = f": {getattr(cause, 'strerror', None) or cause}" if cause is not None else ""
        super().__init__(f"Cannot read {path}{detail}")
        self.path = path
        self.cause = cause


class PatchParseError(OwnershipError):
    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(f"Invalid patch at line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason
