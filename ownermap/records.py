"""Parse MAINTAINERS declaration lines into Maintainer records."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Iterable

from ownermap.errors import FileFormatError, MalformedRecordError
from ownermap.schemas import Maintainer

logger = logging.getLogger(__name__)

MAINTAINERS_FILE_NAME = "MAINTAINERS"

# [#][target:] Full Name <email> [(@handle)]
_RECORD_RE = re.compile(
    r"^[ \t]*(?P<comment>#?)"
    r"(?:(?P<target>[^: ]*) *:)?"
    r" *(?P<full_name>[^\W\d_][^<]*)"
    r" *<(?P<email>[^>]*)>"
    r" *(?:\(@(?P<username>[^)]+)\))?"
    r".*$"
)


def _field(match: re.Match[str], name: str) -> str:
    return (match.group(name) or "").strip(" \t")


def _normalize_target(target: str) -> str:
    if not target:
        return ""
    return posixpath.basename(posixpath.normpath(target))


def parse_maintainer(line: str) -> Maintainer:
    """Parse one declaration line.

    Raises:
        MalformedRecordError: when the line does not follow the declaration
            grammar, or when it carries neither an email nor a handle.
    """
    match = _RECORD_RE.match(line.rstrip("\r\n"))
    if not match:
        raise MalformedRecordError(line)

    record = Maintainer(
        username=_field(match, "username"),
        email=_field(match, "email"),
        full_name=_field(match, "full_name"),
        target=_normalize_target(_field(match, "target")),
        active=match.group("comment") == "",
        raw=line,
    )
    if not record.email and not record.username:
        raise MalformedRecordError(line)
    return record


def parse_maintainers_file(content: str, path: str = MAINTAINERS_FILE_NAME) -> list[Maintainer]:
    """Parse a whole MAINTAINERS file.

    Blank lines are skipped. A single malformed line rejects the file.
    """
    records: list[Maintainer] = []
    for line_number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(parse_maintainer(line))
        except MalformedRecordError as e:
            raise FileFormatError(path, line_number, e) from e
    logger.debug("Parsed %d maintainer record(s) from %s", len(records), path)
    return records


def owner_ids(records: Iterable[Maintainer], exclude_inactive: bool = False) -> list[str]:
    """Return every declared email and handle, sorted alphabetically."""
    ids: list[str] = []
    for record in records:
        if record.active or not exclude_inactive:
            ids.extend(record.identities())
    return sorted(ids)
