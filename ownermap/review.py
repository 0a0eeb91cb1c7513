"""Assign maintainers to the files touched by a patch."""

from __future__ import annotations

import codecs
import logging
import posixpath
import re
from typing import Mapping, Sequence, Union

from ownermap.errors import PatchParseError
from ownermap.schemas import Maintainer, PatchFile

logger = logging.getLogger(__name__)

ROOT = "."
DEV_NULL = "/dev/null"

_QUOTED = r'"(?:[^"\\]|\\.)*"'
_DIFF_GIT_RE = re.compile(rf"^diff --git (?P<src>{_QUOTED}|\S+) (?P<dst>{_QUOTED}|\S+)$")
_HUNK_RE = re.compile(r"^@@ -\d+(?:,(?P<old>\d+))? \+\d+(?:,(?P<new>\d+))? @@")

# git extended header -> which side it sets
_GIT_PATH_HEADERS = {
    "rename from ": "src",
    "rename to ": "dst",
    "copy from ": "src",
    "copy to ": "dst",
}


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

def clean_path(path: str) -> str:
    """Resolve ``.`` and ``..`` segments and duplicate slashes."""
    return posixpath.normpath(path)


def enclosing_directory(path: str) -> str:
    """Return the directory holding ``path``; root-level files resolve to ``.``."""
    return posixpath.dirname(clean_path(path)) or ROOT


def _unquote(value: str, line_number: int) -> str:
    """Decode a git C-style quoted path (``"dir/caf\\303\\251.txt"``).

    Raw non-ASCII characters (``core.quotepath=false``) pass through unchanged.
    """
    if len(value) < 2 or not value.endswith('"'):
        raise PatchParseError(line_number, f"bad quoted path {value}")
    try:
        raw, _ = codecs.escape_decode(value[1:-1].encode("utf-8", errors="surrogateescape"))
    except ValueError as e:
        raise PatchParseError(line_number, f"bad quoted path {value}") from e
    return raw.decode("utf-8", errors="surrogateescape")


def _header_path(value: str, prefix: str, line_number: int) -> str:
    value = value.split("\t", 1)[0]
    if value.startswith('"'):
        value = _unquote(value, line_number)
    if value == DEV_NULL:
        return ""
    if prefix and value.startswith(prefix):
        value = value[len(prefix):]
    return value


def _split_diff_git(line: str, line_number: int) -> tuple[str, str] | None:
    """Split a ``diff --git`` line into (src, dst).

    Returns None when names containing `` b/`` make the split ambiguous; the
    extended headers that follow carry the real paths in that case.
    """
    match = _DIFF_GIT_RE.match(line)
    if match:
        return (
            _header_path(match.group("src"), "a/", line_number),
            _header_path(match.group("dst"), "b/", line_number),
        )
    # Unquoted names containing spaces: "diff --git a/my file b/my file"
    rest = line[len("diff --git "):]
    splits = [m.start() for m in re.finditer(" b/", rest)]
    if not splits:
        raise PatchParseError(line_number, f"cannot parse file header {line!r}")
    for pos in splits:
        src, dst = rest[:pos], rest[pos + 1:]
        if src[2:] == dst[2:] or len(splits) == 1:
            return _header_path(src, "a/", line_number), _header_path(dst, "b/", line_number)
    return None


def _require_paths(entry: PatchFile | None, unresolved: tuple[int, str] | None) -> None:
    if unresolved is not None and entry is not None and not (entry.src or entry.dst):
        line_number, line = unresolved
        raise PatchParseError(line_number, f"cannot parse file header {line!r}")


# ---------------------------------------------------------------------------
# Patch parsing
# ---------------------------------------------------------------------------

def _lines(patch: Union[bytes, str]) -> list[str]:
    text = patch.decode("utf-8", errors="surrogateescape") if isinstance(patch, bytes) else patch
    lines = [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def parse_patch(patch: Union[bytes, str]) -> list[PatchFile]:
    """Parse a unified (optionally git-flavoured) diff into its file entries.

    Hunk bodies are only checked against the line counts of their headers.
    Text before the first file header is ignored.

    Raises:
        PatchParseError: the input is not a syntactically valid patch.
    """
    lines = _lines(patch)
    files: list[PatchFile] = []
    current: PatchFile | None = None
    unresolved: tuple[int, str] | None = None  # ambiguous "diff --git" awaiting paths
    in_git_headers = False
    old_left = new_left = 0

    i = 0
    while i < len(lines):
        line = lines[i]
        line_number = i + 1
        i += 1

        if old_left > 0 or new_left > 0:
            tag = line[:1]
            if tag in (" ", ""):
                old_left -= 1
                new_left -= 1
            elif tag == "-":
                old_left -= 1
            elif tag == "+":
                new_left -= 1
            elif tag != "\\":  # "\ No newline at end of file"
                raise PatchParseError(line_number, "truncated hunk")
            if old_left < 0 or new_left < 0:
                raise PatchParseError(line_number, "hunk longer than its header")
            continue

        if line.startswith("diff --git "):
            _require_paths(current, unresolved)
            paths = _split_diff_git(line, line_number)
            if paths is None:
                current, unresolved = PatchFile(), (line_number, line)
            else:
                current, unresolved = PatchFile(src=paths[0], dst=paths[1]), None
            files.append(current)
            in_git_headers = True
        elif line.startswith("--- "):
            if i >= len(lines) or not lines[i].startswith("+++ "):
                if not files:
                    continue  # preamble text
                raise PatchParseError(line_number, "'---' header not followed by '+++'")
            src = _header_path(line[4:], "a/", line_number)
            dst = _header_path(lines[i][4:], "b/", line_number + 1)
            i += 1
            if in_git_headers and current is not None:
                current.src, current.dst = src, dst
            else:
                _require_paths(current, unresolved)
                current, unresolved = PatchFile(src=src, dst=dst), None
                files.append(current)
        elif line.startswith("@@"):
            match = _HUNK_RE.match(line)
            if not match:
                raise PatchParseError(line_number, f"malformed hunk header {line!r}")
            if current is None:
                raise PatchParseError(line_number, "hunk before any file header")
            _require_paths(current, unresolved)
            unresolved = None
            old_left = int(match.group("old") or 1)
            new_left = int(match.group("new") or 1)
            in_git_headers = False
        elif in_git_headers and current is not None:
            if line.startswith("new file mode"):
                current.src = ""
            elif line.startswith("deleted file mode"):
                current.dst = ""
            else:
                for header, side in _GIT_PATH_HEADERS.items():
                    if line.startswith(header):
                        setattr(current, side, _header_path(line[len(header):], "", line_number))
                        break

    if old_left > 0 or new_left > 0:
        raise PatchParseError(len(lines), "truncated hunk at end of input")
    _require_paths(current, unresolved)
    logger.debug("Parsed %d file entries from patch", len(files))
    return files


# ---------------------------------------------------------------------------
# Reviewer resolution
# ---------------------------------------------------------------------------

def resolve_reviewers(
    patch: Union[bytes, str],
    directory_owners: Mapping[str, Sequence[Maintainer]],
) -> dict[str, list[Maintainer]]:
    """Map every file touched by ``patch`` to the maintainers of its directory.

    Both sides of a rename or copy are resolved. The first occurrence of a path
    wins, directories missing from ``directory_owners`` yield an empty list, and
    maintainers are never deduplicated.
    """
    reviewers: dict[str, list[Maintainer]] = {}
    for entry in parse_patch(patch):
        for target in (entry.dst, entry.src):
            if not target:
                continue
            target = clean_path(target)
            if target in reviewers:
                continue
            reviewers[target] = list(directory_owners.get(enclosing_directory(target), []))
    return reviewers


def reviewers_summary(reviewers: Mapping[str, Sequence[Maintainer]]) -> dict[str, list[str]]:
    """Invert a reviewer map: maintainer -> sorted files they should look at."""
    summary: dict[str, set[str]] = {}
    for path, maintainers in reviewers.items():
        for maintainer in maintainers:
            summary.setdefault(maintainer.display(), set()).add(path)
    return {who: sorted(paths) for who, paths in sorted(summary.items())}
