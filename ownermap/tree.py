"""Walk a repository tree and resolve directory ownership from MAINTAINERS files.

Two views are built from the same walk:

* the *ownership set* of one acting user: every directory they may act on,
  where undeclared directories are open to everyone unless an ancestor
  declared other owners, and a nested declaration overrides its ancestors;
* the *directory-owners map*: for every directory, the maintainers of the
  nearest declaring directory (itself or the closest ancestor).
"""

from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path
from typing import AbstractSet, Mapping, NamedTuple, Protocol, Union

from ownermap.errors import TreeReadError
from ownermap.records import MAINTAINERS_FILE_NAME, owner_ids, parse_maintainers_file
from ownermap.review import enclosing_directory
from ownermap.schemas import Maintainer

logger = logging.getLogger(__name__)

ROOT = "."


# ---------------------------------------------------------------------------
# Tree read interface
# ---------------------------------------------------------------------------

class TreeEntry(NamedTuple):
    name: str
    is_dir: bool
    is_symlink: bool = False


class TreeReader(Protocol):
    """Read-only view of a repository tree addressed by root-relative POSIX paths."""

    def list_dir(self, rel: str) -> list[TreeEntry]: ...

    def read_text(self, rel: str) -> str: ...


class LocalTree:
    """A tree on the local file system."""

    def __init__(self, root: Union[str, os.PathLike[str]]) -> None:
        self.root = Path(root)

    def _path(self, rel: str) -> Path:
        return self.root if rel == ROOT else self.root / rel

    def list_dir(self, rel: str) -> list[TreeEntry]:
        try:
            with os.scandir(self._path(rel)) as it:
                return [TreeEntry(e.name, e.is_dir(), e.is_symlink()) for e in it]
        except OSError as e:
            raise TreeReadError(str(self._path(rel)), e) from e

    def read_text(self, rel: str) -> str:
        path = self._path(rel)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TreeReadError(str(path), e) from e


class MemoryTree:
    """An in-memory tree built from a ``{file path: content}`` mapping.

    Directories are inferred from the file paths.
    """

    def __init__(self, files: Mapping[str, str]) -> None:
        self.files = {posixpath.normpath(p.strip("/")): c for p, c in files.items()}
        self._dirs: dict[str, dict[str, bool]] = {ROOT: {}}
        for path in self.files:
            parent = ROOT
            parts = path.split("/")
            for i, name in enumerate(parts):
                is_dir = i < len(parts) - 1
                self._dirs[parent].setdefault(name, is_dir)
                if not is_dir:
                    break
                parent = name if parent == ROOT else f"{parent}/{name}"
                self._dirs.setdefault(parent, {})

    def list_dir(self, rel: str) -> list[TreeEntry]:
        if rel not in self._dirs:
            raise TreeReadError(rel)
        return [TreeEntry(name, is_dir) for name, is_dir in sorted(self._dirs[rel].items())]

    def read_text(self, rel: str) -> str:
        if rel not in self.files:
            raise TreeReadError(rel)
        return self.files[rel]


TreeSource = Union[TreeReader, str, "os.PathLike[str]"]


def _as_tree(source: TreeSource) -> TreeReader:
    if isinstance(source, (str, os.PathLike)):
        return LocalTree(source)
    return source


def _join(parent: str, name: str) -> str:
    return name if parent == ROOT else f"{parent}/{name}"


# ---------------------------------------------------------------------------
# Directory scan
# ---------------------------------------------------------------------------

class _Scan(NamedTuple):
    maintainers: list[Maintainer] | None  # None when the directory has no declaration file
    subdirs: list[str]


def _scan_directory(tree: TreeReader, rel: str, file_name: str) -> _Scan:
    entries = tree.list_dir(rel)
    maintainers: list[Maintainer] | None = None
    subdirs: list[str] = []
    for entry in sorted(entries, key=lambda e: e.name):
        if entry.is_dir:
            if entry.name.startswith("."):
                continue
            if entry.is_symlink:
                logger.warning("Skipping symlinked directory %s", _join(rel, entry.name))
                continue
            subdirs.append(entry.name)
        elif entry.name.lower() == file_name.lower():
            path = _join(rel, entry.name)
            records = parse_maintainers_file(tree.read_text(path), path)
            maintainers = (maintainers or []) + records
    return _Scan(maintainers, subdirs)


# ---------------------------------------------------------------------------
# Ownership set
# ---------------------------------------------------------------------------

def _owned_directories(
    tree: TreeReader,
    rel: str,
    identities: set[str],
    belongs_to_others: bool,
    file_name: str,
    exclude_inactive: bool,
) -> list[str]:
    scan = _scan_directory(tree, rel, file_name)
    has_file = scan.maintainers is not None
    is_owner = has_file and bool(identities.intersection(owner_ids(scan.maintainers or [], exclude_inactive)))

    owned = (not has_file and not belongs_to_others) or is_owner
    logger.debug("%s: declared=%s owner=%s owned=%s", rel, has_file, is_owner, owned)

    result = [rel] if owned else []
    for name in scan.subdirs:
        result.extend(
            _owned_directories(
                tree, _join(rel, name), identities, not owned, file_name, exclude_inactive
            )
        )
    return result


def build_ownership_set(
    source: TreeSource,
    email: str = "",
    handle: str = "",
    *,
    file_name: str = MAINTAINERS_FILE_NAME,
    exclude_inactive: bool = False,
) -> frozenset[str]:
    """Return the root-relative directories the acting user may act on.

    Raises:
        TreeReadError: a directory or declaration file cannot be read.
        FileFormatError: a declaration file contains a malformed line.
    """
    identities = {value for value in (email, handle) if value}
    owned = _owned_directories(_as_tree(source), ROOT, identities, False, file_name, exclude_inactive)
    logger.info("Acting user owns %d directories", len(owned))
    return frozenset(owned)


def owns_path(ownership: AbstractSet[str], file_path: str) -> bool:
    """Whether the directory enclosing ``file_path`` is in the ownership set."""
    return enclosing_directory(file_path) in ownership


# ---------------------------------------------------------------------------
# Directory-owners map
# ---------------------------------------------------------------------------

def _directory_owners(
    tree: TreeReader,
    rel: str,
    inherited: list[Maintainer] | None,
    file_name: str,
    exclude_inactive: bool,
) -> dict[str, list[Maintainer]]:
    scan = _scan_directory(tree, rel, file_name)
    owners = inherited
    if scan.maintainers is not None:
        owners = [m for m in scan.maintainers if m.active or not exclude_inactive]

    result: dict[str, list[Maintainer]] = {}
    if owners is not None:
        result[rel] = owners
    for name in scan.subdirs:
        result.update(_directory_owners(tree, _join(rel, name), owners, file_name, exclude_inactive))
    return result


def build_directory_owners(
    source: TreeSource,
    *,
    file_name: str = MAINTAINERS_FILE_NAME,
    exclude_inactive: bool = False,
) -> dict[str, list[Maintainer]]:
    """Map every declared (or declaration-inheriting) directory to its maintainers."""
    owners = _directory_owners(_as_tree(source), ROOT, None, file_name, exclude_inactive)
    logger.info("Resolved maintainers for %d directories", len(owners))
    return owners
