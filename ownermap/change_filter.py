"""Filter pending changes down to the ones touching the acting user's directories."""

from __future__ import annotations

import logging
from typing import AbstractSet, Callable, Iterable, Sequence, TypeVar

from ownermap.tree import owns_path

logger = logging.getLogger(__name__)

T = TypeVar("T")


def change_touches(files: Iterable[str], ownership: AbstractSet[str]) -> bool:
    """Whether any file's enclosing directory is in ``ownership``.

    Stops consuming ``files`` at the first hit.
    """
    return any(owns_path(ownership, path) for path in files)


def filter_by_ownership(
    changes: Sequence[T],
    ownership: AbstractSet[str],
    touched_files_of: Callable[[T], Iterable[str]],
    show_all: bool = False,
) -> list[T]:
    """Return the changes that touch at least one owned directory, in input order.

    Args:
        changes: Candidate changes (pull requests, patches, ...).
        ownership: Directories the acting user owns.
        touched_files_of: Enumerates the files a change touches. It may be
            expensive (typically one paginated remote call per change); any
            exception it raises aborts the whole filter.
        show_all: Return ``changes`` unfiltered without enumerating files.
    """
    if show_all:
        return list(changes)

    kept: list[T] = []
    for change in changes:
        if change_touches(touched_files_of(change), ownership):
            kept.append(change)
    logger.info("%d of %d change(s) touch owned directories", len(kept), len(changes))
    return kept
