"""Restriction of which files a dependency bump may touch."""

from collections.abc import Iterable

from .models import ChangedFile

ALLOWED_FILES = frozenset({"package.json", "package-lock.json", "yarn.lock"})


def validate_scope(changed_files: Iterable[ChangedFile]) -> bool:
    """Check that a commit only modifies the manifest and its lockfiles.

    Every file must be one of ``ALLOWED_FILES`` and must have been
    modified; an added, removed or renamed manifest fails too.
    """
    return all(
        changed.name in ALLOWED_FILES and changed.status == "modified"
        for changed in changed_files
    )
