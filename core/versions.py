"""Version transition classification for package.json specifiers."""

import re
from collections.abc import Iterable
from typing import Any

from packaging.version import InvalidVersion, Version

from .models import BumpClass, VersionSpecifier

SPECIFIER_PATTERN = re.compile(r"([~^]?)([0-9]+\.[0-9]+\.[0-9]+)(-.+)?")


def parse_specifier(value: Any) -> VersionSpecifier | None:
    """Parse a dependency specifier.

    Args:
        value: Raw value read from a dependency map

    Returns:
        The parsed specifier, or None when the value is not a string
        of the form ``[~^]major.minor.patch[-prerelease]``
    """
    if not isinstance(value, str):
        return None
    match = SPECIFIER_PATTERN.fullmatch(value)
    if not match:
        return None
    prefix, core, prerelease = match.groups()
    return VersionSpecifier(
        prefix=prefix,
        core=core,
        prerelease=prerelease[1:] if prerelease else None,
    )


def bump_class(old: VersionSpecifier, new: VersionSpecifier) -> BumpClass | None:
    """Calculate the bump class between two specifiers.

    Returns None when the prefixes differ, when ``new`` is not greater
    than ``old``, or when either side carries a prerelease tag.
    """
    if old.prefix != new.prefix:
        return None
    if old.prerelease is not None or new.prerelease is not None:
        return None

    try:
        old_ver = Version(old.core)
        new_ver = Version(new.core)
    except InvalidVersion:
        return None

    if old_ver >= new_ver:
        return None

    if new_ver.major != old_ver.major:
        return BumpClass.MAJOR
    if new_ver.minor != old_ver.minor:
        return BumpClass.MINOR
    return BumpClass.PATCH


def classify(old: Any, new: Any, allowed: Iterable[BumpClass]) -> bool:
    """Check whether a version transition is allowed.

    Args:
        old: Specifier on the base revision
        new: Specifier on the head revision
        allowed: Bump classes permitted for this dependency map

    Returns:
        True only for a valid upgrade whose bump class is in ``allowed``
    """
    old_spec = parse_specifier(old)
    new_spec = parse_specifier(new)
    if old_spec is None or new_spec is None:
        return False

    delta = bump_class(old_spec, new_spec)
    if delta is None:
        return False
    return delta in set(allowed)
