"""Structural diffing of manifest documents."""

from enum import Enum
from typing import Any

from .errors import ManifestError
from .models import DiffResult, Manifest


class JsonKind(Enum):
    """The closed set of kinds a decoded JSON value can take."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    OBJECT = "object"


def json_kind(value: Any) -> JsonKind:
    """Return the JSON kind of a decoded value."""
    if value is None:
        return JsonKind.NULL
    # bool before number: bool is an int subclass
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise ManifestError(f"Unsupported manifest value of type {type(value).__name__}")


def values_equal(old: Any, new: Any) -> bool:
    """Deep equality that never treats values of different kinds as equal."""
    kind = json_kind(old)
    if kind is not json_kind(new):
        return False
    if kind is JsonKind.OBJECT:
        if old.keys() != new.keys():
            return False
        return all(values_equal(old[key], new[key]) for key in old)
    if kind is JsonKind.ARRAY:
        if len(old) != len(new):
            return False
        return all(values_equal(a, b) for a, b in zip(old, new))
    return old == new


def diff_values(old: Any, new: Any) -> tuple[bool, Any]:
    """Diff two JSON values.

    Objects are diffed key by key: keys missing from ``new`` are reported
    as None, keys missing from ``old`` with their new value, and keys
    present in both with their own recursive delta. Any other pair of
    unequal values reports ``new`` as a whole.

    Returns:
        ``(changed, delta)``; ``delta`` is None when nothing changed
    """
    if json_kind(old) is JsonKind.OBJECT and json_kind(new) is JsonKind.OBJECT:
        delta: dict[str, Any] = {}
        for key in old.keys() - new.keys():
            delta[key] = None
        for key in new.keys() - old.keys():
            delta[key] = new[key]
        for key in old.keys() & new.keys():
            changed, nested = diff_values(old[key], new[key])
            if changed:
                delta[key] = nested
        if not delta:
            return False, None
        return True, delta

    if values_equal(old, new):
        return False, None
    return True, new


def diff_manifests(base: Manifest, head: Manifest) -> DiffResult:
    """Diff two manifests at the top level.

    Args:
        base: Manifest on the target branch
        head: Manifest on the pull request branch

    Returns:
        DiffResult whose ``added``, ``removed`` and ``updated`` mappings
        never share a key
    """
    result = DiffResult()
    for key in base.keys() - head.keys():
        result.removed[key] = base[key]
    for key in head.keys() - base.keys():
        result.added[key] = head[key]
    for key in base.keys() & head.keys():
        changed, delta = diff_values(base[key], head[key])
        if changed:
            result.updated[key] = delta
    return result
