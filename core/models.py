"""Core data models for BumpGate."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

# A parsed package.json document
Manifest = Mapping[str, Any]


class BumpClass(str, Enum):
    """Semantic-versioning severity of a version transition."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"


class MergeStrategy(str, Enum):
    """How the merge is triggered once a change is allowed."""

    AUTO_MERGE = "auto-merge"  # enable platform auto-merge
    POLL = "poll"  # poll and merge directly


class Result(IntEnum):
    """Outcome of one evaluation, doubling as process exit status."""

    SUCCESS = 0
    UNSUPPORTED_TRIGGER = 10
    UNKNOWN_MERGE_METHOD = 11
    ACTOR_NOT_ALLOWED = 12
    FILE_NOT_ALLOWED = 13
    UNEXPECTED_CHANGES = 14
    UNEXPECTED_PROPERTY_CHANGE = 15
    VERSION_CHANGE_NOT_ALLOWED = 16
    PR_NOT_OPEN = 17
    PR_HEAD_CHANGED = 18


@dataclass(frozen=True)
class VersionSpecifier:
    """A `[prefix]major.minor.patch[-prerelease]` dependency specifier."""

    prefix: str  # "", "^" or "~"
    core: str
    prerelease: str | None = None


@dataclass(frozen=True)
class ChangedFile:
    """A file touched by a commit."""

    name: str
    status: str  # added, modified, removed, renamed, ...


@dataclass(frozen=True)
class PullRequest:
    """The pull request state the engine needs."""

    number: int
    state: str = "open"
    head_sha: str = ""
    base_sha: str = ""
    node_id: str = ""
    mergeable: bool | None = None


@dataclass
class PolicyConfig:
    """Allowed bump classes per dependency-map key.

    A key missing from ``allowed`` allows nothing.
    """

    allowed: dict[str, frozenset[BumpClass]] = field(default_factory=dict)

    def allowed_for(self, key: str) -> frozenset[BumpClass]:
        return self.allowed.get(key, frozenset())


@dataclass
class DiffResult:
    """Top-level changes between two manifests."""

    added: dict[str, Any] = field(default_factory=dict)
    removed: dict[str, Any] = field(default_factory=dict)
    updated: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)


@dataclass(frozen=True)
class Verdict:
    """Allowed, or denied with the reason as a `Result`."""

    reason: Result = Result.SUCCESS

    @property
    def allowed(self) -> bool:
        return self.reason is Result.SUCCESS

    @classmethod
    def allow(cls) -> "Verdict":
        return cls()

    @classmethod
    def deny(cls, reason: Result) -> "Verdict":
        if reason is Result.SUCCESS:
            raise ValueError("A denial needs a failure reason")
        return cls(reason)
