"""Configuration parsing for BumpGate."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError, UnknownMergeMethodError
from .models import BumpClass, MergeStrategy, PolicyConfig, PullRequest

MERGE_METHODS = ("MERGE", "SQUASH", "REBASE")
SUPPORTED_EVENTS = ("pull_request", "pull_request_target")


def parse_list(value: str | None) -> list[str]:
    """Split a comma-separated input into trimmed, non-empty entries."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_allowed_update_types(value: str | None) -> PolicyConfig:
    """Parse ``key:bump`` pairs into a PolicyConfig.

    Args:
        value: e.g. ``"devDependencies:minor, devDependencies:patch"``

    Returns:
        PolicyConfig mapping each dependency key to its bump classes
    """
    allowed: dict[str, set[BumpClass]] = {}
    for group in parse_list(value):
        parts = [part.strip() for part in group.split(":")]
        if len(parts) != 2 or not all(parts):
            raise ConfigError("allowed-update-types invalid")
        dependency_type, bump_type = parts
        try:
            bump = BumpClass(bump_type)
        except ValueError:
            raise ConfigError("allowed-update-types invalid")
        allowed.setdefault(dependency_type, set()).add(bump)

    return PolicyConfig(
        allowed={key: frozenset(bumps) for key, bumps in allowed.items()}
    )


def parse_merge_method(value: str | None) -> str:
    """Normalise the merge method to its GraphQL enum value."""
    method = (value or "SQUASH").strip().upper()
    if method not in MERGE_METHODS:
        raise UnknownMergeMethodError(f"Unknown merge method: {value}")
    return method


def parse_merge_strategy(value: str | None) -> MergeStrategy:
    try:
        return MergeStrategy((value or MergeStrategy.AUTO_MERGE.value).strip().lower())
    except ValueError:
        allowed = ", ".join(strategy.value for strategy in MergeStrategy)
        raise ConfigError(f"Unknown merge strategy '{value}'. Allowed: {allowed}.")


@dataclass
class Settings:
    """Operator inputs for one evaluation."""

    token: str
    allowed_actors: list[str]
    policy: PolicyConfig
    package_block_list: list[str] = field(default_factory=list)
    merge_method: str = "SQUASH"
    merge_author_email: str | None = None
    merge_strategy: MergeStrategy = MergeStrategy.AUTO_MERGE


def load_settings(
    token: str,
    allowed_actors: str,
    allowed_update_types: str,
    package_block_list: str | None = None,
    merge_method: str | None = None,
    merge_author_email: str | None = None,
    merge_strategy: str | None = None,
) -> Settings:
    """Build Settings from raw string inputs."""
    if not token:
        raise ConfigError("github-token is required")

    return Settings(
        token=token,
        allowed_actors=parse_list(allowed_actors),
        policy=parse_allowed_update_types(allowed_update_types),
        package_block_list=parse_list(package_block_list),
        merge_method=parse_merge_method(merge_method),
        merge_author_email=(merge_author_email or "").strip() or None,
        merge_strategy=parse_merge_strategy(merge_strategy),
    )


@dataclass
class EventContext:
    """The webhook event that triggered this run."""

    event_name: str
    actor: str
    repository: str
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def is_pull_request(self) -> bool:
        return self.event_name in SUPPORTED_EVENTS

    @property
    def owner_and_repo(self) -> tuple[str, str]:
        parts = self.repository.split("/")
        if len(parts) != 2 or not all(parts):
            raise ConfigError(f"Repository '{self.repository}' must be in owner/repo form.")
        return parts[0], parts[1]

    def pull_request(self) -> PullRequest:
        """Read the pull request from the event payload."""
        pr = self.payload.get("pull_request")
        if not isinstance(pr, dict):
            raise ConfigError("Event payload does not include pull_request data.")
        try:
            return PullRequest(
                number=int(pr["number"]),
                state=pr.get("state", "open"),
                head_sha=pr["head"]["sha"],
                base_sha=pr["base"]["sha"],
                node_id=pr.get("node_id", ""),
                mergeable=pr.get("mergeable"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Malformed pull_request in event payload: {e}")


def load_event(
    event_name: str,
    actor: str,
    repository: str,
    event_path: str | None,
) -> EventContext:
    """Load the event payload written by the workflow runner."""
    payload: dict[str, Any] = {}
    if event_path:
        path = Path(event_path)
        if not path.exists():
            raise ConfigError(f"Event payload {event_path} not found")
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse event payload: {e}")

    if not repository:
        repository = payload.get("repository", {}).get("full_name", "")

    return EventContext(
        event_name=event_name,
        actor=actor,
        repository=repository,
        payload=payload,
    )
