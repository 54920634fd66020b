"""Dependency change policy evaluation."""

import logging
from collections.abc import Collection, Mapping

from .diff import diff_manifests
from .models import DiffResult, Manifest, PolicyConfig, Result, Verdict
from .versions import classify

logger = logging.getLogger(__name__)

DEPENDENCY_KEYS = ("dependencies", "devDependencies")


def _lookup(manifest: Manifest, key: str, package: str) -> object:
    dependencies = manifest.get(key)
    if not isinstance(dependencies, Mapping):
        return None
    return dependencies.get(package)


def _dependency_allowed(
    key: str,
    package: str,
    delta: object,
    base: Manifest,
    head: Manifest,
    config: PolicyConfig,
    deny_list: Collection[str],
) -> bool:
    if not isinstance(delta, str):
        logger.debug("%s.%s changed to a non-string value", key, package)
        return False
    if package in deny_list:
        logger.error("Package %s is in the block list", package)
        return False

    old_version = _lookup(base, key, package)
    new_version = _lookup(head, key, package)
    if not isinstance(old_version, str) or not isinstance(new_version, str):
        return False

    if not classify(old_version, new_version, config.allowed_for(key)):
        logger.error(
            "%s %s -> %s is not an allowed %s change",
            package, old_version, new_version, key,
        )
        return False
    return True


def evaluate(
    diff: DiffResult,
    base: Manifest,
    head: Manifest,
    config: PolicyConfig,
    deny_list: Collection[str] = (),
) -> Verdict:
    """Decide whether a manifest change may be merged unattended.

    Args:
        diff: Diff of ``base`` against ``head``
        base: Manifest on the target branch
        head: Manifest on the pull request branch
        config: Allowed bump classes per dependency map
        deny_list: Packages that are never merged unattended

    Returns:
        Verdict; every changed dependency must pass for it to be allowed
    """
    if diff.added or diff.removed:
        logger.error("Unexpected changes")
        return Verdict.deny(Result.UNEXPECTED_CHANGES)

    for key, delta in diff.updated.items():
        if key not in DEPENDENCY_KEYS or not isinstance(delta, Mapping):
            logger.error("Unexpected property change: %s", key)
            return Verdict.deny(Result.UNEXPECTED_PROPERTY_CHANGE)

    for key, delta in diff.updated.items():
        for package, package_delta in delta.items():
            if not _dependency_allowed(
                key, package, package_delta, base, head, config, deny_list
            ):
                logger.error("One or more version changes are not allowed")
                return Verdict.deny(Result.VERSION_CHANGE_NOT_ALLOWED)

    return Verdict.allow()


def evaluate_manifests(
    base: Manifest,
    head: Manifest,
    config: PolicyConfig,
    deny_list: Collection[str] = (),
) -> Verdict:
    """Diff two manifests and evaluate the result."""
    return evaluate(diff_manifests(base, head), base, head, config, deny_list)
