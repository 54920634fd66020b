"""End-to-end evaluation of a dependency bump pull request."""

import json
import logging
from typing import Any, Protocol

from .config import EventContext, Settings
from .diff import diff_manifests
from .merge import MergeClient, MergeTrigger
from .models import ChangedFile, Manifest, Result
from .parse_node import decode_content, parse_package_json
from .policy import evaluate
from .scope import validate_scope

logger = logging.getLogger(__name__)

MANIFEST_PATH = "package.json"


class HostingClient(MergeClient, Protocol):
    async def get_changed_files(self, ref: str) -> list[ChangedFile]: ...

    async def get_file_content(self, path: str, ref: str) -> dict[str, Any]: ...


async def read_package_json(client: HostingClient, ref: str) -> Manifest:
    """Fetch and parse package.json at a ref."""
    payload = await client.get_file_content(MANIFEST_PATH, ref)
    return parse_package_json(decode_content(payload))


def supported_trigger(context: EventContext) -> bool:
    """Only pull request events carry a pull request to evaluate."""
    if not context.is_pull_request:
        logger.error("Unsupported event name: %s", context.event_name)
        return False
    return True


async def run(
    context: EventContext,
    settings: Settings,
    client: HostingClient,
    trigger: MergeTrigger | None = None,
) -> Result:
    """Evaluate the pull request in ``context`` and merge it if allowed.

    Args:
        context: The triggering event
        settings: Operator inputs
        client: Hosting API client
        trigger: Merge trigger; built from ``settings`` when omitted

    Returns:
        Result of the run; errors from the hosting API propagate
    """
    logger.info("Starting")

    if not supported_trigger(context):
        return Result.UNSUPPORTED_TRIGGER

    if context.actor not in settings.allowed_actors:
        logger.error("Actor not allowed: %s", context.actor)
        return Result.ACTOR_NOT_ALLOWED

    pr = context.pull_request()

    logger.info("Getting commit info")
    changed_files = await client.get_changed_files(pr.head_sha)
    if not validate_scope(changed_files):
        logger.error("More changed than the package.json and lockfile")
        return Result.FILE_NOT_ALLOWED

    logger.info("Retrieving package.json")
    base = await read_package_json(client, pr.base_sha)
    head = await read_package_json(client, pr.head_sha)

    logger.info("Calculating diff")
    diff = diff_manifests(base, head)
    logger.debug(
        "Diff: %s",
        json.dumps(
            {"added": diff.added, "removed": diff.removed, "updated": diff.updated},
            indent=2,
        ),
    )

    logger.info("Checking diff")
    verdict = evaluate(diff, base, head, settings.policy, settings.package_block_list)
    if not verdict.allowed:
        return verdict.reason

    if trigger is None:
        trigger = MergeTrigger(
            client,
            merge_method=settings.merge_method,
            author_email=settings.merge_author_email,
        )
    result = await trigger.trigger(pr, settings.merge_strategy)
    logger.info("Finished!")
    return result
