"""Merging a pull request once its changes are allowed."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from .errors import HostingAPIError, MergeConflictError, MergeTimeoutError, MergeTriggerError
from .models import MergeStrategy, PullRequest, Result

logger = logging.getLogger(__name__)

RETRY_DELAYS = (1, 1, 1, 2, 3, 4, 5, 10, 20, 40, 60)
TIMEOUT = 6 * 60 * 60


class MergeClient(Protocol):
    async def get_pull_request(self, number: int) -> PullRequest: ...

    async def merge_pull_request(
        self, number: int, sha: str, merge_method: str = "SQUASH"
    ) -> None: ...

    async def enable_auto_merge(
        self,
        pull_request_id: str,
        merge_method: str,
        author_email: str | None = None,
        expected_head_sha: str | None = None,
    ) -> str | None: ...


class MergeTrigger:
    """Acts on an allowed verdict by merging or scheduling the merge."""

    def __init__(
        self,
        client: MergeClient,
        merge_method: str = "SQUASH",
        author_email: str | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.merge_method = merge_method
        self.author_email = author_email
        self._sleep = sleep
        self._clock = clock

    async def trigger(self, pr: PullRequest, strategy: MergeStrategy) -> Result:
        if strategy is MergeStrategy.POLL:
            return await self.merge_when_possible(pr)
        return await self.enable_auto_merge(pr)

    async def enable_auto_merge(self, pr: PullRequest) -> Result:
        """Enable platform auto-merge for the pull request.

        The platform merges once required checks pass, and only while
        the head is still the evaluated commit ``pr.head_sha``.

        Raises:
            MergeTriggerError: auto-merge was not enabled
        """
        try:
            current = await self.client.get_pull_request(pr.number)
            if current.state != "open":
                logger.error("PR is not open")
                return Result.PR_NOT_OPEN
            if current.head_sha != pr.head_sha:
                logger.error("PR head changed from %s to %s", pr.head_sha, current.head_sha)
                return Result.PR_HEAD_CHANGED

            logger.info("Enabling auto-merge")
            enabled_at = await self.client.enable_auto_merge(
                pr.node_id or current.node_id,
                self.merge_method,
                self.author_email,
                expected_head_sha=pr.head_sha,
            )
        except HostingAPIError as e:
            logger.error("Failed to enable auto-merge: %s", e)
            raise MergeTriggerError(f"Failed to enable auto-merge: {e}") from e

        if not enabled_at:
            logger.error("Failed to enable auto-merge")
            raise MergeTriggerError("Failed to enable auto-merge")

        logger.info("Auto-merge enabled at %s", enabled_at)
        return Result.SUCCESS

    async def merge_when_possible(self, pr: PullRequest) -> Result:
        """Poll the pull request and merge it as soon as it is mergeable.

        Every merge is guarded by ``pr.head_sha``, the evaluated commit.
        If the head has moved the loop stops without merging.

        Raises:
            MergeTimeoutError: still not merged after ``TIMEOUT`` seconds
        """
        start = self._clock()
        attempt = 0
        while True:
            logger.info("Attempt: %d", attempt)
            current = await self.client.get_pull_request(pr.number)
            if current.state != "open":
                logger.error("PR is not open")
                return Result.PR_NOT_OPEN
            if current.head_sha != pr.head_sha:
                logger.error("PR head changed from %s to %s", pr.head_sha, current.head_sha)
                return Result.PR_HEAD_CHANGED

            if current.mergeable:
                try:
                    logger.info("Attempting merge")
                    await self.client.merge_pull_request(
                        pr.number, pr.head_sha, self.merge_method
                    )
                    logger.info("Merged")
                    return Result.SUCCESS
                except MergeConflictError:
                    logger.error("Failed to merge. PR head changed")
                    return Result.PR_HEAD_CHANGED
                except HostingAPIError as e:
                    logger.error("Merge failed: %s", e)
            else:
                logger.error("Not mergeable yet")

            if self._clock() - start >= TIMEOUT:
                break

            delay = RETRY_DELAYS[min(len(RETRY_DELAYS) - 1, attempt)]
            logger.info("Retry in %s s", delay)
            await self._sleep(delay)
            attempt += 1

        logger.error("Timed out")
        raise MergeTimeoutError("Timed out")
