"""Tests for the merge trigger."""

import pytest

from core.errors import HostingAPIError, MergeTimeoutError, MergeTriggerError
from core.merge import RETRY_DELAYS, TIMEOUT, MergeTrigger
from core.models import MergeStrategy, PullRequest, Result


class FakeClock:
    """Clock advanced by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_trigger(client, clock=None, **kwargs):
    clock = clock or FakeClock()
    return MergeTrigger(client, sleep=clock.sleep, clock=clock, **kwargs)


class TestEnableAutoMerge:
    """Test enabling platform auto-merge."""

    @pytest.mark.asyncio
    async def test_enables_auto_merge(self, fake_client, open_pr):
        trigger = make_trigger(fake_client, merge_method="REBASE", author_email="bot@example.com")

        assert await trigger.enable_auto_merge(open_pr) is Result.SUCCESS
        assert ("enable_auto_merge", "nodeId==", "REBASE", "bot@example.com", "headSha") in fake_client.calls

    @pytest.mark.asyncio
    async def test_pr_not_open(self, fake_client, open_pr):
        fake_client.pull_requests = [PullRequest(number=1, state="closed")]
        trigger = make_trigger(fake_client)

        assert await trigger.enable_auto_merge(open_pr) is Result.PR_NOT_OPEN
        assert not any(call[0] == "enable_auto_merge" for call in fake_client.calls)

    @pytest.mark.asyncio
    async def test_head_moved(self, fake_client, open_pr):
        fake_client.pull_requests = [
            PullRequest(number=1, state="open", head_sha="newer", node_id="nodeId==")
        ]
        trigger = make_trigger(fake_client)

        assert await trigger.enable_auto_merge(open_pr) is Result.PR_HEAD_CHANGED
        assert not any(call[0] == "enable_auto_merge" for call in fake_client.calls)

    @pytest.mark.asyncio
    async def test_no_enabled_at(self, fake_client, open_pr):
        fake_client.enabled_at = None
        trigger = make_trigger(fake_client)

        with pytest.raises(MergeTriggerError, match="Failed to enable auto-merge"):
            await trigger.enable_auto_merge(open_pr)

    @pytest.mark.asyncio
    async def test_api_error_is_trigger_failure(self, fake_client, open_pr):
        async def broken(*args, **kwargs):
            raise HostingAPIError("Unauthorized", status_code=401)

        fake_client.enable_auto_merge = broken
        trigger = make_trigger(fake_client)

        with pytest.raises(MergeTriggerError):
            await trigger.enable_auto_merge(open_pr)


class TestMergeWhenPossible:
    """Test the polling merge loop."""

    @pytest.mark.asyncio
    async def test_merges_when_mergeable(self, fake_client, open_pr):
        trigger = make_trigger(fake_client)

        assert await trigger.merge_when_possible(open_pr) is Result.SUCCESS
        assert ("merge_pull_request", 1, "headSha") in fake_client.calls

    @pytest.mark.asyncio
    async def test_head_moved_is_not_merged(self, fake_client, open_pr):
        fake_client.pull_requests = [
            PullRequest(number=1, state="open", head_sha="newer", mergeable=True)
        ]
        trigger = make_trigger(fake_client)

        assert await trigger.merge_when_possible(open_pr) is Result.PR_HEAD_CHANGED
        assert not any(call[0] == "merge_pull_request" for call in fake_client.calls)

    @pytest.mark.asyncio
    async def test_head_moved_while_waiting(self, fake_client, open_pr):
        waiting = PullRequest(number=1, state="open", head_sha="headSha", mergeable=False)
        moved = PullRequest(number=1, state="open", head_sha="newer", mergeable=True)
        fake_client.pull_requests = [waiting, moved]
        clock = FakeClock()
        trigger = make_trigger(fake_client, clock)

        assert await trigger.merge_when_possible(open_pr) is Result.PR_HEAD_CHANGED
        assert clock.sleeps == [1]
        assert not any(call[0] == "merge_pull_request" for call in fake_client.calls)

    @pytest.mark.asyncio
    async def test_pr_not_open(self, fake_client, open_pr):
        fake_client.pull_requests = [PullRequest(number=1, state="closed")]
        trigger = make_trigger(fake_client)

        assert await trigger.merge_when_possible(open_pr) is Result.PR_NOT_OPEN

    @pytest.mark.asyncio
    async def test_head_changed_stops(self, fake_client, open_pr, conflict_error):
        fake_client.merge_errors = [conflict_error]
        trigger = make_trigger(fake_client)

        assert await trigger.merge_when_possible(open_pr) is Result.PR_HEAD_CHANGED
        assert sum(call[0] == "merge_pull_request" for call in fake_client.calls) == 1

    @pytest.mark.asyncio
    async def test_retries_until_mergeable(self, fake_client, open_pr):
        waiting = PullRequest(number=1, state="open", head_sha="headSha", mergeable=False)
        fake_client.pull_requests = [waiting, waiting, open_pr]
        fake_client.merge_errors = [HostingAPIError("Required status check pending", 405)]
        clock = FakeClock()
        trigger = make_trigger(fake_client, clock)

        assert await trigger.merge_when_possible(open_pr) is Result.SUCCESS
        # two not-mergeable ticks, one failed merge, then success
        assert clock.sleeps == [1, 1, 1]

    @pytest.mark.asyncio
    async def test_times_out(self, fake_client):
        waiting = PullRequest(number=1, state="open", mergeable=False)
        fake_client.pull_requests = [waiting]
        clock = FakeClock()
        trigger = make_trigger(fake_client, clock)

        with pytest.raises(MergeTimeoutError):
            await trigger.merge_when_possible(waiting)

        assert clock.now >= TIMEOUT
        assert clock.sleeps[:len(RETRY_DELAYS)] == list(RETRY_DELAYS)
        assert set(clock.sleeps[len(RETRY_DELAYS):]) == {60}


class TestTrigger:
    """Test strategy dispatch."""

    @pytest.mark.asyncio
    async def test_auto_merge_strategy(self, fake_client, open_pr):
        trigger = make_trigger(fake_client)
        assert await trigger.trigger(open_pr, MergeStrategy.AUTO_MERGE) is Result.SUCCESS
        assert not any(call[0] == "merge_pull_request" for call in fake_client.calls)

    @pytest.mark.asyncio
    async def test_poll_strategy(self, fake_client, open_pr):
        trigger = make_trigger(fake_client)
        assert await trigger.trigger(open_pr, MergeStrategy.POLL) is Result.SUCCESS
        assert not any(call[0] == "enable_auto_merge" for call in fake_client.calls)
