"""GitHub API client for the operations BumpGate needs."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import HostingAPIError, MergeConflictError
from .models import ChangedFile, PullRequest

logger = logging.getLogger(__name__)

ENABLE_AUTO_MERGE_MUTATION = """
mutation($pullRequestId: ID!, $mergeMethod: PullRequestMergeMethod, $authorEmail: String, $expectedHeadOid: GitObjectID) {
  enablePullRequestAutoMerge(input: {pullRequestId: $pullRequestId, mergeMethod: $mergeMethod, authorEmail: $authorEmail, expectedHeadOid: $expectedHeadOid}) {
    pullRequest {
      autoMergeRequest {
        enabledAt
      }
    }
  }
}
"""


@dataclass(frozen=True)
class TransportConfig:
    """HTTP transport settings, owned by whoever builds the client."""

    api_url: str = "https://api.github.com"
    timeout: float = 30.0
    max_rate_limit_retries: int = 3
    max_retry_after: float = 300.0
    user_agent: str = "bumpgate"


class GitHubClient:
    """Async client for one repository."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        config: TransportConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize GitHub client.

        Args:
            owner: Repository owner
            repo: Repository name
            token: API token
            config: Transport settings
            transport: Optional httpx transport, used by tests
            sleep: Coroutine used to wait out rate limits
        """
        self.owner = owner
        self.repo = repo
        self.config = config or TransportConfig()
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url.rstrip("/"),
            timeout=self.config.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": self.config.user_agent,
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def get_changed_files(self, ref: str) -> list[ChangedFile]:
        """List the files changed by a commit."""
        data = await self._request("GET", f"{self._repo_path}/commits/{ref}")
        return [
            ChangedFile(name=item.get("filename", ""), status=item.get("status", ""))
            for item in data.get("files") or []
        ]

    async def get_file_content(self, path: str, ref: str) -> dict[str, Any]:
        """Fetch the contents API response for a file at a ref."""
        return await self._request(
            "GET", f"{self._repo_path}/contents/{path}", params={"ref": ref}
        )

    async def get_pull_request(self, number: int) -> PullRequest:
        data = await self._request("GET", f"{self._repo_path}/pulls/{number}")
        return PullRequest(
            number=number,
            state=data.get("state", ""),
            head_sha=(data.get("head") or {}).get("sha", ""),
            base_sha=(data.get("base") or {}).get("sha", ""),
            node_id=data.get("node_id", ""),
            mergeable=data.get("mergeable"),
        )

    async def merge_pull_request(
        self, number: int, sha: str, merge_method: str = "SQUASH"
    ) -> None:
        """Merge a pull request, guarded by its expected head SHA.

        Raises:
            MergeConflictError: The head no longer matches ``sha``
        """
        await self._request(
            "PUT",
            f"{self._repo_path}/pulls/{number}/merge",
            json={"sha": sha, "merge_method": merge_method.lower()},
        )

    async def enable_auto_merge(
        self,
        pull_request_id: str,
        merge_method: str,
        author_email: str | None = None,
        expected_head_sha: str | None = None,
    ) -> str | None:
        """Enable auto-merge and return its ``enabledAt`` timestamp.

        With ``expected_head_sha`` the platform refuses the request if
        the head has moved.
        """
        data = await self._request(
            "POST",
            "/graphql",
            json={
                "query": ENABLE_AUTO_MERGE_MUTATION,
                "variables": {
                    "pullRequestId": pull_request_id,
                    "mergeMethod": merge_method,
                    "authorEmail": author_email,
                    "expectedHeadOid": expected_head_sha,
                },
            },
        )
        if data.get("errors"):
            raise HostingAPIError(f"GitHub API GraphQL errors: {data['errors']}")

        result = (data.get("data") or {}).get("enablePullRequestAutoMerge") or {}
        request = (result.get("pullRequest") or {}).get("autoMergeRequest") or {}
        return request.get("enabledAt")

    def _rate_limit_delay(self, response: httpx.Response) -> float | None:
        """Seconds to wait before retrying, or None if not rate limited."""
        if response.status_code not in (403, 429):
            return None
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return float(retry_after)
            except ValueError:
                return None
        if response.headers.get("X-RateLimit-Remaining") == "0":
            reset = response.headers.get("X-RateLimit-Reset")
            try:
                return max(0.0, float(reset) - time.time()) if reset else None
            except ValueError:
                return None
        return None

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        for attempt in range(self.config.max_rate_limit_retries + 1):
            try:
                response = await self._client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                raise HostingAPIError(f"Network error calling {method} {url}: {e}")

            delay = self._rate_limit_delay(response)
            if delay is not None and attempt < self.config.max_rate_limit_retries:
                delay = min(delay, self.config.max_retry_after)
                logger.warning("Hit rate limit. Retrying in %s seconds", delay)
                await self._sleep(delay)
                continue

            if response.status_code == 409:
                raise MergeConflictError(
                    f"Conflict calling {method} {url}", status_code=409
                )
            if response.status_code >= 400:
                raise HostingAPIError(
                    f"GitHub API error {response.status_code} calling {method} {url}",
                    status_code=response.status_code,
                )

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise HostingAPIError(f"GitHub API response was not valid JSON: {e}")

        raise HostingAPIError(f"Gave up calling {method} {url}")
