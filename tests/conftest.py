"""Pytest configuration and fixtures."""

import base64
import json

import pytest

from core.errors import MergeConflictError
from core.models import ChangedFile, PullRequest


def encode_manifest(document: dict) -> dict:
    """Build a contents API response for a package.json document."""
    return {
        "type": "file",
        "encoding": "base64",
        "content": base64.b64encode(json.dumps(document, indent=2).encode()).decode(),
    }


class FakeHostingClient:
    """In-memory stand-in for the GitHub client."""

    def __init__(self, files=None, manifests=None, pull_requests=None, merge_errors=None,
                 enabled_at="2021-03-07T16:17:20Z"):
        self.files = files if files is not None else [
            ChangedFile("package.json", "modified"),
            ChangedFile("package-lock.json", "modified"),
            ChangedFile("yarn.lock", "modified"),
        ]
        self.manifests = manifests or {}
        self.pull_requests = list(pull_requests or [])
        self.merge_errors = list(merge_errors or [])
        self.enabled_at = enabled_at
        self.calls = []

    async def get_changed_files(self, ref):
        self.calls.append(("get_changed_files", ref))
        return self.files

    async def get_file_content(self, path, ref):
        self.calls.append(("get_file_content", path, ref))
        return self.manifests[ref]

    async def get_pull_request(self, number):
        self.calls.append(("get_pull_request", number))
        if len(self.pull_requests) > 1:
            return self.pull_requests.pop(0)
        return self.pull_requests[0]

    async def merge_pull_request(self, number, sha, merge_method="SQUASH"):
        self.calls.append(("merge_pull_request", number, sha))
        if self.merge_errors:
            error = self.merge_errors.pop(0)
            if error is not None:
                raise error

    async def enable_auto_merge(self, pull_request_id, merge_method, author_email=None,
                                expected_head_sha=None):
        self.calls.append(
            ("enable_auto_merge", pull_request_id, merge_method, author_email, expected_head_sha)
        )
        return self.enabled_at


@pytest.fixture
def open_pr():
    """An open, mergeable pull request."""
    return PullRequest(
        number=1,
        state="open",
        head_sha="headSha",
        base_sha="baseSha",
        node_id="nodeId==",
        mergeable=True,
    )


@pytest.fixture
def fake_client(open_pr):
    """A hosting client whose manifests are filled in per test."""
    return FakeHostingClient(pull_requests=[open_pr])


@pytest.fixture
def client_factory():
    """Build a FakeHostingClient serving the given base/head manifests."""
    def build(base, head, **kwargs):
        manifests = {"baseSha": encode_manifest(base), "headSha": encode_manifest(head)}
        return FakeHostingClient(manifests=manifests, **kwargs)
    return build


@pytest.fixture
def conflict_error():
    return MergeConflictError("Conflict", status_code=409)


@pytest.fixture
def sample_package_json():
    """Sample package.json content for testing."""
    return """
{
  "name": "test-project",
  "dependencies": {
    "express": "^4.18.0",
    "lodash": "~4.17.21"
  },
  "devDependencies": {
    "jest": "29.0.0"
  }
}
"""
