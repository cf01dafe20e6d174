"""Tests for http_client module: shared client lifecycle and GitHub headers."""

from issue_proxy.services import http_client
from issue_proxy.services.http_client import (
    close_shared_client,
    get_shared_client,
    github_headers,
)


class TestGitHubHeaders:
    """Tests for github_headers()."""

    def test_includes_accept_and_api_version(self):
        headers = github_headers("tok")
        assert headers["Accept"] == "application/vnd.github+json"
        assert headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_bearer_auth(self):
        assert github_headers("ghs_abc")["Authorization"] == "Bearer ghs_abc"

    def test_sends_user_agent(self):
        assert github_headers("tok")["User-Agent"] == http_client.USER_AGENT


class TestSharedClient:
    async def test_reuses_client(self):
        assert get_shared_client() is get_shared_client()

    async def test_close_and_recreate(self):
        first = get_shared_client()
        await close_shared_client()
        assert first.is_closed
        assert get_shared_client() is not first

    async def test_close_without_client_is_noop(self):
        await close_shared_client()
        assert http_client._client is None
