"""GitHub issue creation."""

import logging
from dataclasses import dataclass

import httpx

from issue_proxy.errors import UpstreamFailure
from issue_proxy.services.http_client import (
    GITHUB_API_URL,
    get_shared_client,
    github_headers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedIssue:
    number: int
    url: str


async def create_issue(
    repo: str, token: str, title: str, body: str, labels: list[str]
) -> CreatedIssue:
    """Create an issue in *repo* ("owner/name") and return its number and URL.

    Raises UpstreamFailure on any non-2xx answer or transport error.
    """
    # GitHub answers 422 on empty label names
    labels = [label for label in labels if label]

    client = get_shared_client()
    try:
        resp = await client.post(
            f"{GITHUB_API_URL}/repos/{repo}/issues",
            headers=github_headers(token),
            json={"title": title, "body": body, "labels": labels},
        )
    except httpx.HTTPError as e:
        logger.error("GitHub issue request failed: %s", e)
        raise UpstreamFailure() from e

    if not resp.is_success:
        logger.error("GitHub API error: %d - %s", resp.status_code, resp.text)
        raise UpstreamFailure(status=resp.status_code, body=resp.text)

    try:
        data = resp.json()
        number = int(data["number"])
        url = data["html_url"]
    except (ValueError, KeyError, TypeError) as e:
        logger.error("Unreadable GitHub issue response: %s", resp.text[:200])
        raise UpstreamFailure(status=resp.status_code, body=resp.text) from e

    if not isinstance(url, str):
        logger.error("GitHub issue response has no html_url: %s", resp.text[:200])
        raise UpstreamFailure(status=resp.status_code, body=resp.text)
    return CreatedIssue(number=number, url=url)
