"""Anonymous issue submission pipeline.

Runs the checks in order and stops at the first failure:

1. ``OPTIONS`` preflight → 204
2. anything but ``POST`` → 405
3. rate limit per client address → 429
4. body parse → 400
5. title / description present → 400
6. honeypot filled → 200 with an empty result, nothing created
7. secrets (value, file, Key Vault) → 500 on lookup failure
8. Turnstile, when a secret is configured → 403 / 500
9. GitHub credential (static token or App installation token) → 500
10. template render
11. issue creation → 502
12. 201 with the issue number and URL

Each step's failure is an ``IssueProxyError``; ``handle`` turns it into the
JSON error body the client sees.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError
from starlette.datastructures import Headers

from issue_proxy.config import Settings
from issue_proxy.errors import (
    ClientError,
    Forbidden,
    IssueProxyError,
    MethodNotAllowed,
    RateLimited,
)
from issue_proxy.models.issue import (
    ErrorResponse,
    IssueCreatedResponse,
    IssueSubmission,
)
from issue_proxy.services.github import create_issue
from issue_proxy.services.github_app import select_access_token
from issue_proxy.services.rate_limit import SlidingWindowRateLimiter, client_key
from issue_proxy.services.secrets import SecretResolver
from issue_proxy.services.templates import render
from issue_proxy.services.turnstile import verify_turnstile

logger = logging.getLogger(__name__)

# Returned for honeypot hits (same shape as a real success)
_HONEYPOT_RESPONSE = IssueCreatedResponse(issue_number=0, issue_url="")


@dataclass
class PipelineResponse:
    status_code: int
    content: dict[str, Any] | None = None


class IssuePipeline:
    """One submission's path from raw request to GitHub issue.

    The rate limiter and secret resolver are process-wide and shared by every
    pipeline; the pipeline itself holds no state between requests.
    """

    def __init__(
        self,
        settings: Settings,
        rate_limiter: SlidingWindowRateLimiter,
        secret_resolver: SecretResolver,
    ) -> None:
        self.settings = settings
        self.rate_limiter = rate_limiter
        self.secret_resolver = secret_resolver

    async def handle(
        self, method: str, headers: Mapping[str, str], body: bytes
    ) -> PipelineResponse:
        # Case-insensitive, and .get() returns the first of repeated headers
        if not isinstance(headers, Headers):
            headers = Headers(headers=dict(headers))
        try:
            return await self._run(method.upper(), headers, body)
        except IssueProxyError as e:
            return PipelineResponse(
                e.status_code, ErrorResponse(error=e.message).model_dump()
            )

    async def _run(
        self, method: str, headers: Headers, body: bytes
    ) -> PipelineResponse:
        if method == "OPTIONS":
            return PipelineResponse(204)

        if method != "POST":
            raise MethodNotAllowed()

        source_ip = client_key(headers)
        if not self.rate_limiter.allow(
            source_ip,
            self.settings.rate_limit_max,
            self.settings.rate_limit_window_seconds,
        ):
            logger.warning("Rate limit exceeded for %s", source_ip)
            raise RateLimited()

        submission = self._parse(body)

        if submission.website:
            logger.warning("Honeypot triggered from %s", source_ip)
            return PipelineResponse(200, _HONEYPOT_RESPONSE.model_dump(by_alias=True))

        secrets = await self.secret_resolver.resolve(self.settings)

        if secrets.turnstile_secret_key:
            verified = await verify_turnstile(
                submission.turnstile_token,
                secrets.turnstile_secret_key,
                self.settings.turnstile_verify_url,
            )
            if not verified:
                raise Forbidden()

        token = await select_access_token(self.settings, secrets)

        rendered = render(submission.issue_type, submission.description)
        issue = await create_issue(
            self.settings.github_repo,
            token,
            title=f"{rendered.title_prefix}{submission.title}",
            body=rendered.body,
            labels=[rendered.label],
        )

        logger.info("Created issue #%d from %s", issue.number, source_ip)
        created = IssueCreatedResponse(issue_number=issue.number, issue_url=issue.url)
        return PipelineResponse(201, created.model_dump(by_alias=True))

    @staticmethod
    def _parse(body: bytes) -> IssueSubmission:
        try:
            submission = IssueSubmission.model_validate_json(body)
        except ValidationError as e:
            logger.info("Rejected request body: %d validation errors", e.error_count())
            raise ClientError() from e

        if not submission.title.strip() or not submission.description.strip():
            raise ClientError("Title and description are required")
        return submission
