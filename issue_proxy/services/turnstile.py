"""Cloudflare Turnstile token verification."""

import logging

import httpx

from issue_proxy.errors import VerificationError
from issue_proxy.services.http_client import get_shared_client

logger = logging.getLogger(__name__)


async def verify_turnstile(token: str, secret: str, verify_url: str) -> bool:
    """Ask Turnstile whether *token* is valid.

    Returns the service's verdict. Raises VerificationError when the service
    cannot be reached or its answer cannot be read, so callers can tell an
    outage apart from a failed challenge.
    """
    client = get_shared_client()
    try:
        resp = await client.post(
            verify_url, data={"secret": secret, "response": token}
        )
        data = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error("Turnstile verification error: %s", e)
        raise VerificationError() from e

    success = data.get("success") if isinstance(data, dict) else None
    if not isinstance(success, bool):
        logger.error(
            "Turnstile returned %d without a boolean success field: %s",
            resp.status_code,
            resp.text[:200],
        )
        raise VerificationError()

    if not success:
        logger.info("Turnstile rejected token: %s", data.get("error-codes", []))
    return success
