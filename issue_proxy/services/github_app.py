"""GitHub App authentication.

A JWT is minted from the App's private key on every call and exchanged for an
installation access token. Nothing is cached: each submission pays for one
extra round trip instead of tracking token expiry.

For local development a static ``GITHUB_TOKEN`` bypasses the exchange.
"""

import logging
import time

import httpx
import jwt

from issue_proxy.config import Settings
from issue_proxy.errors import ConfigurationError, CredentialError, TokenExchangeError
from issue_proxy.services.http_client import (
    GITHUB_API_URL,
    get_shared_client,
    github_headers,
)
from issue_proxy.services.secrets import SecretBundle

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "RS256"
JWT_CLOCK_SKEW = 60  # iat is backdated to tolerate clock drift
JWT_TTL = 10 * 60  # GitHub caps App JWTs at 10 minutes


def build_app_jwt(app_id: str, private_key: str, now: int | None = None) -> str:
    """Sign a short-lived App JWT with *private_key* (PEM)."""
    if now is None:
        now = int(time.time())
    payload = {
        "iat": now - JWT_CLOCK_SKEW,
        "exp": now + JWT_TTL,
        "iss": app_id,
    }
    try:
        return jwt.encode(payload, private_key, algorithm=JWT_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        logger.error("Invalid GitHub App private key: %s", e)
        raise CredentialError() from e


async def get_installation_token(
    app_id: str, installation_id: str, private_key: str
) -> str:
    """Mint a JWT from the App key, exchange it for an installation token."""
    encoded_jwt = build_app_jwt(app_id, private_key)

    client = get_shared_client()
    url = f"{GITHUB_API_URL}/app/installations/{installation_id}/access_tokens"
    try:
        resp = await client.post(url, headers=github_headers(encoded_jwt))
    except httpx.HTTPError as e:
        logger.error("Installation token request failed: %s", e)
        raise TokenExchangeError() from e

    if not resp.is_success:
        logger.error(
            "Failed to get installation token: %d - %s",
            resp.status_code,
            resp.text,
        )
        raise TokenExchangeError(status=resp.status_code, body=resp.text)

    try:
        return resp.json()["token"]
    except (ValueError, KeyError, TypeError) as e:
        logger.error("Unreadable installation token response: %s", resp.text[:200])
        raise TokenExchangeError(status=resp.status_code, body=resp.text) from e


async def select_access_token(settings: Settings, secrets: SecretBundle) -> str:
    """Pick the credential for the issue write.

    A configured static token wins. Otherwise the App flow runs, which needs
    the App id, the installation id and the private key.
    """
    if settings.github_token:
        return settings.github_token

    if (
        settings.github_app_id
        and settings.github_installation_id
        and secrets.github_private_key
    ):
        return await get_installation_token(
            settings.github_app_id,
            settings.github_installation_id,
            secrets.github_private_key,
        )

    logger.error("No GitHub credentials configured")
    raise ConfigurationError()
