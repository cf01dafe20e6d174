"""Shared fixtures for issue-proxy tests."""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from issue_proxy.services.rate_limit import SlidingWindowRateLimiter
from issue_proxy.services.secrets import SecretResolver


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset module-level singletons and app state between tests."""
    yield

    # 1. Settings LRU cache
    from issue_proxy.config import get_settings

    get_settings.cache_clear()

    # 2. HTTP client singleton
    import issue_proxy.services.http_client as http_mod

    http_mod._client = None

    # 3. Rate limiter windows and resolved secrets
    from issue_proxy.main import app

    app.state.rate_limiter = SlidingWindowRateLimiter()
    app.state.secret_resolver = SecretResolver()


@pytest.fixture
def mock_settings(monkeypatch):
    """Provide a Settings object with safe test defaults.

    No secrets are configured, so Turnstile is disabled and the static token
    is the only credential path.
    """
    from issue_proxy.config import Settings, get_settings

    test_settings = Settings(
        _env_file=None,
        github_repo="testowner/testrepo",
        github_token="test-token",
        github_app_id="",
        github_installation_id="",
        github_private_key="",
        github_private_key_file="",
        github_private_key_param="",
        turnstile_secret_key="",
        turnstile_secret_key_file="",
        turnstile_secret_key_param="",
        key_vault_name="",
    )

    get_settings.cache_clear()
    monkeypatch.setattr("issue_proxy.config.get_settings", lambda: test_settings)

    # Patch get_settings in modules that import it directly
    # (from issue_proxy.config import get_settings creates a local binding that
    # the issue_proxy.config monkeypatch above does not affect)
    for mod_path in [
        "issue_proxy.main",
        "issue_proxy.routers.issues",
    ]:
        monkeypatch.setattr(f"{mod_path}.get_settings", lambda: test_settings)

    return test_settings


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def public_key_pem(rsa_private_key) -> str:
    return (
        rsa_private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
