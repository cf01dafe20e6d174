"""End-to-end tests for the issues endpoint.

Only the outbound HTTP calls are faked (``httpx.AsyncClient.post``); the app,
router, pipeline, templates and limiter all run for real.
"""

import httpx
import jwt
import pytest
from httpx import ASGITransport, AsyncClient

ENDPOINT = "/api/issues"
VALID_REPORT = {
    "issueType": "bug",
    "title": "Keyboard ignores Enter",
    "description": "Pressing Enter on the last letter does nothing.",
    "turnstileToken": "tok",
}


class FakeUpstream:
    """Routes outbound POSTs to canned responses and records them."""

    def __init__(self, turnstile_success=True):
        self.turnstile_success = turnstile_success
        self.calls: list[tuple[str, dict]] = []

    async def post(self, client, url, **kwargs):
        self.calls.append((url, kwargs))
        if "siteverify" in url:
            return httpx.Response(200, json={"success": self.turnstile_success})
        if url.endswith("/access_tokens"):
            return httpx.Response(201, json={"token": "ghs_installation"})
        if url.endswith("/issues"):
            return httpx.Response(
                201,
                json={"number": 101, "html_url": "https://github.com/o/r/issues/101"},
            )
        return httpx.Response(404)

    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]


@pytest.fixture
def upstream(monkeypatch):
    fake = FakeUpstream()

    async def mock_post(self, url, **kwargs):
        return await fake.post(self, url, **kwargs)

    monkeypatch.setattr(httpx.AsyncClient, "post", mock_post)
    return fake


async def _post(json=None, headers=None, method="POST"):
    from issue_proxy.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        return await client.request(method, ENDPOINT, json=json, headers=headers)


async def test_valid_report_creates_issue_without_turnstile(mock_settings, upstream):
    response = await _post(json=VALID_REPORT)

    assert response.status_code == 201
    assert response.json() == {
        "issueNumber": 101,
        "issueUrl": "https://github.com/o/r/issues/101",
    }
    assert upstream.urls() == ["https://api.github.com/repos/testowner/testrepo/issues"]
    sent = upstream.calls[0][1]["json"]
    assert sent["title"] == "[Bug] Keyboard ignores Enter"
    assert sent["labels"] == ["bug"]
    assert VALID_REPORT["description"] in sent["body"]
    assert "{description}" not in sent["body"]


async def test_app_credentials_exchange_then_write(
    mock_settings, upstream, private_key_pem, public_key_pem
):
    mock_settings.github_token = ""
    mock_settings.github_app_id = "12345"
    mock_settings.github_installation_id = "678"
    mock_settings.github_private_key = private_key_pem

    response = await _post(json=VALID_REPORT)

    assert response.status_code == 201
    assert upstream.urls() == [
        "https://api.github.com/app/installations/678/access_tokens",
        "https://api.github.com/repos/testowner/testrepo/issues",
    ]
    exchange_auth = upstream.calls[0][1]["headers"]["Authorization"]
    claims = jwt.decode(
        exchange_auth.removeprefix("Bearer "), public_key_pem, algorithms=["RS256"]
    )
    assert claims["iss"] == "12345"
    write_auth = upstream.calls[1][1]["headers"]["Authorization"]
    assert write_auth == "Bearer ghs_installation"


async def test_token_minted_for_every_request(mock_settings, upstream, private_key_pem):
    mock_settings.github_token = ""
    mock_settings.github_app_id = "12345"
    mock_settings.github_installation_id = "678"
    mock_settings.github_private_key = private_key_pem

    await _post(json=VALID_REPORT)
    await _post(json=VALID_REPORT)

    exchanges = [u for u in upstream.urls() if u.endswith("/access_tokens")]
    assert len(exchanges) == 2


async def test_honeypot_returns_fake_response(mock_settings, upstream):
    response = await _post(json={**VALID_REPORT, "website": "spam"})

    assert response.status_code == 200
    assert response.json() == {"issueNumber": 0, "issueUrl": ""}
    assert upstream.calls == []


async def test_sixth_request_from_same_address_is_429(mock_settings, upstream):
    headers = {"X-Forwarded-For": "198.51.100.23, 10.0.0.1"}
    for _ in range(5):
        response = await _post(json=VALID_REPORT, headers=headers)
        assert response.status_code == 201

    response = await _post(json=VALID_REPORT, headers=headers)

    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Please try again later."}

    other = await _post(json=VALID_REPORT, headers={"X-Forwarded-For": "192.0.2.1"})
    assert other.status_code == 201


async def test_turnstile_failure_is_403(mock_settings, upstream):
    mock_settings.turnstile_secret_key = "ts-secret"
    upstream.turnstile_success = False

    response = await _post(json=VALID_REPORT)

    assert response.status_code == 403
    assert response.json() == {"error": "Turnstile verification failed"}
    assert upstream.urls() == [mock_settings.turnstile_verify_url]
    assert upstream.calls[0][1]["data"] == {"secret": "ts-secret", "response": "tok"}


async def test_turnstile_pass_then_write(mock_settings, upstream):
    mock_settings.turnstile_secret_key = "ts-secret"

    response = await _post(json=VALID_REPORT)

    assert response.status_code == 201
    assert len(upstream.calls) == 2


async def test_invalid_json_is_400(mock_settings, upstream):
    from issue_proxy.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        # request() rather than post(): post is patched by the upstream fixture
        response = await client.request(
            "POST",
            ENDPOINT,
            content=b"{broken",
            headers={"Content-Type": "application/json"},
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid request body"}


async def test_get_is_405(mock_settings, upstream):
    response = await _post(method="GET")
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


async def test_bare_options_is_204(mock_settings, upstream):
    response = await _post(method="OPTIONS")
    assert response.status_code == 204
    assert response.content == b""


async def test_upstream_rejection_is_502(mock_settings, monkeypatch):
    async def mock_post(self, url, **kwargs):
        return httpx.Response(422, json={"message": "Validation Failed"})

    monkeypatch.setattr(httpx.AsyncClient, "post", mock_post)

    response = await _post(json=VALID_REPORT)

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to create issue"}


async def test_issue_without_html_url_is_502(mock_settings, monkeypatch):
    async def mock_post(self, url, **kwargs):
        return httpx.Response(201, json={"number": 5, "html_url": None})

    monkeypatch.setattr(httpx.AsyncClient, "post", mock_post)

    response = await _post(json=VALID_REPORT, headers={"X-Request-ID": "req-502"})

    assert response.status_code == 502
    assert response.json() == {"error": "Failed to create issue"}
    assert response.headers["X-Request-ID"] == "req-502"


async def test_response_carries_request_id(mock_settings, upstream):
    response = await _post(json=VALID_REPORT, headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
