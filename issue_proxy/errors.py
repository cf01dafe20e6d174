"""Error taxonomy for the issue proxy.

Every error carries the HTTP status it maps to and a terse message that is
safe to show to the caller. Diagnostic detail (upstream status codes and
bodies, key parsing errors) is logged where the error is raised and never
placed in ``message``.
"""


class IssueProxyError(Exception):
    """Base class. Converted to ``{"error": message}`` at the pipeline boundary."""

    status_code: int = 500
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ClientError(IssueProxyError):
    status_code = 400
    message = "Invalid request body"


class MethodNotAllowed(IssueProxyError):
    status_code = 405
    message = "Method not allowed"


class RateLimited(IssueProxyError):
    status_code = 429
    message = "Rate limit exceeded. Please try again later."


class Forbidden(IssueProxyError):
    status_code = 403
    message = "Turnstile verification failed"


class ConfigurationError(IssueProxyError):
    status_code = 500
    message = "Server configuration error"


class CredentialError(ConfigurationError):
    """The GitHub App private key could not be used to sign a JWT."""


class TransportFailure(IssueProxyError):
    """A collaborator could not be reached or returned something unreadable."""

    status_code = 500


class SecretResolutionError(TransportFailure):
    """The parameter store lookup failed."""


class VerificationError(TransportFailure):
    message = "Verification service error"


class TokenExchangeError(TransportFailure):
    """GitHub refused (or never answered) the installation token request."""

    def __init__(
        self, message: str | None = None, *, status: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class UpstreamFailure(TransportFailure):
    status_code = 502
    message = "Failed to create issue"

    def __init__(
        self, message: str | None = None, *, status: int | None = None, body: str = ""
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body
