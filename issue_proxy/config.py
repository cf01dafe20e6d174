"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings

DEFAULT_TURNSTILE_VERIFY_URL = (
    "https://challenges.cloudflare.com/turnstile/v0/siteverify"
)


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # App
    environment: str = "development"
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # GitHub target repository
    github_repo: str = "hannahscovill/wordles-with-friends-client-web"

    # Static token (local dev) skips the GitHub App exchange when set
    github_token: str = ""

    # GitHub App (production)
    github_app_id: str = ""
    github_installation_id: str = ""

    # App private key: direct value, then file, then Key Vault secret name
    github_private_key: str = ""
    github_private_key_file: str = ""
    github_private_key_param: str = ""

    # Cloudflare Turnstile: empty secret disables verification
    turnstile_secret_key: str = ""
    turnstile_secret_key_file: str = ""
    turnstile_secret_key_param: str = ""
    turnstile_verify_url: str = DEFAULT_TURNSTILE_VERIFY_URL

    # Azure Key Vault holding the *_PARAM secrets
    key_vault_name: str = ""

    # Abuse guard: submissions per client address per window
    rate_limit_max: int = 5
    rate_limit_window_seconds: float = 3600

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
