"""Secret resolution: direct value, then local file, then Azure Key Vault.

Both secrets are resolved together the first time a request needs them and
kept for the life of the process. A failed resolution stores nothing, so the
next request tries again.

An empty result is not an error: an empty Turnstile secret disables
verification, and an empty private key leaves only the static-token path.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from azure.core.exceptions import AzureError
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.secrets.aio import SecretClient

from issue_proxy.config import Settings
from issue_proxy.errors import SecretResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretBundle:
    github_private_key: str = ""
    turnstile_secret_key: str = ""


class ParameterStore(Protocol):
    async def get_parameter(self, name: str, *, with_decryption: bool = True) -> str:
        ...


class KeyVaultParameterStore:
    """Reads named secrets from an Azure Key Vault.

    Key Vault always returns secret values decrypted, so ``with_decryption``
    is accepted for interface compatibility only.
    """

    def __init__(self, vault_name: str) -> None:
        self.vault_url = f"https://{vault_name}.vault.azure.net"

    async def get_parameter(self, name: str, *, with_decryption: bool = True) -> str:
        async with DefaultAzureCredential() as credential:
            async with SecretClient(
                vault_url=self.vault_url, credential=credential
            ) as client:
                secret = await client.get_secret(name)
        return secret.value or ""


def default_parameter_store(settings: Settings) -> ParameterStore | None:
    if not settings.key_vault_name:
        return None
    return KeyVaultParameterStore(settings.key_vault_name)


SecretSource = Callable[[], Awaitable[str | None]]


def _from_value(value: str) -> SecretSource:
    async def source() -> str | None:
        return value or None

    return source


def _from_file(path: str) -> SecretSource:
    async def source() -> str | None:
        if not path:
            return None
        try:
            return await asyncio.to_thread(Path(path).read_text) or None
        except OSError as e:
            logger.warning("Could not read secret file %s: %s", path, e)
            return None

    return source


def _from_parameter_store(store: ParameterStore | None, name: str) -> SecretSource:
    async def source() -> str | None:
        if not name:
            return None
        if store is None:
            logger.warning("Secret %s configured but KEY_VAULT_NAME is not set", name)
            return None
        try:
            return await store.get_parameter(name, with_decryption=True) or None
        except AzureError as e:
            logger.error("Parameter store lookup for %s failed: %s", name, e)
            raise SecretResolutionError() from e

    return source


async def first_non_empty(sources: list[SecretSource]) -> str:
    """Run *sources* in order and return the first non-empty value, or ``""``."""
    for source in sources:
        value = await source()
        if value:
            return value
    return ""


class SecretResolver:
    """Resolve the SecretBundle once and hand the same bundle to every caller.

    Concurrent first callers queue on a lock; whichever gets it first does
    the lookups, and the rest return its result.
    """

    def __init__(
        self,
        store_factory: Callable[
            [Settings], ParameterStore | None
        ] = default_parameter_store,
    ) -> None:
        self._store_factory = store_factory
        self._lock = asyncio.Lock()
        self._bundle: SecretBundle | None = None

    async def resolve(self, settings: Settings) -> SecretBundle:
        if self._bundle is not None:
            return self._bundle

        async with self._lock:
            if self._bundle is None:
                self._bundle = await self._resolve(settings)
        return self._bundle

    async def _resolve(self, settings: Settings) -> SecretBundle:
        store = self._store_factory(settings)

        github_private_key = await first_non_empty(
            [
                _from_value(settings.github_private_key),
                _from_file(settings.github_private_key_file),
                _from_parameter_store(store, settings.github_private_key_param),
            ]
        )
        turnstile_secret_key = await first_non_empty(
            [
                _from_value(settings.turnstile_secret_key),
                _from_file(settings.turnstile_secret_key_file),
                _from_parameter_store(store, settings.turnstile_secret_key_param),
            ]
        )

        logger.info(
            "Secrets resolved (private key: %s, turnstile: %s)",
            "set" if github_private_key else "empty",
            "enabled" if turnstile_secret_key else "disabled",
        )
        return SecretBundle(
            github_private_key=github_private_key,
            turnstile_secret_key=turnstile_secret_key,
        )
