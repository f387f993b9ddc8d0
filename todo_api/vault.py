"""
Secret loading.

Database credentials live in Google Cloud Secret Manager. When the vault is
not configured (local dev, CI) or a lookup fails, each secret falls back to
an environment variable of the same meaning.

Usage at startup:

    vault = initialize_vault()
    resolver = SecretResolver(vault)
    await load_secrets(resolver, configuration)
"""

import logging
import os
from typing import Dict, Mapping, Optional

from google.cloud import secretmanager

from .config import (
    Configuration,
    SQL_DATABASE,
    SQL_ENCRYPT,
    SQL_PASSWORD,
    SQL_SERVER,
    SQL_TRUST_SERVER_CERTIFICATE,
    SQL_USER,
    PORT,
    port_from_env,
)
from .errors import BootstrapFailed, SecretUnavailable

logger = logging.getLogger(__name__)

# Setting this turns the vault path on
VAULT_PROJECT_ENV = "SECRET_MANAGER_PROJECT"

# (vault name, env var) pairs; all four are fatal if missing
MANDATORY_SECRETS = (
    ("SQL-SERVER", SQL_SERVER),
    ("SQL-DATABASE", SQL_DATABASE),
    ("SQL-USER", SQL_USER),
    ("SQL-PASSWORD", SQL_PASSWORD),
)

# (vault name, env var, default used when nothing resolves)
OPTIONAL_SECRETS = (
    ("SQL-ENCRYPT", SQL_ENCRYPT, "true"),
    ("SQL-TRUST-SERVER-CERTIFICATE", SQL_TRUST_SERVER_CERTIFICATE, "false"),
)


class SecretManagerVault:
    """Thin async wrapper around the Secret Manager client."""

    def __init__(self, project_id: str, client=None):
        self.project_id = project_id
        self._client = client or secretmanager.SecretManagerServiceAsyncClient()

    def secret_path(self, name: str) -> str:
        return f"projects/{self.project_id}/secrets/{name}/versions/latest"

    async def get_secret(self, name: str) -> str:
        response = await self._client.access_secret_version(
            request={"name": self.secret_path(name)}
        )
        return response.payload.data.decode("UTF-8")

    async def close(self):
        await self._client.transport.close()


def initialize_vault(environ: Optional[Mapping[str, str]] = None) -> Optional[SecretManagerVault]:
    """
    Build the vault client, or return None to use environment variables only.

    Must be called from inside the running event loop (the async gRPC
    channel binds to it).
    """
    environ = os.environ if environ is None else environ
    project_id = environ.get(VAULT_PROJECT_ENV)

    if not project_id:
        logger.warning("%s not set. Falling back to environment variables.", VAULT_PROJECT_ENV)
        return None

    try:
        vault = SecretManagerVault(project_id)
    except Exception as e:
        logger.error("Failed to initialize Secret Manager client: %s", e)
        logger.warning("Falling back to environment variables.")
        return None

    logger.info("Secret Manager client initialized for project %s", project_id)
    return vault


class SecretResolver:
    """
    Resolves one secret at a time: vault first, environment second.

    Values fetched from the vault are cached by vault name for the life of
    the resolver, so each secret is queried at most once. Environment values
    are read fresh on every call.
    """

    def __init__(self, vault=None, environ: Optional[Mapping[str, str]] = None):
        self.vault = vault
        self.environ = os.environ if environ is None else environ
        self._cache: Dict[str, str] = {}

    def _from_env(self, vault_name: str, env_var_name: str) -> str:
        value = self.environ.get(env_var_name)
        if not value:
            raise SecretUnavailable(vault_name, env_var_name)
        return value

    async def resolve(self, vault_name: str, env_var_name: str) -> str:
        if self.vault is None:
            logger.debug("No vault configured, reading %s from environment", env_var_name)
            return self._from_env(vault_name, env_var_name)

        cached = self._cache.get(vault_name)
        if cached:
            return cached

        try:
            value = await self.vault.get_secret(vault_name)
            if not value:
                raise SecretUnavailable(vault_name, env_var_name)
        except Exception as e:
            logger.warning("Failed to get secret %s from Secret Manager: %s", vault_name, e)
            logger.warning("Falling back to environment variable %s", env_var_name)
            return self._from_env(vault_name, env_var_name)

        self._cache[vault_name] = value
        return value

    def clear_cache(self) -> None:
        # Call after rotating secrets in the vault
        self._cache.clear()


async def load_secrets(resolver: SecretResolver, configuration: Configuration) -> Dict[str, str]:
    """
    Resolve every setting the database needs and publish them.

    Runs once at startup, before the first get_pool(). Nothing is published
    unless all four mandatory credentials resolve.
    """
    secrets = {PORT: port_from_env(resolver.environ)}

    try:
        for vault_name, key in MANDATORY_SECRETS:
            secrets[key] = await resolver.resolve(vault_name, key)
    except SecretUnavailable as e:
        logger.error("Failed to load secrets: %s", e)
        raise BootstrapFailed(str(e)) from e

    for vault_name, key, default in OPTIONAL_SECRETS:
        try:
            secrets[key] = await resolver.resolve(vault_name, key)
        except SecretUnavailable:
            logger.warning("%s not resolved, using default %r", key, default)
            secrets[key] = default

    configuration.publish(secrets)
    logger.info("Secrets loaded successfully")
    return secrets
