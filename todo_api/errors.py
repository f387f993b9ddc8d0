class TodoApiError(Exception):
    """Base class for everything the bootstrap and pool code raises."""


class SecretUnavailable(TodoApiError):
    """Neither the vault nor the fallback env var produced a value."""

    def __init__(self, vault_name: str, env_var_name: str):
        self.vault_name = vault_name
        self.env_var_name = env_var_name
        super().__init__(
            f"Secret {vault_name} not found in Secret Manager "
            f"and {env_var_name} not set in environment"
        )


class BootstrapFailed(TodoApiError):
    """A mandatory secret could not be resolved at startup."""


class ConnectionFailed(TodoApiError):
    """The database pool could not be established."""


class ConfigIncomplete(ConnectionFailed):
    """Pool requested before server/database/user/password were published."""
