import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from .errors import ConfigIncomplete

# --- RECOGNIZED KEYS ---
PORT = "PORT"
SQL_SERVER = "SQL_SERVER"
SQL_DATABASE = "SQL_DATABASE"
SQL_USER = "SQL_USER"
SQL_PASSWORD = "SQL_PASSWORD"
SQL_ENCRYPT = "SQL_ENCRYPT"
SQL_TRUST_SERVER_CERTIFICATE = "SQL_TRUST_SERVER_CERTIFICATE"

KEYS = (
    SQL_SERVER,
    SQL_DATABASE,
    SQL_USER,
    SQL_PASSWORD,
    SQL_ENCRYPT,
    SQL_TRUST_SERVER_CERTIFICATE,
    PORT,
)
REQUIRED_KEYS = (SQL_SERVER, SQL_DATABASE, SQL_USER, SQL_PASSWORD)

DEFAULT_PORT = "8080"
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"


def port_from_env(environ: Optional[Mapping[str, str]] = None) -> str:
    # PORT never goes through the vault
    environ = os.environ if environ is None else environ
    return environ.get(PORT) or DEFAULT_PORT


class Configuration:
    """
    Shared runtime settings.

    Written once by the secrets bootstrap, then read by the pool manager.
    The process entry point creates one instance and hands it to both.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = {}
        if values:
            self.publish(values)

    def publish(self, values: Mapping[str, str]) -> None:
        # Whole-set replacement, unknown keys are dropped
        self._values = {k: values[k] for k in KEYS if values.get(k) is not None}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get(key, default)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._values)

    def __contains__(self, key) -> bool:
        return key in self._values

    def __repr__(self):
        shown = {k: ("***" if k == SQL_PASSWORD else v) for k, v in self._values.items()}
        return f"Configuration({shown})"


@dataclass(frozen=True)
class ConnectionSettings:
    server: str
    database: str
    user: str
    password: str = field(default="", repr=False)
    encrypt: bool = True
    trust_server_certificate: bool = False
    driver: str = DEFAULT_ODBC_DRIVER

    @classmethod
    def from_configuration(cls, config: Configuration, environ: Optional[Mapping[str, str]] = None):
        missing = [key for key in REQUIRED_KEYS if not config.get(key)]
        if missing:
            raise ConfigIncomplete(
                "Missing required database configuration. Please ensure "
                "SQL_SERVER, SQL_DATABASE, SQL_USER, and SQL_PASSWORD are set "
                f"(missing: {', '.join(missing)})."
            )
        environ = os.environ if environ is None else environ
        return cls(
            server=config.get(SQL_SERVER),
            database=config.get(SQL_DATABASE),
            user=config.get(SQL_USER),
            password=config.get(SQL_PASSWORD),
            encrypt=config.get(SQL_ENCRYPT) == "true",
            trust_server_certificate=config.get(SQL_TRUST_SERVER_CERTIFICATE) == "true",
            driver=environ.get("SQL_ODBC_DRIVER") or DEFAULT_ODBC_DRIVER,
        )
