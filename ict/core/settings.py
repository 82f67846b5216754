"""Application settings loaded from environment variables."""

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ict.core.errors import ConfigurationError
from ict.crypto.types import SigningAlgorithm

DEFAULT_TOKEN_PERIOD_DEFAULT = 3600
MAX_TOKEN_PERIOD_DEFAULT = 2_592_000
UPSTREAM_TIMEOUT_DEFAULT = 10.0
NONCE_GC_INTERVAL_DEFAULT = 300
CONTEXT_PREFIX_DEFAULT = "e2e_ctx_"
DB_POOL_SIZE_DEFAULT = 5
DB_MAX_OVERFLOW_DEFAULT = 10
DB_PORT_DEFAULT = 5432
PORT_DEFAULT = 8080


class DatabaseSettings(BaseSettings):
    """Nonce ledger database settings."""

    model_config = SettingsConfigDict(env_prefix="ICT_DB_")

    url: str = ""
    host: str = "localhost"
    port: int = DB_PORT_DEFAULT
    user: str = "ict"
    password: str = "ict"
    database: str = "ict"
    pool_size: int = DB_POOL_SIZE_DEFAULT
    max_overflow: int = DB_MAX_OVERFLOW_DEFAULT

    @property
    def async_url(self) -> str:
        """Explicit URL if set, else an async PostgreSQL URL."""
        if self.url:
            return self.url
        return (
            f"postgresql+asyncpg://{self.user}:{self.password}"
            f"@{self.host}:{self.port}/{self.database}"
        )


class IctSettings(BaseSettings):
    """Issuance, upstream and runtime settings."""

    model_config = SettingsConfigDict(env_prefix="ICT_")

    key_file: str
    key_password: str = ""
    kid: str
    alg: SigningAlgorithm = SigningAlgorithm.ES256
    userinfo_endpoint: str
    issuer: str
    default_token_period: int = DEFAULT_TOKEN_PERIOD_DEFAULT
    max_token_period: int = MAX_TOKEN_PERIOD_DEFAULT
    leeway: int = 0
    upstream_timeout: float = UPSTREAM_TIMEOUT_DEFAULT
    token_introspection_endpoint: str = ""
    token_introspection_host: str = ""
    introspection_credentials: str = ""
    context_prefix: str = CONTEXT_PREFIX_DEFAULT
    nonce_gc_interval: int = NONCE_GC_INTERVAL_DEFAULT
    log_level: str = "info"
    log_json: bool = True
    port: int = PORT_DEFAULT

    @model_validator(mode="after")
    def _check_periods(self) -> "IctSettings":
        if self.max_token_period < 1:
            raise ValueError("max_token_period must be positive")
        if not 1 <= self.default_token_period <= self.max_token_period:
            raise ValueError(
                "default_token_period must be between 1 and max_token_period"
            )
        if self.leeway < 0:
            raise ValueError("leeway must not be negative")
        if self.token_introspection_endpoint and not self.introspection_credentials:
            raise ValueError(
                "introspection_credentials required with token_introspection_endpoint"
            )
        return self

    @property
    def issuer_host(self) -> str:
        """Host part of the issuer URL, sent as Host header upstream."""
        parts = self.issuer.split("/")
        return parts[2] if len(parts) > 2 else ""


def load_settings() -> IctSettings:
    """Read settings from the environment, failing fast on bad values."""
    try:
        return IctSettings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration: {exc}") from exc


def load_database_settings() -> DatabaseSettings:
    try:
        return DatabaseSettings()
    except ValidationError as exc:
        raise ConfigurationError(f"invalid database configuration: {exc}") from exc
