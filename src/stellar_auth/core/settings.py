"""Application settings and configuration.

This module defines all configuration options for the Stellar Auth service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from stellar_sdk import Network

SECONDS_PER_DAY = 86_400


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    This class defines all configuration options for the Stellar Auth service.
    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Stellar Auth", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./stellar_auth.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Session token (JWT) settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_ttl_seconds: int = Field(default=30 * SECONDS_PER_DAY, alias="SESSION_TTL_SECONDS")
    session_cookie_name: str = Field(default="stellar_auth_session", alias="SESSION_COOKIE_NAME")

    # Stellar network and server account
    stellar_network: str = Field(default="testnet", alias="STELLAR_NETWORK")
    stellar_server_secret: str = Field(alias="STELLAR_SERVER_SECRET")
    horizon_url: str | None = Field(default=None, alias="HORIZON_URL")
    horizon_timeout_seconds: float = Field(default=10.0, alias="HORIZON_TIMEOUT_SECONDS")
    base_fee: int = Field(default=100, alias="BASE_FEE")

    # Challenge settings
    home_domain: str = Field(default="oghma.org", alias="HOME_DOMAIN")
    challenge_timeout_seconds: int = Field(default=300, alias="CHALLENGE_TIMEOUT_SECONDS")
    challenge_nonce_bytes: int = Field(default=48, alias="CHALLENGE_NONCE_BYTES")
    auth_debug_reasons: bool = Field(default=False, alias="AUTH_DEBUG_REASONS")

    # External signer hand-off (SEP-0007 deep link + signing bot relay)
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    deep_link_scheme: str = Field(default="web+stellar", alias="DEEP_LINK_SCHEME")
    relay_api_url: str = Field(
        default="https://eurmtl.me/remote/sep07/add",
        alias="RELAY_API_URL",
    )
    relay_timeout_seconds: float = Field(default=10.0, alias="RELAY_TIMEOUT_SECONDS")

    # Nonce retention
    nonce_retention_seconds: int = Field(default=SECONDS_PER_DAY, alias="NONCE_RETENTION_SECONDS")
    nonce_prune_interval_seconds: float = Field(
        default=3600.0,
        alias="NONCE_PRUNE_INTERVAL_SECONDS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def is_mainnet(self) -> bool:
        return self.stellar_network.strip().lower() in {"mainnet", "public", "pubnet"}

    @property
    def network_passphrase(self) -> str:
        """Return the Stellar network passphrase for the configured network."""
        if self.is_mainnet:
            return Network.PUBLIC_NETWORK_PASSPHRASE
        return Network.TESTNET_NETWORK_PASSPHRASE

    @property
    def horizon_url_resolved(self) -> str:
        """Return the Horizon base URL, defaulting to the public SDF instances."""
        if self.horizon_url:
            return self.horizon_url.rstrip("/")
        if self.is_mainnet:
            return "https://horizon.stellar.org"
        return "https://horizon-testnet.stellar.org"

    @property
    def session_cookie_secure(self) -> bool:
        """Only mark the session cookie secure in production deployments."""
        return self.environment.strip().lower() == "production"

    @property
    def challenge_data_name(self) -> str:
        """Return the ManageData key that scopes a challenge to this server."""
        return f"{self.home_domain} auth"

    @property
    def callback_url(self) -> str:
        """Return the absolute URL external signers post signed envelopes to."""
        return f"{self.public_base_url.rstrip('/')}/api/v1/auth/callback"


settings = Settings()  # type: ignore[call-arg]
