"""Application configuration with environment variables."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"
    VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database (PostgreSQL in production, SQLite for local dev/tests)
    DATABASE_URL: str = "sqlite:///./carecircle.db"

    # Session Token (issued by the identity service, supports key rotation)
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""  # Set during rotation, clear after
    JWT_EXPIRES_HOURS: int = 4

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Internal scheduled endpoints (retention sweeps)
    INTERNAL_SECRET: str = ""

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Share links
    SHARE_LINK_TOKEN_BYTES: int = 24
    SHARE_LINK_DEFAULT_TTL_HOURS: int = 24
    SHARE_LINK_MAX_TTL_HOURS: int = 720
    SHARE_LINK_RETENTION_DAYS: int = 30

    # Fixed-window rate limits (requests per window)
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_SHARE_RESOLVE: int = 30
    RATE_LIMIT_UPLOAD: int = 10  # Enforced by the attachment upload handler via check_endpoint
    RATE_LIMIT_RETENTION_MINUTES: int = 5

    # Coarse per-IP API throttle (slowapi, requests per minute, 0 disables)
    RATE_LIMIT_API: int = 120
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Notification outbox
    NOTIFICATION_RETENTION_DAYS: int = 30
    OUTBOX_CLAIM_BATCH_SIZE: int = 50

    @field_validator("SHARE_LINK_TOKEN_BYTES")
    @classmethod
    def enforce_token_entropy(cls, v: int) -> int:
        """Share link tokens need at least 18 bytes of entropy."""
        if v < 18:
            raise ValueError("SHARE_LINK_TOKEN_BYTES must be at least 18")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Returns list of valid secrets (current first, then previous if set)."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")


settings = Settings()
