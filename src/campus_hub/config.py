import os
from dataclasses import dataclass, field
from functools import lru_cache

import redis
from dotenv import load_dotenv

load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    environment: str = os.getenv("ENVIRONMENT", "development")

    # Store
    store_backend: str = os.getenv("STORE_BACKEND", "redis")
    store_prefix: str = os.getenv("STORE_PREFIX", "campus")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    token_expiry_hours: int = int(os.getenv("TOKEN_EXPIRY_HOURS", "24"))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("PORT", "10000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"
    cors_origins: tuple[str, ...] = field(
        default_factory=lambda: _split_csv(
            os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,https://smart-campus-alpha.vercel.app",
            )
        )
    )

    # Notifications
    notification_interval_seconds: int = int(os.getenv("NOTIFICATION_INTERVAL_SECONDS", "120"))
    reminder_lead_minutes: int = int(os.getenv("REMINDER_LEAD_MINUTES", "30"))
    campus_timezone: str = os.getenv("CAMPUS_TIMEZONE", "Asia/Kolkata")

    # Client
    graphql_http_url: str = os.getenv("GRAPHQL_HTTP_URL", "http://localhost:5000/graphql")
    graphql_ws_url: str = os.getenv("GRAPHQL_WS_URL", "ws://localhost:5000/graphql")
    ws_retry_attempts: int = int(os.getenv("WS_RETRY_ATTEMPTS", "10"))
    auth_token_key: str = os.getenv("AUTH_TOKEN_KEY", "ldce_auth_token")
    token_storage_path: str = os.getenv(
        "TOKEN_STORAGE_PATH", os.path.join(os.path.expanduser("~"), ".campus_hub", "storage.json")
    )

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "false").lower() == "true"

    @property
    def is_production(self) -> bool:
        """Check if the service runs with production settings.

        Returns:
            True if ENVIRONMENT is "production", False otherwise
        """
        return self.environment.lower() == "production"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.store_backend not in ("redis", "memory"):
            raise ValueError(f"STORE_BACKEND must be 'redis' or 'memory', got {self.store_backend!r}")

        if self.is_production and not self.jwt_secret:
            raise ValueError("JWT_SECRET must be set when ENVIRONMENT=production")

        if self.notification_interval_seconds <= 0:
            raise ValueError("NOTIFICATION_INTERVAL_SECONDS must be positive")

        if self.ws_retry_attempts < 0:
            raise ValueError("WS_RETRY_ATTEMPTS must not be negative")

        if not 4 <= self.bcrypt_rounds <= 31:
            raise ValueError(f"BCRYPT_ROUNDS must be between 4 and 31, got {self.bcrypt_rounds}")

    @property
    def signing_secret(self) -> str:
        """Secret used to sign and verify bearer tokens."""
        # Development fallback only; production is rejected above without a secret.
        return self.jwt_secret or "campus-hub-development-secret"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def get_redis_client(settings: Settings | None = None) -> redis.Redis:
    """Create a Redis client instance."""
    settings = settings or get_settings()
    return redis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
