"""
Configuration management for the matchmaking service.
Loads settings from environment variables.
"""
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database configuration (profile / subscription collaborators)
    MYSQL_HOST: str = Field(default="localhost", description="MySQL host")
    MYSQL_PORT: int = Field(default=3306, description="MySQL port")
    MYSQL_USER: str = Field(default="pairing_user", description="MySQL username")
    MYSQL_PASSWORD: str = Field(default="pairing_pass", description="MySQL password")
    MYSQL_DATABASE: str = Field(default="pairing", description="MySQL database name")

    # Database connection pool configuration
    DB_POOL_SIZE: int = Field(default=20, description="Database connection pool size")
    DB_MAX_OVERFLOW: int = Field(default=10, description="Maximum overflow connections for database pool")
    DB_ECHO: bool = Field(default=False, description="Log every SQL statement")

    # Redis configuration
    REDIS_HOST: str = Field(default="localhost", description="Redis host")
    REDIS_PORT: int = Field(default=6379, description="Redis port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str = Field(default="", description="Redis password (empty if not set)")
    REDIS_MAX_CONNECTIONS: int = Field(default=50, description="Maximum Redis connection pool size")

    # FastAPI configuration
    API_HOST: str = Field(default="0.0.0.0", description="FastAPI host")
    API_PORT: int = Field(default=8000, description="FastAPI port")
    API_SECRET_KEY: str = Field(default="your-secret-key", description="Secret key expected in the X-API-Key header")

    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")

    # Matchmaking configuration
    MATCHMAKING_BACKEND: str = Field(
        default="redis",
        description="Backend for the shared matchmaking store: 'redis' or 'memory'"
    )
    MATCHMAKING_NAMESPACE: str = Field(
        default="",
        description="Optional key prefix so several bots can keep separate pools in one Redis (empty = shared pool)"
    )
    PAIR_TTL_SECONDS: int = Field(
        default=86400,
        description="Lifetime of pair entries; backstop cleanup for pairs whose chat never ended cleanly"
    )
    RECENT_PARTNER_TTL_SECONDS: int = Field(
        default=1200,
        description="Cooldown window during which two former partners cannot be matched again"
    )
    RECENT_PARTNERS_MAX: int = Field(
        default=50,
        description="Maximum number of recent partners remembered per participant"
    )
    MATCH_MAX_ATTEMPTS: int = Field(
        default=50,
        description="Maximum claim attempts per tier in a single search"
    )

    # Matchmaking worker configuration
    MATCHMAKING_WORKER_INTERVAL: float = Field(default=2, description="Matchmaking worker sweep interval in seconds")
    MATCHMAKING_WORKER_BATCH_SIZE: int = Field(default=50, description="Maximum number of matches made per worker cycle")

    # VIP status cache
    VIP_CACHE_ENABLED: bool = Field(
        default=True,
        description="Cache active VIP status in Redis until the subscription expires"
    )

    @field_validator('MATCHMAKING_BACKEND', mode='before')
    @classmethod
    def normalize_backend(cls, v):
        """Accept any casing and fall back to redis for unknown values."""
        value = str(v or "").strip().lower()
        if value not in ("redis", "memory"):
            return "redis"
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def mysql_url(self) -> str:
        """Build MySQL connection URL."""
        return f"mysql+aiomysql://{self.MYSQL_USER}:{self.MYSQL_PASSWORD}@{self.MYSQL_HOST}:{self.MYSQL_PORT}/{self.MYSQL_DATABASE}"

    @property
    def redis_url(self) -> str:
        """Build Redis connection URL."""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


# Global settings instance
settings = Settings()
