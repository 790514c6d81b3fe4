from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings"""

    # Application basic settings
    APP_NAME: str = "Auction Bid History Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # PostgreSQL database settings
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "127.0.0.1"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "auction-marketplace"
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 30

    # Redis settings (user profile cache)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str | None = None
    USER_CACHE_TTL_SECONDS: int = 3600

    # JWT settings (tokens are issued by the auth service, only decoded here)
    SECRET_KEY: str = "your-secret-key-change-this-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # CORS settings
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Bid history limits
    DEFAULT_HISTORY_LIMIT: int = 100
    MAX_HISTORY_LIMIT: int = 500
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 100
    USER_RESOLVE_CONCURRENCY: int = 10

    # Analytics thresholds. Amounts are in the auction's stored currency unit,
    # so the volatility thresholds only make sense for one currency scale.
    STATS_TREND_THRESHOLD_PERCENT: float = 5.0
    TREND_THRESHOLD_PERCENT: float = 10.0
    TREND_SAMPLE_SIZE: int = 200
    VOLATILITY_MEDIUM_THRESHOLD: float = 20.0
    VOLATILITY_HIGH_THRESHOLD: float = 50.0

    # Cross-auction user history scan bounds
    USER_HISTORY_DEFAULT_LIMIT: int = 50
    USER_HISTORY_MAX_AUCTIONS: int = 500
    USER_HISTORY_TIME_BUDGET_SECONDS: float = 5.0

    # Avatar pool
    AVATAR_POOL_SIZE: int = 70
    AVATAR_URL_TEMPLATE: str = "https://i.pravatar.cc/150?img={index}"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    @property
    def DATABASE_URL(self) -> str:
        """Generate PostgreSQL connection string"""
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def REDIS_URL(self) -> str:
        """Generate Redis connection string"""
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


settings = Settings()
