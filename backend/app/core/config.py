"""
Configuración centralizada de la aplicación
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "Eco Bottle API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Storefront API: catalog, order intake and fulfillment"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 4000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = ""
    DB_CONNECT_RETRIES: int = 3

    # Cache (disabled when REDIS_URL is empty)
    REDIS_URL: Optional[str] = None
    CACHE_KEY_PREFIX: str = "cache"
    PRODUCTS_CACHE_TTL: int = 30
    PRODUCT_CACHE_TTL: int = 60
    STATS_CACHE_TTL: int = 300

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,https://yourdomain.com" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000"

    # Auth
    JWT_SECRET: str = "your-secret-key-here"
    JWT_REFRESH_SECRET: str = "your-refresh-secret-here"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Rate limiting
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX: int = 1000
    AUTH_RATE_LIMIT_MAX: int = 1000

    # Load shedding (order intake admission control)
    LOAD_SHEDDING_THRESHOLD: float = 0.85
    LOAD_SHEDDING_SAMPLE_INTERVAL_SECONDS: float = 5.0
    LOAD_SHEDDING_RETRY_AFTER_SECONDS: int = 60
    MEMORY_LIMIT_MB: Optional[int] = None

    # Fulfillment
    FULFILLMENT_START_DELAY_SECONDS: float = 0.1
    FULFILLMENT_PROCESSING_DELAY_SECONDS: float = 2.0
    FULFILLMENT_COMPLETION_DELAY_SECONDS: float = 3.0
    FULFILLMENT_RECOVERY_ON_STARTUP: bool = True
    ESTIMATED_PROCESSING_TIME: str = "2-3 minutes"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_relaxed_environment(self) -> bool:
        """Development and test skip rate limiting and load shedding"""
        return self.ENVIRONMENT in ("development", "test")

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        import json
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
