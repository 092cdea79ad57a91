from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()

class Settings(BaseSettings):
    PROJECT_NAME: str = "SoroFinance"
    # Application settings
    PORT: int = 3000
    HOST: str = "127.0.0.1"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | production | test
    CORS_ORIGINS: str = "*"

    # SQLAlchemy database URL
    DATABASE_URL: str = "sqlite:///./sorofinance.db"

    # Login configuration
    JWT_SECRET: str | None = None
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRY: str | None = None  # e.g. "1h"
    JWT_REFRESH_TOKEN_EXPIRY: str | None = None  # e.g. "7d"
    NONCE_NUM_BYTES: int = 15
    NONCE_EXPIRY_SECONDS: int = 300 # 5 minutes
    CLEAR_NONCE_ON_CONNECT: bool = True
    ROTATE_REFRESH_TOKEN: bool = False

    # Redis settings
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_SSL: bool = False
    REDIS_RECHECK_INTERVAL: int = 30 * 60  # 30 minutes in seconds

    # Rate limit settings
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    STRICT_RATE_LIMIT: int = 10
    STANDARD_RATE_LIMIT: int = 30
    TRUST_PROXY_HEADERS: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str | None = None

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

# Instantiate the settings
settings = Settings()
