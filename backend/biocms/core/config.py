from pydantic_settings import BaseSettings
from typing import List, Any
import json


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "BioCMS"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./biocms.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False
    QUERY_TIMEOUT_SECONDS: float = 10.0

    # ==========================================
    # Redis
    # ==========================================
    REDIS_URL: str = ""
    REDIS_CACHE_DB: int = 1

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    JWT_COOKIE_NAME: str = "jwt"
    JWT_COOKIE_SECURE: bool = False
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    PASSWORD_RESET_EXPIRE_MINUTES: int = 10
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # ==========================================
    # Query Engine
    # ==========================================
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "async+memory://"
    RATE_LIMIT_API_PER_WINDOW: int = 1000
    RATE_LIMIT_API_WINDOW_SECONDS: int = 900  # 15 minutes
    RATE_LIMIT_AUTH_PER_WINDOW: int = 20
    RATE_LIMIT_AUTH_WINDOW_SECONDS: int = 900
    RATE_LIMIT_NEWSLETTER_PER_HOUR: int = 5
    RATE_LIMIT_CONTACT_PER_HOUR: int = 10
    RATE_LIMIT_INTERACTION_PER_MINUTE: int = 60

    # ==========================================
    # Response Cache
    # ==========================================
    CACHE_ENABLED: bool = True
    CACHE_BACKEND: str = "memory"  # "memory" or "redis"
    CACHE_DEFAULT_TTL: int = 300  # 5 minutes
    CACHE_SWEEP_INTERVAL_SECONDS: int = 60
    CACHE_MAX_ENTRIES: int = 1000  # memory backend only
    CACHE_KEY_PREFIX: str = "biocms:cache:"

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@biocms.local"
    EMAIL_FROM_NAME: str = "BioCMS"
    ADMIN_NOTIFICATION_EMAIL: str = ""

    # ==========================================
    # Frontend
    # ==========================================
    FRONTEND_URL: str = "http://localhost:3000"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Request Limits
    # ==========================================
    MAX_REQUEST_SIZE: int = 10485760  # 10MB

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def get_password_reset_url(self, token: str) -> str:
        """Frontend URL a user follows to reset their password"""
        return f"{self.FRONTEND_URL}/reset-password/{token}"

    def get_newsletter_verify_url(self, token: str) -> str:
        """Public URL that confirms a newsletter subscription"""
        return f"{self.FRONTEND_URL}/newsletter/verify/{token}"


# Create settings instance
settings = Settings()
