from pydantic_settings import BaseSettings
from typing import List, Any
import json
from pathlib import Path


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


def parse_email_list(v: Any) -> List[str]:
    """Parse a comma-separated list of e-mail addresses (lower-cased)"""
    if isinstance(v, list):
        return [e.strip().lower() for e in v if e and e.strip()]
    if isinstance(v, str):
        return [e.strip().lower() for e in v.split(',') if e.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "우리노동조합"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # Public site URL, used as the base for notification deep links
    SITE_URL: str = "http://localhost:3000"

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./unionsite.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    RESET_TOKEN_EXPIRE_MINUTES: int = 60
    BCRYPT_ROUNDS: int = 12  # 4 for dev (fast), 12 for prod (secure)

    # Shared admin PIN for the admin gate
    ADMIN_PIN: str = "1229"
    # Accounts with these e-mails sign in with the admin role
    ADMIN_EMAILS_STR: str = ""

    @property
    def ADMIN_EMAILS(self) -> List[str]:
        return parse_email_list(self.ADMIN_EMAILS_STR)

    # ==========================================
    # Push notifications
    # ==========================================
    PUSH_TITLE: str = "우리노동조합"
    PUSH_QUIET_START: str = "22:00"
    PUSH_QUIET_END: str = "09:00"
    PUSH_TIMEZONE: str = "Asia/Seoul"
    VAPID_PUBLIC_KEY: str = ""

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    LOGIN_RATE_LIMIT: str = "5/minute"
    SIGNUP_RATE_LIMIT: str = "3/minute"

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def is_admin_email(self, email: str) -> bool:
        return bool(email) and email.strip().lower() in self.ADMIN_EMAILS

    def get_site_url(self, path: str) -> str:
        """Absolute URL for a site-relative path such as '/#tab=free'"""
        return self.SITE_URL.rstrip("/") + path


# Create settings instance
settings = Settings()
