from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List
import os


class Settings(BaseSettings):
    """Global app settings loaded from environment.
    - Keep defaults light for dev.
    - Override via .env or real env vars.
    """

    APP_NAME: str = "Auth Starter"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True

    MONGODB_URI: str = "mongodb://localhost:27017/auth_starter"

    # JWT settings
    JWT_SECRET: str = "dev-secret-change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Raw CORS string from env (comma-separated); parsed via cors_origins property
    CORS_ORIGINS: str | None = None

    # Used to build password reset links sent by email
    FRONTEND_URL: str = "http://localhost:3000"

    # OTP lifecycle and throttling
    OTP_EXPIRY_MINUTES: int = 10
    OTP_DAILY_LIMIT: int = 3
    OTP_MIN_INTERVAL_MINUTES: int = 5

    # SMS provider config (dummy | termii)
    SMS_PROVIDER: str = "dummy"
    SMS_COUNTRY_CODE: str = "+234"
    # Overrides the built-in pattern for SMS_COUNTRY_CODE when set
    SMS_PHONE_REGEX: str | None = None
    SMS_TIMEOUT_SECONDS: float = 10.0
    TERMII_API_KEY: str | None = None
    TERMII_SENDER_ID: str = "AppNotify"
    TERMII_BASE_URL: str = "https://api.ng.termii.com/api/sms/send"

    # SMTP mail config. SMTP_ENABLED: auto | true | false
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "noreply@auth-starter.local"
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 30.0
    SMTP_ENABLED: str = "auto"

    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def cors_origins(self) -> List[str]:
        """Return CORS origins as a list, parsing comma-separated env string."""
        raw = self.CORS_ORIGINS or os.getenv("CORS_ORIGINS", "") or ""
        return [o.strip() for o in raw.split(",") if o.strip()]

    @property
    def smtp_enabled(self) -> bool:
        """True when SMTP should actually send emails.

        "auto" sends only when host and credentials are configured,
        "true" always sends, "false" only logs the message.
        """
        mode = self.SMTP_ENABLED.lower()
        if mode == "false":
            return False
        if mode == "true":
            return True
        return bool(self.SMTP_HOST and self.SMTP_USERNAME and self.SMTP_PASSWORD)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
