# app/core/config.py
from pydantic_settings import BaseSettings
from pydantic import model_validator
from pydantic_settings import SettingsConfigDict
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "Fallah Smart Phone Auth API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True

    # Database Settings
    DATABASE_URL: str = "sqlite:///./fallah_smart.db"

    # Token signing (no defaults: startup fails when these are missing)
    JWT_SECRET: str
    JWT_REFRESH_SECRET: str
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_EXPIRES_MINUTES: int = 24 * 60
    JWT_REFRESH_EXPIRES_DAYS: int = 7
    JWT_SECRET_MIN_LENGTH: int = 16

    # Verification codes
    VERIFICATION_CODE_TTL_SECONDS: int = 300
    MAX_VERIFICATION_ATTEMPTS: int = 5  # 0 disables the cap
    VERIFICATION_STORE_BACKEND: str = "memory"  # memory | redis
    VERIFICATION_SWEEP_INTERVAL_SECONDS: int = 60  # 0 disables the sweep
    REDIS_URL: Optional[str] = None

    # Send-code throttling per phone number
    SEND_CODE_MAX_REQUESTS: int = 5
    SEND_CODE_WINDOW_SECONDS: int = 3600

    # Twilio Settings
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""
    TWILIO_TIMEOUT_SECONDS: int = 15

    # Development-only switches, both off unless set explicitly
    EXPOSE_VERIFICATION_CODE: bool = False
    SMS_FAILURE_IS_SUCCESS: bool = False

    # CORS Settings
    ALLOWED_ORIGINS: str = "*"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @model_validator(mode="after")
    def check_signing_secrets(self):
        for name in ("JWT_SECRET", "JWT_REFRESH_SECRET"):
            value = getattr(self, name)
            if not value or len(value) < self.JWT_SECRET_MIN_LENGTH:
                raise ValueError(f"{name} must be set to at least {self.JWT_SECRET_MIN_LENGTH} characters")
        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        if self.VERIFICATION_STORE_BACKEND not in ("memory", "redis"):
            raise ValueError("VERIFICATION_STORE_BACKEND must be 'memory' or 'redis'")
        if self.VERIFICATION_STORE_BACKEND == "redis" and not self.REDIS_URL:
            raise ValueError("REDIS_URL is required when VERIFICATION_STORE_BACKEND is 'redis'")
        return self

    # Helper methods for list envs
    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_PHONE_NUMBER)

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings: Settings = get_settings()
