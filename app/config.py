from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.sms_gateway import TwilioConfig


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Follows 12-factor app configuration principles.
    """

    # Pydantic v2 settings config
    # env_file is only used as fallback, env vars take precedence
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Database Configuration - required
    DATABASE_URL: str

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Session tokens - required
    SESSION_SECRET: str
    SESSION_TTL_SECONDS: int = 86400

    # Twilio - blank values leave the SMS gateway unconfigured
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_FROM_NUMBER: str = ""

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_FROM_NUMBER)

    def twilio_config(self) -> TwilioConfig:
        """Build the gateway configuration struct handed to the SMS client at startup."""
        return TwilioConfig(
            account_sid=self.TWILIO_ACCOUNT_SID,
            auth_token=self.TWILIO_AUTH_TOKEN,
            from_number=self.TWILIO_FROM_NUMBER,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every request.
    """
    return Settings()


# Global settings instance
settings = get_settings()
