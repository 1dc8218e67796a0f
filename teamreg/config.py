"""
Configuration loader

Settings come from (highest priority first) constructor arguments, the
environment, a .env file, and config/app.yaml. Every field is optional:
without MONGODB_URI registrations live in memory, without SMTP credentials
mail goes to a disposable Ethereal inbox, and without GEMINI_API_KEY the
chat widget answers from a script.
"""
import logging
from typing import Optional, Tuple, Type

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


RECAPTCHA_TEST_SECRET = "6LeIxAcTAAAAAGG-vFI1TnRWxMZNFuojJ4WifJWe"

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables, .env or config/app.yaml"""

    # Server
    port: int = Field(5000, description="Listening port")
    environment: str = Field("production", description="development exposes error details")
    log_level: str = Field("INFO", description="DEBUG, INFO, WARNING, ERROR, CRITICAL")
    frontend_url: str = Field("http://localhost:3000", description="Allowed CORS origin")

    # Document store
    mongodb_uri: Optional[str] = Field(None, description="MongoDB URI; unset keeps registrations in memory")
    mongodb_database: str = "team-registration"

    # Bot verification
    recaptcha_secret_key: Optional[str] = None
    recaptcha_verify_url: str = "https://www.google.com/recaptcha/api/siteverify"

    # Mail relay
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_pass: Optional[str] = None
    smtp_from: str = "noreply@teamreg.com"

    # Generative chat
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"

    # Uploads
    uploads_dir: str = "uploads"
    max_upload_bytes: int = Field(10 * 1024 * 1024, gt=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="config/app.yaml",
        extra="ignore",
        case_sensitive=False,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_user and self.smtp_pass)


def load_settings(**overrides) -> Settings:
    """
    Load and validate application settings

    Args:
        **overrides: Field values taking precedence over every other source

    Returns:
        Settings object with a normalized log level
    """
    settings = Settings(**overrides)
    log_level_upper = settings.log_level.upper()
    if log_level_upper not in LOG_LEVELS:
        logging.warning(f"Invalid LOG_LEVEL '{settings.log_level}'. Using INFO.")
        settings.log_level = "INFO"
    else:
        settings.log_level = log_level_upper
    return settings
