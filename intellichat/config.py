"""Server configuration using pydantic-settings."""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


class Settings(BaseSettings):
    """Server settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Server
    app_name: str = "IntelliChat"
    app_id: str = "intellichat"  # Tags our checkout sessions on the shared Stripe account
    debug: bool = False
    log_level: str = "INFO"
    secret_key: str  # JWT signing key
    port: int = 8000

    # Database (libsql://, https:// -> Turso HTTP API; file: -> local SQLite)
    database_url: str = "file:intellichat.db"
    database_auth_token: str = ""

    # Generation provider (Gemini via the OpenAI-compatible endpoint)
    gemini_api_key: str = ""
    generation_base_url: str = GEMINI_OPENAI_BASE_URL
    text_model: str = "gemini-2.5-flash"
    gateway_timeout_seconds: float = 60.0

    # ImageKit (image generation + hosting)
    imagekit_public_key: str = ""
    imagekit_private_key: str = ""
    imagekit_url_endpoint: str = ""
    image_folder: str = "intellichat"

    # Stripe (billing)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    checkout_expiry_minutes: int = 30

    # Credits
    signup_credits: int = 20  # Starting balance for new accounts
    persist_before_reply: bool = False  # Commit the exchange before answering

    # CORS
    allowed_origins: list[str] = ["*"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
