"""Application configuration."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = "sos-dispatch"
    debug: bool = False
    database_url: str = "sqlite:///./sos_dispatch.db"
    api_prefix: str = "/api"
    cors_origins: list[str] = ["http://localhost:3000"]

    # JWT
    jwt_secret: str = "change-me-in-production-use-openssl-rand-hex-32"
    jwt_algorithm: str = "HS256"
    volunteer_token_expire_minutes: int = 60
    admin_token_expire_minutes: int = 60 * 24

    # Admin account created at startup if missing
    bootstrap_admin_name: str = "Super Admin"
    bootstrap_admin_email: str = "admin@example.com"
    bootstrap_admin_password: str = "securepassword"

    # Completed / Cancelled threads stay open for chat unless disabled
    chat_on_closed_requests: bool = True


settings = Settings()
