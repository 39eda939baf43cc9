import uuid

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "postgresql+psycopg://app:app@db:5432/app"
    redis_url: str = "redis://redis:6379/0"

    jwt_secret: str = "dev-secret-change-me"
    jwt_issuer: str = "flux-api"
    jwt_audience: str = "flux-api"
    jwt_expires_minutes: int = 60 * 24 * 7

    # sso gateway posts verified profiles here; unset means dev-only
    sso_gateway_secret: str | None = None

    # reassign created_by on user deletion instead of leaving dangling ids
    ghost_user_id: uuid.UUID | None = None

    # rate limiting (redis)
    rate_limit_enabled: bool = True
    rate_limit_sso_callback_per_min: int = 30
    rate_limit_join_per_min: int = 20

settings = Settings()
