from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from starlette.requests import Request


class Settings(BaseSettings):
    app_name: str = "One Base API"
    app_env: str = "local"
    app_version: str = "0.1.0"
    api_port: int = 3001
    api_prefix: str = "/api/v1"
    database_url: str = "sqlite+pysqlite:///./data/onebase.db"
    database_echo: bool = False
    cors_origins: list[str] = ["http://localhost:5173"]
    session_cookie_name: str = "session_token"
    session_ttl_days: int = 30
    session_cookie_secure: bool = False
    bcrypt_rounds: int = 10
    default_currency: str = "EUR"
    invoice_number_max_attempts: int = 3
    metrics_enabled: bool = False
    otel_enabled: bool = False
    otel_service_name: str = "onebase-api"
    otel_exporter_otlp_endpoint: str | None = None
    seed_admin_email: str = "admin@demo.com"
    seed_admin_password: str = "admin123"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings
