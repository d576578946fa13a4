from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "AyurSutra"
    env: str = "dev"
    api_prefix: str = "/api"

    database_url: str = "sqlite:///./ayursutra.db"
    database_busy_timeout_sec: int = 15

    jwt_secret: str = "CHANGE_ME"
    jwt_algorithm: str = "HS256"
    access_token_ttl_days: int = 7
    remember_me_ttl_days: int = 30

    # pbkdf2_sha256 iterations; 600000 is the OWASP floor for PBKDF2-HMAC-SHA256.
    password_hash_rounds: int = 600_000

    auth_rate_limit_window_ms: int = 15 * 60 * 1000
    auth_rate_limit_max_attempts: int = 5

    frontend_origin: str = "http://localhost:3000"

    log_level: str = "INFO"
    log_json: bool = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
