from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AYURSUTRA_", env_file=".env", extra="ignore")

    api_base_url: str = "http://localhost:8000/api"
    # Survives restarts; holds the token and account snapshot.
    storage_path: Path = Path.home() / ".ayursutra" / "session.json"
    request_timeout: float = 10.0
