from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Service
    host: str = "127.0.0.1"
    port: int = 5000
    log_level: str = "INFO"
    mongodb_uri: str = ""
    mongodb_database: str = "taskboard"
    data_file: Path = Path("taskboard.json")
    jwt_secret: str = "change-me"
    access_token_minutes: int = 15
    refresh_token_days: int = 7
    google_client_id: str = ""
    client_secret_file: Path = Path("client_secret.json")

    # Client
    api_url: str = "http://127.0.0.1:5000"
    state_dir: Path = Path.home() / ".taskboard"
    request_timeout: float = 10.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
