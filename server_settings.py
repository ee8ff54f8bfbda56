# server_settings.py - Runtime configuration for the value mapper server
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_PATH = "data/data.json"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000


class Settings(BaseSettings):
    """Server configuration, auto-loaded from env vars and an optional .env file.

    Attributes:
        http_auth_username: HTTP Basic user name required on /search.
        http_auth_password: HTTP Basic password required on /search.
        data_path: JSON file holding the datasets.
        host: Interface uvicorn binds to.
        port: Port uvicorn listens on.
        log_level: Root logging level.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    http_auth_username: str = ""
    http_auth_password: str = ""
    data_path: str = DEFAULT_DATA_PATH
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    log_level: str = "INFO"

    @property
    def auth_enabled(self) -> bool:
        # Auth is opt-in: both secrets have to be configured
        return bool(self.http_auth_username) and bool(self.http_auth_password)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
