"""Configuration for the weLore node."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SCHEMA_PATH = Path(__file__).parent / "assets" / "welore_openapi.yaml"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    service_name: str = Field(default="welore-node")

    welore_api_origin: str = Field(default="https://api-weafinity.madfenix.com")
    welore_schema_path: Optional[str] = Field(default=None)
    welore_http_timeout_seconds: float = Field(default=30)
    welore_verify_ssl: bool = Field(default=True)

    welore_log_level: str = Field(default="INFO")

    def schema_path(self) -> Path:
        if not self.welore_schema_path:
            return DEFAULT_SCHEMA_PATH
        return Path(self.welore_schema_path)

    def api_origin(self) -> str:
        return self.welore_api_origin.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
