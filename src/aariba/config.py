"""Runtime settings, read from ``AARIBA_*`` environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AARIBA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="warning")
    json_logs: bool = Field(default=False)
    seed: int | None = Field(default=None)  # seeds rand() in the CLI
