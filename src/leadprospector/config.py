from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    groq_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"     # drafting (JSON mode)
    groq_search_model: str = "groq/compound"        # built-in web search
    data_dir: str = "data"

    # Remote profile document store; local cache only when unset
    profile_api_url: Optional[str] = None
    profile_api_key: Optional[str] = None

    # Lead discovery / infinity mode
    lead_batch_size: int = 15
    cooldown_seconds: float = Field(default=4.0, gt=0)
    log_buffer_size: int = Field(default=10, ge=1)
    exclude_limit: int = Field(default=50, ge=0)
    unclassified_lines: Literal["lenient", "strict"] = "lenient"

    log_level: str = "INFO"
    log_file: Optional[str] = None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
