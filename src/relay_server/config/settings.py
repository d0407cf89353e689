"""Settings model — pydantic-settings with env var support."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

ENV_PREFIX = "RELAY_"


class Settings(BaseSettings):
    """Server settings.

    Use ``ConfigLoader.load_settings()`` to build with YAML + env var layering.
    Direct construction (e.g. in tests) skips YAML loading.
    """

    storage_dir: str = "storage"
    queue_backend: Literal["file", "sql"] = "file"
    database_url: str = "sqlite+aiosqlite:///relay.db"

    telegram_bot_token: str = ""
    telegram_api_url: str = "https://api.telegram.org"
    telegram_polling: bool = False
    telegram_webhook_secret: str = ""
    operator_ids: Annotated[list[int], NoDecode] = []

    online_window_seconds: int = 60
    stale_after_seconds: int = 300
    sweep_interval_seconds: int = 60
    session_ttl_seconds: int = 90
    rate_limit_ms: int = 500
    message_cap: int = 500
    message_page_size: int = 20
    max_text_length: int = 1000

    model_config = {"env_prefix": ENV_PREFIX}

    @field_validator("operator_ids", mode="before")
    @classmethod
    def _split_operator_ids(cls, value: Any) -> Any:
        """Accept ``"1,2,3"`` from the environment as well as a YAML list."""
        if isinstance(value, str):
            return [int(part) for part in value.split(",") if part.strip()]
        if isinstance(value, int):
            return [value]
        return value
