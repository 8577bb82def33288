"""Process settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


@dataclass(slots=True)
class Settings:
    # Telegram host
    api_id: int = 0
    api_hash: str = ""
    bot_token: str = ""
    chat_id: int = 0  # 0 watches every chat the bot is in
    # notification config document
    config_path: str = "config.yml"
    config_key: str = "lonelyserver"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    log_level: str = "INFO"

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def load_settings() -> Settings:
    """Read the environment once per process."""

    env = os.environ
    return Settings(
        api_id=int(env.get("TELEGRAM_API_ID") or 0),
        api_hash=env.get("TELEGRAM_API_HASH", ""),
        bot_token=env.get("TELEGRAM_BOT_TOKEN", ""),
        chat_id=int(env.get("LONELY_CHAT_ID") or 0),
        config_path=env.get("LONELY_CONFIG_PATH", "config.yml"),
        config_key=env.get("LONELY_CONFIG_KEY", "lonelyserver"),
        supabase_url=env.get("SUPABASE_URL"),
        supabase_service_role_key=env.get("SUPABASE_SERVICE_ROLE_KEY"),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
