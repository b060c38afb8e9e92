from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # "local" keeps everything in the key-value store, "remote" syncs with Supabase
    STORE_MODE: Literal["local", "remote"] = "local"

    # Supabase settings
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    SUPABASE_REALTIME_URL: str | None = None

    # Local durable storage (Redis)
    LOCAL_STORAGE_URL: str = "redis://localhost:6379/0"

    # Sync settings
    REFRESH_DEBOUNCE_MS: int = 1000
    UPCOMING_ALERT_WINDOW_DAYS: int = 10
    HTTP_TIMEOUT_SECONDS: float = 15.0

    # OpenAI settings
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_MAX_TOKENS: int = 600
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_TIMEOUT_SECONDS: float = 30.0

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_ANON_KEY)

    def realtime_url(self) -> str:
        """
        Websocket endpoint of the Supabase Realtime service, e.g.
        https://abc.supabase.co -> wss://abc.supabase.co/realtime/v1/websocket
        """
        if self.SUPABASE_REALTIME_URL:
            return self.SUPABASE_REALTIME_URL
        if not self.SUPABASE_URL:
            raise RuntimeError("SUPABASE_URL is not configured")
        parsed = urlparse(self.SUPABASE_URL.rstrip("/"))
        scheme = "wss" if parsed.scheme == "https" else "ws"
        return f"{scheme}://{parsed.netloc}/realtime/v1/websocket"

    def refresh_debounce_seconds(self) -> float:
        return self.REFRESH_DEBOUNCE_MS / 1000.0


settings = Settings()
