from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Origin the client pages are served from; /ws lives on the same host.
    APP_ORIGIN: str = "http://localhost:5000"
    WS_PATH: str = "/ws"

    WS_HEARTBEAT_SECONDS: float | None = None
    WS_CONNECT_TIMEOUT: float = 10.0

    WS_RECONNECT: bool = False
    WS_RECONNECT_BASE_DELAY: float = 0.5
    WS_RECONNECT_MAX_DELAY: float = 30.0
    WS_RECONNECT_MAX_ATTEMPTS: int | None = None

    HTTP_TIMEOUT: float = 10.0
    QUERY_STALE_SECONDS: float | None = None

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "realtime.fanout"
    REDIS_FANOUT_ENABLED: bool = True

    CORS_ORIGINS: list[str] = ["*"]

    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
