from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    LOG_LEVEL: str = "INFO"

    WS_HEARTBEAT_SECONDS: int = 30

    # Upper bound for a single push to one live connection.
    DELIVERY_TIMEOUT_SECONDS: float = 2.0
    FANOUT_CONCURRENCY: int = 100

    REGISTRY_SHARDS: int = 16
    REGISTRY_MAX_CONNECTIONS: int = 10_000
    REGISTRY_MAX_CONNECTIONS_PER_USER: int = 10

    MESSAGE_MAX_LENGTH: int = 5000

    BANNED_USERS_KEY: str = "users:banned"

    QA_EVENTS_STREAM: str = "qa.events"
    QA_EVENTS_GROUP: str = "messaging-service"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
