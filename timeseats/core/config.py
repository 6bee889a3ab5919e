"""
TimesEats — Configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "timeseats"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # ── Storage ──────────────────────────────────────────────
    STORAGE_BACKEND: str = "postgres"     # "postgres" | "memory"

    # ── PostgreSQL ────────────────────────────────────────────
    POSTGRES_HOST: str = "timeseats-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "timeseats"
    POSTGRES_USER: str = "timeseats"
    POSTGRES_PASSWORD: str = "timeseats"
    DATABASE_URL: str | None = None       # full override, e.g. for tests
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    IDEMPOTENCY_KEY_TTL_SECONDS: int = 86400
    IDEMPOTENCY_PENDING_TTL_SECONDS: int = 60   # claim held while the first request runs

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
