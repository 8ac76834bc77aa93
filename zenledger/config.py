from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Storage backend: "local" (direct database) or "remote" (ZenLedger API)
    STORAGE_BACKEND: str = "local"

    # Database (local backend and the API server)
    DATABASE_URL: str = "sqlite+aiosqlite:///./zenledger.db"

    # Remote backend
    API_BASE_URL: str = "http://localhost:8000"
    REMOTE_TIMEOUT_SECONDS: float = 30.0
    REMOTE_MAX_RETRIES: int = 2

    # Redis (optional, rate-limit storage)
    REDIS_URL: str | None = None

    # Auth / JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    SESSION_TTL_HOURS: int = 24

    # Device-local state (current session, onboarding flags)
    STATE_DIR: str | None = None
    STATE_NAMESPACE: str = "v16"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # App
    APP_NAME: str = "ZenLedger API"
    API_V1_PREFIX: str = "/api/v1"
    DEBUG: bool = False


settings = Settings()
