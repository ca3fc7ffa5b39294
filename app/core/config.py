from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", case_sensitive=True)

    DATABASE_URL: str
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Upper bound (seconds) for any single store call
    STORE_TIMEOUT_SECONDS: float = 10.0
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Redis holds runner/draft sessions and last-good dashboard values
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_CACHE_TTL: int = 86400  # last-good dashboard values
    RUNNER_SESSION_TTL: int = 3600
    DRAFT_SESSION_TTL: int = 86400

    # Identity provider (Supabase-style HS256 access tokens)
    AUTH_JWT_SECRET: str
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: str = "authenticated"
    LOGIN_PATH: str = "/login"

    # Submission forwarding to Google Sheets
    GOOGLE_SERVICE_ACCOUNT_JSON: str = ""
    GOOGLE_SHEETS_RANGE: str = "Página1!A1"
    SHEET_TIMEZONE: str = "America/Sao_Paulo"
    FORWARD_SUBMISSIONS_INLINE: bool = True
    WEBHOOK_SECRET: str = ""

    # Public runner rate limiting
    RATE_LIMIT_ENABLED: bool = True
    PUBLIC_RATE_LIMIT: str = "60/minute"

    # CORS configuration (comma-separated origins)
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080"


settings = Settings()
