from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application settings managed by Pydantic.
    Reads from environment variables and .env file.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # App
    DEBUG: bool = Field(default=False, description="Debug mode")
    HOST: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    PORT: int = Field(default=3000, description="Bind port for uvicorn")
    FRONTEND_URL: str = Field(default="http://localhost:5000", description="Allowed CORS origin")
    LOG_FILE: str = Field(default="app.log", description="Log file path, empty disables file logging")

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./database/velox_subscribers.db",
        description="SQLite or PostgreSQL Database URL"
    )

    # API
    ADMIN_API_KEY: str = Field(default="", description="Shared key for admin endpoints, empty disables the check")
    MAX_BODY_BYTES: int = Field(default=10 * 1024, description="Maximum accepted request body size")
    TOKEN_MAX_ATTEMPTS: int = Field(default=3, ge=1, description="Inserts attempted before giving up on token collisions")

settings = Settings()
