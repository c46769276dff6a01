from pydantic import ConfigDict, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./control_center.db"

    # Bot token encryption. 64 hex chars, 44 base64 chars, or a passphrase.
    encryption_key: str | None = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" | "json"

    # Limits
    max_commands_per_bot: int = 100

    # Rate Limiting
    rate_limit_writes: str = "20/minute"
    rate_limit_reads: str = "120/minute"

    # CORS
    cors_origins: list[str] | str = ["http://localhost:3000", "http://127.0.0.1:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v


settings = Settings()
