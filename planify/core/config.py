"""
Runtime settings for the accounts service, read from the environment (and
an optional ``.env`` file) through pydantic-settings.
"""

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "your-super-secret-jwt-key-change-in-production"
DEFAULT_JWT_REFRESH_SECRET = "your-refresh-secret-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Planify API"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PORT: int = 5000

    # Tokens
    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_EXPIRES_MINUTES: int = 60 * 24
    JWT_REFRESH_SECRET: str = DEFAULT_JWT_REFRESH_SECRET
    JWT_REFRESH_EXPIRES_MINUTES: int = 60 * 24 * 7
    JWT_ALGORITHM: str = "HS256"

    # Password hashing
    BCRYPT_ROUNDS: int = 12

    # Authorization (comma separated role names)
    ADMIN_ROLES: str = "admin"

    @property
    def admin_roles(self) -> frozenset[str]:
        return frozenset(r.strip() for r in self.ADMIN_ROLES.split(",") if r.strip())

    # Database
    DATABASE_URL: str | None = None  # Optional: Use this if set (e.g., sqlite:///./data/planify.db)
    POSTGRES_SERVER: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str | None = None
    POSTGRES_PASSWORD: str | None = None
    POSTGRES_DB: str | None = None
    DB_TIMEOUT_SECONDS: float = 5.0

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Get database URI - supports both SQLite and PostgreSQL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if self.POSTGRES_SERVER and self.POSTGRES_USER and self.POSTGRES_PASSWORD and self.POSTGRES_DB:
            return (
                f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )

        # Default to SQLite for local dev if nothing is configured
        return "sqlite:///./data/planify.db"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    # CORS
    CLIENT_URL: str = "http://localhost:3000"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # First admin (created on startup when both values are set)
    FIRST_SUPERUSER_EMAIL: str | None = None
    FIRST_SUPERUSER_PASSWORD: str | None = None

    @field_validator("BCRYPT_ROUNDS", mode="after")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        """Bcrypt accepts cost factors between 4 and 31."""
        if not 4 <= v <= 31:
            raise ValueError(f"BCRYPT_ROUNDS must be between 4 and 31, got {v}")
        return v

    @field_validator("FIRST_SUPERUSER_PASSWORD", mode="after")
    @classmethod
    def validate_superuser_password(cls, v: str | None) -> str | None:
        """bcrypt only looks at the first 72 bytes of a password."""
        if v and len(v.encode("utf-8")) > 72:
            raise ValueError("FIRST_SUPERUSER_PASSWORD cannot exceed 72 bytes")
        return v

    @model_validator(mode="after")
    def require_production_secrets(self) -> "Settings":
        """Refuse to start a production deployment on development secrets."""
        if not self.is_production:
            return self

        for name, default in (
            ("JWT_SECRET", DEFAULT_JWT_SECRET),
            ("JWT_REFRESH_SECRET", DEFAULT_JWT_REFRESH_SECRET),
        ):
            value = getattr(self, name)
            if not value or value == default:
                raise ValueError(f"{name} must be set in production")

        if self.JWT_SECRET == self.JWT_REFRESH_SECRET:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        return self


settings = Settings()
