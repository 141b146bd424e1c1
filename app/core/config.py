"""Application configuration using pydantic-settings."""
import re
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = "local"
    app_name: str = "campus-resource-finder"
    app_url: str = Field("http://localhost:3000", validation_alias="APP_URL")
    database_url: str = Field(
        "sqlite:///./campus.db",
        validation_alias=AliasChoices("DATABASE_URL", "database_url"),
    )
    allowed_origins: str = "*"
    log_level: str = "INFO"

    # Sessions (JWT). Accept the NextAuth variable name used by older deployments.
    jwt_secret_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("JWT_SECRET", "NEXTAUTH_SECRET", "jwt_secret_key"),
    )
    jwt_algorithm: str = "HS256"
    jwt_expiry_days: int = Field(30, validation_alias="JWT_EXPIRY_DAYS")

    # Credentials
    bcrypt_rounds: int = Field(12, validation_alias="BCRYPT_ROUNDS")
    min_password_length: int = Field(8, validation_alias="MIN_PASSWORD_LENGTH")
    institutional_email_domains: str = Field(
        "uw.edu",
        validation_alias="INSTITUTIONAL_EMAIL_DOMAINS",
    )

    # Uploads
    upload_dir: str = Field("data/uploads", validation_alias="UPLOAD_DIR")
    upload_url_prefix: str = Field("/uploads", validation_alias="UPLOAD_URL_PREFIX")
    max_upload_bytes: int = Field(5 * 1024 * 1024, validation_alias="MAX_UPLOAD_BYTES")
    default_avatar_url: str = Field("/uploads/default.png", validation_alias="DEFAULT_AVATAR_URL")

    # Rate limiting (per client IP, per minute)
    rate_limit_per_minute: int = Field(60, validation_alias="RATE_LIMIT_PER_MINUTE")
    rate_limit_auth_per_minute: int = Field(10, validation_alias="RATE_LIMIT_AUTH_PER_MINUTE")

    # Email (notifications)
    email_mode: str = Field("file", validation_alias="EMAIL_MODE")  # "file" | "smtp"
    email_from: Optional[str] = Field(None, validation_alias="EMAIL_FROM")
    email_smtp_host: Optional[str] = Field(None, validation_alias="EMAIL_SMTP_HOST")
    email_smtp_port: Optional[int] = Field(None, validation_alias="EMAIL_SMTP_PORT")
    email_smtp_username: Optional[str] = Field(None, validation_alias="EMAIL_SMTP_USERNAME")
    email_smtp_password: Optional[str] = Field(None, validation_alias="EMAIL_SMTP_PASSWORD")
    email_smtp_use_tls: bool = Field(True, validation_alias="EMAIL_SMTP_USE_TLS")
    email_outbox_dir: str = Field("data/outbox", validation_alias="EMAIL_OUTBOX_DIR")

    @field_validator("database_url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Normalize DATABASE_URL to a driver SQLAlchemy can load."""
        if v.startswith("sqlite"):
            return v

        if v.startswith("postgres://"):
            v = v.replace("postgres://", "postgresql+psycopg://", 1)
        if v.startswith("postgresql://"):
            v = v.replace("postgresql://", "postgresql+psycopg://", 1)

        if not v.startswith("postgresql+psycopg://"):
            raise ValueError("DATABASE_URL must start with postgresql://, postgresql+psycopg://, or sqlite")

        # Managed Postgres providers require TLS
        if "sslmode=" not in v:
            separator = "&" if "?" in v else "?"
            v = f"{v}{separator}sslmode=require"
        elif "sslmode=require" not in v:
            v = re.sub(r"sslmode=[^&]+", "sslmode=require", v)
        return v

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < 10:
            raise ValueError("BCRYPT_ROUNDS must be at least 10")
        return v

    @field_validator("upload_url_prefix")
    @classmethod
    def normalize_upload_prefix(cls, v: str) -> str:
        v = "/" + v.strip().strip("/")
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        """Get allowed origins as a list."""
        if self.allowed_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def institutional_domains_list(self) -> list[str]:
        """Email domains accepted at signup, lower-cased, without a leading '@'."""
        return [
            d.strip().lower().lstrip("@")
            for d in self.institutional_email_domains.split(",")
            if d.strip()
        ]


settings = Settings()
