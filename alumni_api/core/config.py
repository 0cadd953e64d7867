from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, Field
from typing import List, Optional
from urllib.parse import urlparse


CONTENT_BACKENDS = ("supabase", "memory")
ATTACHMENT_BACKENDS = ("supabase", "local", "memory")


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Alumni Content Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Enable debug mode (set to false in production)")
    ENVIRONMENT: str = Field(default="production", description="Environment: development, staging, production")

    # Storage backends
    CONTENT_BACKEND: str = Field(default="supabase", description="Record store: supabase or memory")
    ATTACHMENT_BACKEND: str = Field(default="supabase", description="Blob store: supabase, local or memory")

    # Supabase
    SUPABASE_URL: Optional[str] = Field(default=None, description="Supabase project URL")
    SUPABASE_SERVICE_KEY: Optional[str] = Field(default=None, description="Supabase service role key")
    SUPABASE_STORAGE_BUCKET: str = "content-images"

    # Local attachment storage
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"

    # Attachments
    ALLOWED_ATTACHMENT_TYPES: List[str] = Field(default_factory=lambda: ["image/*"])
    MAX_ATTACHMENT_BYTES: int = Field(default=5 * 1024 * 1024, gt=0)

    # Storage calls
    STORAGE_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)
    STORAGE_WORKERS: int = Field(default=8, ge=1)

    # Pagination
    DEFAULT_PAGE_SIZE: int = Field(default=10, ge=1)
    MAX_PAGE_SIZE: int = Field(default=100, ge=1)

    # JWT
    JWT_SECRET_KEY: str = Field(..., min_length=32, description="JWT secret key (minimum 32 characters)")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # Server
    PORT: int = Field(default=8000, description="Server port")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator('CONTENT_BACKEND')
    @classmethod
    def validate_content_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in CONTENT_BACKENDS:
            raise ValueError(f"CONTENT_BACKEND must be one of: {', '.join(CONTENT_BACKENDS)}")
        return v

    @field_validator('ATTACHMENT_BACKEND')
    @classmethod
    def validate_attachment_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ATTACHMENT_BACKENDS:
            raise ValueError(f"ATTACHMENT_BACKEND must be one of: {', '.join(ATTACHMENT_BACKENDS)}")
        return v

    @field_validator('SUPABASE_URL')
    @classmethod
    def validate_supabase_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Supabase URL format."""
        if not v:
            return None
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("SUPABASE_URL must be a valid URL (e.g., https://xxxxx.supabase.co)")
        if parsed.scheme not in ['http', 'https']:
            raise ValueError("SUPABASE_URL must use http or https protocol")
        return v

    @field_validator('JWT_SECRET_KEY')
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Validate JWT secret key strength."""
        if not v or len(v) < 32:
            raise ValueError(
                "JWT_SECRET_KEY must be at least 32 characters long. "
                "Generate one using: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )
        return v

    @field_validator('ALLOWED_ATTACHMENT_TYPES')
    @classmethod
    def validate_attachment_types(cls, v: List[str]) -> List[str]:
        cleaned = [t.strip().lower() for t in v if t and t.strip()]
        if not cleaned:
            raise ValueError("ALLOWED_ATTACHMENT_TYPES must list at least one MIME type")
        for mime in cleaned:
            if "/" not in mime:
                raise ValueError(f"Invalid MIME type in ALLOWED_ATTACHMENT_TYPES: {mime}")
        return cleaned

    @field_validator('FRONTEND_URL')
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        """Validate frontend URL format."""
        if v:
            parsed = urlparse(v)
            if not parsed.scheme or not parsed.netloc:
                raise ValueError("FRONTEND_URL must be a valid URL")
        return v

    @property
    def uses_supabase(self) -> bool:
        return self.CONTENT_BACKEND == "supabase" or self.ATTACHMENT_BACKEND == "supabase"


def validate_settings() -> None:
    """Validate all required settings are present and valid."""
    from alumni_api.core.exceptions import ConfigurationError

    global settings
    try:
        # Re-initialize settings to ensure validation
        settings = Settings()
    except Exception as e:
        error_msg = str(e)
        if "field required" in error_msg.lower() or "missing" in error_msg.lower():
            raise ConfigurationError(
                f"Missing required environment variable (see error details)\n"
                f"Please check your .env file and ensure all required variables are set.\n"
                f"Error: {error_msg}",
                error_code="MISSING_ENV_VAR"
            )
        raise ConfigurationError(
            f"Configuration error: {error_msg}\n"
            f"Please check your .env file configuration.",
            error_code="CONFIG_ERROR"
        )

    if settings.uses_supabase:
        missing = [
            name for name in ("SUPABASE_URL", "SUPABASE_SERVICE_KEY")
            if not getattr(settings, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable: {', '.join(missing)} "
                f"(required when a storage backend is 'supabase')",
                error_code="MISSING_ENV_VAR"
            )
        if not settings.SUPABASE_URL.startswith('https://') and not settings.DEBUG:
            raise ConfigurationError(
                "SUPABASE_URL should use HTTPS in production",
                error_code="INSECURE_URL"
            )

    from alumni_api.models.common import MAX_PAGE_LIMIT

    if settings.MAX_PAGE_SIZE > MAX_PAGE_LIMIT:
        raise ConfigurationError(
            f"MAX_PAGE_SIZE cannot exceed {MAX_PAGE_LIMIT}",
            error_code="CONFIG_ERROR"
        )
    if settings.DEFAULT_PAGE_SIZE > settings.MAX_PAGE_SIZE:
        raise ConfigurationError(
            "DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE",
            error_code="CONFIG_ERROR"
        )


# Initialize settings and validate
try:
    settings = Settings()
except Exception:
    # Settings will be validated in main.py startup
    settings = None
