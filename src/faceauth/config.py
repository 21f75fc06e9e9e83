"""Configuration management for the face authentication service."""

from typing import List, Optional
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_UPLOAD_TYPES = [
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    # Server configuration
    port: int = 8000
    host: str = "0.0.0.0"

    # Store configuration
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    supabase_storage_bucket: str = "files"

    # Face matching settings
    descriptor_dimension: int = 128
    match_threshold: float = 0.6
    normalize_descriptors: bool = False

    # Enrollment settings
    enrollment_steps: int = 5
    enrollment_enforce_order: bool = False

    # Session settings
    session_ttl_hours: float = 24.0
    session_cookie_name: str = "session"
    session_cookie_secure: bool = False
    session_cookie_httponly: bool = True
    session_sweep_interval_seconds: int = 0

    # File storage settings
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_upload_types: List[str] = DEFAULT_UPLOAD_TYPES

    # Observability
    otlp_endpoint: Optional[str] = None
    otel_console_export: bool = False

    # Logging configuration
    log_level: str = "INFO"

    @field_validator('store_backend')
    @classmethod
    def validate_store_backend(cls, v):
        v = v.lower()
        if v not in ("memory", "supabase"):
            raise ValueError('STORE_BACKEND must be "memory" or "supabase"')
        return v

    @field_validator('descriptor_dimension', 'enrollment_steps')
    @classmethod
    def validate_positive_int(cls, v):
        if v < 1:
            raise ValueError('value must be at least 1')
        return v

    @field_validator('match_threshold', 'session_ttl_hours')
    @classmethod
    def validate_positive_float(cls, v):
        if v <= 0.0:
            raise ValueError('value must be greater than 0')
        return v

    @field_validator('session_sweep_interval_seconds')
    @classmethod
    def validate_sweep_interval(cls, v):
        if v < 0:
            raise ValueError('SESSION_SWEEP_INTERVAL_SECONDS must not be negative')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError('LOG_LEVEL must be a standard logging level name')
        return v

    @model_validator(mode='after')
    def validate_supabase_credentials(self):
        if self.store_backend == "supabase":
            if not self.supabase_url:
                raise ValueError('SUPABASE_URL environment variable is required')
            if not self.supabase_key:
                raise ValueError('SUPABASE_KEY environment variable is required')
        return self

    @property
    def session_ttl_seconds(self) -> int:
        return int(self.session_ttl_hours * 3600)


# Global settings instance
settings = Settings()
