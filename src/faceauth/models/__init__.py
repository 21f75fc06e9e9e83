"""Data models for the face authentication service."""

from .api_models import (
    EnrollmentRequest,
    EnrollmentResponse,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SessionCheckResponse,
    FileResponse,
    FileListResponse,
    MessageResponse,
    HealthResponse,
    ErrorDetail,
    ErrorResponse,
    ERROR_RESPONSES
)
from .internal_models import (
    Identity,
    Session,
    StoredFile
)

__all__ = [
    "EnrollmentRequest",
    "EnrollmentResponse",
    "LoginRequest",
    "LoginResponse",
    "ProfileResponse",
    "ProfileUpdateRequest",
    "SessionCheckResponse",
    "FileResponse",
    "FileListResponse",
    "MessageResponse",
    "HealthResponse",
    "ErrorDetail",
    "ErrorResponse",
    "ERROR_RESPONSES",
    "Identity",
    "Session",
    "StoredFile"
]
