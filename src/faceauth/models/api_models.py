"""Pydantic models for API requests and responses."""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class EnrollmentRequest(BaseModel):
    """Request model for one enrollment step."""

    # Descriptor shape is checked by the service layer so every rejection
    # carries a specific reason
    vector: Any = Field(
        ...,
        validation_alias=AliasChoices("vector", "faceDescriptor"),
        description="Face descriptor captured for this step"
    )
    progress: Any = Field(..., description="Enrollment step, 1 to N")


class EnrollmentResponse(BaseModel):
    """Response model for one enrollment step."""

    identityId: str = Field(..., description="Identity being enrolled")
    sessionId: str = Field(..., description="Session token, also issued as a cookie")
    completed: bool = Field(..., description="Whether this was the final step")
    progress: Optional[int] = Field(None, description="Step just recorded (omitted on completion)")
    message: str

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "identityId": "0b6f4f0e-3f38-4d3b-9a55-6f1f7f0f2b7e",
            "sessionId": "9f2c4b1e8a7d6c5b4a39281706f5e4d3",
            "completed": False,
            "progress": 1,
            "message": "Enrollment progress: 1/5"
        }
    })


class LoginRequest(BaseModel):
    """Request model for face login."""

    vector: Any = Field(
        ...,
        validation_alias=AliasChoices("vector", "faceDescriptor"),
        description="Face descriptor captured at login"
    )


class LoginResponse(BaseModel):
    """Response model for a successful face login."""

    identityId: str
    message: str


class ProfileResponse(BaseModel):
    """Public profile fields of an identity."""

    id: str
    displayName: str
    email: str
    phone: str
    bio: str
    createdAt: datetime


class SessionCheckResponse(BaseModel):
    identity: ProfileResponse


class ProfileUpdateRequest(BaseModel):
    """Request model for profile updates."""

    displayName: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("displayName", "name"),
        description="Required, must not be blank"
    )
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None


class FileResponse(BaseModel):
    """Metadata of a stored file."""

    id: str
    filename: str
    originalName: str
    contentType: str
    size: int
    uploadedAt: datetime
    url: str


class FileListResponse(BaseModel):
    files: List[FileResponse]
    total: int


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Service version")


class ErrorDetail(BaseModel):
    """Body of a service error."""

    error: str = Field(..., description="Error type or category")
    message: str = Field(..., description="Human-readable error message")
    correlationId: str = Field(..., description="Request correlation ID for tracing")
    timestamp: datetime = Field(..., description="Error timestamp")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": "AuthenticationError",
            "message": "Unauthorized",
            "correlationId": "req_123456789",
            "timestamp": "2024-01-01T12:00:00Z"
        }
    })


class ErrorResponse(BaseModel):
    """Standard error response model, as raised through HTTPException."""

    detail: ErrorDetail


ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed input"},
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    500: {"model": ErrorResponse, "description": "Internal error"},
}
