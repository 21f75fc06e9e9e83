"""Internal data models for the face authentication service."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import numpy as np


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Identity:
    """One enrolled person and their reference face descriptors."""

    id: str
    descriptors: List[np.ndarray]  # Enrollment order, append-only
    created_at: datetime
    display_name: str = ""
    email: str = ""
    phone: str = ""
    bio: str = ""

    def __post_init__(self):
        """An identity is never stored without at least one descriptor."""
        if not self.descriptors:
            raise ValueError("Identity requires at least one face descriptor")

    @classmethod
    def new(cls, first_descriptor: np.ndarray) -> "Identity":
        identity_id = str(uuid.uuid4())
        return cls(
            id=identity_id,
            descriptors=[first_descriptor],
            created_at=utcnow(),
            display_name=f"User {identity_id[:8]}",
        )

    def public_profile(self) -> dict:
        """Profile fields safe to hand back to the client."""
        return {
            "id": self.id,
            "displayName": self.display_name,
            "email": self.email,
            "phone": self.phone,
            "bio": self.bio,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class Session:
    """A time-bounded bearer credential bound to one identity."""

    id: str
    identity_id: str
    expires_at: datetime
    created_at: datetime = field(default_factory=utcnow)
    enrollment_step: Optional[int] = None  # Only tracked for strict enrollment

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at < now


@dataclass
class StoredFile:
    """Metadata for a file owned by an identity; bytes live in the blob store."""

    id: str
    owner_id: str
    filename: str
    original_name: str
    content_type: str
    size: int
    blob_id: str
    uploaded_at: datetime

    def to_response(self) -> dict:
        return {
            "id": self.id,
            "filename": self.filename,
            "originalName": self.original_name,
            "contentType": self.content_type,
            "size": self.size,
            "uploadedAt": self.uploaded_at.isoformat(),
            "url": f"/api/files/{self.id}",
        }
