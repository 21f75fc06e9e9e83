"""
Files owned by an authenticated identity.

Bytes go to the blob store, metadata to the file repository. Only the owner
may read or delete a file.
"""

import logging
import os
import re
import uuid
from typing import Iterable, List, Tuple

from faceauth.clients.base import BlobStore, FileRepository
from faceauth.models.internal_models import Identity, StoredFile, utcnow
from faceauth.services.errors import (
    AuthenticationError,
    ClientInputError,
    InternalServiceError,
    NotFoundError,
    ServiceError,
)

logger = logging.getLogger(__name__)

# Stored names and blob keys end up in headers and object paths
_SAFE_EXTENSION = re.compile(r"\.[A-Za-z0-9]{1,16}")


class FileValidationError(ClientInputError):
    """Raised when an upload is empty, too large or of a disallowed type."""


class StoredFileNotFoundError(NotFoundError):
    pass


class FileAccessDeniedError(AuthenticationError):
    """Raised when an identity touches a file it does not own."""


class FileService:

    def __init__(
        self,
        files: FileRepository,
        blobs: BlobStore,
        max_upload_bytes: int = 10 * 1024 * 1024,
        allowed_types: Iterable[str] = ()
    ):
        self.files = files
        self.blobs = blobs
        self.max_upload_bytes = max_upload_bytes
        self.allowed_types = set(allowed_types)

    def _validate_upload(self, original_name: str, content_type: str, data: bytes) -> None:
        if not original_name:
            raise FileValidationError("No file uploaded")
        if not data:
            raise FileValidationError("Uploaded file is empty")
        if len(data) > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes / (1024 * 1024)
            raise FileValidationError(f"File size too large. Maximum {limit_mb:g}MB allowed.")
        if self.allowed_types and content_type not in self.allowed_types:
            raise FileValidationError(f"File type {content_type} is not allowed")

    async def upload(self, identity: Identity, original_name: str, content_type: str, data: bytes) -> StoredFile:
        self._validate_upload(original_name, content_type, data)

        file_id = uuid.uuid4().hex
        extension = os.path.splitext(original_name)[1]
        if not _SAFE_EXTENSION.fullmatch(extension):
            extension = ""
        stored_file = StoredFile(
            id=file_id,
            owner_id=identity.id,
            filename=f"{file_id}{extension}",
            original_name=original_name,
            content_type=content_type,
            size=len(data),
            blob_id=f"{identity.id}/{file_id}{extension}",
            uploaded_at=utcnow(),
        )

        try:
            await self.blobs.put(stored_file.blob_id, data, content_type)
            try:
                await self.files.create(stored_file)
            except Exception:
                await self.blobs.delete(stored_file.blob_id)
                raise
        except Exception as e:
            logger.error(f"Upload failed for identity {identity.id}: {e}")
            raise InternalServiceError("Failed to upload file") from e

        logger.info(f"Stored file {file_id} ({stored_file.size} bytes) for identity {identity.id}")
        return stored_file

    async def list_files(self, identity: Identity) -> List[StoredFile]:
        try:
            return await self.files.list_by_owner(identity.id)
        except Exception as e:
            logger.error(f"Failed to list files for identity {identity.id}: {e}")
            raise InternalServiceError("Failed to load files") from e

    async def _owned_file(self, identity: Identity, file_id: str) -> StoredFile:
        stored_file = await self.files.get(file_id)
        if stored_file is None:
            raise StoredFileNotFoundError("File not found")
        if stored_file.owner_id != identity.id:
            logger.warning(f"Identity {identity.id} attempted to access file {file_id} it does not own")
            raise FileAccessDeniedError("Unauthorized")
        return stored_file

    async def download(self, identity: Identity, file_id: str) -> Tuple[StoredFile, bytes]:
        try:
            stored_file = await self._owned_file(identity, file_id)
            data = await self.blobs.get(stored_file.blob_id)
            return stored_file, data
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to serve file {file_id}: {e}")
            raise InternalServiceError("Failed to serve file") from e

    async def delete(self, identity: Identity, file_id: str) -> None:
        try:
            stored_file = await self._owned_file(identity, file_id)
            await self.blobs.delete(stored_file.blob_id)
            await self.files.delete(file_id)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to delete file {file_id}: {e}")
            raise InternalServiceError("Failed to delete file") from e

        logger.info(f"Deleted file {file_id} for identity {identity.id}")
