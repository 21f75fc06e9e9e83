"""Store backends for identities, sessions, file metadata and blobs."""

from faceauth.clients.base import (
    BlobStore,
    DatabaseManager,
    FileRepository,
    IdentityRepository,
    SessionRepository,
    StorageError,
)
from faceauth.clients.memory_store import create_memory_database
from faceauth.clients.supabase_client import SupabaseClient, create_supabase_database


def create_database_manager(settings) -> DatabaseManager:
    """Build the store bundle selected by STORE_BACKEND."""
    if settings.store_backend == "supabase":
        return create_supabase_database(
            settings.supabase_url,
            settings.supabase_key,
            settings.supabase_storage_bucket
        )
    return create_memory_database()


__all__ = [
    "BlobStore",
    "DatabaseManager",
    "FileRepository",
    "IdentityRepository",
    "SessionRepository",
    "StorageError",
    "SupabaseClient",
    "create_database_manager",
    "create_memory_database",
    "create_supabase_database",
]
