# core/supabase_client.py
# Supabase client for project file storage

import logging
import uuid

from django.conf import settings
from supabase import create_client

from core.exceptions import TransientFailure

logger = logging.getLogger("marketplace")

_supabase_client = None


def get_supabase_client():
    """
    Get the Supabase client instance (singleton pattern).
    Uses service_role key for admin access.
    """
    global _supabase_client

    if _supabase_client is None:
        url = settings.SUPABASE_URL
        key = settings.SUPABASE_SERVICE_ROLE_KEY

        if not url or not key:
            logger.warning("Supabase credentials not configured")
            return None

        try:
            _supabase_client = create_client(url, key)
            logger.info("Supabase client initialized")
        except Exception as e:
            logger.error(f"Failed to create Supabase client: {e}")
            return None

    return _supabase_client


def build_project_file_path(project_id, filename: str) -> str:
    """
    Storage key for an update attachment:
    projects/<project_id>/updates/<uuid>.<ext>
    """
    ext = filename.rsplit(".", 1)[-1] if "." in filename else "bin"
    return f"projects/{project_id}/updates/{uuid.uuid4().hex}.{ext}"


def upload_project_file(project_id, filename: str, content: bytes, content_type: str = "application/octet-stream") -> str:
    """
    Upload an update attachment to Supabase Storage.

    Args:
        project_id: Owning project (for folder structure)
        filename: Original file name (only the extension is kept)
        content: The file content as bytes

    Returns:
        The storage path (the attachment reference stored on the update)

    Raises:
        TransientFailure if storage is not configured or the upload fails
    """
    client = get_supabase_client()
    if not client:
        raise TransientFailure("File storage is not available.")

    path = build_project_file_path(project_id, filename)
    try:
        client.storage.from_(settings.MARKETPLACE_STORAGE_BUCKET).upload(
            path,
            content,
            file_options={"content-type": content_type, "upsert": "false"},
        )
    except Exception as e:
        logger.error(f"Failed to upload project file {path}: {e}")
        raise TransientFailure("File upload failed. Please retry.")

    logger.info(f"Uploaded project file to storage: {path}")
    return path


def get_signed_url(path: str, expires_in: int | None = None) -> str | None:
    """
    Generate a signed URL for a stored attachment.

    Returns:
        The signed URL if successful, None otherwise
    """
    client = get_supabase_client()
    if not client or not path:
        return None

    if expires_in is None:
        expires_in = settings.MARKETPLACE_SIGNED_URL_TTL

    try:
        result = client.storage.from_(settings.MARKETPLACE_STORAGE_BUCKET).create_signed_url(
            path,
            expires_in
        )

        if result and "signedURL" in result:
            return result["signedURL"]
        return None
    except Exception as e:
        logger.error(f"Failed to generate signed URL: {e}")
        return None


def delete_project_file(path: str) -> bool:
    """
    Remove an attachment whose update was never written.

    Returns:
        True if storage confirmed the removal, False otherwise
    """
    client = get_supabase_client()
    if not client or not path:
        return False

    try:
        client.storage.from_(settings.MARKETPLACE_STORAGE_BUCKET).remove([path])
        logger.info(f"Deleted orphaned project file from storage: {path}")
        return True
    except Exception as e:
        logger.error(f"Failed to delete project file {path}: {e}")
        return False
