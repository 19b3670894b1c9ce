"""
Pre-signed image uploads to Azure Blob Storage.

The admin UI asks for an upload URL, PUTs the raw file bytes to it, and then
stores the returned object path as the entity's image/logo.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

from azure.storage.blob import BlobSasPermissions, generate_blob_sas
from django.conf import settings

from backend.core.exceptions import ServiceUnavailable, ValidationFailed

logger = logging.getLogger('backend.catalog')


def is_configured():
    return bool(settings.AZURE_STORAGE_ACCOUNT_NAME and settings.AZURE_STORAGE_ACCOUNT_KEY)


def blob_url(blob_name):
    """Public URL of a blob (without SAS token)"""
    encoded_blob_name = quote(blob_name, safe='/')
    return (f"https://{settings.AZURE_STORAGE_ACCOUNT_NAME}.blob.core.windows.net/"
            f"{settings.AZURE_STORAGE_CONTAINER}/{encoded_blob_name}")


def create_upload_url(name, size=None, content_type=None):
    """
    Build a write-only SAS URL for a fresh blob under the upload folder.

    Returns:
        dict: {'uploadURL', 'objectPath', 'metadata'}
    """
    if not name or not str(name).strip():
        raise ValidationFailed('File name is required')
    if not is_configured():
        raise ServiceUnavailable('Image storage is not configured')

    blob_name = f"{settings.AZURE_UPLOAD_FOLDER}/{uuid.uuid4()}"
    expiry_time = datetime.now(timezone.utc) + timedelta(minutes=settings.AZURE_UPLOAD_EXPIRY_MINUTES)

    sas_token = generate_blob_sas(
        account_name=settings.AZURE_STORAGE_ACCOUNT_NAME,
        container_name=settings.AZURE_STORAGE_CONTAINER,
        blob_name=blob_name,
        account_key=settings.AZURE_STORAGE_ACCOUNT_KEY,
        permission=BlobSasPermissions(create=True, write=True),
        expiry=expiry_time,
    )

    logger.info(f"Issued upload URL for {name} -> {blob_name} (expires {expiry_time.isoformat()})")
    return {
        'uploadURL': f"{blob_url(blob_name)}?{sas_token}",
        'objectPath': f"/{settings.AZURE_STORAGE_CONTAINER}/{blob_name}",
        'metadata': {
            'name': str(name),
            'size': size,
            'contentType': content_type or 'application/octet-stream',
        },
    }
