"""
S3-compatible storage integration for uploaded import files.
Uses boto3 so any S3-compatible provider works (AWS S3, MinIO, B2, Wasabi...).
"""
import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from company_import.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Raised when storage connection fails."""
    pass


class StorageUploadError(StorageError):
    """Raised when file upload fails."""
    pass


class StorageDownloadError(StorageError):
    """Raised when file download fails."""
    pass


def get_storage_client():
    """
    Get S3-compatible storage client.

    Returns:
        boto3 S3 client configured for the storage provider

    Raises:
        ValueError: If storage configuration is incomplete
        StorageConnectionError: If the client cannot be created
    """
    if not all([settings.storage_access_key_id, settings.storage_secret_access_key, settings.storage_bucket_name]):
        raise ValueError(
            "Storage configuration is incomplete. Please set STORAGE_ACCESS_KEY_ID, "
            "STORAGE_SECRET_ACCESS_KEY, and STORAGE_BUCKET_NAME in your environment."
        )

    config = Config(
        signature_version='s3v4',
        retries={'max_attempts': 3, 'mode': 'standard'}
    )

    client_kwargs = {
        'service_name': 's3',
        'aws_access_key_id': settings.storage_access_key_id,
        'aws_secret_access_key': settings.storage_secret_access_key,
        'config': config,
    }

    # Add endpoint URL for non-AWS providers (B2, MinIO, etc.)
    if settings.storage_endpoint_url:
        client_kwargs['endpoint_url'] = settings.storage_endpoint_url

    if settings.storage_region:
        client_kwargs['region_name'] = settings.storage_region

    try:
        return boto3.client(**client_kwargs)
    except Exception as e:
        logger.error(f"Failed to create storage client: {e}")
        raise StorageConnectionError(f"Failed to connect to storage: {str(e)}")


def upload_file(file_content: bytes, file_name: str, folder: str = "imports") -> Dict[str, Any]:
    """
    Upload a file to S3-compatible storage.

    Args:
        file_content: The file content as bytes
        file_name: The name for the file
        folder: The folder/prefix to store the file in (default: "imports")

    Returns:
        Dictionary with upload details: file_id (ETag), file_name, file_path, size

    Raises:
        StorageUploadError: If upload fails
    """
    try:
        client = get_storage_client()
        file_path = f"{folder}/{file_name}"

        response = client.put_object(
            Bucket=settings.storage_bucket_name,
            Key=file_path,
            Body=file_content
        )

        return {
            "file_id": response['ETag'].strip('"'),
            "file_name": file_name,
            "file_path": file_path,
            "size": len(file_content)
        }

    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        logger.error(f"Storage upload failed: {error_code} - {str(e)}")
        raise StorageUploadError(f"Upload failed: {str(e)}")
    except (BotoCoreError, ValueError, StorageConnectionError) as e:
        logger.error(f"Unexpected error during upload: {str(e)}")
        raise StorageUploadError(f"Upload failed: {str(e)}")


def download_file_to_path(file_path: str, destination: str) -> str:
    """
    Download an object straight to a local path.

    Args:
        file_path: The full key of the file in storage (e.g., "imports/abc.csv")
        destination: Local path to write to

    Returns:
        The destination path

    Raises:
        StorageDownloadError: If download fails
    """
    try:
        client = get_storage_client()
        client.download_file(settings.storage_bucket_name, file_path, destination)
        return destination

    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code', 'Unknown')
        if error_code in ('NoSuchKey', '404'):
            raise StorageDownloadError(f"File not found: {file_path}")
        logger.error(f"Storage download failed: {error_code} - {str(e)}")
        raise StorageDownloadError(f"Download failed: {str(e)}")
    except (BotoCoreError, ValueError, StorageConnectionError) as e:
        logger.error(f"Unexpected error during download: {str(e)}")
        raise StorageDownloadError(f"Download failed: {str(e)}")


def delete_file(file_path: str) -> bool:
    """
    Delete a file from S3-compatible storage.

    Returns:
        True if deletion was successful, False otherwise
    """
    try:
        client = get_storage_client()
        client.delete_object(
            Bucket=settings.storage_bucket_name,
            Key=file_path
        )
        return True

    except Exception as e:
        logger.error(f"Error deleting file from storage: {str(e)}")
        return False


def generate_presigned_download_url(
    file_path: str,
    expires_in: int = 3600,
    filename: Optional[str] = None
) -> str:
    """
    Generate a pre-signed URL for secure file download.

    Raises:
        StorageError: If URL generation fails
    """
    try:
        client = get_storage_client()

        params = {
            'Bucket': settings.storage_bucket_name,
            'Key': file_path,
        }
        if filename:
            params['ResponseContentDisposition'] = f'attachment; filename="{filename}"'

        return client.generate_presigned_url(
            'get_object',
            Params=params,
            ExpiresIn=expires_in
        )

    except Exception as e:
        logger.error(f"Failed to generate presigned download URL: {str(e)}")
        raise StorageError(f"Failed to generate download URL: {str(e)}")


def object_key_from_url(download_url: str, bucket_name: Optional[str] = None) -> Optional[str]:
    """
    Recover the object key from a download URL.

    Handles path-style (``https://host/<bucket>/<key>``), virtual-hosted
    (``https://<bucket>.host/<key>``) and Firebase-style
    (``.../o/<url-encoded key>?alt=media``) URLs. Query strings are dropped.
    """
    if not download_url:
        return None

    parsed = urlparse(download_url)
    path = parsed.path
    if "/o/" in path:
        path = path.split("/o/", 1)[1]
    else:
        path = path.lstrip("/")
        bucket_name = bucket_name if bucket_name is not None else settings.storage_bucket_name
        if bucket_name and path.startswith(f"{bucket_name}/"):
            path = path[len(bucket_name) + 1:]

    key = unquote(path)
    return key or None
