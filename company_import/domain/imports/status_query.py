"""
Read, list and delete operations over import jobs as the dashboard sees them.

A job is visible through two records: the upload record written when the
file was submitted and the job status written by the driver. Status lookups
resolve them in this order:

1. upload record exists and is still ``uploaded``: the job status if the
   driver has started, otherwise a synthesized ``processing`` view
2. upload record exists in any other state: a view built from the upload
   record alone
3. no upload record: the job status
4. neither: not found
"""
import logging
from typing import Any, Dict, List, Optional

from company_import.core.security import User, is_admin
from company_import.domain.imports.errors import ImportNotFoundError, ImportPermissionError
from company_import.domain.imports.jobs import delete_import_status, get_import_status
from company_import.domain.uploads.upload_records import (
    UPLOADED_STATUS,
    delete_upload_record,
    find_upload_record,
    list_upload_records,
)
from company_import.integrations.storage import delete_file, object_key_from_url

logger = logging.getLogger(__name__)


def _view_from_upload(upload: Dict[str, Any], status: str) -> Dict[str, Any]:
    return {
        "id": upload["import_id"],
        "status": status,
        "file_name": upload["file_name"],
        "start_time": upload["timestamp"],
        "end_time": None,
        "total_records": 0,
        "processed_records": 0,
        "successful_records": 0,
        "failed_records": 0,
        "errors": [],
    }


def resolve_import_status(import_id: str) -> Dict[str, Any]:
    """
    Resolve the status a caller should see for ``import_id``.

    Raises:
        ImportNotFoundError: If neither record exists
    """
    upload = find_upload_record(import_id)

    if upload is not None:
        if upload["status"] != UPLOADED_STATUS:
            return _view_from_upload(upload, upload["status"])
        job_status = get_import_status(import_id)
        if job_status is not None:
            return job_status
        # Uploaded but the driver has not picked it up yet
        return _view_from_upload(upload, "processing")

    job_status = get_import_status(import_id)
    if job_status is None:
        raise ImportNotFoundError("Import job not found.", job_id=import_id)
    return job_status


def list_user_imports(user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    return list_upload_records(user_id, limit=limit)


def _storage_path_for(upload: Dict[str, Any]) -> Optional[str]:
    if upload.get("storage_path"):
        return upload["storage_path"]
    return object_key_from_url(upload.get("download_url") or "")


def can_manage_import(upload: Dict[str, Any], user: User) -> bool:
    """Owners and admins may manage an import; unowned imports are admin-only."""
    if is_admin(user):
        return True
    owner = upload.get("user_id")
    return owner is not None and owner == str(user.id)


def delete_import(import_id: str, user: User) -> None:
    """
    Delete an import's upload record, its stored file and its job status.

    Only the upload record removal must succeed; file and status cleanups
    are best-effort and only logged when they fail.

    Raises:
        ImportNotFoundError: No upload record for ``import_id``
        ImportPermissionError: Caller is neither owner nor admin
    """
    upload = find_upload_record(import_id)
    if upload is None:
        raise ImportNotFoundError("Import not found.", job_id=import_id)

    if not can_manage_import(upload, user):
        raise ImportPermissionError(
            "You do not have permission to delete this import.", job_id=import_id
        )

    storage_path = _storage_path_for(upload)
    if storage_path:
        if not delete_file(storage_path):
            logger.warning("Could not delete stored file %s for import %s", storage_path, import_id)

    delete_upload_record(upload["id"])

    try:
        delete_import_status(import_id)
    except Exception as e:
        logger.error("Error deleting import status record %s: %s", import_id, e)

    logger.info("Import %s deleted by user %s", import_id, user.id)
