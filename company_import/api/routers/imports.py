"""
Endpoints for submitting company import files and tracking their jobs.
"""
import logging
import os
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile

from company_import.api.dependencies import api_error, error_from_domain, require_import_id
from company_import.api.schemas.shared import (
    DeleteImportResponse,
    ImportListResponse,
    ImportStatusInfo,
    ImportStatusResponse,
    UploadImportResponse,
    UploadRecordInfo,
)
from company_import.core.config import settings
from company_import.core.security import User, get_current_user
from company_import.domain.imports.errors import ImportPipelineError, UnsupportedFormatError
from company_import.domain.imports.formats import detect_file_format
from company_import.domain.imports.orchestrator import handle_object_finalized
from company_import.domain.imports.status_query import delete_import, list_user_imports, resolve_import_status
from company_import.domain.uploads.upload_records import create_upload_record
from company_import.integrations.storage import StorageError, delete_file, generate_presigned_download_url, upload_file

router = APIRouter(tags=["imports"])

logger = logging.getLogger(__name__)


def _ensure_within_size_limit(file_size: int, file_name: str) -> None:
    max_bytes = settings.upload_max_file_size_mb * 1024 * 1024
    if file_size > max_bytes:
        raise api_error(
            "invalid-argument",
            f"File '{file_name}' exceeds the {settings.upload_max_file_size_mb}MB upload limit",
        )


@router.post("/imports", response_model=UploadImportResponse)
async def upload_import_endpoint(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
):
    """
    Submit a company file (.json or .csv) for import.

    The file is stored under the import prefix as ``<importId><ext>`` and an
    upload record is created for the caller. Unless imports are triggered by
    storage notifications, the import job is scheduled right away.

    Returns:
    - import_id to poll via /imports/{import_id}/status
    - the upload record
    """
    file_name = file.filename or ""
    try:
        detect_file_format(file_name)
    except UnsupportedFormatError as e:
        raise api_error("invalid-argument", str(e))

    file_content = await file.read()
    _ensure_within_size_limit(len(file_content), file_name)

    import_id = uuid.uuid4().hex
    extension = os.path.splitext(file_name)[1].lower()
    try:
        stored = upload_file(
            file_content,
            f"{import_id}{extension}",
            folder=settings.import_prefix.rstrip("/"),
        )
    except StorageError as e:
        logger.error("Upload of %s failed: %s", file_name, e)
        raise api_error("internal", "Error storing import file.")

    try:
        download_url = generate_presigned_download_url(stored["file_path"], filename=file_name)
    except StorageError as e:
        logger.warning("No download URL for %s: %s", stored["file_path"], e)
        download_url = None

    try:
        upload = create_upload_record(
            import_id=import_id,
            file_name=file_name,
            user_id=str(current_user.id),
            download_url=download_url,
            storage_path=stored["file_path"],
        )
    except Exception:
        logger.exception("Error creating upload record for %s", stored["file_path"])
        if not delete_file(stored["file_path"]):
            logger.warning("Could not remove orphaned upload %s", stored["file_path"])
        raise api_error("internal", "Error recording uploaded file.")

    if settings.trigger_import_on_upload:
        background_tasks.add_task(handle_object_finalized, stored["file_path"])

    return UploadImportResponse(
        success=True,
        message="File uploaded for import",
        import_id=import_id,
        upload=UploadRecordInfo(**upload),
        import_scheduled=settings.trigger_import_on_upload,
    )


@router.get("/imports/{import_id}/status", response_model=ImportStatusResponse)
def get_import_status_endpoint(import_id: str, current_user: User = Depends(get_current_user)):
    import_id = require_import_id(import_id)
    try:
        import_status = resolve_import_status(import_id)
    except ImportPipelineError as e:
        raise error_from_domain(e)
    except Exception:
        logger.exception("Error getting import status for %s", import_id)
        raise api_error("internal", "Error retrieving import status.")

    return ImportStatusResponse(success=True, import_status=ImportStatusInfo(**import_status))


@router.get("/imports", response_model=ImportListResponse)
def list_imports_endpoint(current_user: User = Depends(get_current_user)):
    """List the caller's most recent imports (newest first)."""
    try:
        uploads = list_user_imports(str(current_user.id))
    except Exception:
        logger.exception("Error listing imports for user %s", current_user.id)
        raise api_error("internal", "Error listing imports.")

    return ImportListResponse(
        success=True,
        imports=[UploadRecordInfo(**upload) for upload in uploads],
        limit=settings.import_list_limit,
    )


@router.delete("/imports/{import_id}", response_model=DeleteImportResponse)
def delete_import_endpoint(import_id: str, current_user: User = Depends(get_current_user)):
    """
    Delete an import: its upload record, stored file and job status.

    Only the owner or an admin may delete. Stored file and job status
    removal are best-effort.
    """
    import_id = require_import_id(import_id)
    try:
        delete_import(import_id, current_user)
    except ImportPipelineError as e:
        raise error_from_domain(e)
    except Exception:
        logger.exception("Error deleting import %s", import_id)
        raise api_error("internal", "Error deleting import.")

    return DeleteImportResponse(success=True, message=f"Import {import_id} deleted")
