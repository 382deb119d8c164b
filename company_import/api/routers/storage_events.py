"""
Webhook for object-storage notifications (S3 / MinIO bucket events).

Every created object under the import prefix starts one import job in the
background; anything else is acknowledged and ignored.
"""
import logging
import secrets
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Header

from company_import.api.dependencies import api_error
from company_import.api.schemas.shared import StorageEventResponse
from company_import.core.config import settings
from company_import.domain.imports.orchestrator import created_object_keys, handle_object_finalized, is_import_object

router = APIRouter(tags=["storage-events"])

logger = logging.getLogger(__name__)


@router.post("/storage-events", response_model=StorageEventResponse)
def storage_event_endpoint(
    background_tasks: BackgroundTasks,
    payload: Dict[str, Any] = Body(...),
    x_storage_webhook_token: Optional[str] = Header(default=None),
):
    expected_token = settings.storage_webhook_token
    if expected_token and not secrets.compare_digest(x_storage_webhook_token or "", expected_token):
        raise api_error("unauthenticated", "Invalid storage webhook token.")

    accepted, ignored = [], []
    for object_key in created_object_keys(payload):
        if is_import_object(object_key):
            accepted.append(object_key)
            background_tasks.add_task(handle_object_finalized, object_key)
        else:
            ignored.append(object_key)

    logger.info("Storage event: %s import objects scheduled, %s ignored", len(accepted), len(ignored))
    return StorageEventResponse(success=True, accepted_keys=accepted, ignored_keys=ignored)
