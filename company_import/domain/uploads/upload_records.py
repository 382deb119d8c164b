"""
Database operations for the companion upload records written when a file is
submitted for import.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from company_import.core.config import settings
from company_import.db.models import UploadRecord
from company_import.db.session import get_engine

logger = logging.getLogger(__name__)

UPLOADED_STATUS = "uploaded"


def _row_to_upload(row: UploadRecord) -> Dict[str, Any]:
    return {
        "id": row.id,
        "import_id": row.import_id,
        "user_id": row.user_id,
        "file_name": row.file_name,
        "status": row.status,
        "timestamp": row.timestamp,
        "download_url": row.download_url,
        "storage_path": row.storage_path,
    }


def create_upload_record(
    *,
    import_id: str,
    file_name: str,
    user_id: Optional[str] = None,
    download_url: Optional[str] = None,
    storage_path: Optional[str] = None,
    status: str = UPLOADED_STATUS,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Insert a new upload record."""
    engine = get_engine()
    with Session(engine) as db:
        row = UploadRecord(
            id=uuid.uuid4().hex,
            import_id=import_id,
            user_id=user_id,
            file_name=file_name,
            status=status,
            timestamp=timestamp or datetime.now(timezone.utc),
            download_url=download_url,
            storage_path=storage_path,
        )
        db.add(row)
        db.commit()
        db.refresh(row)
        return _row_to_upload(row)


def find_upload_record(import_id: str) -> Optional[Dict[str, Any]]:
    """Return the upload record carrying ``import_id``, if any."""
    engine = get_engine()
    with Session(engine) as db:
        row = db.scalars(
            select(UploadRecord).where(UploadRecord.import_id == import_id).limit(1)
        ).first()
        return _row_to_upload(row) if row else None


def list_upload_records(user_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """A user's upload records, newest first."""
    limit = settings.import_list_limit if limit is None else limit
    engine = get_engine()
    with Session(engine) as db:
        rows = db.scalars(
            select(UploadRecord)
            .where(UploadRecord.user_id == user_id)
            .order_by(UploadRecord.timestamp.desc())
            .limit(limit)
        ).all()
        return [_row_to_upload(row) for row in rows]


def delete_upload_record(record_id: str) -> bool:
    """Delete an upload record by its own id. Returns True if a row was removed."""
    engine = get_engine()
    with Session(engine) as db:
        result = db.execute(delete(UploadRecord).where(UploadRecord.id == record_id))
        db.commit()
        return result.rowcount > 0
