"""
Persistent status tracking for company import jobs.

A job status record is created in ``processing`` the moment a job starts and
moves exactly once to ``completed`` or ``failed``. Updates are only applied
to rows that are still ``processing``, so a terminal record can never be
reopened by a late writer.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from company_import.core.config import settings
from company_import.db.models import ImportStatusRecord
from company_import.db.session import get_engine
from company_import.domain.imports.batch_commit import ChunkResult
from company_import.domain.imports.errors import StatusTransitionError

logger = logging.getLogger(__name__)


class ImportStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {ImportStatus.COMPLETED.value, ImportStatus.FAILED.value}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def trim_errors(errors: Sequence[str], limit: Optional[int] = None) -> List[str]:
    """Keep only the most recent ``limit`` error strings."""
    limit = settings.import_max_status_errors if limit is None else limit
    if limit <= 0:
        return []
    return list(errors)[-limit:]


def _row_to_status(row: ImportStatusRecord) -> Dict[str, Any]:
    return {
        "id": row.id,
        "status": row.status,
        "file_name": row.file_name,
        "start_time": row.start_time,
        "end_time": row.end_time,
        "total_records": row.total_records,
        "processed_records": row.processed_records,
        "successful_records": row.successful_records,
        "failed_records": row.failed_records,
        "errors": list(row.errors or []),
    }


def start_import_status(job_id: str, file_name: str) -> Dict[str, Any]:
    """Create (or reset) the status record for a job in ``processing`` state."""
    engine = get_engine()
    with Session(engine) as db:
        row = db.get(ImportStatusRecord, job_id)
        if row is None:
            row = ImportStatusRecord(id=job_id)
            db.add(row)
        else:
            logger.info("Restarting status tracking for existing import %s", job_id)
        row.status = ImportStatus.PROCESSING.value
        row.file_name = file_name
        row.start_time = _utcnow()
        row.end_time = None
        row.total_records = 0
        row.processed_records = 0
        row.successful_records = 0
        row.failed_records = 0
        row.errors = []
        db.commit()
        db.refresh(row)
        return _row_to_status(row)


def update_import_status(
    job_id: str,
    *,
    status: Optional[str] = None,
    total_records: Optional[int] = None,
    processed_records: Optional[int] = None,
    successful_records: Optional[int] = None,
    failed_records: Optional[int] = None,
    errors: Optional[Sequence[str]] = None,
    finished: bool = False,
) -> Dict[str, Any]:
    """
    Apply a partial update to a job that is still processing.

    Args:
        job_id: Job identifier
        status: New status; only terminal statuses are accepted
        errors: Full error list to store (trimmed to the configured cap)
        finished: Stamp ``end_time`` with the current time

    Returns:
        The updated status record

    Raises:
        StatusTransitionError: If the job does not exist or is already terminal
    """
    if status is not None and status not in TERMINAL_STATUSES:
        raise StatusTransitionError(f"Cannot transition import {job_id} to '{status}'", job_id=job_id)

    values: Dict[str, Any] = {}
    if status is not None:
        values["status"] = status
    if total_records is not None:
        values["total_records"] = total_records
    if processed_records is not None:
        values["processed_records"] = processed_records
    if successful_records is not None:
        values["successful_records"] = successful_records
    if failed_records is not None:
        values["failed_records"] = failed_records
    if errors is not None:
        values["errors"] = trim_errors(errors)
    if finished:
        values["end_time"] = _utcnow()

    engine = get_engine()
    with Session(engine) as db:
        if values:
            result = db.execute(
                update(ImportStatusRecord)
                .where(ImportStatusRecord.id == job_id)
                .where(ImportStatusRecord.status == ImportStatus.PROCESSING.value)
                .values(**values)
            )
            if result.rowcount == 0:
                db.rollback()
                raise StatusTransitionError(
                    f"Import {job_id} is missing or no longer processing", job_id=job_id
                )
            db.commit()
        row = db.get(ImportStatusRecord, job_id)
        if row is None:
            raise StatusTransitionError(f"Import {job_id} not found", job_id=job_id)
        return _row_to_status(row)


def get_import_status(job_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a single job status by id."""
    engine = get_engine()
    with Session(engine) as db:
        row = db.get(ImportStatusRecord, job_id)
        return _row_to_status(row) if row else None


def delete_import_status(job_id: str) -> bool:
    """Delete a job status record. Returns True if a record was removed."""
    engine = get_engine()
    with Session(engine) as db:
        result = db.execute(delete(ImportStatusRecord).where(ImportStatusRecord.id == job_id))
        db.commit()
        return result.rowcount > 0


def list_import_statuses(limit: int = 50) -> List[Dict[str, Any]]:
    """Most recently started jobs first."""
    engine = get_engine()
    with Session(engine) as db:
        rows = db.scalars(
            select(ImportStatusRecord).order_by(ImportStatusRecord.start_time.desc()).limit(limit)
        ).all()
        return [_row_to_status(row) for row in rows]


class ImportStatusTracker:
    """
    Cumulative progress for one running job.

    Counters live here and the whole snapshot is written after each chunk,
    so the stored record is always consistent with what has been committed.
    """

    def __init__(self, job_id: str, file_name: str):
        self.job_id = job_id
        self.file_name = file_name
        self.total_records = 0
        self.processed_records = 0
        self.successful_records = 0
        self.failed_records = 0
        self.errors: List[str] = []
        self.status = ImportStatus.PROCESSING.value

    def start(self) -> Dict[str, Any]:
        return start_import_status(self.job_id, self.file_name)

    def set_total(self, total_records: int) -> Dict[str, Any]:
        self.total_records = total_records
        return update_import_status(self.job_id, total_records=total_records)

    def record_chunk(self, result: ChunkResult) -> Dict[str, Any]:
        self.processed_records += result.processed
        self.successful_records += result.successful
        self.failed_records += result.failed
        self.errors = trim_errors(self.errors + list(result.errors))
        return update_import_status(
            self.job_id,
            processed_records=self.processed_records,
            successful_records=self.successful_records,
            failed_records=self.failed_records,
            errors=self.errors,
        )

    def complete(self) -> Dict[str, Any]:
        snapshot = update_import_status(
            self.job_id,
            status=ImportStatus.COMPLETED.value,
            processed_records=self.processed_records,
            successful_records=self.successful_records,
            failed_records=self.failed_records,
            finished=True,
        )
        self.status = ImportStatus.COMPLETED.value
        logger.info(
            "Import %s completed: %s processed, %s successful, %s failed",
            self.job_id,
            self.processed_records,
            self.successful_records,
            self.failed_records,
        )
        return snapshot

    def fail(self, message: str) -> Dict[str, Any]:
        self.errors = trim_errors(self.errors + [message])
        snapshot = update_import_status(
            self.job_id,
            status=ImportStatus.FAILED.value,
            errors=self.errors,
            finished=True,
        )
        self.status = ImportStatus.FAILED.value
        logger.error("Import %s failed: %s", self.job_id, message)
        return snapshot
