from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ImportStatusInfo(BaseModel):
    """Progress of one import job as shown to the dashboard."""
    id: str
    status: str
    file_name: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_records: int = 0
    processed_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    errors: List[str] = Field(default_factory=list)


class ImportStatusResponse(BaseModel):
    """Response wrapper for a single import status."""
    success: bool
    import_status: ImportStatusInfo


class UploadRecordInfo(BaseModel):
    """Companion record written when a file is submitted for import."""
    id: str
    import_id: str
    user_id: Optional[str] = None
    file_name: str
    status: str
    timestamp: Optional[datetime] = None
    download_url: Optional[str] = None


class ImportListResponse(BaseModel):
    """Response wrapper for a user's imports, newest first."""
    success: bool
    imports: List[UploadRecordInfo]
    limit: int


class UploadImportResponse(BaseModel):
    """Response from submitting a file for import"""
    success: bool
    message: str
    import_id: str
    upload: UploadRecordInfo
    import_scheduled: bool


class DeleteImportResponse(BaseModel):
    """Response from deleting an import"""
    success: bool
    message: str


class StorageEventResponse(BaseModel):
    """Acknowledgement for an object-storage notification."""
    success: bool
    accepted_keys: List[str]
    ignored_keys: List[str]

