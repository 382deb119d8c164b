"""
Shared helpers used across the API routers: typed errors and input checks.
"""
import logging
import re
from typing import Any, Dict, Optional

from fastapi import HTTPException

from company_import.domain.imports.errors import (
    ImportNotFoundError,
    ImportPermissionError,
    ImportPipelineError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    "unauthenticated": 401,
    "invalid-argument": 400,
    "permission-denied": 403,
    "not-found": 404,
    "internal": 500,
}

_IMPORT_ID_PATTERN = re.compile(r"^[^/\x00-\x1f]{1,255}$")


def api_error(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> HTTPException:
    """Build an HTTPException carrying one of the typed error codes."""
    detail: Dict[str, Any] = {"code": code, "message": message}
    if details:
        detail["details"] = details
    return HTTPException(status_code=ERROR_STATUS_CODES[code], detail=detail)


def error_from_domain(error: ImportPipelineError) -> HTTPException:
    if isinstance(error, ImportNotFoundError):
        return api_error("not-found", str(error))
    if isinstance(error, ImportPermissionError):
        return api_error("permission-denied", str(error))
    if isinstance(error, UnsupportedFormatError):
        return api_error("invalid-argument", str(error))
    logger.error("Unhandled import pipeline error: %s", error)
    return api_error("internal", str(error))


def require_import_id(import_id: Optional[str]) -> str:
    """
    Validate an import id coming from the caller.

    Import ids are storage object base names: no path separators or
    control characters.
    """
    candidate = (import_id or "").strip()
    if not candidate:
        raise api_error("invalid-argument", "The function must be called with an importId.")
    if not _IMPORT_ID_PATTERN.match(candidate):
        raise api_error("invalid-argument", f"Invalid importId '{candidate}'.")
    return candidate
