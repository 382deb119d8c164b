"""
Exception hierarchy for the company import pipeline.

Pipeline-level errors abort a job and end up on its status record; the
lookup errors are raised by the status query functions and translated into
typed API errors by the routers.
"""
from __future__ import annotations


class ImportPipelineError(Exception):
    """Base exception for all import pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        job_id: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.job_id = job_id
        self.details = details or {}
        super().__init__(message)


class UnsupportedFormatError(ImportPipelineError):
    """The uploaded file extension is not one the pipeline can read."""
    pass


class ParseError(ImportPipelineError):
    """The uploaded file could not be parsed at all."""
    pass


class StatusTransitionError(ImportPipelineError):
    """A status update targeted a job that is missing or already terminal."""
    pass


class ImportNotFoundError(ImportPipelineError):
    """Neither an upload record nor a job status exists for the import id."""
    pass


class ImportPermissionError(ImportPipelineError):
    """The caller may not manage the requested import."""
    pass
