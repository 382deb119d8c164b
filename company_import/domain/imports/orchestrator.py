"""
End-to-end driver for one company import job.

Flow for an uploaded object:
    resolve job id -> create status (processing) -> download to a scoped temp
    dir -> detect format -> count + persist total -> canonicalize and commit
    chunk by chunk, in sequence -> completed

Only pipeline-level problems (unsupported extension, unparsable file,
download failure) end in ``failed``. A job whose chunks failed to commit is
still ``completed``; its ``failed_records`` counter carries the damage.
"""
import logging
import os
import shutil
import tempfile
from typing import Any, Dict, Iterable, Optional
from urllib.parse import unquote_plus

from company_import.core.config import settings
from company_import.domain.imports.batch_commit import chunk_records, commit_chunk
from company_import.domain.imports.canonical import canonicalize_company
from company_import.domain.imports.errors import ImportPipelineError, StatusTransitionError
from company_import.domain.imports.formats import load_import_file
from company_import.domain.imports.jobs import ImportStatusTracker, get_import_status
from company_import.integrations.storage import download_file_to_path

logger = logging.getLogger(__name__)


def job_id_from_object_key(object_key: str) -> str:
    """The job id is the object's base name up to the first dot."""
    return os.path.basename(object_key).split(".")[0]


def is_import_object(object_key: Optional[str]) -> bool:
    return bool(object_key) and object_key.startswith(settings.import_prefix)


def run_import_file(file_path: str, tracker: ImportStatusTracker) -> Dict[str, Any]:
    """
    Import a local file under an already started tracker.

    Raises:
        UnsupportedFormatError, ParseError: Before any chunk is attempted
    """
    parsed = load_import_file(file_path, on_total=tracker.set_total)
    logger.info(
        "Import %s: %s file with %s records", tracker.job_id, parsed.file_format, parsed.total_records
    )

    if parsed.total_records == 0:
        return tracker.complete()

    for chunk_index, raw_chunk in enumerate(chunk_records(parsed.records, settings.import_batch_size)):
        companies = [canonicalize_company(raw) for raw in raw_chunk]
        result = commit_chunk(companies, chunk_index)
        tracker.record_chunk(result)

    return tracker.complete()


def _fail_job(tracker: ImportStatusTracker, message: str) -> Optional[Dict[str, Any]]:
    """Record a job failure without ever raising out of the driver."""
    try:
        return tracker.fail(message)
    except StatusTransitionError as e:
        logger.warning("Import %s is no longer processing, failure not recorded: %s", tracker.job_id, e)
    except Exception:
        logger.exception("Could not record failure for import %s", tracker.job_id)
        return None
    return get_import_status(tracker.job_id)


def _run_tracked(tracker: ImportStatusTracker, file_path: str) -> Optional[Dict[str, Any]]:
    try:
        return run_import_file(file_path, tracker)
    except StatusTransitionError as e:
        # Status removed or finished elsewhere, e.g. the import was deleted mid-run
        logger.warning("Import %s stopped: %s", tracker.job_id, e)
        return get_import_status(tracker.job_id)
    except ImportPipelineError as e:
        return _fail_job(tracker, str(e))


def handle_object_finalized(object_key: str) -> Optional[Dict[str, Any]]:
    """
    Run the import for one finalized storage object.

    Objects outside the import prefix are ignored and return None. Otherwise
    the final status record is returned (None when the record was removed
    while the job ran). Pipeline and storage errors end up on the status
    record instead of propagating.
    """
    if not is_import_object(object_key):
        logger.info("Not an import file, skipping: %s", object_key)
        return None

    file_name = os.path.basename(object_key)
    job_id = job_id_from_object_key(object_key)
    logger.info("Processing import file %s as job %s", object_key, job_id)

    tracker = ImportStatusTracker(job_id, file_name)
    try:
        tracker.start()
        with tempfile.TemporaryDirectory(prefix="company-import-", dir=settings.temp_dir) as temp_dir:
            local_path = os.path.join(temp_dir, file_name)
            download_file_to_path(object_key, local_path)
            logger.info("Downloaded %s to %s", object_key, local_path)
            return _run_tracked(tracker, local_path)
    except Exception as e:
        logger.exception("Error processing import file %s", object_key)
        return _fail_job(tracker, str(e))


def import_local_file(file_path: str, job_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Run the pipeline against a file that is already on disk.

    The file is copied into a scoped temp dir first so the source is never
    touched, mirroring the storage-triggered flow.
    """
    file_name = os.path.basename(file_path)
    tracker = ImportStatusTracker(job_id or job_id_from_object_key(file_name), file_name)

    try:
        tracker.start()
        with tempfile.TemporaryDirectory(prefix="company-import-", dir=settings.temp_dir) as temp_dir:
            local_path = os.path.join(temp_dir, file_name)
            shutil.copyfile(file_path, local_path)
            return _run_tracked(tracker, local_path)
    except Exception as e:
        logger.exception("Error importing local file %s", file_path)
        return _fail_job(tracker, str(e))


def created_object_keys(payload: Dict[str, Any]) -> Iterable[str]:
    """Object keys of the ``ObjectCreated`` records in an S3-style event notification."""
    for record in payload.get("Records") or []:
        event_name = record.get("eventName", "")
        if "ObjectCreated" not in event_name:
            continue
        key = (record.get("s3") or {}).get("object", {}).get("key")
        if key:
            # S3 event notifications URL-encode keys (spaces become "+")
            yield unquote_plus(key)

