"""
File format detection and loading for uploaded import files.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from company_import.domain.imports.errors import UnsupportedFormatError
from company_import.domain.imports.processors.csv_processor import count_csv_records, read_csv_records
from company_import.domain.imports.processors.json_processor import process_json

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {
    ".json": "json",
    ".csv": "csv",
}


@dataclass
class ParsedImportFile:
    file_format: str
    total_records: int
    records: List[Any] = field(default_factory=list)
    single_record: bool = False


def detect_file_format(file_name: str) -> str:
    """
    Detect the import format from the file extension (case-insensitive).

    Returns:
        "json" or "csv"

    Raises:
        UnsupportedFormatError: For any other extension
    """
    extension = os.path.splitext(file_name)[1].lower()
    file_format = SUPPORTED_EXTENSIONS.get(extension)
    if file_format is None:
        raise UnsupportedFormatError(f"Unsupported file type: {extension or '(none)'}")
    return file_format


def load_import_file(
    file_path: str,
    on_total: Optional[Callable[[int], None]] = None,
) -> ParsedImportFile:
    """
    Detect, count and parse the raw records of a downloaded import file.

    Args:
        file_path: Local path of the file; its extension selects the format
        on_total: Called with the record count as soon as it is known, before
            CSV rows are materialized

    Raises:
        UnsupportedFormatError: Unknown extension
        ParseError: The file cannot be parsed in its declared format
    """
    file_format = detect_file_format(file_path)

    if file_format == "json":
        with open(file_path, "rb") as handle:
            payload = process_json(handle.read())
        logger.info("Parsed JSON data with %s records", len(payload.records))
        if on_total is not None:
            on_total(len(payload.records))
        return ParsedImportFile(
            file_format=file_format,
            total_records=len(payload.records),
            records=payload.records,
            single_record=payload.single_record,
        )

    total = count_csv_records(file_path)
    if on_total is not None:
        on_total(total)
    if total == 0:
        return ParsedImportFile(file_format=file_format, total_records=0)
    return ParsedImportFile(
        file_format=file_format,
        total_records=total,
        records=read_csv_records(file_path),
    )
