import logging
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
from pandas.errors import EmptyDataError, ParserError

from company_import.domain.imports.errors import ParseError

logger = logging.getLogger(__name__)

COUNT_CHUNK_SIZE = 10000

_CSV_OPTIONS = {
    # Every cell stays text: identifiers and phone numbers must not be coerced
    # to floats, and empty cells become "" instead of NaN.
    "dtype": str,
    "keep_default_na": False,
    "skipinitialspace": True,
    "encoding": "utf-8-sig",
}


def _keep_leading_fields(file_path: str, field_count: int) -> Callable[[List[str]], Optional[List[str]]]:
    """Bad-line handler: a row with extra fields keeps the first ``field_count`` of them."""
    def handle(bad_line: List[str]) -> Optional[List[str]]:
        logger.warning(
            "Row in %s has %s fields, expected %s; extra fields dropped",
            file_path, len(bad_line), field_count,
        )
        return bad_line[:field_count]
    return handle


def _read_csv(file_path: str, **kwargs):
    header = pd.read_csv(file_path, nrows=0, **_CSV_OPTIONS)
    return pd.read_csv(
        file_path,
        engine="python",
        on_bad_lines=_keep_leading_fields(file_path, len(header.columns)),
        **_CSV_OPTIONS,
        **kwargs,
    )


def count_csv_records(file_path: str) -> int:
    """
    First pass over a CSV file: count data rows without materializing them.

    Args:
        file_path: Path of the downloaded CSV file

    Returns:
        Number of data rows (header excluded). A completely empty file
        counts as zero rows.

    Raises:
        ParseError: If the file cannot be tokenized as CSV
    """
    try:
        total = 0
        for chunk in _read_csv(file_path, chunksize=COUNT_CHUNK_SIZE):
            total += len(chunk)
    except EmptyDataError:
        return 0
    except (ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to parse CSV: {e}") from e

    logger.info("Found %s records in CSV file %s", total, file_path)
    return total


def read_csv_records(file_path: str) -> List[Dict[str, Any]]:
    """
    Second pass: read every row as a header-keyed dict of strings.

    Rows with too many fields keep the leading ones; rows with too few get
    "" for the missing cells.
    """
    try:
        df = _read_csv(file_path)
    except EmptyDataError:
        return []
    except (ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"Failed to parse CSV: {e}") from e

    df = df.fillna("")
    df.columns = [str(column).strip() for column in df.columns]
    records = df.to_dict("records")
    logger.info("Read %s records from CSV file %s, columns: %s", len(records), file_path, list(df.columns))
    return records
