"""
Chunked, atomic persistence of canonical company records.

Each chunk is written in a single transaction as a multi-row upsert keyed by
``company_id``. A chunk either lands completely or not at all, so a failed
commit counts every record in that chunk as failed and records one error
string for the chunk.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, TypeVar

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

from company_import.db.models import CompanyDocument
from company_import.db.session import get_engine
from company_import.domain.imports.canonical import CanonicalCompanyRecord

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_UPSERT_BUILDERS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


@dataclass
class ChunkResult:
    chunk_index: int
    successful: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.successful + self.failed


def chunk_records(records: Sequence[_T], chunk_size: int) -> Iterator[List[_T]]:
    """Yield consecutive slices of at most ``chunk_size`` records, in order."""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    for start in range(0, len(records), chunk_size):
        yield list(records[start:start + chunk_size])


def _upsert_statement(engine: Engine):
    builder = _UPSERT_BUILDERS.get(engine.dialect.name)
    if builder is None:
        raise NotImplementedError(f"Upserts are not supported for dialect '{engine.dialect.name}'")

    table = CompanyDocument.__table__
    statement = builder(table)
    # created_at keeps its first value; everything else is replaced
    return statement.on_conflict_do_update(
        index_elements=[table.c.company_id],
        set_={
            "organisation_number": statement.excluded.organisation_number,
            "name": statement.excluded.name,
            "data": statement.excluded.data,
            "updated_at": func.now(),
            "imported_at": func.now(),
        },
    )


def write_companies(records: Sequence[CanonicalCompanyRecord], engine: Engine = None) -> None:
    """
    Upsert a group of canonical records in one transaction.

    Raises whatever the database raises; nothing is written on failure.
    """
    if not records:
        return
    engine = engine or get_engine()

    # Later duplicates within one chunk win, as they would with sequential writes
    rows = {}
    for record in records:
        rows[record.company_id] = {
            "company_id": record.company_id,
            "organisation_number": record.organisation_number,
            "name": record.name,
            "data": record.to_document(),
        }

    with engine.begin() as conn:
        conn.execute(_upsert_statement(engine), list(rows.values()))


def commit_chunk(records: Sequence[CanonicalCompanyRecord], chunk_index: int) -> ChunkResult:
    """Write one chunk and report how it went; never raises."""
    try:
        write_companies(records)
    except Exception as e:
        logger.error("Error committing batch %s (%s records): %s", chunk_index, len(records), e)
        return ChunkResult(
            chunk_index=chunk_index,
            successful=0,
            failed=len(records),
            errors=[f"Batch commit error {chunk_index}: {e}"],
        )

    logger.info("Committed batch %s with %s records", chunk_index, len(records))
    return ChunkResult(chunk_index=chunk_index, successful=len(records), failed=0)
