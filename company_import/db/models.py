"""
Document-store tables used by the import pipeline.

Each table mirrors one logical collection:

- ``companies``: canonical company documents keyed by ``company_id``
- ``imports``: job status records keyed by the job id (uploaded file base name)
- ``import_uploads``: companion upload records written at submission time
"""
from sqlalchemy import JSON, Column, DateTime, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB

from company_import.db.session import Base, get_engine

# JSONB on PostgreSQL, plain JSON everywhere else (SQLite for local runs and tests)
DocumentType = JSON().with_variant(JSONB(), "postgresql")


class CompanyDocument(Base):
    __tablename__ = "companies"

    company_id = Column(Text, primary_key=True)
    # Unbounded, like the raw input they are projected from
    organisation_number = Column(Text, index=True, nullable=False, default="")
    name = Column(Text, nullable=False, default="")
    data = Column(DocumentType, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    imported_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ImportStatusRecord(Base):
    __tablename__ = "imports"

    id = Column(String(255), primary_key=True)
    status = Column(String(20), nullable=False, default="processing", index=True)
    file_name = Column(String(500), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=True)
    total_records = Column(Integer, nullable=False, default=0)
    processed_records = Column(Integer, nullable=False, default=0)
    successful_records = Column(Integer, nullable=False, default=0)
    failed_records = Column(Integer, nullable=False, default=0)
    errors = Column(DocumentType, nullable=False, default=list)


class UploadRecord(Base):
    __tablename__ = "import_uploads"

    id = Column(String(64), primary_key=True)
    import_id = Column(String(255), nullable=False, index=True)
    user_id = Column(String(255), nullable=True, index=True)
    file_name = Column(String(500), nullable=False)
    status = Column(String(50), nullable=False, default="uploaded")
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)
    download_url = Column(String(2048), nullable=True)
    storage_path = Column(String(1024), nullable=True)


def create_import_tables(engine=None) -> None:
    """Create the pipeline tables if they don't exist."""
    engine = engine or get_engine()
    Base.metadata.create_all(
        bind=engine,
        tables=[
            CompanyDocument.__table__,
            ImportStatusRecord.__table__,
            UploadRecord.__table__,
        ],
    )
