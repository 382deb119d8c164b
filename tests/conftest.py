"""
Pytest configuration and fixtures for the company import tests.

Every test gets a fresh in-memory SQLite engine with all tables created, so
tests never need a running PostgreSQL. Object storage is faked per test.
"""

import os

# Must be set before company_import.core.config builds its settings.
os.environ["SKIP_DB_INIT"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"

from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from company_import.core.security import create_access_token, create_user, init_auth_tables
from company_import.db.models import create_import_tables
from company_import.db.session import set_engine
from company_import.integrations.storage import StorageDownloadError


@pytest.fixture(autouse=True)
def test_engine():
    """Fresh database per test: pipeline tables plus users."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    set_engine(engine)
    create_import_tables(engine)
    init_auth_tables(engine)
    yield engine
    set_engine(None)
    engine.dispose()


@pytest.fixture
def fake_storage(monkeypatch):
    """
    In-memory object storage patched into every module that talks to storage.
    Returns the backing dict (object key -> bytes).
    """
    storage = {}

    def fake_upload(file_content: bytes, file_name: str, folder: str = "imports"):
        path = f"{folder}/{file_name}"
        storage[path] = bytes(file_content)
        return {
            "file_id": file_name,
            "file_name": file_name,
            "file_path": path,
            "size": len(file_content),
        }

    def fake_download_to_path(file_path: str, destination: str) -> str:
        if file_path not in storage:
            raise StorageDownloadError(f"File not found: {file_path}")
        with open(destination, "wb") as handle:
            handle.write(storage[file_path])
        return destination

    def fake_delete(file_path: str) -> bool:
        storage.pop(file_path, None)
        return True

    def fake_presigned_url(file_path: str, expires_in: int = 3600, filename: str = None) -> str:
        return f"https://storage.example.com/test-bucket/{file_path}?X-Amz-Signature=test"

    monkeypatch.setattr("company_import.api.routers.imports.upload_file", fake_upload)
    monkeypatch.setattr("company_import.api.routers.imports.generate_presigned_download_url", fake_presigned_url)
    monkeypatch.setattr("company_import.domain.imports.orchestrator.download_file_to_path", fake_download_to_path)
    monkeypatch.setattr("company_import.api.routers.imports.delete_file", fake_delete)
    monkeypatch.setattr("company_import.domain.imports.status_query.delete_file", fake_delete)
    return storage


@pytest.fixture
def user_factory(test_engine):
    """
    Creates users directly via the ORM.
    Returns a callable so tests can create both admin and standard users.
    """
    session = Session(test_engine)

    def _create_user(*, role: str = "user", password: str = "Password123!") -> dict:
        email = f"{role}_{uuid4().hex}@example.com"
        user = create_user(
            db=session,
            email=email,
            password=password,
            full_name="Pytest User",
            role=role,
        )
        token = create_access_token({"sub": user.email})
        return {
            "user": user,
            "token": token,
            "email": email,
            "password": password,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    yield _create_user
    session.close()
