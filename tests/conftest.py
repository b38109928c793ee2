"""
Shared fixtures.

API tests run the real application against a throwaway SQLite database
(aiosqlite) and a temporary upload directory. Unit tests use the mock
session fixtures instead.
"""

import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from backoffice.core import email as email_module
from backoffice.core.database import Base, build_session_maker, get_db
from backoffice.core.rate_limit import reset_memory_store
from backoffice.core.security import create_access_token
from backoffice.core.storage import FileStorage, get_storage
from backoffice.main import app
from backoffice.modules.admissions import models as admissions_models  # noqa: F401
from backoffice.modules.messages import models as messages_models  # noqa: F401
from backoffice.modules.users import models as users_models  # noqa: F401


@pytest.fixture(autouse=True)
def _isolate_side_effects(monkeypatch):
    """Fresh rate limit window and no real email for every test."""
    reset_memory_store()
    monkeypatch.setattr(email_module.settings, "resend_api_key", None)
    yield
    reset_memory_store()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def storage(tmp_path):
    """Upload storage rooted in a temporary directory."""
    store = FileStorage(
        root=tmp_path / "uploads",
        max_bytes=1024 * 1024,
        allowed_extensions={"pdf", "png", "jpg", "jpeg"},
    )
    store.ensure_root()
    return store


@pytest.fixture
def stored_files(storage):
    """Callable listing every file currently under the storage root."""

    def _list() -> list:
        return [path for path in storage.root.rglob("*") if path.is_file()]

    return _list


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker, storage):
    """HTTP client for the app, wired to the test database and storage."""

    async def _get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_storage] = lambda: storage

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


def _token(role: str, user_id=None, name: str | None = "Test Staff") -> str:
    return create_access_token(
        subject=str(user_id or uuid4()),
        additional_claims={"email": f"{role}@school.org", "role": role, "name": name},
    )


@pytest.fixture
def auth_headers():
    """Factory for bearer headers: auth_headers("admin"), auth_headers(user_id=...)."""

    def _headers(role: str = "staff", user_id=None, name: str | None = "Test Staff") -> dict:
        return {"Authorization": f"Bearer {_token(role, user_id, name)}"}

    return _headers


@pytest.fixture
def staff_headers(auth_headers):
    return auth_headers("staff")


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers("admin")


@pytest.fixture
def student_info():
    return {
        "firstName": "Ama",
        "lastName": "Mensah",
        "birthDate": date(2015, 4, 12).isoformat(),
        "gender": "female",
        "nationality": "Ghanaian",
    }


@pytest.fixture
def contact_info():
    return {
        "parentName": "Kofi Mensah",
        "parentEmail": "Kofi.Mensah@Example.com",
        "parentPhone": "+233 24 123 4567",
        "address": "12 Independence Avenue",
        "city": "Accra",
    }


@pytest.fixture
def academic_info():
    return {
        "gradeLevel": "primary3",
        "previousSchool": "Sunrise Primary",
        "languageProficiency": "fluent",
        "specialNeeds": None,
    }


@pytest.fixture
def application_form(student_info, contact_info, academic_info):
    """The three JSON sections, encoded the way the website posts them."""
    return {
        "studentInfo": json.dumps(student_info),
        "contactInfo": json.dumps(contact_info),
        "academicInfo": json.dumps(academic_info),
    }
