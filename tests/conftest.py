"""
Pytest configuration and fixtures
"""
import asyncio
import os
import shutil
import tempfile

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

# Set test environment variables before importing
_tmp_dir = tempfile.mkdtemp(prefix="reagent-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/test.db"
os.environ["STORAGE_PATH"] = os.path.join(_tmp_dir, "storage")
os.environ["JWT_SECRET"] = "test-secret-key-for-tests-only-min-32-chars"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["GEMINI_API_KEY"] = "test-gemini-key"
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce log noise in tests

# Import after setting env vars
from reagent import app  # noqa: E402
from reagent.auth import create_jwt  # noqa: E402
from reagent.confirm import delete_confirmations  # noqa: E402
from reagent.database import async_session, engine  # noqa: E402
from reagent.models import Base, Project, ProjectImage, User  # noqa: E402
from reagent.storage import storage  # noqa: E402
from reagent.uploads import upload_tracker  # noqa: E402


def run(coro):
    return asyncio.run(coro)


async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _add(obj):
    async with async_session() as db:
        db.add(obj)
        await db.commit()
        return obj


async def _fetch(model, *where):
    async with async_session() as db:
        result = await db.execute(select(model).where(*where))
        return list(result.scalars().all())


def add(obj):
    """Persist an ORM object and return it (attributes stay loaded)."""
    return run(_add(obj))


def fetch_all(model, *where):
    return run(_fetch(model, *where))


def fetch_one(model, *where):
    rows = fetch_all(model, *where)
    return rows[0] if rows else None


def png_bytes(width=40, height=20):
    ok, buf = cv2.imencode(".png", np.zeros((height, width, 3), dtype=np.uint8))
    assert ok
    return buf.tobytes()


def client_for(user):
    client = TestClient(app)
    client.headers["Authorization"] = f"Bearer {create_jwt(user.id, user.email)}"
    return client


def make_project(user, **kw):
    fields = {"name": "Sea View Villa", "package": "pro", "status": "draft"}
    fields.update(kw)
    return add(Project(user_id=user.id, **fields))


def make_image(project, n=1, **kw):
    fields = {
        "original_filename": f"Sea_View_Villa_{n:02d}.jpg",
        "attempt_number": 1,
        "tweak_history": [""],
        "processing_status": "pending",
    }
    fields.update(kw)
    return add(ProjectImage(project_id=project.id, **fields))


@pytest.fixture(autouse=True)
def fresh_state():
    """Empty database, bucket and in-memory UI state for every test"""
    run(_reset_schema())
    shutil.rmtree(storage.bucket_dir, ignore_errors=True)
    upload_tracker._entries.clear()
    delete_confirmations._controls.clear()
    yield


@pytest.fixture
def user():
    return add(User(email="owner@example.com", name="Owner"))


@pytest.fixture
def other_user():
    return add(User(email="intruder@example.com", name="Intruder"))


@pytest.fixture
def client(user):
    return client_for(user)


@pytest.fixture
def anon_client():
    return TestClient(app)
