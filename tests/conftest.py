"""Shared fixtures: fresh in-memory SQLite databases for API and service tests."""
import asyncio
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from spotted.core import database
from spotted.core.config import settings
from spotted.main import app
from spotted.models import Base, Report
from spotted.services.catalog import seed_violation_types

API = "/api/v1"


@pytest.fixture
def client(monkeypatch, tmp_path):
    """TestClient backed by its own in-memory database, created via the app lifespan."""
    engine = database.create_engine("sqlite+aiosqlite://")
    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setattr(database, "AsyncSessionLocal", async_sessionmaker(engine, expire_on_commit=False))
    monkeypatch.setattr(settings, "EVIDENCE_DIR", str(tmp_path / "evidence"))

    with TestClient(app) as test_client:
        yield test_client
        test_client.portal.call(engine.dispose)


@pytest.fixture
def run_in_app(client):
    """Run ``fn(db, *args)`` on the app's event loop and database."""
    def _run(fn, *args):
        async def _call():
            async with database.AsyncSessionLocal() as db:
                return await fn(db, *args)
        return client.portal.call(_call)
    return _run


@pytest.fixture
def run_db():
    """Run ``scenario(db)`` against a fresh, seeded in-memory database."""
    def _run(scenario):
        async def _main():
            engine = database.create_engine("sqlite+aiosqlite://")
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
                factory = async_sessionmaker(engine, expire_on_commit=False)
                async with factory() as db:
                    await seed_violation_types(db)
                    return await scenario(db)
            finally:
                await engine.dispose()
        return asyncio.run(_main())
    return _run


def register(client, email="rider@example.com", password="correct-horse", full_name="Rider One"):
    """Sign up through the API and return bearer headers for the new identity."""
    resp = client.post(
        f"{API}/auth/signup",
        json={"email": email, "password": password, "full_name": full_name},
    )
    assert resp.status_code == 201, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


async def review(db, report_id, status, reason=None):
    """Stand-in for the external moderation process."""
    report = await db.get(Report, report_id)
    report.status = status
    if reason is not None:
        report.rejection_reason = reason
    await db.commit()
    await db.refresh(report)
    return report
