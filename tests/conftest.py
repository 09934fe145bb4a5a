import asyncio
import os
import tempfile

# Settings are read at import time, so the environment has to be in place first.
_TMP = tempfile.mkdtemp(prefix="rentalert-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP}/app.db"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_USER"] = "admin"
os.environ["ADMIN_PASS"] = "adminpass"
os.environ["REMINDER_SEND_DELAY_SECONDS"] = "0"
os.environ["AT_USERNAME"] = ""
os.environ["AT_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.db import create_tables, make_engine
from app.models import Property, Tenant, User


async def seed(dsn: str) -> None:
    engine = make_engine(dsn)
    await create_tables(engine)
    sm = async_sessionmaker(engine, expire_on_commit=False)
    async with sm() as session:
        session.add_all([
            User(id="u-alice", name="Alice Landlord", email="alice@example.com", phone="+256700000010"),
            User(id="u-bob", name="Bob Landlord", email="bob@example.com"),
            Property(id="p-sunset", user_id="u-alice", name="Sunset Flats"),
            Property(id="p-hill", user_id="u-bob", name="Hill View"),
        ])
        await session.flush()
        session.add_all([
            Tenant(id="t1", user_id="u-alice", property_id="p-sunset", name="Grace Nakato",
                   phone="+256700000001", email="grace@example.com", unit_number="A1",
                   rent_amount=500000, due_date=5),
            Tenant(id="t2", user_id="u-alice", property_id="p-sunset", name="John Okello",
                   phone="+256700000002", email=None, unit_number="A2",
                   rent_amount=450000, due_date=1),
            Tenant(id="t3", user_id="u-alice", property_id="p-sunset", name="Sarah Achieng",
                   phone="+256700000003", email="sarah@example.com", unit_number="B1",
                   rent_amount=600000, due_date=22),
            Tenant(id="t4", user_id="u-bob", property_id="p-hill", name="Peter Mugisha",
                   phone="+256700000004", email="peter@example.com", unit_number="1",
                   rent_amount=300000, due_date=10),
        ])
        await session.commit()
    await engine.dispose()


@pytest.fixture(scope="session")
def client():
    asyncio.run(seed(os.environ["DATABASE_URL"]))
    from app.main_app import app
    with TestClient(app) as c:
        yield c
        app.dependency_overrides.clear()


@pytest.fixture
def tmp_db(tmp_path):
    """A fresh SQLite file with all tables, for collaborator tests."""
    return f"sqlite+aiosqlite:///{tmp_path}/collab.db"
