"""Fixtures for tests that run the crud layer against a real SQLite database."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from privgate.models import Base, PlanPrivilege, Privilege, Subscription

NOW = datetime(2024, 3, 13, 10, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A file-backed SQLite engine with the full schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'privgate.db'}")

    # pysqlite manages transactions on its own and breaks SAVEPOINT; take over.
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    """A session on the test database."""
    session_factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session


async def seed_grant(
    db,
    *,
    name: str = "Teleconsultation",
    value: int = 4,
    status: str = "active",
    **limits,
):
    """Insert a subscription whose plan grants one privilege.

    Returns (subscription, privilege, plan_privilege).
    """
    plan_id = uuid4()
    subscription = Subscription(plan_id=plan_id, status=status)
    privilege = Privilege(name=name, description=f"{name} sessions", is_active=True)
    db.add_all([subscription, privilege])
    await db.flush()

    plan_privilege = PlanPrivilege(
        plan_id=plan_id,
        privilege_id=privilege.id,
        value=value,
        period_months=1,
        is_active=True,
        **limits,
    )
    db.add(plan_privilege)
    await db.commit()
    return subscription, privilege, plan_privilege
