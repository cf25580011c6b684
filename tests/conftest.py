import datetime
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from analog.main import app
from analog.db.models import Procedure
from analog.db.session import enable_sqlite_foreign_keys, get_db, init_db

@pytest.fixture(scope="function")
async def engine():
    """
    Fresh in-memory SQLite database per test.
    StaticPool keeps the single connection alive, otherwise the schema
    disappears with the first connection that gets closed.
    """
    test_engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    enable_sqlite_foreign_keys(test_engine)
    await init_db(test_engine)

    yield test_engine

    await test_engine.dispose()

@pytest.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    TestingSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    async with TestingSessionLocal() as session:
        yield session

@pytest.fixture(scope="function")
async def client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """
    API client whose requests all run on the test session.
    """
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

@pytest.fixture
def make_procedure():
    """
    Builds a Procedure row with sensible defaults; override any column.
    """
    def _make(case_number: str, **overrides) -> Procedure:
        values = {
            "case_number": case_number,
            "age_years": 40,
            "age_months": 0,
            "date": datetime.date(2025, 3, 14),
            "asa_score": 2,
            "airway_management": "tube",
            "department": "AC",
            "procedure": "Laparoscopic cholecystectomy",
            "outpatient": False,
            "emergency": False,
            "favorite": False,
            "special_features": False,
            "local_anesthetics": False,
        }
        values.update(overrides)
        return Procedure(**values)
    return _make

@pytest.fixture
def add_procedures(db_session, make_procedure):
    async def _add(*procedures: Procedure):
        db_session.add_all(procedures)
        await db_session.commit()
    return _add
