import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api.v1.routes import get_llm_client, get_search_client
from core.config import Settings, get_settings
from core.database import create_db_engine, get_db, get_session_factory, init_db
from main import app
from services.search_client import SearchResult


def make_settings(**overrides) -> Settings:
    values = dict(
        brave_api_key="test-brave-key",
        siliconflow_api_key="test-llm-key",
        search_base_delay=0,
        search_max_delay=0,
        search_rate_limit_delay=0,
        search_rate_limit_max_delay=0,
        search_query_interval=0,
        llm_base_delay=0,
        llm_max_delay=0,
        llm_rate_limit_delay=0,
        llm_rate_limit_max_delay=0,
        record_fetch_retry_delay=0,
    )
    values.update(overrides)
    return Settings(**values)


class FakeSearchClient:
    """Returns the same canned results for every query and remembers what it was asked."""

    def __init__(self, results=None, api_key="test-brave-key"):
        self.api_key = api_key
        self._results = list(results or [])
        self.queries = []

    async def search(self, query, count=8):
        self.queries.append(query)
        return list(self._results)

    async def search_many(self, queries, count=8):
        out = []
        for query in queries:
            out.extend(await self.search(query, count))
        return out


class FakeLLMClient:
    def __init__(self, courses=None, api_key="test-llm-key"):
        self.api_key = api_key
        self._courses = list(courses or [])
        self.calls = 0

    async def extract_courses_with_ai(self, search_text, major, language="zh"):
        self.calls += 1
        return list(self._courses)


def result(title, description, url="https://example.com/page"):
    return SearchResult(title=title, description=description, url=url)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def session_factory(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def fake_search():
    return FakeSearchClient()


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def client(session_factory, settings, fake_search, fake_llm):
    def _override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_search_client] = lambda: fake_search
    app.dependency_overrides[get_llm_client] = lambda: fake_llm

    yield TestClient(app)

    # Clean up overrides
    app.dependency_overrides.clear()
