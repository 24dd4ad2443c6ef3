"""Shared test fixtures."""

import asyncio
import inspect
import time
from collections.abc import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from scribe.db.engine import create_all, create_db_engine, create_session_factory
from scribe.services.container import build_memory_services, build_sql_services


class FakeHttp:
    """Outbound HTTP double: answers by URL and records every request.

    A route maps a URL to an ``httpx.Response``, an exception instance to raise,
    or a (sync or async) callable taking the request. Unrouted URLs get a 404.
    """

    def __init__(self) -> None:
        self.routes: dict[str, httpx.Response | Exception | Callable] = {}
        self.requests: list[httpx.Request] = []
        self.started_at: dict[str, float] = {}
        self.transport = httpx.MockTransport(self._handle)

    def route(self, url: str, target: httpx.Response | Exception | Callable | int = 200) -> None:
        if isinstance(target, int):
            target = httpx.Response(target, text="ok" if target < 300 else "error")
        self.routes[url] = target

    def delay(self, url: str, seconds: float, status: int = 200) -> None:
        async def _slow(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(seconds)
            return httpx.Response(status, text="slow")

        self.routes[url] = _slow

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        self.started_at.setdefault(str(request.url), time.monotonic())
        target = self.routes.get(str(request.url))
        if target is None:
            return httpx.Response(404, text="no route")
        if isinstance(target, Exception):
            raise target
        if isinstance(target, httpx.Response):
            return httpx.Response(target.status_code, content=target.content, headers=target.headers)
        result = target(request)
        if inspect.isawaitable(result):
            result = await result
        return result


@pytest.fixture
def http():
    return FakeHttp()


@pytest.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine; concurrent sessions each get their own connection."""
    engine = create_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'scribe_test.db'}")
    await create_all(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def memory_services(http):
    return build_memory_services(transport=http.transport)


@pytest.fixture
def sql_services(session_factory, http):
    return build_sql_services(session_factory, transport=http.transport)


@pytest.fixture
def app(db_engine, session_factory, sql_services):
    """Test application wired to the SQLite engine and the fake outbound HTTP."""
    from scribe.main import create_app

    _app = create_app()
    _app.state.db_engine = db_engine
    _app.state.db_session_factory = session_factory
    _app.state.redis = None
    _app.state.services = sql_services
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
