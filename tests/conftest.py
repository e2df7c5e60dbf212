import asyncio
import os
import tempfile
from datetime import datetime, timedelta

os.environ.setdefault("ENABLE_CSRF_JSON", "false")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("GEMINI_API_KEY", "stub")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="subtracker-logs-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from main import create_app  # noqa: E402
from subtracker.core.config import settings  # noqa: E402
from subtracker.core.database import Database  # noqa: E402
from subtracker.core.rate_limit import LoginThrottle  # noqa: E402
from subtracker.core.security import password_hasher  # noqa: E402
from subtracker.domain.categories.services import CategoryStore  # noqa: E402
from subtracker.domain.subscriptions.cancellation import CancellationScheduler  # noqa: E402
from subtracker.domain.subscriptions.services import SubscriptionStore  # noqa: E402
from subtracker.domain.users.services import create_user  # noqa: E402
from subtracker.web.routes import auth as auth_routes  # noqa: E402


class ManualClock:
    """Clock and sleep pair whose time only moves when a test calls ``advance``."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, 0)) -> None:
        self.now = start
        self._sleepers: list[tuple[datetime, asyncio.Future]] = []

    def __call__(self) -> datetime:
        return self.now

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + timedelta(seconds=seconds), future))
        await future

    @property
    def sleeping(self) -> int:
        return sum(1 for _, future in self._sleepers if not future.done())

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)
        remaining = []
        for deadline, future in self._sleepers:
            if future.done():
                continue
            if deadline <= self.now:
                future.set_result(None)
            else:
                remaining.append((deadline, future))
        self._sleepers = remaining


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch):
    monkeypatch.setattr(password_hasher, "rounds", 4)


@pytest.fixture(autouse=True)
def fresh_login_throttle(monkeypatch):
    monkeypatch.setattr(auth_routes, "login_throttle", LoginThrottle())


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'subtracker-test.db'}"


@pytest.fixture
async def database(database_url):
    db = Database(database_url)
    await db.connect()
    await db.create_all()
    yield db
    await db.disconnect()


@pytest.fixture
async def session(database):
    async with database.session() as db_session:
        yield db_session


@pytest.fixture
def category_store(session):
    return CategoryStore(session)


@pytest.fixture
def subscription_store(session):
    return SubscriptionStore(session)


@pytest.fixture
async def user_id(session):
    user = await create_user(session, username="alice", password="correct horse")
    return user.id


@pytest.fixture
async def other_user_id(session):
    user = await create_user(session, username="bob", password="battery staple")
    return user.id


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
async def scheduler(database, clock):
    cancellations = CancellationScheduler(
        database,
        grace_seconds=10,
        secret_key="test-secret",
        sleep=clock.sleep,
        clock=clock,
    )
    yield cancellations
    await cancellations.shutdown()


# ---------------------------------------------------------------------------
# HTTP fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def app(database_url):
    database = Database(database_url)
    cancellations = CancellationScheduler(
        database,
        grace_seconds=60,
        secret_key=settings.SECRET_KEY,
    )
    return create_app(database=database, cancellations=cancellations)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def signup_and_login(client: TestClient, username: str, password: str = "s3cret-pass") -> dict:
    response = client.post("/api/auth/signup", json={"username": username, "password": password})
    assert response.status_code == 201, response.text
    response = client.post("/api/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def auth_client(client):
    signup_and_login(client, "alice")
    return client


@pytest.fixture
def login_as(client):
    """Sign up (if needed) and log the test client in as ``username``."""

    def _login(username: str, password: str = "s3cret-pass") -> dict:
        client.post("/api/auth/signup", json={"username": username, "password": password})
        response = client.post("/api/auth/login", json={"username": username, "password": password})
        assert response.status_code == 200, response.text
        return response.json()

    return _login
