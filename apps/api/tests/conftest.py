import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from config import Settings
from main import create_app
from routers import rate_limit
from services.accounts import ensure_admin_account
from services.session_token import create_session_token


ADMIN_EMAIL = "admin@bodasuite.com"
ADMIN_PASSWORD = "admin123"


@pytest.fixture
def app_settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'boda_suite_test.db'}",
        RECEIPTS_DIR=str(tmp_path / "recibos"),
        UPLOAD_DIR=str(tmp_path / "uploads"),
        JWT_SECRET="test-secret-for-boda-suite-api-tests",
        BCRYPT_ROUNDS=4,
        SEED_ADMIN_EMAIL=ADMIN_EMAIL,
        SEED_ADMIN_PASSWORD=ADMIN_PASSWORD,
    )


@pytest_asyncio.fixture
async def test_app(app_settings):
    app = create_app(app_settings)
    app.state.disable_rate_limits = True
    database = app.state.database
    await database.create_all()
    await ensure_admin_account(database.session_maker, ADMIN_EMAIL, ADMIN_PASSWORD, rounds=4)
    yield app
    await app.state.audit_recorder.drain()
    await database.dispose()


@pytest_asyncio.fixture
async def client(test_app):
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def session_maker(test_app):
    return test_app.state.database.session_maker


@pytest.fixture
def auth_headers(app_settings):
    token = create_session_token(1, ADMIN_EMAIL, app_settings=app_settings)["token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def reset_local_rate_limit_counters():
    """Keep in-memory rate-limit state isolated between tests."""
    rate_limit._local_counters.clear()
    yield
    rate_limit._local_counters.clear()
